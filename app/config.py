"""
Application configuration
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """API settings. Runner settings live in cross_shadow.config."""

    # API
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8080
    API_TITLE: str = "cross_shadow API"
    API_VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
