"""
Runner configuration
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runner settings"""

    # Cargo
    CARGO_HOME: Path = Path.home() / ".cargo"
    CARGO_CONFIG_NAME: str = "config.toml"
    BACKUP_SUFFIX: str = ".old"
    REQUIRE_CONFIG: bool = True

    # External tool
    CROSS_BIN: str = "cross"
    BUILD_TIMEOUT: Optional[int] = None  # seconds, None = wait forever
    CAPTURE_OUTPUT: bool = False
    # Opt-in: probing runs `cross --version`, a second call to the tool
    RECORD_TOOLCHAIN: bool = False

    # Receipts
    RECEIPTS_PATH: Optional[Path] = None

    LOG_LEVEL: str = "INFO"

    @property
    def config_path(self) -> Path:
        """Cargo config file that gets shadowed"""
        return self.CARGO_HOME.expanduser() / self.CARGO_CONFIG_NAME

    @property
    def backup_path(self) -> Path:
        """Where the config file sits while the tool runs"""
        return self.config_path.with_name(self.CARGO_CONFIG_NAME + self.BACKUP_SUFFIX)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"
