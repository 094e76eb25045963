"""
API Routers
Separate router modules for each domain.
"""

from app.routers import builds

__all__ = ["builds"]
