"""Configuration module for pullkit.

Usage:
    from pullkit.core.config import settings

    timeout = settings.DEFAULT_REQUEST_TIMEOUT_SECONDS
"""

from pullkit.core.config.enums import Environment, LogFormat
from pullkit.core.config.settings import Settings

__all__ = [
    "Environment",
    "LogFormat",
    "Settings",
    "settings",
]

# Singleton settings instance
settings = Settings()
