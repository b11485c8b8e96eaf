"""Settings for pullkit.

Values are read from the environment (or a local .env file) once, at import time.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pullkit.core.config.enums import Environment, LogFormat


class Settings(BaseSettings):
    """Pullkit settings.

    Attributes:
    ----------
        ENVIRONMENT: The deployment environment.
        LOG_LEVEL: Root log level for pullkit loggers.
        LOG_FORMAT: Log output format. Defaults to text locally, JSON elsewhere.
        DEFAULT_REQUEST_TIMEOUT_SECONDS: Timeout for a single datasource call when the
            request config does not set one.
        IDENTITYNOW_ACCOUNT_COLLECTION_PAGE_SIZE: Number of accounts fetched per batch
            when syncing account entitlements.
        SYNC_MAX_ATTEMPTS: Attempts per page made by the full sync runner.
        SYNC_MAX_RETRY_WAIT_SECONDS: Upper bound on a single retry wait.

    """

    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Optional[LogFormat] = None

    DEFAULT_REQUEST_TIMEOUT_SECONDS: int = Field(default=120, ge=1)
    IDENTITYNOW_ACCOUNT_COLLECTION_PAGE_SIZE: int = Field(default=100, ge=1, le=250)

    SYNC_MAX_ATTEMPTS: int = Field(default=5, ge=1)
    SYNC_MAX_RETRY_WAIT_SECONDS: float = Field(default=120.0, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def log_format(self) -> LogFormat:
        """Resolved log format."""
        if self.LOG_FORMAT is not None:
            return self.LOG_FORMAT
        if self.ENVIRONMENT in (Environment.LOCAL, Environment.TEST):
            return LogFormat.TEXT
        return LogFormat.JSON
