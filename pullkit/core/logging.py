"""Logging for pullkit.

Loggers carry "dimensions": key/value pairs (entity, page size, vendor, ...) that are
attached to every record they emit. Locally these are rendered after the message,
elsewhere each record is written as one JSON object per line.

Usage:
    from pullkit.core.logging import logger

    log = logger.with_context(entity_external_id="User", page_size=100)
    log.info("Starting datasource request")
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple

from pullkit.core.config import LogFormat, settings

_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class _TextFormatter(logging.Formatter):
    """Human-readable formatter that appends dimensions as key=value pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        dimensions = getattr(record, "dimensions", None)
        if dimensions:
            rendered = " ".join(f"{key}={value}" for key, value in dimensions.items())
            line = f"{line} [{rendered}]"
        return line


class _JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "dimensions", None) or {})
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key != "dimensions":
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches dimensions to every record.

    Loggers are immutable: with_context() and with_prefix() return new loggers and
    leave the receiver untouched.
    """

    def __init__(
        self,
        logger: logging.Logger,
        dimensions: Optional[Dict[str, Any]] = None,
        prefix: str = "",
    ):
        super().__init__(logger, {})
        self.dimensions: Dict[str, Any] = dict(dimensions or {})
        self.prefix = prefix

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["dimensions"] = {**self.dimensions, **extra.get("dimensions", {})}
        kwargs["extra"] = extra
        if self.prefix:
            msg = f"{self.prefix}{msg}"
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a logger with additional dimensions."""
        return ContextualLogger(self.logger, {**self.dimensions, **dimensions}, self.prefix)

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Return a logger that prefixes every message."""
        return ContextualLogger(self.logger, self.dimensions, f"{self.prefix}{prefix}")


class LoggerConfigurator:
    """Builds configured loggers."""

    _handler: Optional[logging.Handler] = None

    @classmethod
    def _get_handler(cls) -> logging.Handler:
        if cls._handler is None:
            handler = logging.StreamHandler(sys.stdout)
            if settings.log_format == LogFormat.JSON:
                handler.setFormatter(_JSONFormatter())
            else:
                handler.setFormatter(_TextFormatter())
            cls._handler = handler
        return cls._handler

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Configure and return a contextual logger.

        Args:
            name: Logger name, usually the module path.
            dimensions: Dimensions attached to every record of this logger.

        Returns:
            ContextualLogger wrapping the named stdlib logger.
        """
        base = logging.getLogger(name)
        if not base.handlers:
            base.addHandler(cls._get_handler())
            base.setLevel(settings.LOG_LEVEL.upper())
            base.propagate = False
        return ContextualLogger(base, dimensions)


logger = LoggerConfigurator.configure_logger("pullkit")
