"""
Structured logging for collection controllers.

Controllers log store calls with keyword data (collection, filter, update,
options). Those values carry ObjectIds, datetimes and nested operator
documents, so both formatters here know how to render them.

Library code only emits records. Applications that want the formatters
below call setup_logging() once at startup.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Mapping, MutableMapping, Union

from bson import ObjectId

from collection_controller.config.settings import get_settings

# Keyword arguments the logging machinery itself understands
_LOGGING_KWARGS = ("exc_info", "stack_info", "stacklevel", "extra")


def _json_default(value: Any) -> Any:
    """json.dumps fallback for values found in filters and documents."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return repr(value)


def render_value(value: Any) -> str:
    """
    Render one logged value on a single line.

    Strings and numbers are shown as is; filters, update documents and
    lists are shown as compact JSON so operator keys stay readable.
    """
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return json.dumps(value, default=_json_default, separators=(",", ":"))
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _with_extra_data(kwargs: MutableMapping[str, Any]) -> dict[str, Any]:
    """Split call kwargs into logging kwargs plus record.extra_data."""
    logging_kwargs = {key: kwargs.pop(key) for key in _LOGGING_KWARGS if key in kwargs}
    extra = dict(logging_kwargs.get("extra") or {})
    extra["extra_data"] = dict(kwargs) if kwargs else None
    logging_kwargs["extra"] = extra
    return logging_kwargs


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter, one object per line.

    Keyword data goes under "data"; ObjectIds become hex strings and
    datetimes ISO 8601 strings.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if getattr(record, "extra_data", None):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if get_settings().debug:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=_json_default)


class DevelopmentFormatter(logging.Formatter):
    """Coloured one-line records with key=value data for local work."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        line = f"{color}{timestamp} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            line += " [" + " ".join(f"{k}={render_value(v)}" for k, v in extra_data.items()) + "]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class StructuredLogger(logging.Logger):
    """
    Logger whose level methods accept keyword data.

        logger.debug("find", collection="users", filter={"name": "x"})

    Keywords other than the standard logging ones end up in
    record.extra_data.
    """

    def _log_with_data(self, level: int, msg: str, args: tuple, **kwargs: Any) -> None:
        if self.isEnabledFor(level):
            super()._log(level, msg, args, **_with_extra_data(kwargs))

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.CRITICAL, msg, args, **kwargs)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """
    Keyword-data logging on top of a plain logging.Logger.

    Used when the host created the logger before this package was
    imported, e.g. through logging.config.dictConfig.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, dict[str, Any]]:
        return msg, _with_extra_data(kwargs)


def setup_logging() -> None:
    """
    Configure root logging for an application using collection controllers.
    Call this once at application startup.
    """
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if settings.environment == "production":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = DevelopmentFormatter()

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Driver heartbeats and topology events
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("motor").setLevel(logging.WARNING)


def get_logger(name: str) -> Union[StructuredLogger, StructuredLoggerAdapter]:
    """
    Get a logger that accepts keyword data.

    New loggers are created as StructuredLogger without changing the
    process-wide logger class. A logger the host already created as a plain
    logging.Logger is wrapped in a StructuredLoggerAdapter instead.

    Usage:
        from collection_controller.config import get_logger
        logger = get_logger(__name__)

        logger.debug("find", collection="users", filter={"name": "x"})
        logger.error("update_one failed", collection="users", exc_info=True)
    """
    manager = logging.Logger.manager
    previous = manager.loggerClass
    manager.setLoggerClass(StructuredLogger)
    try:
        logger = logging.getLogger(name)
    finally:
        manager.loggerClass = previous

    if isinstance(logger, StructuredLogger):
        return logger
    return StructuredLoggerAdapter(logger, {})
