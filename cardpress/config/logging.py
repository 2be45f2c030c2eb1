"""
Logging Configuration
=====================

structlog and standard-library records share one pipeline. Both are rendered
by ``structlog.stdlib.ProcessorFormatter`` on the console (key/value output in
development, JSON in production). Outside of tests a rotating
``logs/cardpress.log`` receives every record as a JSON line written by
python-json-logger.
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Dict, Any, List, TYPE_CHECKING
import structlog
from structlog.types import Processor

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

LOG_FILE_NAME = "cardpress.log"

# Chatty third-party loggers only report warnings
QUIET_LOGGERS = ("PIL", "asyncio", "playwright")

SHARED_PROCESSORS: List[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]

# LogRecord attributes plus the ones structlog attaches; never copied into JSON lines
RECORD_ATTRIBUTES = tuple(vars(logging.makeLogRecord({}))) + (
    "message",
    "asctime",
    "_logger",
    "_name",
    "_from_structlog",
    "_record",
)


def setup_logging() -> None:
    """Configure structlog and route its events through standard logging."""
    settings = get_settings()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(get_logging_config(settings))


def console_renderer(settings: "Settings") -> Processor:
    if settings.environment == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.environment == "development")


def log_file_path(settings: "Settings") -> Path:
    return settings.storage_path / "logs" / LOG_FILE_NAME


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """
    Build the ``dictConfig`` for the given settings.

    Tests log to the console only; other environments also write the
    rotating JSON log file.
    """
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "console",
            "stream": sys.stdout,
        },
    }
    if settings.environment != "testing":
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": settings.log_level,
            "formatter": "json",
            "filename": str(log_file_path(settings)),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": console_renderer(settings),
                "foreign_pre_chain": SHARED_PROCESSORS,
            },
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
                "reserved_attrs": RECORD_ATTRIBUTES,
            },
        },
        "handlers": handlers,
        "root": {"level": settings.log_level, "handlers": list(handlers)},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def ensure_log_directories() -> None:
    """Ensure the log directory exists."""
    log_file_path(get_settings()).parent.mkdir(parents=True, exist_ok=True)


# Initialize logging on import
ensure_log_directories()
setup_logging()
