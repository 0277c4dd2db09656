"""
Feedwire Logging Configuration
=============================

Structured logging setup with console and rotating file output for both
development and production runs of the ingestion engine.
"""

import logging
import logging.handlers
import sys
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional

_RESERVED_RECORD_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RESERVED_RECORD_FIELDS
        }

        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored console formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors for console output."""
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]

        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        formatted = (
            f"{color}[{timestamp}] {record.levelname:8}{reset} "
            f"{record.name}:{record.funcName}:{record.lineno} - "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logger(
    name: str = "feedwire",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Set up logger with appropriate handlers and formatting.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        console: Whether to log to console
        structured: Whether to use structured JSON logging on the console
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup log files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Avoid duplicate handlers on reconfiguration
    logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)

        if structured:
            console_handler.setFormatter(StructuredFormatter())
        else:
            console_handler.setFormatter(ColoredConsoleFormatter())

        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )

        # File output is always JSON
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that merges component context into every record."""

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any]):
        super().__init__(logger, extra)

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        """Process log message with extra context."""
        if "extra" in kwargs:
            kwargs["extra"].update(self.extra)
        else:
            kwargs["extra"] = self.extra.copy()

        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    feed_name: Optional[str] = None,
) -> LoggerAdapter:
    """Get a logger adapter with component-specific context.

    Args:
        component_name: Name of the component (e.g., 'feed_fetcher', 'pipeline')
        feed_name: Associated feed name (optional)

    Returns:
        Logger adapter with context
    """
    base_logger = logging.getLogger(f"feedwire.{component_name}")

    extra_context = {
        "component": component_name,
    }

    if feed_name:
        extra_context["feed"] = feed_name

    return LoggerAdapter(base_logger, extra_context)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/feedwire.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure application-wide logging settings.

    Args:
        log_level: Global log level
        log_file: Path to main log file, None disables file logging
        enable_console: Whether to enable console logging
        structured_logging: Whether to use JSON structured logging
        max_file_size_mb: Rotation threshold for the log file
        backup_count: Number of rotated files to keep
    """
    setup_logger(
        name="feedwire",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count,
    )

    # Third-party library logging levels
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("feedparser").setLevel(logging.WARNING)
    logging.getLogger("sqlite3").setLevel(logging.WARNING)


class PerformanceLogger:
    """Context manager for performance logging."""

    def __init__(self, logger: logging.Logger, operation: str, **kwargs):
        """Initialize performance logger.

        Args:
            logger: Logger instance
            operation: Operation being timed
            **kwargs: Additional context for the operation
        """
        self.logger = logger
        self.operation = operation
        self.context = kwargs
        self.start_time = None
        self.duration_seconds = 0.0

    def __enter__(self) -> "PerformanceLogger":
        """Start timing the operation."""
        self.start_time = datetime.now(timezone.utc)
        self.logger.debug(f"Starting {self.operation}", extra=dict(self.context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """End timing and log results."""
        if self.start_time:
            self.duration_seconds = (
                datetime.now(timezone.utc) - self.start_time
            ).total_seconds()

            context = {
                **self.context,
                "duration_seconds": self.duration_seconds,
                "success": exc_type is None,
            }

            if exc_type:
                self.logger.error(
                    f"Failed {self.operation} in {self.duration_seconds:.3f}s",
                    extra=context,
                )
            else:
                self.logger.info(
                    f"Completed {self.operation} in {self.duration_seconds:.3f}s",
                    extra=context,
                )
