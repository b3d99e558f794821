"""
Logging configuration for codewatch

Logs go to stderr so that status lines printed by the CLI stay readable
on stdout.
"""
import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import json

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ('watchdog', 'httpx', 'httpcore')


class JsonFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        # Structured fields passed as extra={'extra': {...}}
        fields = getattr(record, 'extra', None)
        if isinstance(fields, dict):
            entry.update(fields)

        if record.threadName and record.threadName != 'MainThread':
            # Observer threads
            entry['thread'] = record.threadName

        return json.dumps(entry, default=str)


class ColorFormatter(logging.Formatter):
    """Colors the level name; errors are colored in full"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[41m',   # Red background
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)

        # Work on a copy so other handlers see the plain record
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        text = super().format(record)

        if record.levelno >= logging.ERROR:
            return f"{self.COLORS['ERROR']}{text}{self.RESET}"
        return text


def _build_formatter(log_format: str, console: bool) -> logging.Formatter:
    log_format = log_format.lower()
    if log_format == "json":
        return JsonFormatter()
    # Escape codes only make sense on a terminal
    if log_format == "color" and console and sys.stderr.isatty():
        return ColorFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    return logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: str = "text",  # text, json, or color
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the root logger

    Replaces any handlers installed earlier, so calling it twice is safe.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, only console logging)
        log_format: Format of logs (text, json, or color)
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(_build_formatter(log_format, console=True))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=log_path,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(_build_formatter(log_format, console=False))
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug(f"Logging configured. Level: {log_level}, Format: {log_format}, File: {log_file}")
    return root_logger


def log_exception(logger: logging.Logger, exception: BaseException,
                  message: str = "Exception occurred", extra: Optional[Dict] = None):
    """
    Log an exception with its traceback

    Args:
        logger: Logger instance
        exception: Exception to log
        message: Custom message
        extra: Structured context, emitted as fields by JsonFormatter
    """
    exc_info = (type(exception), exception, exception.__traceback__)
    logger.error(message, exc_info=exc_info, extra={'extra': extra} if extra else None)


def log_stats(logger: logging.Logger, title: str, stats: Dict[str, Any]):
    """Log a counters dict on one line, and as fields for JsonFormatter"""
    summary = ", ".join(f"{key}={value}" for key, value in stats.items())
    logger.info(f"{title}: {summary}", extra={'extra': dict(stats)})


class PerformanceLogger:
    """Times a block and logs the duration at DEBUG"""

    def __init__(self, operation: str, logger: Optional[logging.Logger] = None,
                 extra: Optional[Dict] = None):
        self.operation = operation
        self.logger = logger or logging.getLogger('codewatch.performance')
        self.extra = extra or {}
        self.duration: Optional[float] = None
        self._start: Optional[float] = None

    def __enter__(self):
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.monotonic() - self._start

        fields = {
            'operation': self.operation,
            'duration_seconds': round(self.duration, 3),
            **self.extra
        }
        if exc_type:
            fields['error'] = str(exc_val)
            self.logger.debug(f"{self.operation} failed after {self.duration:.2f}s",
                              extra={'extra': fields})
        else:
            self.logger.debug(f"{self.operation} took {self.duration:.2f}s",
                              extra={'extra': fields})
        return False
