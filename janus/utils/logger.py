# janus/utils/logger.py

"""
Logging setup for Janus

Watchers, synchroniser workers and debounce timers all log from their own
threads, so every format carries the thread name.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

TEXT_FORMAT = '%(asctime)s [%(threadName)s] %(name)s %(levelname)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that are noisy below WARNING
QUIET_LOGGERS = ('watchdog',)


class JsonFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'time': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'message': record.getMessage(),
        }
        # Set by log_exception(extra=...)
        context = getattr(record, 'context', None)
        if context:
            entry['context'] = context
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ColorFormatter(logging.Formatter):
    """Text format with the level name colored for terminals"""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[41m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not color:
            return super().format(record)
        # Format a copy; the file handler shares the same record
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def _formatter(log_format: str, for_terminal: bool) -> logging.Formatter:
    log_format = log_format.lower()
    if log_format == 'json':
        return JsonFormatter()
    if log_format == 'color' and for_terminal:
        return ColorFormatter(TEXT_FORMAT, DATE_FORMAT)
    return logging.Formatter(TEXT_FORMAT, DATE_FORMAT)


def _attach(root: logging.Logger, handler: logging.Handler,
            formatter: logging.Formatter, level: int):
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)


def setup_logging(log_level: str = "INFO",
                  log_file: Optional[str] = None,
                  log_format: str = "text",
                  max_file_size: int = 5 * 1024 * 1024,
                  backup_count: int = 3) -> logging.Logger:
    """
    Configure the root logger

    Replaces any existing root handlers with a stdout handler and, when
    log_file is given, a rotating file handler.

    Args:
        log_level: Level name, unknown names fall back to INFO
        log_file: Optional log file path; parent directories are created
        log_format: text, color (terminal only) or json
        max_file_size: Rotation threshold in bytes
        backup_count: Rotated files to keep

    Returns:
        The root logger
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    _attach(root, logging.StreamHandler(sys.stdout), _formatter(log_format, True), level)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(path, maxBytes=max_file_size,
                                       backupCount=backup_count, encoding='utf-8')
        _attach(root, rotating, _formatter(log_format, False), level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug(f"Logging configured: level={logging.getLevelName(level)}, "
               f"format={log_format}, file={log_file}")
    return root


def setup_logging_from_config(config) -> logging.Logger:
    """setup_logging() with the logging fields of a janus Config"""
    return setup_logging(config.log_level, config.log_file, config.log_format)


def log_exception(logger: logging.Logger, exception: Exception,
                  message: str = "Unexpected error", extra: Optional[Dict] = None):
    """
    Log an exception with its traceback

    Args:
        logger: Logger to write to
        exception: The exception, usually from an except block
        message: Log message
        extra: Context stored on the record as `context`
    """
    logger.error(
        message,
        exc_info=(type(exception), exception, exception.__traceback__),
        extra={'context': extra} if extra else None,
    )
