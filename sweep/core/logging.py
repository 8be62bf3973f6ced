"""
Centralized logging for the SWEEP parameter search system.

Console output is plain text; the optional rotating log file receives one
JSON object per record. Every record emitted while an optimization runs is
tagged with the run's correlation ID, and records from a parallel search
instance also carry that instance's index, so interleaved worker output can be
separated again.
"""

import contextlib
import functools
import json
import logging
import logging.handlers
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Union


DEFAULT_LOG_FILE = Path("logs") / "sweep.log"
CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_instance_context = threading.local()


def current_instance() -> Optional[int]:
    """Index of the search instance running on this thread, if any."""
    return getattr(_instance_context, "index", None)


@contextlib.contextmanager
def search_instance(index: int) -> Iterator[None]:
    """Tag records logged on this thread with a search instance index."""
    previous = current_instance()
    _instance_context.index = index
    try:
        yield
    finally:
        _instance_context.index = previous


class CorrelationFilter(logging.Filter):
    """Adds the run correlation ID and search instance to log records."""

    def __init__(self):
        super().__init__()
        self.correlation_id = None

    def filter(self, record):
        if self.correlation_id:
            record.correlation_id = self.correlation_id
        instance = current_instance()
        if instance is not None:
            record.search_instance = instance
        return True

    def set_correlation_id(self, correlation_id: Optional[str]):
        self.correlation_id = correlation_id


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }

        for attribute in ("correlation_id", "search_instance"):
            if hasattr(record, attribute):
                log_entry[attribute] = getattr(record, attribute)

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def _build_handlers(
    log_file: Path,
    enable_console: bool,
    enable_file: bool,
    max_file_size: int,
    backup_count: int
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        handlers.append(console_handler)
    if enable_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        )
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)
    return handlers


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
    enable_console: bool = True,
    enable_file: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Set up centralized logging for the SWEEP system.

    Calling it again replaces the handlers and the correlation filter
    installed by the previous call.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL) or number
        log_file: Path to the JSON log file (defaults to logs/sweep.log)
        enable_console: Whether to log to stdout
        enable_file: Whether to log to the rotating file
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup log files to keep

    Returns:
        Configured root logger
    """
    log_file = Path(log_file) if log_file is not None else DEFAULT_LOG_FILE
    numeric_level = level if isinstance(level, int) else getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    for existing in [f for f in root_logger.filters if isinstance(f, CorrelationFilter)]:
        root_logger.removeFilter(existing)

    # Handlers filter too: records from child loggers skip the root's filters
    correlation_filter = CorrelationFilter()
    for handler in _build_handlers(log_file, enable_console, enable_file, max_file_size, backup_count):
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    root_logger.addFilter(correlation_filter)

    get_logger(__name__).info("SWEEP logging system initialized", extra={
        "extra_fields": {
            "log_level": logging.getLevelName(numeric_level),
            "log_file": str(log_file) if enable_file else None,
            "enable_console": enable_console,
            "enable_file": enable_file
        }
    })

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, usually called with ``__name__``."""
    return logging.getLogger(name)


def _root_correlation_filter() -> Optional[CorrelationFilter]:
    for filter_obj in logging.getLogger().filters:
        if isinstance(filter_obj, CorrelationFilter):
            return filter_obj
    return None


def get_correlation_id() -> Optional[str]:
    """Correlation ID currently attached to records, if logging is set up."""
    correlation_filter = _root_correlation_filter()
    return correlation_filter.correlation_id if correlation_filter else None


def set_correlation_id(correlation_id: Optional[str]):
    """
    Set the correlation ID attached to every subsequent record.

    Args:
        correlation_id: Identifier of the current run, or None to clear it
    """
    correlation_filter = _root_correlation_filter()
    if correlation_filter is not None:
        correlation_filter.set_correlation_id(correlation_id)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def log_with_correlation(func):
    """
    Run ``func`` under a fresh correlation ID.

    The previous ID is restored when the call returns or raises, so a
    backtest replayed inside an optimization run does not leave its own ID
    behind.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        previous_id = get_correlation_id()
        correlation_id = generate_correlation_id()
        set_correlation_id(correlation_id)

        logger = get_logger(func.__module__)
        logger.debug(f"Starting {func.__qualname__}", extra={
            "extra_fields": {"function": func.__qualname__}
        })

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in {func.__qualname__}: {e}", extra={
                "extra_fields": {
                    "function": func.__qualname__,
                    "error_type": type(e).__name__
                }
            }, exc_info=True)
            raise
        finally:
            set_correlation_id(previous_id)

        logger.debug(f"Completed {func.__qualname__}", extra={
            "extra_fields": {
                "function": func.__qualname__,
                "correlation_id": correlation_id,
                "result_type": type(result).__name__
            }
        })
        return result

    return wrapper
