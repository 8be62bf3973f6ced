"""
Decorators for the SWEEP parameter search system.
"""

import time
import functools
from typing import Callable, Optional
import logging

from ..core.logging import get_logger


def log_execution_time(logger: Optional[logging.Logger] = None, level: int = logging.DEBUG):
    """
    Decorator recording the wall-clock duration of a call.

    The duration travels as the structured ``elapsed_seconds`` field so that
    run times of searches can be read back from the JSON log. Failed calls are
    logged at WARNING with the exception type and re-raised; cancelled
    searches end up here too.

    Args:
        logger: Logger for timing records (defaults to the function's module logger)
        level: Level used for the completion record
    """
    def decorator(func: Callable) -> Callable:
        timing_logger = logger or get_logger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - started
                timing_logger.warning(
                    f"{func.__qualname__} stopped after {elapsed:.3f}s: {e}",
                    extra={"extra_fields": {
                        "function": func.__qualname__,
                        "elapsed_seconds": elapsed,
                        "error_type": type(e).__name__,
                    }}
                )
                raise

            elapsed = time.perf_counter() - started
            timing_logger.log(
                level,
                f"{func.__qualname__} completed in {elapsed:.3f}s",
                extra={"extra_fields": {"function": func.__qualname__, "elapsed_seconds": elapsed}}
            )
            return result

        return wrapper

    return decorator
