"""
Core functionality for the SWEEP parameter search system.

This module contains configuration management, logging setup, and custom exceptions.
"""

from .config import Config
from .exceptions import SweepException, ConfigurationError, DataError, DecodeError, EvaluationError
from .logging import setup_logging, get_logger

__all__ = [
    "Config",
    "SweepException",
    "ConfigurationError",
    "DataError",
    "DecodeError",
    "EvaluationError",
    "setup_logging",
    "get_logger"
]
