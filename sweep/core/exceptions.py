"""
Custom exceptions for the SWEEP parameter search system.

This module defines a hierarchy of exceptions that provide specific error handling
for the parameter space, backtesting and optimization components.
"""

from typing import Optional, Any

class SweepException(Exception):
    """Base exception for errors."""
    
    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details
    
    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(SweepException):
    """Raised when there are issues with configuration settings."""
    pass


class DataError(SweepException):
    """Raised when there are issues with data processing or retrieval."""
    pass


class DataProviderError(DataError):
    """Raised when there are issues with data providers."""
    pass


class ValidationError(SweepException):
    """Raised when data or parameters fail validation."""
    pass


class DecodeError(SweepException):
    """Raised when a binary parameter payload cannot be decoded."""
    pass


class RiskError(SweepException):
    """Raised when account risk rules are violated."""
    pass


class BacktestError(SweepException):
    """Raised when there are issues during backtesting."""
    pass


class EvaluationError(SweepException):
    """Raised when a single candidate fails to evaluate."""
    pass


class InvalidResultError(SweepException):
    """Raised when a backtest result does not pass the validity gate."""
    pass


class OptimizationError(SweepException):
    """Raised when there are issues during parameter optimization."""
    pass


class SearchCancelled(SweepException):
    """Raised when a running backtest or search observes a cancellation request."""
    pass
