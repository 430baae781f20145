"""Error handling utilities.

Exception hierarchy, retry logic for the data sources, and the tolerant
numeric conversions used when parsing provider payloads.
"""

import time
from typing import TypeVar, Callable, Type, Tuple
from functools import wraps

from .logging_config import get_logger

logger = get_logger("error_handling")

T = TypeVar('T')


def retry_with_backoff(
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    logger_func: Callable[[str], None] | None = None
):
    """Decorator to retry function with exponential backoff.

    Args:
        max_retries: Maximum number of attempts
        backoff_factor: Multiplier for exponential backoff (wait time = backoff_factor ** attempt)
        exceptions: Tuple of exception types to catch and retry
        logger_func: Optional logging function (defaults to logger.warning)

    Returns:
        Decorated function with retry logic

    Example:
        >>> @retry_with_backoff(max_retries=3, exceptions=(ConnectionError, TimeoutError))
        >>> def fetch_data():
        >>>     return api.get_option_chain("SPY", "2025-03-21")

    Raises:
        The original exception if all retries are exhausted
    """
    log_func = logger_func or logger.warning

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries - 1:
                        logger.error(
                            "Function %s failed after %d attempts: %s",
                            func.__name__, max_retries, e
                        )
                        raise

                    wait_time = backoff_factor ** attempt
                    log_func(
                        f"Attempt {attempt + 1}/{max_retries} failed for {func.__name__}: {e}. "
                        f"Retrying in {wait_time:.1f}s..."
                    )
                    time.sleep(wait_time)

            raise RuntimeError(f"Unexpected state in retry logic for {func.__name__}")

        return wrapper
    return decorator


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers, returning default on division by zero.

    Example:
        >>> safe_divide(10, 2)
        5.0
        >>> safe_divide(10, 0)
        0.0
    """
    if denominator == 0:
        logger.debug("Division by zero: %s/%s, returning %s", numerator, denominator, default)
        return default
    return numerator / denominator


def safe_float(value, default: float | None = None) -> float | None:
    """Convert a payload value to float, returning default for None/blank/invalid."""
    if value is None or value == '':
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def safe_int(value, default: int | None = None) -> int | None:
    """Convert a payload value to int, returning default for None/blank/invalid.

    Float strings such as "12.0" are accepted (some providers send counts that way).
    """
    if value is None or value == '':
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError, OverflowError):
        return default


class AnalyzerError(Exception):
    """Base exception for analyzer errors."""
    pass


class DataValidationError(ValueError, AnalyzerError):
    """Raised when a contract or quote record has an invalid shape.

    Inherits from ValueError so callers can treat it as a plain bad-value error.
    """
    pass


class ConfigurationError(AnalyzerError):
    """Raised when configuration is invalid."""
    pass


class DataSourceError(AnalyzerError):
    """Raised when the quote provider cannot supply data."""
    pass


class AuthenticationError(DataSourceError):
    """Raised when the quote provider rejects the API token."""
    pass


class RateLimitError(DataSourceError):
    """Raised when the quote provider throttles requests."""
    pass
