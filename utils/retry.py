"""
Retry decorators with exponential backoff for the chat transport and the database.
The game engine itself never retries; only the collaborators below it do.
"""
import time
import logging
from functools import wraps
from typing import Callable, TypeVar, Any
import config

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: tuple = (Exception,)
):
    """
    Decorator for retrying function calls with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including the first one)
        base_delay: Initial delay in seconds
        max_delay: Upper bound for a single delay
        exponential_base: Multiplier applied to the delay after every failure
        exceptions: Exception types that trigger a retry
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = base_delay
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_attempts:
                        logger.error(
                            f"{func.__qualname__} failed after {attempt} attempts: {e}"
                        )
                        raise
                    wait = min(delay, max_delay)
                    logger.warning(
                        f"{func.__qualname__} failed (attempt {attempt}/{max_attempts}): {e}. "
                        f"Retrying in {wait:.2f}s..."
                    )
                    time.sleep(wait)
                    delay *= exponential_base
                    attempt += 1

        return wrapper
    return decorator


def telegram_retry(func: Callable[..., T]) -> Callable[..., T]:
    """Retry Telegram Bot API calls (flood control, timeouts, network errors)."""
    from telegram.error import TimedOut, NetworkError, RetryAfter

    return retry_with_backoff(
        max_attempts=config.config.TELEGRAM_RETRY_ATTEMPTS,
        base_delay=config.config.TELEGRAM_RETRY_BACKOFF_BASE,
        exceptions=(TimedOut, NetworkError, RetryAfter, ConnectionError)
    )(func)


def database_retry(func: Callable[..., T]) -> Callable[..., T]:
    """Retry store operations on dropped or unavailable database connections."""
    from sqlalchemy.exc import OperationalError, DisconnectionError

    return retry_with_backoff(
        max_attempts=config.config.DATABASE_RETRY_ATTEMPTS,
        base_delay=config.config.DATABASE_RETRY_DELAY,
        exceptions=(OperationalError, DisconnectionError, ConnectionError)
    )(func)
