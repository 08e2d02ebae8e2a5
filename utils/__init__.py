"""
Utilities module for Strong Link Bot.
Contains retry decorators, error classes, and logging setup.
"""
from utils.retry import retry_with_backoff, telegram_retry, database_retry
from utils.errors import (
    StrongLinkError,
    GameError,
    QuestionPoolError,
    DatabaseError,
    TelegramAPIError,
    ValidationError,
    ConfigurationError,
)
from utils.logging import setup_logging, get_logger

__all__ = [
    "retry_with_backoff",
    "telegram_retry",
    "database_retry",
    "StrongLinkError",
    "GameError",
    "QuestionPoolError",
    "DatabaseError",
    "TelegramAPIError",
    "ValidationError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
]
