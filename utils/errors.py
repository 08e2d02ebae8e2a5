"""
Custom exception classes for Strong Link Bot.
"""
from typing import Optional


class StrongLinkError(Exception):
    """Base exception for Strong Link Bot."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize error.

        Args:
            message: Error message
            details: Optional additional details (chat_id, status, ...)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __repr__(self):
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details})"


class GameError(StrongLinkError):
    """Raised when a game operation is not possible in the session's state."""
    pass


class QuestionPoolError(StrongLinkError):
    """Raised when a question pool cannot be prepared or refilled."""
    pass


class DatabaseError(StrongLinkError):
    """Exception raised for database-related errors."""
    pass


class TelegramAPIError(StrongLinkError):
    """Exception raised for Telegram API errors."""
    pass


class ValidationError(StrongLinkError):
    """Raised when the semantic answer judge returns something unusable."""
    pass


class ConfigurationError(StrongLinkError):
    """Exception raised for configuration errors."""
    pass
