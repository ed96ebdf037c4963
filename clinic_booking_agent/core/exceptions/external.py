"""
External API exceptions.
"""


class ExternalAPIError(Exception):
    """Base exception for external API errors."""
    pass


class LanguageModelError(ExternalAPIError):
    """Exception raised when no language-model provider produced usable output."""
    pass


class NotificationError(ExternalAPIError):
    """Exception raised when a notification channel fails to deliver."""
    pass
