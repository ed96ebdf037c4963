"""
Custom exceptions for the clinic booking agent.
"""

from .booking import (
    BookingFlowError,
    BookingValidationError,
    SlotUnavailableError,
    BookingConflictError,
)
from .configuration import ConfigurationError
from .external import ExternalAPIError, LanguageModelError, NotificationError
from .session import SessionStoreError

__all__ = [
    "BookingFlowError",
    "BookingValidationError",
    "SlotUnavailableError",
    "BookingConflictError",
    "ConfigurationError",
    "ExternalAPIError",
    "LanguageModelError",
    "NotificationError",
    "SessionStoreError",
]
