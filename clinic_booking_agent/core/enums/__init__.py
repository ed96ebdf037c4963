"""
Enumerations used across the booking engine.
"""

from .booking import ConversationPhase, AppointmentStatus, TimeCategory
from .nlu import Intent, DatePreference, TimePreference

__all__ = [
    "ConversationPhase",
    "AppointmentStatus",
    "TimeCategory",
    "Intent",
    "DatePreference",
    "TimePreference",
]
