"""
Enums describing parsed user input.
"""

from enum import Enum
from typing import Optional, Tuple


class Intent(str, Enum):
    """Intent classes the parser may return."""

    BOOK_APPOINTMENT = "book_appointment"
    CHECK_AVAILABILITY = "check_availability"
    PROVIDE_DATE = "provide_date"
    PROVIDE_TIME = "provide_time"
    PROVIDE_PATIENT_INFO = "provide_patient_info"
    PROVIDE_APPOINTMENT_TYPE = "provide_appointment_type"
    CONFIRM = "confirm"
    DENY = "deny"
    CANCEL = "cancel"
    GENERAL = "general"


class DatePreference(str, Enum):
    """Relative date preference."""

    TODAY = "today"
    TOMORROW = "tomorrow"
    NEXT_WEEK = "next_week"


class TimePreference(str, Enum):
    """Time-of-day preference with its filter range in minutes after midnight."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @property
    def window(self) -> Tuple[int, int]:
        return _PREFERENCE_WINDOWS[self]

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["TimePreference"]:
        if not value:
            return None
        value = value.strip().lower()
        for member in cls:
            if member.value == value:
                return member
        return None


_PREFERENCE_WINDOWS = {
    TimePreference.MORNING: (9 * 60, 12 * 60),
    TimePreference.AFTERNOON: (12 * 60, 17 * 60),
    TimePreference.EVENING: (17 * 60, 20 * 60),
}
