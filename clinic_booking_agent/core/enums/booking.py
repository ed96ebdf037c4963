"""
Booking-related enums.
"""

from enum import Enum


class ConversationPhase(str, Enum):
    """Enumeration of the booking conversation phases."""

    GREETING = "GREETING"
    ASKING_DATE = "ASKING_DATE"
    SHOWING_SLOTS = "SHOWING_SLOTS"
    ASKING_APPOINTMENT_TYPE = "ASKING_APPOINTMENT_TYPE"
    COLLECTING_PATIENT_INFO = "COLLECTING_PATIENT_INFO"
    CONFIRMING_BOOKING = "CONFIRMING_BOOKING"
    COMPLETED = "COMPLETED"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "Scheduled"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No Show"

    @classmethod
    def from_string(cls, value: str) -> "AppointmentStatus":
        """Convert a stored status string, case-insensitively."""
        if not value:
            return cls.SCHEDULED
        lowered = value.strip().lower()
        for member in cls:
            if member.value.lower() == lowered:
                return member
        return cls.SCHEDULED


class TimeCategory(str, Enum):
    """Time-of-day bucket shown next to each slot."""

    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"

    @classmethod
    def for_minutes(cls, minutes: int) -> "TimeCategory":
        if minutes < 12 * 60:
            return cls.MORNING
        if minutes < 17 * 60:
            return cls.AFTERNOON
        return cls.EVENING
