"""
Abstract persistence interface for appointments, patients and settings.
"""

import re
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from ...config import AppointmentSettings
from ...core.models import Appointment, BookingDraft, Patient

BOOKING_NOTES = "Booked via AI Chat Assistant"


def generate_patient_visible_id(clinic_name: str, sequence: int) -> str:
    """
    Build a visible patient id such as ``CIT0007``.

    The prefix is the first three letters of the clinic name, padded with
    ``A`` when the name is shorter.
    """
    letters = re.sub(r"[^a-zA-Z]", "", clinic_name or "").upper()
    if not letters:
        raise ValueError("clinic name must contain at least one letter")
    prefix = letters[:3].ljust(3, "A")
    return f"{prefix}{sequence:04d}"


class AppointmentRepository(ABC):
    """What the booking engine needs from the clinic database."""

    @abstractmethod
    async def find_appointments_in_range(self, start: date, end: date) -> List[Appointment]:
        """All appointments (any status) with ``start <= date <= end``."""

    @abstractmethod
    async def find_patient_by_phone_or_name(
        self, phone: Optional[str] = None, name: Optional[str] = None
    ) -> Optional[Patient]:
        """
        Look a patient up by phone first, then by case-insensitive name.

        Several patients can share a phone; when ``name`` is given too the
        record matching both wins, otherwise the oldest record on that phone.
        """

    @abstractmethod
    async def create_appointment_atomic(
        self,
        draft: BookingDraft,
        *,
        duration: int,
        idempotency_key: Optional[str] = None,
    ) -> Appointment:
        """
        Create the patient (when ``draft.existing_patient_ref`` is unset) and
        the appointment in one transaction.

        Raises BookingConflictError when another active appointment holds
        the same (date, time). Repeating a call with the same
        ``idempotency_key`` returns the appointment created the first time.
        """

    @abstractmethod
    async def get_appointment_settings(self) -> Optional[AppointmentSettings]:
        """The clinic's appointment settings, or None when not configured."""
