"""
Booking-related data models.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import AppointmentStatus, TimeCategory

PATIENT_FIELDS = ("patient_name", "patient_phone", "patient_email", "patient_age")


class TimeSlot(BaseModel):
    """A bookable (date, time) pair offered to the user."""

    model_config = ConfigDict(extra="forbid")

    date: str  # YYYY-MM-DD
    time: str  # "07:30 PM"
    display_date: str
    time_category: TimeCategory


class BookingDraft(BaseModel):
    """The in-progress appointment request; unset fields are None."""

    model_config = ConfigDict(extra="forbid")

    selected_date: Optional[str] = None
    selected_time: Optional[str] = None
    appointment_type: Optional[str] = None
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    patient_age: Optional[int] = None
    doctor_preference: Optional[str] = None
    is_emergency: bool = False
    existing_patient_ref: Optional[str] = None
    # Fields copied from an existing patient record rather than typed by the user.
    prefilled_fields: List[str] = Field(default_factory=list)

    def has_slot(self) -> bool:
        return bool(self.selected_date and self.selected_time)

    def missing_patient_fields(self) -> List[str]:
        return [name for name in PATIENT_FIELDS if getattr(self, name) in (None, "")]

    def identity_only(self) -> "BookingDraft":
        """A fresh draft that keeps only the patient identity."""
        return BookingDraft(
            patient_name=self.patient_name,
            patient_phone=self.patient_phone,
            patient_email=self.patient_email,
            patient_age=self.patient_age,
            existing_patient_ref=self.existing_patient_ref,
            prefilled_fields=list(self.prefilled_fields),
        )


class Appointment(BaseModel):
    """Appointment row as seen by the booking engine."""

    model_config = ConfigDict(extra="ignore")

    id: str
    date: str
    time: str
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    appointment_type: Optional[str] = None
    duration: int = 30
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    is_emergency: bool = False
    idempotency_key: Optional[str] = None
    created_at: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED
