"""
In-memory repository used for local runs and tests.
"""

import asyncio
import uuid
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from ...config import AppointmentSettings
from ...core.enums import AppointmentStatus
from ...core.exceptions import BookingConflictError
from ...core.models import Appointment, BookingDraft, Patient
from ...utils.logging import get_logger
from ...utils.time import normalize_time
from ...utils.validation import ValidationUtils
from .repository import BOOKING_NOTES, AppointmentRepository, generate_patient_visible_id

logger = get_logger("clinic.repository")


class InMemoryAppointmentRepository(AppointmentRepository):
    """Dictionary-backed repository with the same uniqueness rules as SQLite."""

    def __init__(
        self,
        settings: Optional[AppointmentSettings] = None,
        clinic_name: str = "City Care Clinic",
    ):
        self.settings = settings
        self.clinic_name = clinic_name
        self.patients: Dict[str, Patient] = {}
        self.appointments: Dict[str, Appointment] = {}
        self._lock = asyncio.Lock()

    def add_patient(self, patient: Patient) -> Patient:
        self.patients[patient.id] = patient
        return patient

    def add_appointment(self, appointment: Appointment) -> Appointment:
        self.appointments[appointment.id] = appointment
        return appointment

    async def find_appointments_in_range(self, start: date, end: date) -> List[Appointment]:
        lo, hi = start.isoformat(), end.isoformat()
        return [
            appt.model_copy()
            for appt in self.appointments.values()
            if lo <= appt.date <= hi
        ]

    async def find_patient_by_phone_or_name(
        self, phone: Optional[str] = None, name: Optional[str] = None
    ) -> Optional[Patient]:
        if phone:
            same_phone = [p for p in self.patients.values() if p.phone == phone]
            if name:
                for patient in same_phone:
                    if ValidationUtils.names_match(patient.name, name):
                        return patient.model_copy()
            if same_phone:
                return same_phone[0].model_copy()
        if name:
            for patient in self.patients.values():
                if ValidationUtils.names_match(patient.name, name):
                    return patient.model_copy()
        return None

    async def create_appointment_atomic(
        self,
        draft: BookingDraft,
        *,
        duration: int,
        idempotency_key: Optional[str] = None,
    ) -> Appointment:
        async with self._lock:
            if idempotency_key:
                for appt in self.appointments.values():
                    if appt.idempotency_key == idempotency_key:
                        return appt.model_copy()

            for appt in self.appointments.values():
                if (
                    appt.date == draft.selected_date
                    and normalize_time(appt.time) == draft.selected_time
                    and appt.is_active()
                ):
                    raise BookingConflictError(
                        f"slot {draft.selected_date} {draft.selected_time} is already booked",
                        date=draft.selected_date,
                        time=draft.selected_time,
                    )

            patient_id = draft.existing_patient_ref
            if patient_id is None or patient_id not in self.patients:
                patient_id = uuid.uuid4().hex
                self.patients[patient_id] = Patient(
                    id=patient_id,
                    visible_id=generate_patient_visible_id(self.clinic_name, len(self.patients) + 1),
                    name=draft.patient_name,
                    phone=draft.patient_phone,
                    email=draft.patient_email,
                    age=draft.patient_age,
                )
                logger.info(f"repository: created patient {patient_id}")

            appointment = Appointment(
                id=uuid.uuid4().hex,
                date=draft.selected_date,
                time=draft.selected_time,
                patient_id=patient_id,
                patient_name=draft.patient_name,
                appointment_type=draft.appointment_type,
                duration=duration,
                status=AppointmentStatus.CONFIRMED,
                notes=BOOKING_NOTES,
                is_emergency=draft.is_emergency,
                idempotency_key=idempotency_key,
                created_at=datetime.now(timezone.utc),
            )
            self.appointments[appointment.id] = appointment
            patient = self.patients[patient_id]
            if draft.appointment_type:
                patient.recent_appointment_types = [draft.appointment_type] + patient.recent_appointment_types[:2]
            return appointment.model_copy()

    async def get_appointment_settings(self) -> Optional[AppointmentSettings]:
        return self.settings
