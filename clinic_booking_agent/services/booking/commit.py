"""
Commit gateway: turns a confirmed draft into a stored appointment.
"""

import hashlib
import json
from datetime import datetime
from typing import Callable, Optional

from ...core.exceptions import BookingConflictError, BookingValidationError, ConfigurationError
from ...core.models import Appointment, BookingDraft
from ...utils.date import now_in_timezone
from ...utils.event_log import log_event
from ...utils.logging import get_logger
from ..notifications import NotificationKind, NotificationRecipient, NotificationService
from ..persistence import AppointmentRepository
from .rules import find_invalid_fields

logger = get_logger("clinic.commit")


def build_booking_idempotency_key(session_id: str, draft: BookingDraft) -> str:
    """Stable key for one session booking one slot for one patient."""
    raw = {
        "session": session_id,
        "date": draft.selected_date,
        "time": draft.selected_time,
        "type": draft.appointment_type,
        "phone": draft.patient_phone,
    }
    return hashlib.sha256(
        json.dumps(raw, ensure_ascii=False, sort_keys=True).encode("utf-8")
    ).hexdigest()


class CommitGateway:
    """Validates, writes atomically, and schedules notifications."""

    def __init__(
        self,
        repository: AppointmentRepository,
        notifications: Optional[NotificationService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.notifications = notifications
        self.clock = clock or now_in_timezone

    async def commit(self, draft: BookingDraft, session_id: str) -> Appointment:
        """
        Persist ``draft`` as an appointment.

        Raises BookingValidationError (with the offending field) for an
        incomplete draft and BookingConflictError when the slot was taken
        concurrently. Re-submitting the same draft from the same session
        returns the appointment created the first time.
        """
        settings = await self.repository.get_appointment_settings()
        if settings is None:
            raise ConfigurationError("Appointment settings are not configured")

        problems = find_invalid_fields(
            draft, settings.require_appointment_types(), self.clock().date()
        )
        if problems:
            field, reason = problems[0]
            raise BookingValidationError(reason, field=field)

        key = build_booking_idempotency_key(session_id, draft)
        try:
            appointment = await self.repository.create_appointment_atomic(
                draft, duration=settings.default_duration, idempotency_key=key
            )
        except BookingConflictError:
            logger.info(f"commit: {draft.selected_date} {draft.selected_time} taken concurrently")
            log_event(
                "booking_conflict",
                {"session_id": session_id, "date": draft.selected_date, "time": draft.selected_time},
            )
            raise

        logger.info(f"commit: appointment {appointment.id} booked for {appointment.date} {appointment.time}")
        log_event(
            "booking_committed",
            {
                "session_id": session_id,
                "appointment_id": appointment.id,
                "patient_id": appointment.patient_id,
                "date": appointment.date,
                "time": appointment.time,
            },
        )

        if self.notifications is not None:
            recipient = NotificationRecipient(
                name=draft.patient_name or appointment.patient_name,
                phone=draft.patient_phone,
                email=draft.patient_email,
            )
            self.notifications.dispatch(NotificationKind.CONFIRMATION, appointment, recipient)
        return appointment
