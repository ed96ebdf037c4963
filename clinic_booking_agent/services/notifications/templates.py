"""
Notification message templates.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from ...core.models import Appointment
from ...utils.date import format_display_date, parse_iso_date


class NotificationKind(str, Enum):
    CONFIRMATION = "confirmation"
    CANCELLATION = "cancellation"
    RESCHEDULE = "reschedule"
    REMINDER = "reminder"


@dataclass
class NotificationRecipient:
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


_SUBJECTS = {
    NotificationKind.CONFIRMATION: "Appointment confirmed",
    NotificationKind.CANCELLATION: "Appointment cancelled",
    NotificationKind.RESCHEDULE: "Appointment rescheduled",
    NotificationKind.REMINDER: "Appointment reminder",
}

_OPENINGS = {
    NotificationKind.CONFIRMATION: "your appointment has been confirmed.",
    NotificationKind.CANCELLATION: "your appointment has been cancelled.",
    NotificationKind.RESCHEDULE: "your appointment has been rescheduled.",
    NotificationKind.REMINDER: "this is a reminder about your upcoming appointment.",
}

_CLOSINGS = {
    NotificationKind.CONFIRMATION: "Please arrive 10 minutes early.",
    NotificationKind.CANCELLATION: "Reply to this message if you would like to book a new time.",
    NotificationKind.RESCHEDULE: "Please arrive 10 minutes early at the new time.",
    NotificationKind.REMINDER: "Please arrive 10 minutes early.",
}


def render_notification(
    kind: NotificationKind,
    appointment: Appointment,
    recipient: NotificationRecipient,
    clinic_name: str,
    previous_slot: Optional[str] = None,
) -> Tuple[str, str]:
    """Return ``(subject, body)`` for a notification."""
    day = parse_iso_date(appointment.date)
    when = f"{format_display_date(day) if day else appointment.date} at {appointment.time}"
    lines = [f"Hello {recipient.name}, {_OPENINGS[kind]}", ""]
    lines.append(f"📅 {when}")
    if appointment.appointment_type:
        lines.append(f"🩺 {appointment.appointment_type}")
    if kind == NotificationKind.RESCHEDULE and previous_slot:
        lines.append(f"Previously: {previous_slot}")
    lines.extend(["", _CLOSINGS[kind], f"- {clinic_name}"])
    return f"{_SUBJECTS[kind]} - {clinic_name}", "\n".join(lines)
