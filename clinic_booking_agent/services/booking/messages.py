"""
User-facing response text.
"""

from itertools import groupby
from typing import Iterable, List, Optional, Sequence

from ...core.models import Appointment, BookingDraft, TimeSlot
from ...utils.date import format_display_date, parse_iso_date

MAX_SLOTS_PER_DAY = 8

APOLOGY = (
    "I'm sorry, something went wrong on our side. Let's start again - "
    "would you like to book an appointment?"
)

_FIELD_LABELS = {
    "patient_name": "full name",
    "patient_phone": "10-digit phone number",
    "patient_email": "email address",
    "patient_age": "age",
}


def greeting_menu(name: Optional[str] = None, welcome: Optional[str] = None) -> str:
    hello = welcome or (f"Hello {name}!" if name else "Hello!")
    return (
        f"{hello} I'm the clinic's booking assistant. I can help you:\n"
        "• Book an appointment (e.g. \"Book me tomorrow at 10 AM\")\n"
        "• Check available times (e.g. \"What's free next week in the morning?\")\n\n"
        "How can I help you today?"
    )


def returning_patient_greeting(name: str, last_type: Optional[str]) -> str:
    text = f"Hello {name}! Welcome back."
    if last_type:
        text += f" Your last appointment was for {last_type}."
    return text


def date_prompt(is_emergency: bool = False) -> str:
    if is_emergency:
        return (
            "🚨 If this is a life-threatening emergency, please call emergency services "
            "or go to the nearest emergency room now.\n\n"
            "I'll look for the earliest available appointment. Which date works for you "
            "(today, tomorrow, or a specific date)?"
        )
    return "Which date would you like to come in? You can say today, tomorrow, next week, or a date like 2025-08-12."


def past_date(day_label: str) -> str:
    return f"{day_label} is in the past. Please choose today or a future date."


def too_far_ahead(day_label: str, days: int) -> str:
    return f"We only take bookings up to {days} days ahead, so {day_label} is too far out. Please pick an earlier date."


def no_slots(day_label: str) -> str:
    return f"Sorry, there are no available times for {day_label}. Would you like to try a different date?"


def _slot_lines(slots: Sequence[TimeSlot]) -> List[str]:
    lines: List[str] = []
    for _, day_slots in groupby(slots, key=lambda s: s.date):
        day_slots = list(day_slots)
        lines.append(f"📅 {day_slots[0].display_date}:")
        shown = day_slots[:MAX_SLOTS_PER_DAY]
        lines.append("   " + ", ".join(slot.time for slot in shown))
        if len(day_slots) > len(shown):
            lines.append(f"   (+{len(day_slots) - len(shown)} more)")
    return lines


def slot_list(slots: Sequence[TimeSlot], intro: str = "Here are the available times:") -> str:
    lines = [intro, ""] + _slot_lines(slots)
    lines += ["", "Which time would you like?"]
    return "\n".join(lines)


def slot_taken(time_label: str, day_label: str, alternatives: Sequence[TimeSlot]) -> str:
    intro = f"Sorry, {time_label} on {day_label} was just booked by someone else."
    if not alternatives:
        return intro + " Please choose a different date."
    return slot_list(alternatives, intro=intro + " Here are other available times:")


def slot_not_recognized(slots: Sequence[TimeSlot]) -> str:
    return slot_list(slots, intro="I couldn't match that to one of the available times. Please pick one of these:")


def type_prompt(types: Sequence[str], selected: Optional[TimeSlot] = None) -> str:
    lines = []
    if selected is not None:
        lines.append(f"Great, {selected.time} on {selected.display_date} is available.")
    lines.append("What type of appointment do you need?")
    lines += [f"{idx}. {name}" for idx, name in enumerate(types, start=1)]
    return "\n".join(lines)


def patient_info_prompt(
    missing: Iterable[str],
    errors: Sequence[str] = (),
    selected: Optional[TimeSlot] = None,
) -> str:
    lines = []
    if selected is not None:
        lines.append(f"Great, {selected.time} on {selected.display_date} is available.")
    if errors:
        lines.append("Some details need another look:")
        lines += [f"• {error}" for error in errors]
    wanted = [_FIELD_LABELS[field] for field in missing]
    if wanted:
        lines.append("Please share your " + ", ".join(wanted) + ".")
        lines.append("For example: John Smith, 9876543210, john@email.com, 30")
    return "\n".join(lines)


def booking_summary(draft: BookingDraft) -> str:
    day = parse_iso_date(draft.selected_date)
    day_label = format_display_date(day) if day else draft.selected_date
    lines = ["📋 **Please confirm your appointment:**", ""]
    if draft.is_emergency:
        lines.append("🚨 Marked as urgent")
    lines += [
        f"📅 Date: {day_label}",
        f"🕐 Time: {draft.selected_time}",
        f"🩺 Type: {draft.appointment_type}",
        f"👤 Name: {draft.patient_name}",
        f"📞 Phone: {draft.patient_phone}",
        f"📧 Email: {draft.patient_email}",
        f"🎂 Age: {draft.patient_age}",
    ]
    if draft.doctor_preference:
        lines.append(f"👨‍⚕️ Doctor preference: {draft.doctor_preference}")
    lines += ["", "Reply **yes** to confirm or **no** to start over."]
    return "\n".join(lines)


def confirmation_reprompt() -> str:
    return "Please reply **yes** to confirm this booking or **no** to choose a different time."


def restart_after_denial() -> str:
    return "No problem, let's start over. " + date_prompt()


def booking_success(appointment: Appointment, draft: BookingDraft) -> str:
    day = parse_iso_date(appointment.date)
    day_label = format_display_date(day) if day else appointment.date
    return "\n".join(
        [
            "✅ **Appointment Booked Successfully!**",
            "",
            f"📅 {day_label} at {appointment.time}",
            f"🩺 {appointment.appointment_type}",
            f"👤 {draft.patient_name}",
            f"🔖 Reference: {appointment.id[:8].upper()}",
            "",
            "You'll receive a confirmation shortly. Is there anything else I can help you with?",
        ]
    )


def goodbye() -> str:
    return "Okay, I've cancelled this booking request. Message me any time to start again."


_SUGGESTIONS = {
    "GREETING": ["Book an appointment", "Check availability"],
    "ASKING_DATE": ["Today", "Tomorrow", "Next week"],
    "SHOWING_SLOTS": ["Morning", "Afternoon", "A different date"],
    "CONFIRMING_BOOKING": ["Yes, confirm", "No, start over"],
    "COMPLETED": ["Book another appointment"],
}


def suggested_actions(phase_value: str) -> List[str]:
    return list(_SUGGESTIONS.get(phase_value, []))
