"""
Draft completeness rules shared by confirmation and commit.
"""

from datetime import date
from typing import List, Optional, Sequence, Tuple

from ...core.enums import ConversationPhase
from ...core.models import BookingDraft
from ...utils.date import parse_iso_date
from ...utils.time import normalize_time
from ...utils.validation import ValidationUtils

# Draft field -> phase that collects it.
FIELD_OWNERS = {
    "selected_date": ConversationPhase.ASKING_DATE,
    "selected_time": ConversationPhase.SHOWING_SLOTS,
    "appointment_type": ConversationPhase.ASKING_APPOINTMENT_TYPE,
    "patient_name": ConversationPhase.COLLECTING_PATIENT_INFO,
    "patient_phone": ConversationPhase.COLLECTING_PATIENT_INFO,
    "patient_email": ConversationPhase.COLLECTING_PATIENT_INFO,
    "patient_age": ConversationPhase.COLLECTING_PATIENT_INFO,
}


def find_invalid_fields(
    draft: BookingDraft,
    appointment_types: Sequence[str],
    today: Optional[date] = None,
) -> List[Tuple[str, str]]:
    """
    Every missing or invalid required field as ``(field, reason)``, in
    FIELD_OWNERS order. An empty list means the draft can be committed.
    """
    problems: List[Tuple[str, str]] = []

    selected = parse_iso_date(draft.selected_date)
    if selected is None:
        problems.append(("selected_date", "Appointment date is missing"))
    elif today is not None and selected < today:
        problems.append(("selected_date", "Appointment date is in the past"))

    if normalize_time(draft.selected_time) is None:
        problems.append(("selected_time", "Appointment time is missing"))

    if not draft.appointment_type:
        problems.append(("appointment_type", "Appointment type is missing"))
    elif draft.appointment_type not in appointment_types:
        problems.append(("appointment_type", f"'{draft.appointment_type}' is not an offered appointment type"))

    checks = (
        ("patient_name", ValidationUtils.validate_name),
        ("patient_phone", ValidationUtils.validate_phone),
        ("patient_email", ValidationUtils.validate_email),
        ("patient_age", ValidationUtils.validate_age),
    )
    for field, check in checks:
        is_valid, error = check(getattr(draft, field))
        if not is_valid:
            problems.append((field, error))

    return problems
