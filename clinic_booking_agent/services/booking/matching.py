"""
Reconciling free text with offered slots and configured appointment types.
"""

import re
from typing import Iterable, List, Optional, Sequence

from ...core.enums import TimePreference
from ...core.models import ParsedInput, TimeSlot
from ...utils.text import TextProcessor
from ...utils.time import find_times, normalize_time, time_to_minutes

# Alias keyword -> configured appointment type it points at.
TYPE_ALIASES = {
    "checkup": "Routine Checkup",
    "check up": "Routine Checkup",
    "check-up": "Routine Checkup",
    "routine": "Routine Checkup",
    "general checkup": "Routine Checkup",
    "follow up": "Follow-up",
    "followup": "Follow-up",
    "follow-up": "Follow-up",
    "review": "Follow-up",
    "consult": "Consultation",
    "consultation": "Consultation",
    "see a doctor": "Consultation",
    "specialist": "Specialist Visit",
    "lab": "Lab Test",
    "blood test": "Lab Test",
    "test": "Lab Test",
    "vaccine": "Vaccination",
    "vaccination": "Vaccination",
    "shot": "Vaccination",
    "jab": "Vaccination",
    "urgent": "Emergency",
    "emergency": "Emergency",
}

_MORNING_WORDS = ("am", "a.m", "morning")
_EVENING_WORDS = ("pm", "p.m", "afternoon", "evening", "night", "tonight")
_NUMBER_RE = re.compile(r"(?<![\d:./-])(\d{1,2})(?:[:.]?(\d{2}))?(?![\d/-])")


def _narrow_to_date(slots: Sequence[TimeSlot], wanted_date: Optional[str], strict: bool) -> List[TimeSlot]:
    if wanted_date:
        same_day = [slot for slot in slots if slot.date == wanted_date]
        if same_day or strict:
            return same_day
    return list(slots)


def _first_with_time(slots: Iterable[TimeSlot], label: Optional[str]) -> Optional[TimeSlot]:
    if not label:
        return None
    for slot in slots:
        if slot.time == label:
            return slot
    return None


def _match_literal(slots: Sequence[TimeSlot], message: str) -> Optional[TimeSlot]:
    lowered = TextProcessor.normalize(message)
    for slot in slots:
        label = slot.time.lower()
        variants = {label, label.lstrip("0"), label.replace(" ", ""), label.lstrip("0").replace(" ", "")}
        for variant in variants:
            if re.search(r"(?<!\d)" + re.escape(variant) + r"(?![a-z])", lowered):
                return slot
    return None


def _match_regex(slots: Sequence[TimeSlot], message: str) -> Optional[TimeSlot]:
    for label in find_times(message):
        slot = _first_with_time(slots, label)
        if slot:
            return slot
    return None


def _match_fuzzy(slots: Sequence[TimeSlot], message: str) -> Optional[TimeSlot]:
    """Bare numbers ("7", "730", "7 30") with an optional period word."""
    lowered = TextProcessor.normalize(message)
    wants_am = TextProcessor.contains_any_word(lowered, _MORNING_WORDS)
    wants_pm = TextProcessor.contains_any_word(lowered, _EVENING_WORDS)

    for match in _NUMBER_RE.finditer(lowered):
        hour_text, minute_text = match.groups()
        hour = int(hour_text)
        minute = int(minute_text) if minute_text is not None else None
        if not 1 <= hour <= 12:
            continue

        candidates = []
        for slot in slots:
            minutes = time_to_minutes(slot.time)
            slot_hour = (minutes // 60) % 12 or 12
            slot_minute = minutes % 60
            is_pm = minutes >= 12 * 60
            if slot_hour != hour:
                continue
            if minute is not None and slot_minute != minute:
                continue
            if wants_am and not wants_pm and is_pm:
                continue
            if wants_pm and not wants_am and not is_pm:
                continue
            candidates.append(slot)

        distinct_times = {slot.time for slot in candidates}
        if len(distinct_times) == 1:
            return candidates[0]
    return None


def match_slot(
    message: str,
    parsed: ParsedInput,
    slots: Sequence[TimeSlot],
    wanted_date: Optional[str] = None,
) -> Optional[TimeSlot]:
    """
    Find the offered slot the user picked.

    Layers, first hit wins: the parser's normalized time, a literal label
    match, a regex time match, then a fuzzy hour/period match. Ambiguous
    fuzzy matches return None.

    ``wanted_date`` is a date the user named in the message; when none of
    the offered slots falls on it nothing matches. The parser's date only
    narrows the pool when it lines up with an offered day.
    """
    if not slots:
        return None
    if wanted_date:
        pool = _narrow_to_date(slots, wanted_date, strict=True)
    else:
        pool = _narrow_to_date(slots, parsed.extracted_date, strict=False)
    if not pool:
        return None
    return (
        _first_with_time(pool, normalize_time(parsed.extracted_time))
        or _match_literal(pool, message)
        or _match_regex(pool, message)
        or _match_fuzzy(pool, message)
    )


def filter_by_preference(slots: Sequence[TimeSlot], preference: Optional[TimePreference]) -> List[TimeSlot]:
    if preference is None:
        return list(slots)
    start, end = preference.window
    return [slot for slot in slots if start <= time_to_minutes(slot.time) < end]


def match_appointment_type(
    message: str,
    parsed_type: Optional[str],
    types: Sequence[str],
    allow_index: bool = True,
) -> Optional[str]:
    """
    Map free text onto one of the configured types.

    Tries exact (case-insensitive), then substring in either direction,
    then the keyword aliases, then a 1-based list number.
    """
    if not types:
        return None
    by_lower = {t.lower(): t for t in types}

    for candidate in (parsed_type, message):
        if not candidate:
            continue
        text = TextProcessor.normalize(candidate)
        if text in by_lower:
            return by_lower[text]

    for candidate in (parsed_type, message):
        if not candidate:
            continue
        text = TextProcessor.normalize(candidate)
        for lowered, original in by_lower.items():
            if lowered in text:
                return original
        if len(text) >= 4:
            for lowered, original in by_lower.items():
                if text in lowered:
                    return original

    for candidate in (parsed_type, message):
        if not candidate:
            continue
        for alias in sorted(TYPE_ALIASES, key=len, reverse=True):
            target = TYPE_ALIASES[alias].lower()
            if target in by_lower and TextProcessor.contains_any_word(candidate, [alias]):
                return by_lower[target]

    if allow_index:
        number = re.fullmatch(r"\s*(?:option\s*|#)?(\d{1,2})\s*\.?\s*", message or "", re.IGNORECASE)
        if number:
            idx = int(number.group(1))
            if 1 <= idx <= len(types):
                return types[idx - 1]
    return None
