"""
Time-of-day parsing and normalization.

Every time label the engine compares is canonicalized to a zero-padded
12-hour form such as ``"07:30 PM"``.
"""

import re
from typing import List, Optional

_TWELVE_HOUR_RE = re.compile(
    r"^(\d{1,2})(?:\s*[:.]\s*(\d{2}))?\s*([ap])\.?\s*m?\.?$"
)
_TWENTY_FOUR_HOUR_RE = re.compile(r"^(\d{1,2})[:.](\d{2})(?::\d{2})?$")

# Times embedded in free text: "7:30pm", "7 PM", "10.15 a.m.", "19:30"
_EMBEDDED_TWELVE_HOUR_RE = re.compile(
    r"(?<![\d:.])(\d{1,2})(?:\s*[:.]\s*(\d{2}))?\s*([ap])\.?\s*m\b\.?",
    re.IGNORECASE,
)
_EMBEDDED_TWENTY_FOUR_HOUR_RE = re.compile(r"(?<![\d:.])(\d{1,2}):(\d{2})(?![\d])(?!\s*[ap]\.?\s*m\b)", re.IGNORECASE)

_SPECIAL_WORDS = {
    "noon": "12:00 PM",
    "midday": "12:00 PM",
    "midnight": "12:00 AM",
}


def _format(hour24: int, minute: int) -> str:
    period = "AM" if hour24 < 12 else "PM"
    hour12 = hour24 % 12 or 12
    return f"{hour12:02d}:{minute:02d} {period}"


def _from_twelve_hour(hour: int, minute: int, meridiem: str) -> Optional[str]:
    if not 1 <= hour <= 12 or not 0 <= minute <= 59:
        return None
    hour24 = hour % 12
    if meridiem == "p":
        hour24 += 12
    return _format(hour24, minute)


def _from_twenty_four_hour(hour: int, minute: int) -> Optional[str]:
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        return None
    return _format(hour, minute)


def normalize_time(value: Optional[str]) -> Optional[str]:
    """
    Canonicalize a time string to ``"HH:MM AM/PM"``.

    Accepts "7:30PM", "7.30 pm", "7 PM", "07:30 PM", "19:30" and "noon".
    Returns None when the value is not a recognizable time. Applying the
    function to its own output returns the same string.
    """
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    if text in _SPECIAL_WORDS:
        return _SPECIAL_WORDS[text]

    match = _TWELVE_HOUR_RE.match(text)
    if match:
        hour, minute, meridiem = match.groups()
        return _from_twelve_hour(int(hour), int(minute or 0), meridiem)

    match = _TWENTY_FOUR_HOUR_RE.match(text)
    if match:
        return _from_twenty_four_hour(int(match.group(1)), int(match.group(2)))

    return None


def find_times(text: str) -> List[str]:
    """Return every normalized time found in free text, in order of appearance."""
    if not text:
        return []
    found = []
    for match in _EMBEDDED_TWELVE_HOUR_RE.finditer(text):
        hour, minute, meridiem = match.groups()
        label = _from_twelve_hour(int(hour), int(minute or 0), meridiem.lower())
        if label:
            found.append((match.start(), label))
    for match in _EMBEDDED_TWENTY_FOUR_HOUR_RE.finditer(text):
        label = _from_twenty_four_hour(int(match.group(1)), int(match.group(2)))
        if label:
            found.append((match.start(), label))
    found.sort(key=lambda item: item[0])
    return [label for _, label in found]


def time_to_minutes(label: str) -> Optional[int]:
    """Minutes after midnight for any time accepted by :func:`normalize_time`."""
    normalized = normalize_time(label)
    if normalized is None:
        return None
    clock, period = normalized.split(" ")
    hour, minute = (int(part) for part in clock.split(":"))
    hour24 = hour % 12 + (12 if period == "PM" else 0)
    return hour24 * 60 + minute


def minutes_to_label(minutes: int) -> str:
    """Inverse of :func:`time_to_minutes` for values within one day."""
    minutes = minutes % (24 * 60)
    return _format(minutes // 60, minutes % 60)
