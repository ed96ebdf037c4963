"""
Date resolution utilities.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple
import pytz
from dateparser import parse as parse_date

from ..config import get_settings

_ISO_DATE_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")

_WEEKDAYS = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1, "tues": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3, "thur": 3, "thurs": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}

_NEXT_WEEK_RE = re.compile(r"\bnext\s+week\b")
_TOMORROW_RE = re.compile(r"\b(tomorrow|tmrw|tmr)\b")
_TODAY_RE = re.compile(r"\b(today|tonight)\b")
_DAY_AFTER_TOMORROW_RE = re.compile(r"\bday\s+after\s+tomorrow\b")

# Month names signal that dateparser is worth a try on a free-text message.
_MONTH_RE = re.compile(
    r"\b(january|february|march|april|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec)\b"
    r"|\bmay\s+\d{1,2}\b|\b\d{1,2}(?:st|nd|rd|th)?\s+may\b"
    r"|\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b"
)


def now_in_timezone(tz_name: Optional[str] = None) -> datetime:
    """Current time as an aware datetime in the clinic timezone."""
    tz = pytz.timezone(tz_name or get_settings().timezone)
    return datetime.now(tz)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` strictly; anything else returns None."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def format_display_date(value: date) -> str:
    """Human label such as ``Thursday, August 7, 2025``."""
    return f"{value:%A}, {value:%B} {value.day}, {value.year}"


class DateParser:
    """Resolves free-text date references relative to the clinic clock."""

    def __init__(self, timezone: Optional[str] = None):
        self.tz = pytz.timezone(timezone or get_settings().timezone)

    def today(self, now: Optional[datetime] = None) -> date:
        if now is None:
            return datetime.now(self.tz).date()
        if now.tzinfo is None:
            now = self.tz.localize(now)
        return now.astimezone(self.tz).date()

    def next_week_window(self, now: Optional[datetime] = None) -> Tuple[date, date]:
        """Seven consecutive days starting today."""
        start = self.today(now)
        return start, start + timedelta(days=6)

    def resolve(self, text: str, now: Optional[datetime] = None) -> Optional[date]:
        """
        Resolve a single concrete date mentioned in ``text``.

        Tries, in order: an ISO date, "day after tomorrow", "tomorrow",
        "today", a weekday name (next occurrence, never today), and finally
        dateparser for explicit calendar dates like "Aug 12" or "12/08".
        Past dates are returned as-is so callers can reject them.
        """
        if not text:
            return None
        lowered = text.strip().lower()
        today = self.today(now)

        iso = _ISO_DATE_RE.search(lowered)
        if iso:
            return parse_iso_date(iso.group(1))

        if _DAY_AFTER_TOMORROW_RE.search(lowered):
            return today + timedelta(days=2)
        if _TOMORROW_RE.search(lowered):
            return today + timedelta(days=1)
        if _TODAY_RE.search(lowered):
            return today

        weekday = self._parse_weekday(lowered, today)
        if weekday is not None:
            return weekday

        if _MONTH_RE.search(lowered):
            return self._parse_with_dateparser(text, today)
        return None

    def mentions_next_week(self, text: str) -> bool:
        return bool(text) and bool(_NEXT_WEEK_RE.search(text.lower()))

    def _parse_weekday(self, lowered: str, today: date) -> Optional[date]:
        for token in re.findall(r"[a-z]+", lowered):
            idx = _WEEKDAYS.get(token)
            if idx is None:
                continue
            days_ahead = (idx - today.weekday() + 7) % 7 or 7
            return today + timedelta(days=days_ahead)
        return None

    def _parse_with_dateparser(self, text: str, today: date) -> Optional[date]:
        base = datetime(today.year, today.month, today.day, 12, 0)
        parsed = parse_date(
            text,
            languages=["en"],
            settings={
                "PREFER_DATES_FROM": "future",
                "RELATIVE_BASE": base,
                "DATE_ORDER": "DMY",
            },
        )
        if parsed is None:
            return None
        return parsed.date()
