"""
Utility modules for the clinic booking agent.
"""

from .text import TextProcessor
from .date import DateParser, now_in_timezone, parse_iso_date, format_display_date
from .time import normalize_time, find_times, time_to_minutes, minutes_to_label
from .validation import ValidationUtils
from .logging import get_logger, configure_logging

__all__ = [
    "TextProcessor",
    "DateParser",
    "now_in_timezone",
    "parse_iso_date",
    "format_display_date",
    "normalize_time",
    "find_times",
    "time_to_minutes",
    "minutes_to_label",
    "ValidationUtils",
    "get_logger",
    "configure_logging",
]
