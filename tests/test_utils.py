"""
Tests for utility functions.
"""

from datetime import date

import pytest

from clinic_booking_agent.utils.date import DateParser, format_display_date, parse_iso_date
from clinic_booking_agent.utils.text import TextProcessor
from clinic_booking_agent.utils.time import find_times, minutes_to_label, normalize_time, time_to_minutes
from clinic_booking_agent.utils.validation import ValidationUtils

from support import FIXED_NOW


class TestTimeNormalization:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("7:30PM", "07:30 PM"),
            ("7.30 pm", "07:30 PM"),
            ("7 PM", "07:00 PM"),
            ("07:30 PM", "07:30 PM"),
            ("19:30", "07:30 PM"),
            ("9am", "09:00 AM"),
            ("12:15 am", "12:15 AM"),
            ("noon", "12:00 PM"),
        ],
    )
    def test_normalize_time(self, raw, expected):
        assert normalize_time(raw) == expected

    @pytest.mark.parametrize("raw", ["", "soon", "25:00", "13 PM", None])
    def test_normalize_time_rejects_garbage(self, raw):
        assert normalize_time(raw) is None

    def test_normalize_time_is_idempotent(self):
        once = normalize_time("7:05pm")
        assert normalize_time(once) == once

    def test_find_times_in_free_text(self):
        assert find_times("either 10am or 19:30 works") == ["10:00 AM", "07:30 PM"]
        assert find_times("on 2025-08-07 please") == []

    def test_minutes_round_trip(self):
        assert time_to_minutes("07:30 PM") == 19 * 60 + 30
        assert minutes_to_label(19 * 60 + 30) == "07:30 PM"


class TestDateParser:
    @pytest.fixture
    def parser(self):
        return DateParser("Asia/Kolkata")

    def test_relative_words(self, parser):
        assert parser.resolve("tomorrow please", FIXED_NOW) == date(2025, 8, 7)
        assert parser.resolve("today", FIXED_NOW) == date(2025, 8, 6)
        assert parser.resolve("the day after tomorrow", FIXED_NOW) == date(2025, 8, 8)

    def test_weekday_is_next_occurrence_never_today(self, parser):
        # FIXED_NOW is a Wednesday.
        assert parser.resolve("wednesday", FIXED_NOW) == date(2025, 8, 13)
        assert parser.resolve("on friday", FIXED_NOW) == date(2025, 8, 8)

    def test_iso_date(self, parser):
        assert parser.resolve("how about 2025-08-20?", FIXED_NOW) == date(2025, 8, 20)

    def test_month_name(self, parser):
        assert parser.resolve("August 12", FIXED_NOW) == date(2025, 8, 12)

    def test_times_are_not_dates(self, parser):
        assert parser.resolve("7:30 PM", FIXED_NOW) is None
        assert parser.resolve("may I book something", FIXED_NOW) is None

    def test_next_week_window(self, parser):
        assert parser.mentions_next_week("anything next week?")
        assert parser.next_week_window(FIXED_NOW) == (date(2025, 8, 6), date(2025, 8, 12))

    def test_iso_helpers(self):
        assert parse_iso_date("2025-08-07") == date(2025, 8, 7)
        assert parse_iso_date("07-08-2025") is None
        assert format_display_date(date(2025, 8, 7)) == "Thursday, August 7, 2025"


class TestValidationUtils:
    def test_phone(self):
        assert ValidationUtils.normalize_phone("98765 43210") == "9876543210"
        assert ValidationUtils.validate_phone("9876543210") == (True, None)
        assert ValidationUtils.validate_phone("12345")[0] is False
        assert ValidationUtils.validate_phone("919876543210")[0] is False

    def test_email(self):
        assert ValidationUtils.validate_email("john@email.com")[0] is True
        assert ValidationUtils.validate_email("john@email")[0] is False

    def test_age(self):
        assert ValidationUtils.coerce_age("30") == 30
        assert ValidationUtils.coerce_age(0) is None
        assert ValidationUtils.coerce_age(121) is None
        assert ValidationUtils.coerce_age(True) is None

    def test_name(self):
        assert ValidationUtils.validate_name("Mary-Jane O'Neil")[0] is True
        assert ValidationUtils.validate_name("J")[0] is False
        assert ValidationUtils.validate_name("R2D2")[0] is False

    def test_names_match_ignores_case_and_spacing(self):
        assert ValidationUtils.names_match("Jane  Doe", "jane doe")
        assert not ValidationUtils.names_match("Jane Doe", "Jane")


class TestTextProcessor:
    def test_contains_any_word_uses_word_boundaries(self):
        assert TextProcessor.contains_any_word("Yes, go ahead", ["go ahead"])
        assert not TextProcessor.contains_any_word("notebook", ["book"])

    def test_split_fields(self):
        assert TextProcessor.split_fields("a, b; c | d\n e") == ["a", "b", "c", "d", "e"]

    def test_strip_code_fences(self):
        assert TextProcessor.strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert TextProcessor.strip_code_fences('{"a": 1}') == '{"a": 1}'
