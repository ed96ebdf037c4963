"""
Tests for slot/type matching, draft completeness rules and reply text.
"""

from datetime import date

import pytest

from clinic_booking_agent.core.enums import TimePreference
from clinic_booking_agent.core.models import BookingDraft, ParsedInput
from clinic_booking_agent.services.booking import messages
from clinic_booking_agent.services.booking.matching import (
    filter_by_preference,
    match_appointment_type,
    match_slot,
)
from clinic_booking_agent.services.booking.rules import find_invalid_fields
from clinic_booking_agent.services.slots import SlotGenerator

from support import APPOINTMENT_TYPES, FIXED_NOW


@pytest.fixture
def slots(appointment_settings):
    return SlotGenerator().generate(date(2025, 8, 7), [], appointment_settings, FIXED_NOW)


@pytest.fixture
def two_day_slots(appointment_settings):
    return SlotGenerator().generate_range(
        date(2025, 8, 7), date(2025, 8, 8), [], appointment_settings, FIXED_NOW, TimePreference.EVENING
    )


def _complete_draft(**overrides):
    values = dict(
        selected_date="2025-08-07",
        selected_time="07:30 PM",
        appointment_type="Consultation",
        patient_name="John Smith",
        patient_phone="9876543210",
        patient_email="john@email.com",
        patient_age=30,
    )
    values.update(overrides)
    return BookingDraft(**values)


class TestSlotMatching:
    @pytest.mark.parametrize(
        "message, expected",
        [
            ("7:30 pm please", "07:30 PM"),
            ("7:30PM", "07:30 PM"),
            ("7 pm", "07:00 PM"),
            ("930", "09:30 AM"),
            ("the 2 o'clock one", "02:00 PM"),
            ("11 in the morning", "11:00 AM"),
        ],
    )
    def test_free_text_choices(self, slots, message, expected):
        slot = match_slot(message, ParsedInput.default(), slots)
        assert slot is not None
        assert slot.time == expected

    def test_parser_time_wins(self, slots):
        parsed = ParsedInput(extracted_time="11:00 am")
        assert match_slot("whatever works", parsed, slots).time == "11:00 AM"

    def test_ambiguous_hour_is_not_guessed(self, slots):
        # Both 07:00 PM and 07:30 PM share the hour.
        assert match_slot("7", ParsedInput.default(), slots) is None

    def test_unknown_time_is_none(self, slots):
        assert match_slot("8 pm", ParsedInput.default(), slots) is None
        assert match_slot("7 pm", ParsedInput.default(), []) is None

    def test_multi_day_choice_prefers_requested_date(self, two_day_slots):
        slot = match_slot("7:30 pm", ParsedInput.default(), two_day_slots, wanted_date="2025-08-08")
        assert (slot.date, slot.time) == ("2025-08-08", "07:30 PM")

        first = match_slot("7:30 pm", ParsedInput.default(), two_day_slots)
        assert first.date == "2025-08-07"

    def test_named_date_outside_listing_matches_nothing(self, two_day_slots):
        assert match_slot("7:30 pm", ParsedInput.default(), two_day_slots, wanted_date="2025-08-09") is None

        # A parser date that misses the listing does not block the pick.
        parsed = ParsedInput(extracted_date="2025-08-09")
        assert match_slot("7:30 pm", parsed, two_day_slots).date == "2025-08-07"

    def test_filter_by_preference(self, slots):
        afternoon = filter_by_preference(slots, TimePreference.AFTERNOON)
        assert [s.time for s in afternoon] == ["02:00 PM", "03:30 PM"]
        assert filter_by_preference(slots, None) == slots


class TestAppointmentTypeMatching:
    @pytest.mark.parametrize(
        "message, parsed_type, expected",
        [
            ("consultation", None, "Consultation"),
            ("I'd like a routine checkup", None, "Routine Checkup"),
            ("I need a checkup", None, "Routine Checkup"),
            ("follow up", None, "Follow-up"),
            ("whatever", "consult", "Consultation"),
            ("2", None, "Routine Checkup"),
            ("option 3", None, "Follow-up"),
        ],
    )
    def test_matches(self, message, parsed_type, expected):
        assert match_appointment_type(message, parsed_type, APPOINTMENT_TYPES) == expected

    def test_alias_for_unconfigured_type_is_ignored(self):
        assert match_appointment_type("a vaccination please", None, APPOINTMENT_TYPES) is None

    def test_list_number_can_be_disabled(self):
        assert match_appointment_type("2", None, APPOINTMENT_TYPES, allow_index=False) is None
        assert match_appointment_type("9", None, APPOINTMENT_TYPES) is None

    def test_no_types_configured(self):
        assert match_appointment_type("consultation", None, []) is None


class TestDraftRules:
    def test_complete_draft_has_no_problems(self):
        assert find_invalid_fields(_complete_draft(), APPOINTMENT_TYPES, date(2025, 8, 6)) == []

    def test_problems_are_reported_in_owner_order(self):
        draft = _complete_draft(selected_time=None, patient_phone="12345", appointment_type="Surgery")

        fields = [field for field, _ in find_invalid_fields(draft, APPOINTMENT_TYPES)]

        assert fields == ["selected_time", "appointment_type", "patient_phone"]

    def test_past_date_is_invalid(self):
        problems = find_invalid_fields(_complete_draft(), APPOINTMENT_TYPES, date(2025, 8, 8))
        assert problems == [("selected_date", "Appointment date is in the past")]

    def test_missing_patient_fields(self):
        draft = _complete_draft(patient_email=None, patient_age=None)
        assert draft.missing_patient_fields() == ["patient_email", "patient_age"]


class TestMessages:
    def test_summary_lists_every_field(self):
        text = messages.booking_summary(_complete_draft(doctor_preference="Dr. Rao", is_emergency=True))

        assert "Thursday, August 7, 2025" in text
        assert "07:30 PM" in text
        assert "Dr. Rao" in text
        assert "urgent" in text

    def test_slot_list_caps_each_day(self, slots):
        text = messages.slot_list(slots + slots[:2])
        assert "(+2 more)" in text

    def test_suggested_actions_per_phase(self):
        assert messages.suggested_actions("CONFIRMING_BOOKING") == ["Yes, confirm", "No, start over"]
        assert messages.suggested_actions("COLLECTING_PATIENT_INFO") == []
