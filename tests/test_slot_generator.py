"""
Tests for bookable slot generation.
"""

from datetime import date

import pytest

from clinic_booking_agent.config import TimeSlotOption, TimeWindow
from clinic_booking_agent.core.enums import AppointmentStatus, TimeCategory, TimePreference
from clinic_booking_agent.core.models import Appointment
from clinic_booking_agent.services.slots import SlotGenerator, generate_slots

from support import FIXED_NOW

WEDNESDAY = date(2025, 8, 6)
THURSDAY = date(2025, 8, 7)


def _times(slots):
    return [slot.time for slot in slots]


def test_tomorrow_skips_break_only(appointment_settings):
    slots = generate_slots(THURSDAY, [], appointment_settings, FIXED_NOW)

    assert _times(slots) == [
        "09:00 AM", "09:30 AM", "10:30 AM", "11:00 AM",
        "02:00 PM", "03:30 PM", "07:00 PM", "07:30 PM",
    ]
    assert slots[0].display_date == "Thursday, August 7, 2025"
    assert slots[0].time_category == TimeCategory.MORNING
    assert slots[4].time_category == TimeCategory.AFTERNOON
    assert slots[-1].time_category == TimeCategory.EVENING


def test_today_drops_slots_that_have_already_ended(appointment_settings):
    # At 10:00 the 09:30 slot ends exactly now, so it is gone too.
    slots = generate_slots(WEDNESDAY, [], appointment_settings, FIXED_NOW)

    assert _times(slots)[:2] == ["10:30 AM", "11:00 AM"]
    assert "09:30 AM" not in _times(slots)


def test_booked_slots_are_removed_but_cancelled_ones_are_not(appointment_settings):
    existing = [
        Appointment(id="a1", date="2025-08-07", time="7:30 pm"),
        Appointment(id="a2", date="2025-08-07", time="09:00 AM", status=AppointmentStatus.CANCELLED),
        Appointment(id="a3", date="2025-08-08", time="11:00 AM"),
    ]

    times = _times(generate_slots(THURSDAY, existing, appointment_settings, FIXED_NOW))

    assert "07:30 PM" not in times
    assert "09:00 AM" in times
    assert "11:00 AM" in times


def test_past_and_non_working_days_are_empty(appointment_settings):
    assert generate_slots(date(2025, 8, 5), [], appointment_settings, FIXED_NOW) == []

    weekdays_only = appointment_settings.model_copy(update={"working_days": [0, 1, 2, 3, 4]})
    assert generate_slots(date(2025, 8, 9), [], weekdays_only, FIXED_NOW) == []


def test_daily_cap_closes_the_day(appointment_settings):
    capped = appointment_settings.model_copy(update={"max_appointments_per_day": 2})
    existing = [
        Appointment(id="a1", date="2025-08-07", time="09:00 AM"),
        Appointment(id="a2", date="2025-08-07", time="09:30 AM"),
    ]

    assert generate_slots(THURSDAY, existing, capped, FIXED_NOW) == []


def test_working_hours_and_inactive_labels(appointment_settings):
    narrowed = appointment_settings.model_copy(
        update={
            "working_hours": TimeWindow(start="10:00", end="17:00"),
            "time_slots": appointment_settings.time_slots
            + [TimeSlotOption(id="x", time="04:00 PM", is_active=False), TimeSlotOption(id="y", time="soon")],
        }
    )

    times = _times(generate_slots(THURSDAY, [], narrowed, FIXED_NOW))

    assert times == ["10:30 AM", "11:00 AM", "02:00 PM", "03:30 PM"]


def test_duplicate_labels_are_offered_once(appointment_settings):
    duplicated = appointment_settings.model_copy(
        update={"time_slots": [TimeSlotOption(id="1", time="7:30 PM"), TimeSlotOption(id="2", time="19:30")]}
    )

    assert _times(generate_slots(THURSDAY, [], duplicated, FIXED_NOW)) == ["07:30 PM"]


@pytest.mark.parametrize(
    "preference, expected",
    [
        (TimePreference.MORNING, ["09:00 AM", "09:30 AM", "10:30 AM", "11:00 AM"]),
        (TimePreference.AFTERNOON, ["02:00 PM", "03:30 PM"]),
        (TimePreference.EVENING, ["07:00 PM", "07:30 PM"]),
    ],
)
def test_time_preference_filter(appointment_settings, preference, expected):
    slots = generate_slots(THURSDAY, [], appointment_settings, FIXED_NOW, preference)
    assert _times(slots) == expected


def test_generation_is_deterministic(appointment_settings):
    first = generate_slots(THURSDAY, [], appointment_settings, FIXED_NOW)
    second = generate_slots(THURSDAY, [], appointment_settings, FIXED_NOW)
    assert first == second


def test_generate_range_covers_each_day(appointment_settings):
    existing = [Appointment(id="a1", date="2025-08-08", time="07:00 PM")]

    slots = SlotGenerator().generate_range(
        WEDNESDAY, date(2025, 8, 8), existing, appointment_settings, FIXED_NOW, TimePreference.EVENING
    )

    assert [(s.date, s.time) for s in slots] == [
        ("2025-08-06", "07:00 PM"),
        ("2025-08-06", "07:30 PM"),
        ("2025-08-07", "07:00 PM"),
        ("2025-08-07", "07:30 PM"),
        ("2025-08-08", "07:30 PM"),
    ]
