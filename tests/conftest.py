"""
Pytest configuration and fixtures.
"""

import pytest
import pytz

from clinic_booking_agent.config import AppointmentSettings, Settings, TimeSlotOption, TimeWindow
from clinic_booking_agent.services.booking import BookingService, ConversationStateMachine
from clinic_booking_agent.services.memory import InMemorySessionStore
from clinic_booking_agent.services.nlu import RetryPolicy
from clinic_booking_agent.services.persistence import InMemoryAppointmentRepository
from clinic_booking_agent.utils.date import DateParser
from clinic_booking_agent.utils.event_log import set_log_path

from support import APPOINTMENT_TYPES, FIXED_NOW, SLOT_LABELS, ScriptedParser, fixed_clock


@pytest.fixture(autouse=True)
def _no_event_log():
    set_log_path(None)
    yield
    set_log_path(None)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        timezone="Asia/Kolkata",
        clinic_name="City Care Clinic",
        event_log_path=None,
        state_db_path="",
    )


@pytest.fixture
def appointment_settings():
    return AppointmentSettings(
        time_slots=[TimeSlotOption(id=str(i), time=label) for i, label in enumerate(SLOT_LABELS)],
        working_hours=TimeWindow(start="09:00", end="21:00"),
        break_time=TimeWindow(start="12:00", end="13:00"),
        appointment_types=list(APPOINTMENT_TYPES),
        default_duration=30,
        max_appointments_per_day=20,
        advance_booking_days=30,
        working_days=[0, 1, 2, 3, 4, 5, 6],
    )


@pytest.fixture
def repository(appointment_settings):
    return InMemoryAppointmentRepository(appointment_settings)


@pytest.fixture
def date_parser():
    return DateParser("Asia/Kolkata")


@pytest.fixture
def state_machine(repository, date_parser):
    return ConversationStateMachine(repository, date_parser=date_parser, clock=fixed_clock)


@pytest.fixture
def session_store():
    return InMemorySessionStore(ttl_seconds=1800, clock=lambda: FIXED_NOW.astimezone(pytz.utc))


@pytest.fixture
def parser():
    return ScriptedParser()


@pytest.fixture
def service(repository, session_store, parser, settings):
    return BookingService(
        repository,
        session_store,
        parser,
        retry_policy=RetryPolicy.no_retry(),
        settings=settings,
        clock=fixed_clock,
    )
