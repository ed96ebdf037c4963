"""
Tests for the commit gateway.
"""

import json

import pytest

from clinic_booking_agent.core.exceptions import BookingConflictError, BookingValidationError, ConfigurationError
from clinic_booking_agent.services.booking import CommitGateway, build_booking_idempotency_key
from clinic_booking_agent.services.nlu import RetryPolicy
from clinic_booking_agent.services.notifications import NotificationService
from clinic_booking_agent.services.persistence import InMemoryAppointmentRepository
from clinic_booking_agent.utils.event_log import set_log_path
from clinic_booking_agent.core.models import BookingDraft

from support import fixed_clock


class RecordingChannel:
    name = "recording"

    def __init__(self):
        self.sent = []

    def accepts(self, recipient):
        return bool(recipient.phone)

    async def send(self, recipient, subject, body):
        self.sent.append((recipient, subject, body))


def _draft(**overrides):
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


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def gateway(repository, channel):
    notifications = NotificationService([channel], "City Care Clinic", retry_policy=RetryPolicy.no_retry())
    return CommitGateway(repository, notifications=notifications, clock=fixed_clock)


def test_idempotency_key_is_stable_per_session_and_slot():
    draft = _draft()

    assert build_booking_idempotency_key("s1", draft) == build_booking_idempotency_key("s1", _draft())
    assert build_booking_idempotency_key("s1", draft) != build_booking_idempotency_key("s2", draft)
    assert build_booking_idempotency_key("s1", draft) != build_booking_idempotency_key(
        "s1", _draft(selected_time="07:00 PM")
    )


@pytest.mark.asyncio
async def test_commit_books_and_notifies(gateway, channel, repository):
    appointment = await gateway.commit(_draft(), "s1")
    await gateway.notifications.drain()

    assert appointment.id in repository.appointments
    assert appointment.duration == 30
    assert len(channel.sent) == 1
    recipient, subject, body = channel.sent[0]
    assert recipient.name == "John Smith"
    assert subject == "Appointment confirmed - City Care Clinic"
    assert "Thursday, August 7, 2025 at 07:30 PM" in body


@pytest.mark.asyncio
async def test_repeat_commit_returns_same_appointment(gateway, repository):
    first = await gateway.commit(_draft(), "s1")
    second = await gateway.commit(_draft(), "s1")

    assert first.id == second.id
    assert len(repository.appointments) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"patient_email": None}, "patient_email"),
        ({"selected_date": "2025-08-05"}, "selected_date"),
        ({"appointment_type": "Surgery"}, "appointment_type"),
        ({"patient_age": 0}, "patient_age"),
    ],
)
async def test_invalid_draft_names_the_field(gateway, repository, overrides, field):
    with pytest.raises(BookingValidationError) as exc:
        await gateway.commit(_draft(**overrides), "s1")

    assert exc.value.field == field
    assert repository.appointments == {}


@pytest.mark.asyncio
async def test_conflict_is_logged_and_raised(gateway, tmp_path):
    log_path = tmp_path / "events.jsonl"
    set_log_path(log_path)
    await gateway.commit(_draft(), "other-session")

    with pytest.raises(BookingConflictError):
        await gateway.commit(_draft(patient_phone="9123456780"), "s1")

    events = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert [e["event"] for e in events] == ["booking_committed", "booking_conflict"]
    assert events[1]["session_id"] == "s1"


@pytest.mark.asyncio
async def test_missing_settings_is_a_configuration_error():
    gateway = CommitGateway(InMemoryAppointmentRepository(None), clock=fixed_clock)

    with pytest.raises(ConfigurationError):
        await gateway.commit(_draft(), "s1")
