"""
Tests for the appointment repositories.
"""

import sqlite3
from datetime import date

import pytest
import pytest_asyncio

from clinic_booking_agent.core.enums import AppointmentStatus
from clinic_booking_agent.core.exceptions import BookingConflictError
from clinic_booking_agent.core.models import BookingDraft, Patient
from clinic_booking_agent.services.persistence import (
    BOOKING_NOTES,
    InMemoryAppointmentRepository,
    SQLiteAppointmentRepository,
    generate_patient_visible_id,
)


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


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def repo(request, tmp_path, appointment_settings):
    if request.param == "memory":
        return InMemoryAppointmentRepository(appointment_settings)
    repository = SQLiteAppointmentRepository(str(tmp_path / "clinic.db"))
    await repository.save_appointment_settings(appointment_settings)
    return repository


def _cancel(repo, appointment_id):
    if isinstance(repo, InMemoryAppointmentRepository):
        repo.appointments[appointment_id].status = AppointmentStatus.CANCELLED
        return
    conn = sqlite3.connect(repo.db_path)
    try:
        conn.execute("UPDATE appointments SET status = 'Cancelled' WHERE id = ?", (appointment_id,))
        conn.commit()
    finally:
        conn.close()


@pytest.mark.parametrize(
    "clinic, sequence, expected",
    [("City Care Clinic", 1, "CIT0001"), ("Dr. Jo", 42, "DRJ0042"), ("Al", 7, "ALA0007")],
)
def test_visible_id(clinic, sequence, expected):
    assert generate_patient_visible_id(clinic, sequence) == expected


def test_visible_id_needs_letters():
    with pytest.raises(ValueError):
        generate_patient_visible_id("123", 1)


@pytest.mark.asyncio
async def test_create_appointment_creates_patient(repo):
    appointment = await repo.create_appointment_atomic(_draft(), duration=30, idempotency_key="k1")

    assert appointment.date == "2025-08-07"
    assert appointment.time == "07:30 PM"
    assert appointment.status == AppointmentStatus.CONFIRMED
    assert appointment.notes == BOOKING_NOTES
    assert appointment.duration == 30

    patient = await repo.find_patient_by_phone_or_name(phone="9876543210")
    assert patient is not None
    assert patient.id == appointment.patient_id
    assert patient.visible_id == "CIT0001"
    assert patient.recent_appointment_types == ["Consultation"]


@pytest.mark.asyncio
async def test_same_slot_twice_conflicts(repo):
    await repo.create_appointment_atomic(_draft(), duration=30)

    with pytest.raises(BookingConflictError) as exc:
        await repo.create_appointment_atomic(
            _draft(patient_name="Jane Doe", patient_phone="9123456780"), duration=30
        )

    assert exc.value.date == "2025-08-07"
    assert exc.value.time == "07:30 PM"


@pytest.mark.asyncio
async def test_idempotency_key_returns_first_appointment(repo):
    first = await repo.create_appointment_atomic(_draft(), duration=30, idempotency_key="same")
    second = await repo.create_appointment_atomic(_draft(), duration=30, idempotency_key="same")

    assert first.id == second.id
    booked = await repo.find_appointments_in_range(date(2025, 8, 7), date(2025, 8, 7))
    assert len(booked) == 1


@pytest.mark.asyncio
async def test_cancelled_appointment_frees_the_slot(repo):
    first = await repo.create_appointment_atomic(_draft(), duration=30)
    _cancel(repo, first.id)

    second = await repo.create_appointment_atomic(_draft(patient_phone="9123456780"), duration=30)

    booked = await repo.find_appointments_in_range(date(2025, 8, 1), date(2025, 8, 31))
    assert {a.id for a in booked} == {first.id, second.id}
    by_id = {a.id: a for a in booked}
    assert not by_id[first.id].is_active()
    assert by_id[second.id].is_active()


@pytest.mark.asyncio
async def test_existing_patient_is_reused(repo):
    first = await repo.create_appointment_atomic(_draft(), duration=30)

    second = await repo.create_appointment_atomic(
        _draft(selected_time="07:00 PM", existing_patient_ref=first.patient_id, appointment_type="Follow-up"),
        duration=30,
    )

    assert second.patient_id == first.patient_id
    patient = await repo.find_patient_by_phone_or_name(phone="9876543210")
    assert patient.recent_appointment_types == ["Follow-up", "Consultation"]


@pytest.mark.asyncio
async def test_lookup_by_name_is_case_insensitive(repo):
    await repo.create_appointment_atomic(_draft(), duration=30)

    assert (await repo.find_patient_by_phone_or_name(name="  john   smith ")).name == "John Smith"
    assert await repo.find_patient_by_phone_or_name(phone="9000000000") is None
    assert await repo.find_patient_by_phone_or_name() is None


@pytest.mark.asyncio
async def test_shared_phone_lookup_prefers_matching_name(repo):
    await repo.create_appointment_atomic(_draft(patient_name="Jane Doe"), duration=30)
    await repo.create_appointment_atomic(
        _draft(patient_name="Jane Smith", selected_time="07:00 PM"), duration=30
    )

    both = await repo.find_patient_by_phone_or_name(phone="9876543210", name="jane  smith")
    assert both.name == "Jane Smith"
    assert (await repo.find_patient_by_phone_or_name(phone="9876543210")).name == "Jane Doe"
    other = await repo.find_patient_by_phone_or_name(phone="9876543210", name="Mary Major")
    assert other.name == "Jane Doe"


@pytest.mark.asyncio
async def test_range_query_bounds(repo):
    await repo.create_appointment_atomic(_draft(selected_date="2025-08-07"), duration=30)
    await repo.create_appointment_atomic(_draft(selected_date="2025-08-09"), duration=30)

    booked = await repo.find_appointments_in_range(date(2025, 8, 7), date(2025, 8, 8))

    assert [a.date for a in booked] == ["2025-08-07"]


@pytest.mark.asyncio
async def test_settings_round_trip(repo, appointment_settings):
    loaded = await repo.get_appointment_settings()
    assert loaded == appointment_settings


@pytest.mark.asyncio
async def test_sqlite_without_settings_returns_none(tmp_path):
    repo = SQLiteAppointmentRepository(str(tmp_path / "empty.db"))
    assert await repo.get_appointment_settings() is None


@pytest.mark.asyncio
async def test_sqlite_add_patient_then_lookup(tmp_path):
    repo = SQLiteAppointmentRepository(str(tmp_path / "clinic.db"))
    await repo.add_patient(Patient(id="p1", visible_id="CIT0001", name="Asha Rao", phone="9988776655"))

    patient = await repo.find_patient_by_phone_or_name(phone="9988776655")

    assert patient.id == "p1"
    assert patient.recent_appointment_types == []
