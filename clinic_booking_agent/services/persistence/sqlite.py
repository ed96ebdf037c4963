"""
SQLite-backed repository.

Every statement runs in a worker thread via ``asyncio.to_thread``; writes
are serialized with an ``asyncio.Lock``. The (date, time) uniqueness rule
lives in a partial unique index that ignores cancelled appointments.
"""

import asyncio
import json
import sqlite3
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from ...config import AppointmentSettings
from ...core.enums import AppointmentStatus
from ...core.exceptions import BookingConflictError
from ...core.models import Appointment, BookingDraft, Patient
from ...utils.logging import get_logger
from ...utils.time import normalize_time
from ...utils.validation import ValidationUtils
from .repository import BOOKING_NOTES, AppointmentRepository, generate_patient_visible_id

logger = get_logger("clinic.repository")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    visible_id TEXT UNIQUE,
    name TEXT NOT NULL,
    phone TEXT,
    email TEXT,
    age INTEGER,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_patients_phone ON patients(phone);
CREATE TABLE IF NOT EXISTS appointments (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    time TEXT NOT NULL,
    patient_id TEXT REFERENCES patients(id),
    appointment_type TEXT,
    duration INTEGER NOT NULL,
    status TEXT NOT NULL,
    notes TEXT,
    is_emergency INTEGER NOT NULL DEFAULT 0,
    idempotency_key TEXT UNIQUE,
    created_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot
    ON appointments(date, time) WHERE status != 'Cancelled';
CREATE TABLE IF NOT EXISTS appointment_settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    payload TEXT NOT NULL
);
"""


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteAppointmentRepository(AppointmentRepository):
    """Appointments, patients and settings in a single SQLite file."""

    def __init__(self, db_path: str, clinic_name: str = "City Care Clinic"):
        self.db_path = db_path
        self.clinic_name = clinic_name
        self._lock = asyncio.Lock()
        self._ready = False

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    async def _ensure_schema(self) -> None:
        """Ensure the tables exist."""
        if self._ready:
            return

        def _create() -> None:
            conn = self._connect()
            try:
                conn.executescript(_SCHEMA)
            finally:
                conn.close()

        await asyncio.to_thread(_create)
        self._ready = True

    async def find_appointments_in_range(self, start: date, end: date) -> List[Appointment]:
        await self._ensure_schema()

        def _fetch() -> List[sqlite3.Row]:
            conn = self._connect()
            try:
                cur = conn.execute(
                    """
                    SELECT a.*, p.name AS patient_name
                    FROM appointments a LEFT JOIN patients p ON p.id = a.patient_id
                    WHERE a.date BETWEEN ? AND ?
                    ORDER BY a.date, a.time
                    """,
                    (start.isoformat(), end.isoformat()),
                )
                return cur.fetchall()
            finally:
                conn.close()

        rows = await asyncio.to_thread(_fetch)
        return [self._row_to_appointment(row) for row in rows]

    async def find_patient_by_phone_or_name(
        self, phone: Optional[str] = None, name: Optional[str] = None
    ) -> Optional[Patient]:
        if not phone and not name:
            return None
        await self._ensure_schema()

        def _fetch() -> Optional[Patient]:
            conn = self._connect()
            try:
                row = None
                if phone:
                    rows = conn.execute(
                        "SELECT * FROM patients WHERE phone = ? ORDER BY created_at",
                        (phone,),
                    ).fetchall()
                    if name:
                        row = next(
                            (r for r in rows if ValidationUtils.names_match(r["name"], name)), None
                        )
                    if row is None and rows:
                        row = rows[0]
                if row is None and name:
                    row = conn.execute(
                        "SELECT * FROM patients WHERE lower(trim(name)) = lower(trim(?)) "
                        "ORDER BY created_at LIMIT 1",
                        (" ".join(name.split()),),
                    ).fetchone()
                if row is None:
                    return None
                types = conn.execute(
                    "SELECT appointment_type FROM appointments WHERE patient_id = ? "
                    "AND appointment_type IS NOT NULL ORDER BY date DESC, created_at DESC LIMIT 3",
                    (row["id"],),
                ).fetchall()
                return Patient(
                    id=row["id"],
                    visible_id=row["visible_id"],
                    name=row["name"],
                    phone=row["phone"],
                    email=row["email"],
                    age=row["age"],
                    recent_appointment_types=[t[0] for t in types],
                )
            finally:
                conn.close()

        return await asyncio.to_thread(_fetch)

    async def create_appointment_atomic(
        self,
        draft: BookingDraft,
        *,
        duration: int,
        idempotency_key: Optional[str] = None,
    ) -> Appointment:
        await self._ensure_schema()
        time_label = normalize_time(draft.selected_time) or draft.selected_time

        def _write() -> sqlite3.Row:
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    if idempotency_key:
                        existing = conn.execute(
                            "SELECT * FROM appointments WHERE idempotency_key = ?",
                            (idempotency_key,),
                        ).fetchone()
                        if existing is not None:
                            conn.execute("COMMIT")
                            return existing

                    patient_id = draft.existing_patient_ref
                    if patient_id is not None:
                        found = conn.execute(
                            "SELECT id FROM patients WHERE id = ?", (patient_id,)
                        ).fetchone()
                        if found is None:
                            patient_id = None
                    if patient_id is None:
                        patient_id = uuid.uuid4().hex
                        count = conn.execute("SELECT COUNT(*) FROM patients").fetchone()[0]
                        conn.execute(
                            "INSERT INTO patients (id, visible_id, name, phone, email, age, created_at) "
                            "VALUES (?, ?, ?, ?, ?, ?, ?)",
                            (
                                patient_id,
                                generate_patient_visible_id(self.clinic_name, count + 1),
                                draft.patient_name,
                                draft.patient_phone,
                                draft.patient_email,
                                draft.patient_age,
                                _utcnow_iso(),
                            ),
                        )

                    appointment_id = uuid.uuid4().hex
                    conn.execute(
                        "INSERT INTO appointments (id, date, time, patient_id, appointment_type, "
                        "duration, status, notes, is_emergency, idempotency_key, created_at) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (
                            appointment_id,
                            draft.selected_date,
                            time_label,
                            patient_id,
                            draft.appointment_type,
                            duration,
                            AppointmentStatus.CONFIRMED.value,
                            BOOKING_NOTES,
                            int(draft.is_emergency),
                            idempotency_key,
                            _utcnow_iso(),
                        ),
                    )
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
                return conn.execute(
                    "SELECT * FROM appointments WHERE id = ?", (appointment_id,)
                ).fetchone()
            finally:
                conn.close()

        async with self._lock:
            try:
                row = await asyncio.to_thread(_write)
            except sqlite3.IntegrityError as e:
                logger.info(f"repository: slot conflict for {draft.selected_date} {time_label}: {e}")
                raise BookingConflictError(
                    f"slot {draft.selected_date} {time_label} is already booked",
                    date=draft.selected_date,
                    time=time_label,
                ) from e

        appointment = self._row_to_appointment(row)
        appointment.patient_name = draft.patient_name
        return appointment

    async def get_appointment_settings(self) -> Optional[AppointmentSettings]:
        await self._ensure_schema()

        def _fetch() -> Optional[str]:
            conn = self._connect()
            try:
                row = conn.execute("SELECT payload FROM appointment_settings WHERE id = 1").fetchone()
            finally:
                conn.close()
            return row[0] if row else None

        payload = await asyncio.to_thread(_fetch)
        if payload is None:
            return None
        return AppointmentSettings.model_validate(json.loads(payload))

    async def save_appointment_settings(self, settings: AppointmentSettings) -> None:
        """Insert or replace the settings record."""
        await self._ensure_schema()
        payload = settings.model_dump_json()

        def _write() -> None:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO appointment_settings (id, payload) VALUES (1, ?)",
                    (payload,),
                )
            finally:
                conn.close()

        async with self._lock:
            await asyncio.to_thread(_write)

    async def add_patient(self, patient: Patient) -> Patient:
        """Insert a patient record as-is."""
        await self._ensure_schema()

        def _write() -> None:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT INTO patients (id, visible_id, name, phone, email, age, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        patient.id,
                        patient.visible_id,
                        patient.name,
                        patient.phone,
                        patient.email,
                        patient.age,
                        _utcnow_iso(),
                    ),
                )
            finally:
                conn.close()

        async with self._lock:
            await asyncio.to_thread(_write)
        return patient

    @staticmethod
    def _row_to_appointment(row: sqlite3.Row) -> Appointment:
        keys = row.keys()
        return Appointment(
            id=row["id"],
            date=row["date"],
            time=row["time"],
            patient_id=row["patient_id"],
            patient_name=row["patient_name"] if "patient_name" in keys else None,
            appointment_type=row["appointment_type"],
            duration=row["duration"],
            status=AppointmentStatus.from_string(row["status"]),
            notes=row["notes"],
            is_emergency=bool(row["is_emergency"]),
            idempotency_key=row["idempotency_key"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
