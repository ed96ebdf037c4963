"""
Persistence interface consumed by the booking engine.
"""

from .repository import AppointmentRepository, generate_patient_visible_id, BOOKING_NOTES
from .memory import InMemoryAppointmentRepository
from .sqlite import SQLiteAppointmentRepository

__all__ = [
    "AppointmentRepository",
    "generate_patient_visible_id",
    "BOOKING_NOTES",
    "InMemoryAppointmentRepository",
    "SQLiteAppointmentRepository",
]
