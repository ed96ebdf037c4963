"""
Data models for the clinic booking agent.
"""

from .booking import BookingDraft, TimeSlot, Appointment, PATIENT_FIELDS
from .patient import Patient
from .nlu import ParsedInput
from .conversation import (
    ChatMessage,
    ConversationState,
    EngineResponse,
    CURRENT_SCHEMA_VERSION,
)

__all__ = [
    "BookingDraft",
    "TimeSlot",
    "Appointment",
    "PATIENT_FIELDS",
    "Patient",
    "ParsedInput",
    "ChatMessage",
    "ConversationState",
    "EngineResponse",
    "CURRENT_SCHEMA_VERSION",
]
