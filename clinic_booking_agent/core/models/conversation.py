"""
Conversation state models.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..enums import ConversationPhase
from .booking import Appointment, BookingDraft, TimeSlot

CURRENT_SCHEMA_VERSION = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """Individual chat message model."""

    model_config = ConfigDict(extra="forbid")

    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class ConversationState(BaseModel):
    """Everything the engine remembers about one booking session."""

    model_config = ConfigDict(extra="ignore")

    schema_version: int = CURRENT_SCHEMA_VERSION
    session_id: str
    user_id: Optional[str] = None
    phase: ConversationPhase = ConversationPhase.GREETING
    booking_draft: BookingDraft = Field(default_factory=BookingDraft)
    available_slots: List[TimeSlot] = Field(default_factory=list)
    recent_messages: List[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    last_activity: datetime = Field(default_factory=_utcnow)
    version: int = 0

    @model_validator(mode="before")
    @classmethod
    def _upgrade(cls, data: Any) -> Any:
        # Sessions written before schema_version existed carry no marker.
        if isinstance(data, dict) and data.get("schema_version") is None:
            data = {**data, "schema_version": CURRENT_SCHEMA_VERSION}
        return data

    def add_message(self, role: str, content: str, limit: int = 10) -> None:
        """Append to the bounded message history, keeping the last ``limit``."""
        self.recent_messages.append(ChatMessage(role=role, content=content))
        if len(self.recent_messages) > limit:
            self.recent_messages = self.recent_messages[-limit:]

    def reset(self, phase: ConversationPhase = ConversationPhase.GREETING) -> None:
        """Drop the draft and slot snapshot; history is kept."""
        self.phase = phase
        self.booking_draft = BookingDraft()
        self.available_slots = []


class EngineResponse(BaseModel):
    """Reply returned by ``BookingService.process_message``."""

    message: str
    conversation_context: ConversationState
    available_slots: Optional[List[TimeSlot]] = None
    ready_to_book: bool = False
    booking_data: Optional[BookingDraft] = None
    appointment: Optional[Appointment] = None
    suggested_actions: List[str] = Field(default_factory=list)
