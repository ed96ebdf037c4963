"""
Chat endpoints for the booking assistant.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field, field_validator

from ...core.exceptions import BookingValidationError, ConfigurationError
from ...core.models import ChatMessage, EngineResponse, TimeSlot
from ...services.booking import BookingService
from ...utils.logging import get_logger

logger = get_logger("clinic.api")


class ChatRequest(BaseModel):
    """Inbound chat message."""

    message: str = Field(min_length=1, max_length=1000)
    session_id: str = Field(min_length=1, max_length=128)
    patient_phone: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class HistoryResponse(BaseModel):
    session_id: str
    messages: List[ChatMessage]


class SlotsResponse(BaseModel):
    date: str
    slots: List[TimeSlot]


class ChatHandler:
    """Routes for chat turns, history and availability lookups."""

    def __init__(self):
        self.router = APIRouter()
        self._setup_routes()

    @staticmethod
    def _service(request: Request) -> BookingService:
        return request.app.state.booking_service

    def _setup_routes(self):
        @self.router.post("/appointment", response_model=EngineResponse)
        async def chat_appointment(body: ChatRequest, request: Request):
            """Process one message of a booking conversation."""
            try:
                return await self._service(request).process_message(
                    body.message,
                    body.session_id,
                    patient_phone=body.patient_phone,
                    user_id=body.user_id,
                )
            except BookingValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @self.router.get("/history/{session_id}", response_model=HistoryResponse)
        async def chat_history(session_id: str, request: Request):
            messages = await self._service(request).get_history(session_id)
            if messages is None:
                raise HTTPException(status_code=404, detail="Session not found")
            return HistoryResponse(session_id=session_id, messages=messages)

        @self.router.delete("/clear/{session_id}")
        async def chat_clear(session_id: str, request: Request):
            await self._service(request).clear_session(session_id)
            return {"status": "cleared", "session_id": session_id}

        @self.router.get("/slots", response_model=SlotsResponse)
        async def chat_slots(
            request: Request,
            date: str = Query(..., description="YYYY-MM-DD"),
            preference: Optional[str] = Query(None, description="morning, afternoon or evening"),
        ):
            try:
                slots = await self._service(request).get_available_slots(date, preference)
            except BookingValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            except ConfigurationError as e:
                logger.warning(f"api: slots requested without configuration: {e}")
                raise HTTPException(status_code=503, detail=str(e))
            return SlotsResponse(date=date, slots=slots)
