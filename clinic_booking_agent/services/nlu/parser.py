"""
Natural-language parser adapter.
"""

import json
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ...core.enums import ConversationPhase
from ...core.exceptions import LanguageModelError
from ...core.models import ParsedInput
from ...utils.date import DateParser
from ...utils.logging import get_logger
from ...utils.text import TextProcessor
from .llm import LanguageModelClient
from .prompts import SYSTEM_PROMPT, build_user_prompt

logger = get_logger("clinic.parser")

# Model keys arrive in camelCase; ParsedInput uses snake_case.
_KEY_MAP = {
    "intent": "intent",
    "extractedDate": "extracted_date",
    "extractedTime": "extracted_time",
    "datePreference": "date_preference",
    "timePreference": "time_preference",
    "patientName": "patient_name",
    "patientPhone": "patient_phone",
    "patientEmail": "patient_email",
    "patientAge": "patient_age",
    "appointmentType": "appointment_type",
    "doctorPreference": "doctor_preference",
    "isEmergency": "is_emergency",
    "isCompleteRequest": "is_complete_request",
}


class NaturalLanguageParser:
    """Sends a message to the language model and returns a ParsedInput.

    The parser never retries; wrap :meth:`parse_strict` with
    ``call_with_retry`` when retries are wanted.
    """

    def __init__(
        self,
        llm: LanguageModelClient,
        clock: Optional[Callable[[], datetime]] = None,
        date_parser: Optional[DateParser] = None,
    ):
        self.llm = llm
        self.date_parser = date_parser or DateParser()
        self.clock = clock or (lambda: datetime.now(self.date_parser.tz))

    async def parse(self, message: str, phase: ConversationPhase) -> ParsedInput:
        """Parse, returning the default "general" result on any model failure."""
        try:
            return await self.parse_strict(message, phase)
        except LanguageModelError as e:
            logger.warning(f"parser: falling back to default input: {e}")
            return ParsedInput.default()

    async def parse_strict(self, message: str, phase: ConversationPhase) -> ParsedInput:
        """Parse, raising LanguageModelError on transport or malformed output."""
        today = self.date_parser.today(self.clock())
        user_prompt = build_user_prompt(message, phase, today, today + timedelta(days=1))
        raw = await self.llm.complete(SYSTEM_PROMPT, user_prompt)
        return self.parse_response(raw)

    def parse_response(self, raw: str) -> ParsedInput:
        """Turn raw model text into a ParsedInput or raise LanguageModelError."""
        text = TextProcessor.strip_code_fences(raw or "")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise LanguageModelError(f"model returned non-JSON output: {e}") from e
        if not isinstance(payload, dict):
            raise LanguageModelError("model returned JSON that is not an object")

        try:
            return ParsedInput.model_validate(self._to_fields(payload))
        except ValidationError as e:
            raise LanguageModelError(f"model returned unusable fields: {e}") from e

    @staticmethod
    def _to_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
        fields = {}
        for key, value in payload.items():
            target = _KEY_MAP.get(key, key)
            if target in ParsedInput.model_fields:
                fields[target] = value
        return fields
