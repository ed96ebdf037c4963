"""
Booking service: the single entry point for chat turns.

One call to :meth:`BookingService.process_message` loads the session,
parses the message, runs the state machine, commits when the user has
confirmed, and saves the session back. Turns for the same session are
serialized; different sessions run concurrently.
"""

import asyncio
import uuid
import weakref
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from ...config import Settings, get_settings
from ...core.enums import ConversationPhase, TimePreference
from ...core.exceptions import (
    BookingConflictError,
    BookingValidationError,
    ConfigurationError,
    LanguageModelError,
    SessionStoreError,
)
from ...core.models import Appointment, ChatMessage, ConversationState, EngineResponse, ParsedInput, TimeSlot
from ...utils.date import DateParser, now_in_timezone, parse_iso_date
from ...utils.event_log import log_event, set_turn_id
from ...utils.logging import get_logger
from ...utils.validation import ValidationUtils
from ..memory import SessionStore
from ..nlu import NaturalLanguageParser, RetryPolicy, call_with_retry
from ..persistence import AppointmentRepository
from ..slots import SlotGenerator
from . import messages
from .commit import CommitGateway
from .state_machine import MISSING_SETTINGS_MESSAGE, ConversationStateMachine, TurnResult

logger = get_logger("clinic.service")


class BookingService:
    """Coordinates parser, state machine, commit gateway and session store."""

    def __init__(
        self,
        repository: AppointmentRepository,
        session_store: SessionStore,
        parser: NaturalLanguageParser,
        state_machine: Optional[ConversationStateMachine] = None,
        commit_gateway: Optional[CommitGateway] = None,
        retry_policy: Optional[RetryPolicy] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.session_store = session_store
        self.parser = parser
        self.clock = clock or (lambda: now_in_timezone(self.settings.timezone))
        self.date_parser = DateParser(self.settings.timezone)
        self.slot_generator = SlotGenerator()
        self.state_machine = state_machine or ConversationStateMachine(
            repository,
            slot_generator=self.slot_generator,
            date_parser=self.date_parser,
            clock=self.clock,
        )
        self.commit_gateway = commit_gateway or CommitGateway(repository, clock=self.clock)
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)
        # Entries vanish once no turn holds or waits on the lock.
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    # ------------------------------------------------------------------
    # Chat turns
    # ------------------------------------------------------------------

    async def process_message(
        self,
        message: str,
        session_id: str,
        patient_phone: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> EngineResponse:
        """Handle one user message and return the assistant's reply."""
        is_valid, error = ValidationUtils.validate_message(message, self.settings.max_message_length)
        if not is_valid:
            raise BookingValidationError(error, field="message")
        if not session_id or not session_id.strip():
            raise BookingValidationError("Session id is required", field="session_id")

        async with self._lock_for(session_id):
            set_turn_id(uuid.uuid4().hex)
            return await self._process_turn(message.strip(), session_id, patient_phone, user_id)

    async def _process_turn(
        self,
        message: str,
        session_id: str,
        patient_phone: Optional[str],
        user_id: Optional[str],
    ) -> EngineResponse:
        limit = self.settings.max_recent_messages
        state = await self.session_store.get(session_id)
        welcome = None
        if state is None:
            state = ConversationState(session_id=session_id, user_id=user_id)
            welcome = await self._personalize(state, patient_phone)
            logger.info(f"service: new session {session_id}")

        phase_before = state.phase
        state.add_message("user", message, limit=limit)
        appointment: Optional[Appointment] = None
        intent = None

        try:
            parsed = await self._parse(message, state.phase)
            intent = parsed.intent.value
            result = await self.state_machine.handle(state, parsed, message)
            if result.ready_to_book:
                result, appointment = await self._commit(state)
        except ConfigurationError as e:
            logger.warning(f"service: configuration problem in session {session_id}: {e}")
            state.reset()
            result = TurnResult(str(e))
        except Exception:
            logger.exception(f"service: unexpected error in session {session_id}")
            state.reset()
            result = TurnResult(messages.APOLOGY)

        reply = result.message
        if welcome:
            if state.phase == ConversationPhase.GREETING:
                reply = messages.greeting_menu(welcome=welcome)
            else:
                reply = f"{welcome}\n\n{reply}"
        state.add_message("assistant", reply, limit=limit)

        await self._persist(state, end_session=result.end_session)
        log_event(
            "turn",
            {
                "session_id": session_id,
                "phase_before": phase_before.value,
                "phase_after": state.phase.value,
                "intent": intent,
                "booked": appointment.id if appointment else None,
            },
        )

        return EngineResponse(
            message=reply,
            conversation_context=state,
            available_slots=list(state.available_slots)
            if state.phase == ConversationPhase.SHOWING_SLOTS
            else None,
            ready_to_book=appointment is not None,
            booking_data=state.booking_draft.model_copy(deep=True) if appointment else None,
            appointment=appointment,
            suggested_actions=result.suggested_actions or messages.suggested_actions(state.phase.value),
        )

    async def _parse(self, message: str, phase: ConversationPhase) -> ParsedInput:
        try:
            return await call_with_retry(
                lambda: self.parser.parse_strict(message, phase),
                self.retry_policy,
                retry_on=(LanguageModelError,),
                description="message parsing",
            )
        except LanguageModelError as e:
            logger.warning(f"service: parser unavailable, continuing with default input: {e}")
            return ParsedInput.default()

    async def _commit(self, state: ConversationState) -> Tuple[TurnResult, Optional[Appointment]]:
        draft = state.booking_draft
        try:
            appointment = await self.commit_gateway.commit(draft, state.session_id)
        except BookingConflictError:
            return await self.state_machine.recover_from_conflict(state), None
        except BookingValidationError as e:
            logger.info(f"service: commit rejected field {e.field}: {e}")
            return await self.state_machine.recover_invalid_draft(state), None

        state.phase = ConversationPhase.COMPLETED
        state.available_slots = []
        return TurnResult(messages.booking_success(appointment, draft)), appointment

    async def _persist(self, state: ConversationState, end_session: bool) -> None:
        try:
            if end_session:
                await self.session_store.delete(state.session_id)
            else:
                await self.session_store.save(state)
        except SessionStoreError as e:
            logger.error(f"service: could not persist session {state.session_id}: {e}")

    async def _personalize(self, state: ConversationState, patient_phone: Optional[str]) -> Optional[str]:
        """Prefill identity for a known phone number; returns a welcome line for returning patients."""
        phone = ValidationUtils.normalize_phone(patient_phone) if patient_phone else None
        if phone is None:
            return None
        draft = state.booking_draft
        draft.patient_phone = phone

        patient = await self.repository.find_patient_by_phone_or_name(phone=phone)
        if patient is None:
            return None
        draft.patient_name = patient.name
        draft.existing_patient_ref = patient.id
        if ValidationUtils.validate_email(patient.email)[0]:
            draft.patient_email = patient.email
            draft.prefilled_fields.append("patient_email")
        if ValidationUtils.coerce_age(patient.age) is not None:
            draft.patient_age = patient.age
            draft.prefilled_fields.append("patient_age")

        last_type = patient.recent_appointment_types[0] if patient.recent_appointment_types else None
        return messages.returning_patient_greeting(patient.name, last_type)

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Session and availability queries
    # ------------------------------------------------------------------

    async def get_history(self, session_id: str) -> Optional[List[ChatMessage]]:
        """Recent messages for a live session, or None if there is none."""
        state = await self.session_store.get(session_id)
        if state is None:
            return None
        return list(state.recent_messages)

    async def clear_session(self, session_id: str) -> None:
        async with self._lock_for(session_id):
            await self.session_store.delete(session_id)
        logger.info(f"service: session {session_id} cleared")

    async def get_available_slots(
        self,
        date_str: str,
        time_preference: Optional[str] = None,
    ) -> List[TimeSlot]:
        """Open slots for one ISO date, optionally narrowed to a time of day."""
        target = parse_iso_date(date_str)
        if target is None:
            raise BookingValidationError(f"Invalid date '{date_str}', expected YYYY-MM-DD", field="date")

        settings = await self.repository.get_appointment_settings()
        if settings is None:
            raise ConfigurationError(MISSING_SETTINGS_MESSAGE)

        preference = None
        if time_preference:
            preference = TimePreference.from_string(time_preference)
            if preference is None:
                raise BookingValidationError(
                    f"Unknown time preference '{time_preference}'", field="time_preference"
                )

        existing = await self.repository.find_appointments_in_range(target, target)
        return self.slot_generator.generate(target, existing, settings, self.clock(), preference)
