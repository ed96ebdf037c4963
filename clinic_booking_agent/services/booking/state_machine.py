"""
Conversation state machine for appointment booking.

Each phase has one handler. Handlers mutate the ConversationState they are
given and return a TurnResult; loading and saving the state is the
caller's job. Every slot offer is provisional: slots are re-checked against
live appointments when picked and again right before booking.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from ...config import AppointmentSettings
from ...core.enums import ConversationPhase, DatePreference, Intent
from ...core.exceptions import ConfigurationError
from ...core.models import BookingDraft, ConversationState, ParsedInput, TimeSlot
from ...utils.date import DateParser, format_display_date, parse_iso_date
from ...utils.logging import get_logger
from ...utils.text import TextProcessor
from ...utils.time import find_times
from ...utils.validation import ValidationUtils
from ..nlu.fallback import extract_delimited, extract_fallback
from ..persistence import AppointmentRepository
from ..slots import SlotGenerator
from . import messages
from .matching import filter_by_preference, match_appointment_type, match_slot
from .rules import FIELD_OWNERS, find_invalid_fields

logger = get_logger("clinic.booking")

BOOKING_INTENTS = frozenset({
    Intent.BOOK_APPOINTMENT,
    Intent.CHECK_AVAILABILITY,
    Intent.PROVIDE_DATE,
    Intent.PROVIDE_TIME,
})

CONFIRM_WORDS = frozenset({
    "yes", "yeah", "yep", "yup", "confirm", "confirmed", "book", "book it",
    "ok", "okay", "sure", "proceed", "go ahead", "correct", "sounds good",
})
DENY_WORDS = frozenset({
    "no", "nope", "cancel", "stop", "change", "don't", "do not", "wrong", "not right",
})
EMERGENCY_WORDS = frozenset({
    "emergency", "urgent", "urgently", "chest pain", "severe pain", "bleeding",
    "can't breathe", "cannot breathe", "unconscious", "accident",
})
BOOKING_WORDS = frozenset({
    "book", "booking", "appointment", "schedule", "slot", "slots", "available",
    "availability", "reserve", "see a doctor", "see the doctor",
})
DATE_CHANGE_WORDS = frozenset({
    "another day", "different day", "other day", "another date", "different date",
    "other date", "change the date", "change date", "next week",
})
CANCEL_WORDS = frozenset({"cancel", "never mind", "nevermind", "forget it"})

_CANCELLABLE_PHASES = frozenset({
    ConversationPhase.ASKING_DATE,
    ConversationPhase.SHOWING_SLOTS,
    ConversationPhase.ASKING_APPOINTMENT_TYPE,
    ConversationPhase.COLLECTING_PATIENT_INFO,
})

_BARE_NAME_RE = re.compile(r"[A-Za-z][A-Za-z .'-]{1,60}")

MISSING_SETTINGS_MESSAGE = (
    "Online booking is not set up yet: the clinic's appointment settings are missing. "
    "Please ask the clinic administrator to configure working hours, time slots and "
    "appointment types in Appointment Settings."
)


@dataclass
class TurnResult:
    """What one handled message produced."""

    message: str
    ready_to_book: bool = False
    end_session: bool = False
    suggested_actions: List[str] = field(default_factory=list)


@dataclass
class _Turn:
    state: ConversationState
    parsed: ParsedInput
    message: str
    now: datetime
    settings: Optional[AppointmentSettings] = None

    @property
    def draft(self) -> BookingDraft:
        return self.state.booking_draft

    @property
    def today(self) -> date:
        return self.now.date()


class ConversationStateMachine:
    """Routes parsed input to per-phase handlers."""

    def __init__(
        self,
        repository: AppointmentRepository,
        slot_generator: Optional[SlotGenerator] = None,
        date_parser: Optional[DateParser] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.slots = slot_generator or SlotGenerator()
        self.date_parser = date_parser or DateParser()
        self.clock = clock or (lambda: datetime.now(self.date_parser.tz))
        self._handlers = {
            ConversationPhase.GREETING: self._on_greeting,
            ConversationPhase.ASKING_DATE: self._on_asking_date,
            ConversationPhase.SHOWING_SLOTS: self._on_showing_slots,
            ConversationPhase.ASKING_APPOINTMENT_TYPE: self._on_asking_type,
            ConversationPhase.COLLECTING_PATIENT_INFO: self._on_collecting_patient_info,
            ConversationPhase.CONFIRMING_BOOKING: self._on_confirming,
            ConversationPhase.COMPLETED: self._on_completed,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle(self, state: ConversationState, parsed: ParsedInput, message: str) -> TurnResult:
        """Process one message against the current phase."""
        turn = _Turn(state=state, parsed=parsed, message=message or "", now=self._now())
        if state.phase in _CANCELLABLE_PHASES and self._is_cancel(turn):
            logger.info(f"booking: session {state.session_id} cancelled in {state.phase.value}")
            return TurnResult(messages.goodbye(), end_session=True)

        if state.phase not in (ConversationPhase.GREETING, ConversationPhase.COMPLETED):
            self._absorb_doctor_preference(turn)

        phase_before = state.phase
        result = await self._handlers[state.phase](turn)
        if state.phase != phase_before:
            logger.info(
                f"booking: session {state.session_id} {phase_before.value} -> {state.phase.value}"
            )
        return result

    async def recover_from_conflict(self, state: ConversationState) -> TurnResult:
        """Re-offer slots after the commit lost a race for the selected slot."""
        turn = self._internal_turn(state)
        settings = await self._settings(turn)
        fresh = await self._fresh_slots(turn.draft.selected_date, settings, turn.now)
        return await self._slot_conflict(turn, fresh)

    async def recover_invalid_draft(self, state: ConversationState) -> TurnResult:
        """Send the conversation back to whichever phase owns an invalid field."""
        turn = self._internal_turn(state)
        settings = await self._settings(turn)
        problems = find_invalid_fields(turn.draft, settings.require_appointment_types(), turn.today)
        if not problems:
            return self._enter_confirmation(turn)
        return await self._route_to_field(turn, problems)

    # ------------------------------------------------------------------
    # Phase handlers
    # ------------------------------------------------------------------

    async def _on_greeting(self, turn: _Turn) -> TurnResult:
        parsed, message, draft = turn.parsed, turn.message, turn.draft

        emergency = parsed.is_emergency or TextProcessor.contains_any_word(message, EMERGENCY_WORDS)
        wants_booking = (
            parsed.intent in BOOKING_INTENTS
            or parsed.is_complete_request
            or parsed.has_date_info()
            or bool(parsed.extracted_time)
            or TextProcessor.contains_any_word(message, BOOKING_WORDS)
        )
        if not wants_booking and not emergency:
            return TurnResult(messages.greeting_menu(draft.patient_name))

        if emergency:
            draft.is_emergency = True

        # Fast path: keep whatever this utterance already supplies.
        self._absorb_patient_fields(draft, parsed, message, allow_bare_name=False)
        await self._reconcile_existing_patient(draft)
        await self._absorb_type_hint(turn)
        self._absorb_doctor_preference(turn)

        if self._mentions_date(turn):
            return await self._resolve_and_offer(turn, fast_path=True)

        turn.state.phase = ConversationPhase.ASKING_DATE
        return TurnResult(messages.date_prompt(draft.is_emergency))

    async def _on_asking_date(self, turn: _Turn) -> TurnResult:
        return await self._resolve_and_offer(turn, fast_path=False)

    async def _on_showing_slots(self, turn: _Turn) -> TurnResult:
        state, parsed = turn.state, turn.parsed

        if self._wants_date_change(turn):
            turn.draft.selected_time = None
            state.available_slots = []
            state.phase = ConversationPhase.ASKING_DATE
            return await self._resolve_and_offer(turn, fast_path=False)

        slots = state.available_slots
        if not slots:
            state.phase = ConversationPhase.ASKING_DATE
            return TurnResult(messages.date_prompt(turn.draft.is_emergency))

        picked = match_slot(turn.message, parsed, slots, wanted_date=self._named_date(turn))
        if picked is not None:
            return await self._select_slot(turn, picked, fast_path=False)

        if parsed.time_preference is not None:
            preferred = filter_by_preference(slots, parsed.time_preference)
            if preferred:
                intro = f"Here are the {parsed.time_preference.value} times:"
                return TurnResult(messages.slot_list(preferred, intro=intro))

        return TurnResult(messages.slot_not_recognized(slots))

    async def _on_asking_type(self, turn: _Turn) -> TurnResult:
        settings = await self._settings(turn)
        types = settings.require_appointment_types()
        chosen = match_appointment_type(turn.message, turn.parsed.appointment_type, types)
        if chosen is None:
            return TurnResult(
                "Sorry, I didn't recognize that appointment type.\n" + messages.type_prompt(types)
            )
        turn.draft.appointment_type = chosen
        # Patient details sometimes arrive in the same message; a bare list
        # number must not be read as an age, so only parser fields count here.
        self._absorb_patient_fields(
            turn.draft, turn.parsed, turn.message, allow_bare_name=False, use_fallback=False
        )
        await self._reconcile_existing_patient(turn.draft)
        return await self._advance(turn)

    async def _on_collecting_patient_info(self, turn: _Turn) -> TurnResult:
        draft = turn.draft
        errors = self._absorb_patient_fields(draft, turn.parsed, turn.message, allow_bare_name=True)
        await self._reconcile_existing_patient(draft)

        missing = draft.missing_patient_fields()
        if missing:
            return TurnResult(messages.patient_info_prompt(missing, errors))
        return await self._advance(turn, patient_first=True)

    async def _on_confirming(self, turn: _Turn) -> TurnResult:
        parsed, message = turn.parsed, turn.message

        if TextProcessor.contains_any_word(message, DENY_WORDS):
            return self._restart(turn)
        if TextProcessor.contains_any_word(message, CONFIRM_WORDS):
            return await self._revalidate_and_finalize(turn)
        if parsed.intent in (Intent.DENY, Intent.CANCEL):
            return self._restart(turn)
        if parsed.intent == Intent.CONFIRM:
            return await self._revalidate_and_finalize(turn)

        return TurnResult(
            messages.confirmation_reprompt() + "\n\n" + messages.booking_summary(turn.draft)
        )

    async def _on_completed(self, turn: _Turn) -> TurnResult:
        state = turn.state
        state.booking_draft = state.booking_draft.identity_only()
        state.available_slots = []
        state.phase = ConversationPhase.GREETING
        return await self._on_greeting(turn)

    # ------------------------------------------------------------------
    # Dates and slots
    # ------------------------------------------------------------------

    async def _resolve_and_offer(self, turn: _Turn, fast_path: bool) -> TurnResult:
        state, parsed, draft = turn.state, turn.parsed, turn.draft
        settings = await self._settings(turn)

        resolution = self._resolve_dates(turn, settings)
        if resolution is None:
            prefix = "" if state.phase == ConversationPhase.GREETING else "I couldn't work out the date. "
            state.phase = ConversationPhase.ASKING_DATE
            return TurnResult(prefix + messages.date_prompt(draft.is_emergency))

        start, end, error = resolution
        if error:
            state.phase = ConversationPhase.ASKING_DATE
            return TurnResult(error)

        label = format_display_date(start) if start == end else "the next 7 days"
        slots = await self._generate(start, end, settings, turn.now, parsed.time_preference)
        intro = "Here are the available times:"
        if not slots and parsed.time_preference is not None:
            slots = await self._generate(start, end, settings, turn.now, None)
            intro = f"There are no {parsed.time_preference.value} times, but these are available:"
        if not slots:
            state.phase = ConversationPhase.ASKING_DATE
            state.available_slots = []
            return TurnResult(messages.no_slots(label))

        draft.selected_date = start.isoformat() if start == end else None
        draft.selected_time = None
        state.available_slots = slots
        state.phase = ConversationPhase.SHOWING_SLOTS

        requested_time = parsed.extracted_time or next(iter(find_times(turn.message)), None)
        if requested_time:
            wanted_date = self._named_date(turn) if start != end else None
            picked = match_slot(turn.message, parsed, slots, wanted_date=wanted_date)
            if picked is not None:
                return await self._select_slot(turn, picked, fast_path=fast_path)
            intro = f"Sorry, {requested_time} isn't available for {label}. Here are the open times:"

        return TurnResult(messages.slot_list(slots, intro=intro))

    def _resolve_dates(
        self, turn: _Turn, settings: AppointmentSettings
    ) -> Optional[Tuple[date, date, Optional[str]]]:
        """``(start, end, error)`` for the date the user means, or None if no date was given."""
        parsed, message, today = turn.parsed, turn.message, turn.today
        latest = today + timedelta(days=settings.advance_booking_days)

        single: Optional[date] = None
        if parsed.extracted_date:
            single = parse_iso_date(parsed.extracted_date)
        elif parsed.date_preference == DatePreference.TODAY:
            single = today
        elif parsed.date_preference == DatePreference.TOMORROW:
            single = today + timedelta(days=1)
        elif parsed.date_preference == DatePreference.NEXT_WEEK or self.date_parser.mentions_next_week(message):
            start, end = self.date_parser.next_week_window(turn.now)
            return start, min(end, latest), None
        else:
            single = self.date_parser.resolve(message, turn.now)

        if single is None:
            return None
        label = format_display_date(single)
        if single < today:
            return single, single, messages.past_date(label)
        if single > latest:
            return single, single, messages.too_far_ahead(label, settings.advance_booking_days)
        return single, single, None

    def _named_date(self, turn: _Turn) -> Optional[str]:
        named = self.date_parser.resolve(turn.message, turn.now)
        return named.isoformat() if named else None

    def _mentions_date(self, turn: _Turn) -> bool:
        return (
            turn.parsed.has_date_info()
            or self.date_parser.mentions_next_week(turn.message)
            or self.date_parser.resolve(turn.message, turn.now) is not None
        )

    def _wants_date_change(self, turn: _Turn) -> bool:
        parsed, message = turn.parsed, turn.message
        offered_dates = {slot.date for slot in turn.state.available_slots}

        if TextProcessor.contains_any_word(message, DATE_CHANGE_WORDS):
            return True
        if parsed.date_preference == DatePreference.NEXT_WEEK:
            return len(offered_dates) <= 1

        candidate: Optional[date] = None
        if parsed.date_preference == DatePreference.TODAY:
            candidate = turn.today
        elif parsed.date_preference == DatePreference.TOMORROW:
            candidate = turn.today + timedelta(days=1)
        else:
            candidate = self.date_parser.resolve(message, turn.now)
            if candidate is None and parsed.intent == Intent.PROVIDE_DATE:
                candidate = parse_iso_date(parsed.extracted_date)
        return candidate is not None and candidate.isoformat() not in offered_dates

    async def _select_slot(self, turn: _Turn, slot: TimeSlot, fast_path: bool) -> TurnResult:
        settings = await self._settings(turn)
        fresh = await self._fresh_slots(slot.date, settings, turn.now)
        if slot.time not in {s.time for s in fresh}:
            logger.info(f"booking: offered slot {slot.date} {slot.time} went stale")
            return await self._slot_conflict(turn, fresh, stale=slot)

        turn.draft.selected_date = slot.date
        turn.draft.selected_time = slot.time
        return await self._advance(turn, selected=slot, patient_first=fast_path)

    async def _slot_conflict(
        self,
        turn: _Turn,
        fresh: Sequence[TimeSlot],
        stale: Optional[TimeSlot] = None,
    ) -> TurnResult:
        state, draft = turn.state, turn.draft
        settings = await self._settings(turn)
        day = parse_iso_date(stale.date if stale else draft.selected_date) or turn.today
        time_label = stale.time if stale else (draft.selected_time or "that time")

        alternatives = list(fresh)
        if not alternatives:
            alternatives = await self._next_open_day(day, settings, turn.now)

        draft.selected_time = None
        state.available_slots = alternatives
        state.phase = ConversationPhase.SHOWING_SLOTS if alternatives else ConversationPhase.ASKING_DATE
        return TurnResult(messages.slot_taken(time_label, format_display_date(day), alternatives))

    async def _generate(
        self,
        start: date,
        end: date,
        settings: AppointmentSettings,
        now: datetime,
        preference=None,
    ) -> List[TimeSlot]:
        existing = await self.repository.find_appointments_in_range(start, end)
        return self.slots.generate_range(start, end, existing, settings, now, preference)

    async def _fresh_slots(
        self, iso_date: Optional[str], settings: AppointmentSettings, now: datetime
    ) -> List[TimeSlot]:
        day = parse_iso_date(iso_date)
        if day is None:
            return []
        return await self._generate(day, day, settings, now)

    async def _next_open_day(
        self, after: date, settings: AppointmentSettings, now: datetime
    ) -> List[TimeSlot]:
        latest = now.date() + timedelta(days=settings.advance_booking_days)
        day = max(after, now.date()) + timedelta(days=1)
        for _ in range(7):
            if day > latest:
                break
            slots = await self._generate(day, day, settings, now)
            if slots:
                return slots
            day += timedelta(days=1)
        return []

    # ------------------------------------------------------------------
    # Field collection
    # ------------------------------------------------------------------

    def _absorb_patient_fields(
        self,
        draft: BookingDraft,
        parsed: ParsedInput,
        message: str,
        allow_bare_name: bool,
        use_fallback: bool = True,
    ) -> List[str]:
        """Copy valid patient fields into the draft; return messages for invalid ones."""
        delimited = extract_delimited(message) if use_fallback else None
        if delimited is not None:
            values = delimited.as_draft_fields()
        else:
            values = {
                name: value
                for name, value in (
                    ("patient_name", parsed.patient_name),
                    ("patient_phone", parsed.patient_phone),
                    ("patient_email", parsed.patient_email),
                    ("patient_age", parsed.patient_age),
                )
                if value is not None
            }
            if use_fallback:
                for name, value in extract_fallback(message).as_draft_fields().items():
                    values.setdefault(name, value)
            if allow_bare_name and "patient_name" not in values and not draft.patient_name:
                bare = self._bare_name(message)
                if bare:
                    values["patient_name"] = bare

        errors: List[str] = []
        for name, value in values.items():
            normalized, error = self._validate_patient_field(name, value)
            if error:
                errors.append(error)
                continue
            setattr(draft, name, normalized)
            if name in draft.prefilled_fields:
                draft.prefilled_fields.remove(name)
        return errors

    @staticmethod
    def _validate_patient_field(name: str, value) -> Tuple[Optional[object], Optional[str]]:
        if name == "patient_name":
            is_valid, error = ValidationUtils.validate_name(value)
            return (" ".join(str(value).split()), None) if is_valid else (None, error)
        if name == "patient_phone":
            is_valid, error = ValidationUtils.validate_phone(value)
            return (ValidationUtils.normalize_phone(value), None) if is_valid else (None, error)
        if name == "patient_email":
            is_valid, error = ValidationUtils.validate_email(value)
            return (str(value).strip(), None) if is_valid else (None, error)
        if name == "patient_age":
            is_valid, error = ValidationUtils.validate_age(value)
            return (ValidationUtils.coerce_age(value), None) if is_valid else (None, error)
        return None, f"unknown field {name}"

    @staticmethod
    def _bare_name(message: str) -> Optional[str]:
        text = " ".join((message or "").split())
        if not _BARE_NAME_RE.fullmatch(text) or len(text.split()) > 4:
            return None
        if TextProcessor.contains_any_word(text, CONFIRM_WORDS | DENY_WORDS | BOOKING_WORDS):
            return None
        is_valid, _ = ValidationUtils.validate_name(text)
        return text if is_valid else None

    async def _reconcile_existing_patient(self, draft: BookingDraft) -> None:
        """
        Link the draft to an existing patient only when phone and name agree.

        A phone that belongs to someone with a different name means a new
        patient; anything copied from the old record is dropped.
        """
        if not draft.patient_phone:
            return
        patient = await self.repository.find_patient_by_phone_or_name(
            phone=draft.patient_phone, name=draft.patient_name
        )
        if patient is not None and patient.phone != draft.patient_phone:
            patient = None
        if patient is None:
            if draft.existing_patient_ref:
                self._drop_record_identity(draft)
            return
        if not draft.patient_name:
            return

        if ValidationUtils.names_match(patient.name, draft.patient_name):
            if draft.existing_patient_ref not in (None, patient.id):
                self._drop_record_identity(draft)
            draft.existing_patient_ref = patient.id
            if draft.patient_email is None and ValidationUtils.validate_email(patient.email)[0]:
                draft.patient_email = patient.email
                draft.prefilled_fields.append("patient_email")
            if draft.patient_age is None and ValidationUtils.coerce_age(patient.age) is not None:
                draft.patient_age = patient.age
                draft.prefilled_fields.append("patient_age")
        elif draft.existing_patient_ref or draft.prefilled_fields:
            logger.info("booking: phone belongs to a different patient name; treating as new patient")
            self._drop_record_identity(draft)

    @staticmethod
    def _drop_record_identity(draft: BookingDraft) -> None:
        for name in draft.prefilled_fields:
            setattr(draft, name, None)
        draft.prefilled_fields = []
        draft.existing_patient_ref = None

    @staticmethod
    def _absorb_doctor_preference(turn: _Turn) -> None:
        if turn.parsed.doctor_preference:
            turn.draft.doctor_preference = turn.parsed.doctor_preference

    async def _absorb_type_hint(self, turn: _Turn) -> None:
        if turn.draft.appointment_type:
            return
        settings = await self._settings(turn)
        chosen = match_appointment_type(
            turn.message, turn.parsed.appointment_type, settings.appointment_types, allow_index=False
        )
        if chosen:
            turn.draft.appointment_type = chosen

    # ------------------------------------------------------------------
    # Advancement and confirmation
    # ------------------------------------------------------------------

    async def _advance(
        self,
        turn: _Turn,
        selected: Optional[TimeSlot] = None,
        patient_first: bool = False,
    ) -> TurnResult:
        """Move to the first phase still missing a required field."""
        state, draft = turn.state, turn.draft
        if not draft.has_slot():
            state.phase = ConversationPhase.ASKING_DATE
            return TurnResult(messages.date_prompt(draft.is_emergency))

        steps = ("patient", "type") if patient_first else ("type", "patient")
        for step in steps:
            if step == "type" and not draft.appointment_type:
                settings = await self._settings(turn)
                types = settings.require_appointment_types()
                state.phase = ConversationPhase.ASKING_APPOINTMENT_TYPE
                return TurnResult(messages.type_prompt(types, selected))
            if step == "patient" and draft.missing_patient_fields():
                state.phase = ConversationPhase.COLLECTING_PATIENT_INFO
                return TurnResult(
                    messages.patient_info_prompt(draft.missing_patient_fields(), selected=selected)
                )
        return self._enter_confirmation(turn)

    def _enter_confirmation(self, turn: _Turn) -> TurnResult:
        turn.state.phase = ConversationPhase.CONFIRMING_BOOKING
        return TurnResult(messages.booking_summary(turn.draft))

    def _restart(self, turn: _Turn) -> TurnResult:
        turn.state.reset(ConversationPhase.ASKING_DATE)
        return TurnResult(messages.restart_after_denial())

    async def _revalidate_and_finalize(self, turn: _Turn) -> TurnResult:
        """Check every field and the live slot again before handing off to commit."""
        draft = turn.draft
        settings = await self._settings(turn)
        types = settings.require_appointment_types()

        await self._reconcile_existing_patient(draft)
        problems = find_invalid_fields(draft, types, turn.today)
        if problems:
            logger.info(f"booking: confirmation blocked by {[name for name, _ in problems]}")
            return await self._route_to_field(turn, problems)

        fresh = await self._fresh_slots(draft.selected_date, settings, turn.now)
        if draft.selected_time not in {slot.time for slot in fresh}:
            logger.info(f"booking: slot {draft.selected_date} {draft.selected_time} taken before confirmation")
            return await self._slot_conflict(turn, fresh)

        return TurnResult("Booking your appointment now...", ready_to_book=True)

    async def _route_to_field(self, turn: _Turn, problems: Sequence[Tuple[str, str]]) -> TurnResult:
        state, draft = turn.state, turn.draft
        owner = FIELD_OWNERS[problems[0][0]]
        reasons = [reason for name, reason in problems if FIELD_OWNERS[name] == owner]

        if owner == ConversationPhase.ASKING_DATE:
            draft.selected_date = None
            draft.selected_time = None
            state.available_slots = []
            state.phase = ConversationPhase.ASKING_DATE
            return TurnResult(reasons[0] + ". " + messages.date_prompt(draft.is_emergency))

        if owner == ConversationPhase.SHOWING_SLOTS:
            settings = await self._settings(turn)
            fresh = await self._fresh_slots(draft.selected_date, settings, turn.now)
            draft.selected_time = None
            if not fresh:
                state.phase = ConversationPhase.ASKING_DATE
                return TurnResult(reasons[0] + ". " + messages.date_prompt(draft.is_emergency))
            state.available_slots = fresh
            state.phase = ConversationPhase.SHOWING_SLOTS
            return TurnResult(messages.slot_list(fresh, intro=reasons[0] + ". Please pick a time:"))

        if owner == ConversationPhase.ASKING_APPOINTMENT_TYPE:
            settings = await self._settings(turn)
            draft.appointment_type = None
            state.phase = ConversationPhase.ASKING_APPOINTMENT_TYPE
            return TurnResult(reasons[0] + ".\n" + messages.type_prompt(settings.require_appointment_types()))

        for name, _ in problems:
            if FIELD_OWNERS[name] == ConversationPhase.COLLECTING_PATIENT_INFO:
                setattr(draft, name, None)
        state.phase = ConversationPhase.COLLECTING_PATIENT_INFO
        return TurnResult(messages.patient_info_prompt(draft.missing_patient_fields(), reasons))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_cancel(self, turn: _Turn) -> bool:
        return turn.parsed.intent == Intent.CANCEL or TextProcessor.contains_any_word(
            turn.message, CANCEL_WORDS
        )

    async def _settings(self, turn: _Turn) -> AppointmentSettings:
        if turn.settings is None:
            settings = await self.repository.get_appointment_settings()
            if settings is None:
                raise ConfigurationError(MISSING_SETTINGS_MESSAGE)
            turn.settings = settings
        return turn.settings

    def _internal_turn(self, state: ConversationState) -> _Turn:
        return _Turn(state=state, parsed=ParsedInput.default(), message="", now=self._now())

    def _now(self) -> datetime:
        now = self.clock()
        tz = self.date_parser.tz
        if now.tzinfo is None:
            return tz.localize(now)
        return now.astimezone(tz)
