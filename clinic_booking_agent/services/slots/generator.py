"""
Time-slot generator.

Turns the clinic's candidate time labels into the bookable slots for a day.
The output depends only on the arguments, including the ``now`` instant used
for the same-day cutoff.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from ...config import AppointmentSettings
from ...core.enums import TimeCategory, TimePreference
from ...core.models import Appointment, TimeSlot
from ...utils.date import format_display_date
from ...utils.logging import get_logger
from ...utils.time import normalize_time, time_to_minutes

logger = get_logger("clinic.slots")


def _booked_labels(target: date, existing: Iterable[Appointment]) -> set:
    iso = target.isoformat()
    labels = set()
    for appt in existing:
        if appt.date != iso or not appt.is_active():
            continue
        label = normalize_time(appt.time)
        if label:
            labels.add(label)
    return labels


def generate_slots(
    target: date,
    existing: Sequence[Appointment],
    settings: AppointmentSettings,
    now: datetime,
    time_preference: Optional[TimePreference] = None,
) -> List[TimeSlot]:
    """
    Bookable slots for ``target`` in configured candidate order.

    A candidate is dropped when it is inactive, outside working hours,
    inside the break window, already held by a non-cancelled appointment,
    or (for today) when its end time is not after ``now``. Days that are
    in the past, not working days, or already at the daily appointment cap
    yield no slots.
    """
    today = now.date()
    if target < today:
        return []
    if target.weekday() not in settings.working_days:
        return []

    active_existing = [a for a in existing if a.date == target.isoformat() and a.is_active()]
    if len(active_existing) >= settings.max_appointments_per_day:
        return []

    work_start, work_end = settings.working_hours.minutes()
    break_window = settings.break_time.minutes() if settings.break_time else None
    booked = _booked_labels(target, active_existing)
    now_seconds = now.hour * 3600 + now.minute * 60 + now.second
    display_date = format_display_date(target)

    slots: List[TimeSlot] = []
    seen = set()
    for raw_label in settings.active_time_labels():
        label = normalize_time(raw_label)
        if label is None:
            logger.warning(f"slots: ignoring unparseable time label {raw_label!r}")
            continue
        if label in seen:
            continue
        seen.add(label)

        start = time_to_minutes(label)
        if not work_start <= start < work_end:
            continue
        if break_window and break_window[0] <= start < break_window[1]:
            continue
        if label in booked:
            continue
        if target == today and (start + settings.default_duration) * 60 <= now_seconds:
            continue
        if time_preference is not None:
            pref_start, pref_end = time_preference.window
            if not pref_start <= start < pref_end:
                continue

        slots.append(
            TimeSlot(
                date=target.isoformat(),
                time=label,
                display_date=display_date,
                time_category=TimeCategory.for_minutes(start),
            )
        )
    return slots


class SlotGenerator:
    """Generates slots for single days and multi-day windows."""

    def generate(
        self,
        target: date,
        existing: Sequence[Appointment],
        settings: AppointmentSettings,
        now: datetime,
        time_preference: Optional[TimePreference] = None,
    ) -> List[TimeSlot]:
        return generate_slots(target, existing, settings, now, time_preference)

    def generate_range(
        self,
        start: date,
        end: date,
        existing: Sequence[Appointment],
        settings: AppointmentSettings,
        now: datetime,
        time_preference: Optional[TimePreference] = None,
    ) -> List[TimeSlot]:
        """Slots for every day in ``[start, end]``, day by day."""
        by_date: Dict[str, List[Appointment]] = {}
        for appt in existing:
            by_date.setdefault(appt.date, []).append(appt)

        slots: List[TimeSlot] = []
        day = start
        while day <= end:
            slots.extend(
                generate_slots(day, by_date.get(day.isoformat(), []), settings, now, time_preference)
            )
            day += timedelta(days=1)
        return slots
