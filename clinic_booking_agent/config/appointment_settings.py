"""
Clinic appointment-settings record.

This is the read-only configuration the booking engine consumes: candidate
time labels, working hours, the break window and the list of appointment
types offered to patients.
"""

import json
import re
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.exceptions import ConfigurationError

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TimeWindow(BaseModel):
    """A start/end pair expressed as 24h ``HH:MM`` strings."""

    model_config = ConfigDict(extra="forbid")

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        if not _HHMM_RE.match(value):
            raise ValueError(f"expected HH:MM, got {value!r}")
        return value

    def minutes(self) -> tuple:
        """Return ``(start, end)`` as minutes after midnight."""
        sh, sm = self.start.split(":")
        eh, em = self.end.split(":")
        return int(sh) * 60 + int(sm), int(eh) * 60 + int(em)


class TimeSlotOption(BaseModel):
    """A candidate time-of-day label offered by the clinic."""

    id: str
    time: str
    is_active: bool = True


class DurationOption(BaseModel):
    """A selectable appointment duration in minutes."""

    value: int
    label: str
    is_active: bool = True


class AppointmentSettings(BaseModel):
    """Appointment configuration for a clinic."""

    time_slots: List[TimeSlotOption] = Field(default_factory=list)
    working_hours: TimeWindow = Field(default_factory=lambda: TimeWindow(start="08:00", end="18:00"))
    break_time: Optional[TimeWindow] = Field(default_factory=lambda: TimeWindow(start="12:00", end="13:00"))
    appointment_types: List[str] = Field(default_factory=list)
    durations: List[DurationOption] = Field(default_factory=list)
    default_duration: int = Field(default=30, gt=0)
    max_appointments_per_day: int = Field(default=50, gt=0)
    buffer_time: int = Field(default=15, ge=0)
    advance_booking_days: int = Field(default=30, ge=0)
    working_days: List[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4])

    @field_validator("appointment_types")
    @classmethod
    def _strip_types(cls, value: List[str]) -> List[str]:
        return [t.strip() for t in value if t and t.strip()]

    @field_validator("working_days")
    @classmethod
    def _check_days(cls, value: List[int]) -> List[int]:
        for day in value:
            if day < 0 or day > 6:
                raise ValueError(f"weekday out of range: {day}")
        return value

    def active_time_labels(self) -> List[str]:
        """Active candidate labels in configured order."""
        return [slot.time for slot in self.time_slots if slot.is_active]

    def require_appointment_types(self) -> List[str]:
        """Return configured types or raise a user-facing configuration error."""
        if not self.appointment_types:
            raise ConfigurationError(
                "No appointment types are configured. Please ask the clinic "
                "administrator to add appointment types in Appointment Settings."
            )
        return list(self.appointment_types)


def load_appointment_settings(path: str) -> AppointmentSettings:
    """Read an AppointmentSettings record from a JSON file."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read appointment settings from {path}: {e}") from e
    try:
        return AppointmentSettings.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid appointment settings in {path}: {e}") from e
