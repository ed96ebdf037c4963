"""
Structured parser output.
"""

import re
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ..enums import Intent, DatePreference, TimePreference
from ...utils.time import normalize_time
from ...utils.date import parse_iso_date
from ...utils.validation import ValidationUtils

_NULL_STRINGS = {"", "null", "none", "nil", "n/a", "na", "undefined", "unknown"}


def _is_null(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip().lower() in _NULL_STRINGS)


class ParsedInput(BaseModel):
    """One message's intent and entities. Never persisted."""

    model_config = ConfigDict(extra="ignore")

    intent: Intent = Intent.GENERAL
    extracted_date: Optional[str] = None
    extracted_time: Optional[str] = None
    date_preference: Optional[DatePreference] = None
    time_preference: Optional[TimePreference] = None
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    patient_age: Optional[int] = None
    appointment_type: Optional[str] = None
    doctor_preference: Optional[str] = None
    is_emergency: bool = False
    is_complete_request: bool = False

    @model_validator(mode="before")
    @classmethod
    def _drop_null_sentinels(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {key: (None if _is_null(value) else value) for key, value in data.items()}

    @field_validator("intent", mode="before")
    @classmethod
    def _coerce_intent(cls, value: Any) -> Intent:
        if value is None:
            return Intent.GENERAL
        try:
            return Intent(str(value).strip().lower())
        except ValueError:
            return Intent.GENERAL

    @field_validator("extracted_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Optional[str]:
        parsed = parse_iso_date(value) if isinstance(value, str) else None
        return parsed.isoformat() if parsed else None

    @field_validator("extracted_time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> Optional[str]:
        return normalize_time(value) if value is not None else None

    @field_validator("date_preference", mode="before")
    @classmethod
    def _coerce_date_preference(cls, value: Any) -> Optional[DatePreference]:
        if value is None:
            return None
        key = re.sub(r"[\s-]+", "_", str(value).strip().lower())
        try:
            return DatePreference(key)
        except ValueError:
            return None

    @field_validator("time_preference", mode="before")
    @classmethod
    def _coerce_time_preference(cls, value: Any) -> Optional[TimePreference]:
        return TimePreference.from_string(value if isinstance(value, str) else None)

    @field_validator("patient_phone", mode="before")
    @classmethod
    def _coerce_phone(cls, value: Any) -> Optional[str]:
        return ValidationUtils.normalize_phone(value)

    @field_validator("patient_age", mode="before")
    @classmethod
    def _coerce_age(cls, value: Any) -> Optional[int]:
        return ValidationUtils.coerce_age(value)

    @field_validator("patient_email", mode="before")
    @classmethod
    def _coerce_email(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        value = value.strip()
        is_valid, _ = ValidationUtils.validate_email(value)
        return value if is_valid else None

    @field_validator("patient_name", "appointment_type", "doctor_preference", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        value = " ".join(value.split())
        return value or None

    @field_validator("is_emergency", "is_complete_request", mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in {"true", "yes", "1"}
        return bool(value)

    @classmethod
    def default(cls) -> "ParsedInput":
        """The "could not understand" result."""
        return cls()

    def has_date_info(self) -> bool:
        return bool(self.extracted_date or self.date_preference)
