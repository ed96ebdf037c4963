"""
Deterministic entity extraction used when the model misses patient fields.

Every extractor prefers returning nothing over a low-confidence guess;
the conversation simply asks again for anything left unset.
"""

import re
from dataclasses import dataclass, fields
from typing import Dict, Optional

from ...utils.text import TextProcessor
from ...utils.validation import EMAIL_RE, ValidationUtils

_EMAIL_SEARCH_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
# Digit runs that may contain spaces, dashes, dots or parentheses.
_DIGIT_RUN_RE = re.compile(r"\+?\(?\d[\d\s().-]*\d")
_ISO_DATE_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")

_AGE_PATTERNS = (
    re.compile(r"\bage\s*(?:is|:|=|-)?\s*(\d{1,3})\b", re.IGNORECASE),
    re.compile(r"\b(\d{1,3})\s*(?:years?|yrs?|y/o|yo)(?:\s*old)?\b", re.IGNORECASE),
    re.compile(r"\b(?:i\s+am|i'm|im)\s+(\d{1,3})\b", re.IGNORECASE),
    re.compile(r"^\s*(\d{1,3})\s*$"),
)

_NAME_PATTERNS = (
    re.compile(r"\b(?:my\s+name\s+is|name\s*(?:is|:|-))\s*([A-Za-z][A-Za-z ]{0,60})", re.IGNORECASE),
    re.compile(r"\b(?:[Tt]his\s+is|[Cc]all\s+me)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,3})"),
    re.compile(r"\b(?:I\s+am|I'm)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,3})"),
)

_NAME_STOP_WORDS = {
    "and", "my", "phone", "email", "age", "number", "is", "mobile",
}
_NOT_A_NAME = {
    "appointment", "book", "booking", "tomorrow", "today", "available", "looking",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "january", "february", "march", "april", "may", "june", "july", "august",
    "september", "october", "november", "december", "am", "pm", "yes", "no",
    "morning", "afternoon", "evening", "fine", "good", "here", "interested",
}


@dataclass
class ExtractedFields:
    """Patient fields recovered from raw text; unset fields are None."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None

    def as_draft_fields(self) -> Dict[str, object]:
        mapping = {"name": "patient_name", "phone": "patient_phone", "email": "patient_email", "age": "patient_age"}
        return {
            mapping[f.name]: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_complete(self) -> bool:
        return all(getattr(self, f.name) is not None for f in fields(self))


def extract_phone(text: str) -> Optional[str]:
    """The first digit run of at least 10 digits, accepted only if exactly 10."""
    text = _ISO_DATE_RE.sub(" ", text or "")
    for match in _DIGIT_RUN_RE.finditer(text):
        digits = re.sub(r"\D", "", match.group(0))
        if len(digits) < 10:
            continue
        return digits if len(digits) == 10 else None
    return None


def extract_email(text: str) -> Optional[str]:
    match = _EMAIL_SEARCH_RE.search(text or "")
    return match.group(0) if match else None


def _strip_non_age_numbers(text: str) -> str:
    text = _EMAIL_SEARCH_RE.sub(" ", text)
    text = _ISO_DATE_RE.sub(" ", text)
    text = _DIGIT_RUN_RE.sub(lambda m: " " if len(re.sub(r"\D", "", m.group(0))) >= 7 else m.group(0), text)
    return text


def extract_age(text: str) -> Optional[int]:
    """Try each age pattern in order; the first in-range match wins."""
    cleaned = _strip_non_age_numbers(text or "")
    for pattern in _AGE_PATTERNS:
        for match in pattern.finditer(cleaned):
            age = ValidationUtils.coerce_age(match.group(1))
            if age is not None:
                return age
    return None


def _clean_name(candidate: str) -> Optional[str]:
    words = []
    for word in candidate.split():
        if word.lower() in _NAME_STOP_WORDS:
            break
        words.append(word)
    name = " ".join(words).strip()
    if not name or not re.fullmatch(r"[A-Za-z ]+", name):
        return None
    if any(word.lower() in _NOT_A_NAME for word in name.split()):
        return None
    is_valid, _ = ValidationUtils.validate_name(name)
    return name if is_valid else None


def extract_name(text: str) -> Optional[str]:
    for pattern in _NAME_PATTERNS:
        match = pattern.search(text or "")
        if match:
            name = _clean_name(match.group(1))
            if name:
                return name
    return None


def extract_fallback(raw_message: str) -> ExtractedFields:
    """Regex recovery of name, phone, email and age from a raw message."""
    return ExtractedFields(
        name=extract_name(raw_message),
        phone=extract_phone(raw_message),
        email=extract_email(raw_message),
        age=extract_age(raw_message),
    )


def extract_delimited(raw_message: str) -> Optional[ExtractedFields]:
    """
    Read "Name, 10-digit phone, email, age" style messages.

    Parts may come in any order and be separated by commas, semicolons,
    pipes or newlines. Returns None unless every one of the four fields is
    identified unambiguously.
    """
    parts = TextProcessor.split_fields(raw_message)
    if len(parts) != 4:
        return None

    result = ExtractedFields()
    for part in parts:
        if EMAIL_RE.match(part):
            if result.email is not None:
                return None
            result.email = part
        elif re.fullmatch(r"\+?[\d\s().-]+", part) and len(re.sub(r"\D", "", part)) >= 7:
            phone = ValidationUtils.normalize_phone(part)
            if phone is None or result.phone is not None:
                return None
            result.phone = phone
        elif re.fullmatch(r"(?:age\s*:?\s*)?\d{1,3}(?:\s*(?:years?|yrs?)(?:\s*old)?)?", part, re.IGNORECASE):
            age = ValidationUtils.coerce_age(re.sub(r"\D", "", part))
            if age is None or result.age is not None:
                return None
            result.age = age
        elif re.fullmatch(r"[A-Za-z][A-Za-z .'-]*", part):
            if result.name is not None:
                return None
            name = re.sub(r"^(?:my\s+name\s+is|name\s*:?)\s*", "", part, flags=re.IGNORECASE).strip()
            is_valid, _ = ValidationUtils.validate_name(name)
            if not is_valid:
                return None
            result.name = name
        else:
            return None

    return result if result.is_complete() else None
