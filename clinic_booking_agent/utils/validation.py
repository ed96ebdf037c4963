"""
Validation utilities for patient and booking fields.
"""

import re
from typing import Any, Optional, Tuple

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
NAME_RE = re.compile(r"^[A-Za-z][A-Za-z\s.'-]*$")


class ValidationUtils:
    """Validation utilities for various data types."""

    @staticmethod
    def normalize_phone(phone: Any) -> Optional[str]:
        """Strip non-digits; return the digits only when exactly 10 remain."""
        if phone is None:
            return None
        digits = re.sub(r"\D", "", str(phone))
        return digits if len(digits) == 10 else None

    @staticmethod
    def validate_phone(phone: Any) -> Tuple[bool, Optional[str]]:
        """
        Validate a 10-digit phone number.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if phone is None or not str(phone).strip():
            return False, "Phone number is required"
        if ValidationUtils.normalize_phone(phone) is None:
            return False, "Phone number must be exactly 10 digits"
        return True, None

    @staticmethod
    def validate_email(email: Any) -> Tuple[bool, Optional[str]]:
        if not email or not isinstance(email, str):
            return False, "Email address is required"
        if not EMAIL_RE.match(email.strip()):
            return False, "Email address looks invalid (example: name@example.com)"
        return True, None

    @staticmethod
    def coerce_age(age: Any) -> Optional[int]:
        """Return the age as an int in [1, 120], else None."""
        if age is None or isinstance(age, bool):
            return None
        try:
            value = int(str(age).strip())
        except ValueError:
            return None
        return value if 1 <= value <= 120 else None

    @staticmethod
    def validate_age(age: Any) -> Tuple[bool, Optional[str]]:
        if age is None or str(age).strip() == "":
            return False, "Age is required"
        if ValidationUtils.coerce_age(age) is None:
            return False, "Age must be a number between 1 and 120"
        return True, None

    @staticmethod
    def validate_name(name: Any) -> Tuple[bool, Optional[str]]:
        """
        Validate name format.

        Args:
            name: Name to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name or not isinstance(name, str):
            return False, "Name is required"

        name = name.strip()
        if len(name) < 2:
            return False, "Name is too short"

        if len(name) > 100:
            return False, "Name is too long"

        if not NAME_RE.match(name):
            return False, "Name may only contain letters and spaces"

        return True, None

    @staticmethod
    def validate_message(message: Any, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
        """Validate an inbound chat message."""
        if not isinstance(message, str) or not message.strip():
            return False, "Message is required"
        if len(message) > max_length:
            return False, f"Message is too long (max {max_length} characters)"
        return True, None

    @staticmethod
    def names_match(first: Optional[str], second: Optional[str]) -> bool:
        """Case-insensitive equality after collapsing whitespace."""
        if not first or not second:
            return False
        a = " ".join(first.split()).casefold()
        b = " ".join(second.split()).casefold()
        return a == b
