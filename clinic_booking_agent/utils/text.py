"""
Text processing utilities.
"""

import re
from typing import Iterable, List


class TextProcessor:
    """Text processing utilities."""

    @staticmethod
    def normalize(text: str) -> str:
        """Lowercase and collapse whitespace."""
        if not isinstance(text, str):
            text = str(text or "")
        return re.sub(r"\s+", " ", text.strip()).lower()

    @staticmethod
    def contains_any_word(text: str, keywords: Iterable[str]) -> bool:
        """True when any keyword (single word or phrase) appears on word boundaries."""
        normalized = TextProcessor.normalize(text)
        for keyword in keywords:
            pattern = r"\b" + r"\s+".join(re.escape(part) for part in keyword.split()) + r"\b"
            if re.search(pattern, normalized):
                return True
        return False

    @staticmethod
    def split_fields(text: str) -> List[str]:
        """Split a delimited message on commas, semicolons, pipes or newlines."""
        if not text:
            return []
        parts = re.split(r"[,;|\n]+", text)
        return [p.strip() for p in parts if p.strip()]

    @staticmethod
    def strip_code_fences(text: str) -> str:
        """Remove a surrounding Markdown code fence (```json ... ```)."""
        if not text:
            return ""
        stripped = text.strip()
        match = re.match(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", stripped, re.DOTALL)
        if match:
            return match.group(1).strip()
        return stripped
