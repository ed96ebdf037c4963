"""
Natural-language understanding: parser adapter, model gateway, retry and
deterministic fallback extraction.
"""

from .retry import RetryPolicy, call_with_retry
from .llm import LanguageModelClient, ChatCompletionProvider, LanguageModelGateway
from .parser import NaturalLanguageParser
from .fallback import ExtractedFields, extract_fallback, extract_delimited

__all__ = [
    "RetryPolicy",
    "call_with_retry",
    "LanguageModelClient",
    "ChatCompletionProvider",
    "LanguageModelGateway",
    "NaturalLanguageParser",
    "ExtractedFields",
    "extract_fallback",
    "extract_delimited",
]
