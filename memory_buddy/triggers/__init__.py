from __future__ import annotations

from .importance import ImportanceResult, calculate_importance, should_store
from .keywords import extract_keywords, extract_keywords_with_weight
from .patterns import detect_emotional_tone, is_goodbye_message, is_greeting_message

__all__ = [
    "ImportanceResult",
    "calculate_importance",
    "detect_emotional_tone",
    "extract_keywords",
    "extract_keywords_with_weight",
    "is_goodbye_message",
    "is_greeting_message",
    "should_store",
]
