from __future__ import annotations

import re

GOODBYE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\b(bye|goodbye|good night|goodnight|gn8|cya|see ya|see you later|talk later|ttyl)\b",
        r"\b(heading off|signing off|logging off|gotta go|have to go|need to go)\b",
        r"\b(thanks for|thank you for).*\b(help|chat|conversation|session)\b",
        r"\b(tschüss|tschuess|tschau|ciao|bis dann|bis später|bis morgen|gute nacht)\b",
        r"\b(muss los|muss weg|muss gehen|schluss für heute|ende für heute)\b",
        r"\b(danke für).*\b(hilfe|gespräch|session)\b",
    )
)

GREETING_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^(hey|hi|hello|good morning|good afternoon|good evening)",
        r"\b(let's continue|where were we|back again)\b",
        r"^(hey|hi|hallo|guten morgen|guten tag|guten abend|moin|servus)",
        r"\b(lass uns weitermachen|wo waren wir|bin wieder da)\b",
    )
)

_POSITIVE_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"\b(great|awesome|amazing|fantastic|wonderful|love|loved|brilliant)\b",
        r"\b(toll|super|geil|hammer|wunderbar|fantastisch|liebe)\b",
        r"!{2,}",
        r"[:;]-?[)d]",
    )
)
_NEGATIVE_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"\b(frustrated|annoyed|confused|stuck|problem|issue|bug|error)\b",
        r"\b(frustriert|genervt|verwirrt|problem|fehler)\b",
    )
)
_DEEP_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"\b(realize|understand|insight|discover|breakthrough)\b",
        r"\b(erkannt|verstanden|einsicht|entdeckt|durchbruch)\b",
        r"\b(philosophy|meaning|consciousness|memory|identity)\b",
    )
)


def _any_match(patterns: tuple[re.Pattern[str], ...], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def is_goodbye_message(text: str) -> bool:
    return _any_match(GOODBYE_PATTERNS, text)


def is_greeting_message(text: str) -> bool:
    return _any_match(GREETING_PATTERNS, text.strip())


def detect_emotional_tone(text: str) -> str | None:
    """Coarse tone label: deep, positive, frustrated, mixed or None."""

    lowered = text.lower()
    positive = _any_match(_POSITIVE_PATTERNS, lowered)
    negative = _any_match(_NEGATIVE_PATTERNS, lowered)
    if _any_match(_DEEP_PATTERNS, lowered):
        return "deep"
    if positive and not negative:
        return "positive"
    if negative and not positive:
        return "frustrated"
    if positive and negative:
        return "mixed"
    return None
