"""Importance scoring for incoming messages.

Scores run from 1 to 10:

- 1-3: low value (acknowledgments, one-word replies)
- 4-6: regular conversation
- 7-10: worth anchoring (personal details, decisions, emotions)

The categories are plain data so new languages or signals can be added
without touching the scoring loop.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

BASELINE_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10
SHORT_MESSAGE_WORDS = 5
DETAILED_MESSAGE_WORDS = 50


@dataclass(frozen=True)
class PatternCategory:
    name: str
    weight: int
    patterns: tuple[re.Pattern[str], ...]

    def matches(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.patterns)


@dataclass
class ImportanceResult:
    score: int
    factors: list[str] = field(default_factory=list)


def _category(name: str, weight: int, *patterns: str) -> PatternCategory:
    return PatternCategory(
        name=name,
        weight=weight,
        patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns),
    )


IMPORTANCE_PATTERNS: tuple[PatternCategory, ...] = (
    _category(
        "personalInfo",
        3,
        r"ich bin",
        r"i am",
        r"mein name",
        r"my name",
        r"ich arbeite",
        r"i work",
        r"ich mag",
        r"i like",
        r"ich hasse",
        r"i hate",
        r"meine? (frau|mann|partner|kind|eltern|familie)",
        r"my (wife|husband|partner|child|parents|family)",
        r"ich wohne",
        r"i live",
        r"mein (projekt|firma|unternehmen|restaurant|bar)",
        r"my (project|company|business|restaurant|bar)",
    ),
    _category(
        "decision",
        2,
        r"ich habe (mich )?(entschieden|beschlossen)",
        r"i (have )?(decided|chose)",
        r"lass uns",
        r"let'?s",
        r"wir machen",
        r"we('ll| will) (do|make)",
        r"ich werde",
        r"i will",
        r"ich plane",
        r"i plan",
        r"mein ziel",
        r"my goal",
    ),
    _category(
        "emotion",
        2,
        r"ich (liebe|hasse|fuerchte|hoffe)",
        r"i (love|hate|fear|hope)",
        r"(frustriert|begeistert|aufgeregt|traurig|gluecklich)",
        r"(frustrated|excited|sad|happy|angry)",
        r"das nervt",
        r"this (sucks|annoys)",
        r"ich freue mich",
        r"i('m| am) (happy|glad|excited)",
        r"endlich",
        r"finally",
        r"(toll|super|geil|awesome|amazing)",
        r"(scheisse|shit|damn|verdammt)",
    ),
    _category(
        "question",
        1,
        r"^(wie|warum|was|wer|wo|wann|welche)",
        r"^(how|why|what|who|where|when|which)",
        r"\?$",
        r"kannst du",
        r"can you",
        r"hilf mir",
        r"help me",
    ),
    _category(
        "technical",
        2,
        r"implementier",
        r"implement",
        r"architektur",
        r"architecture",
        r"refactor",
        r"bug fix",
        r"feature",
        r"deploy",
        r"publish",
        r"release",
    ),
    _category(
        "confirmation",
        -2,
        r"^ok$",
        r"^okay$",
        r"^ja$",
        r"^yes$",
        r"^nein$",
        r"^no$",
        r"^gut$",
        r"^good$",
        r"^genau$",
        r"^exactly$",
        r"^danke$",
        r"^thanks$",
        r"^alles klar$",
        r"^got it$",
    ),
    _category(
        "shortCommand",
        -1,
        r"^go$",
        r"^weiter$",
        r"^next$",
        r"^continue$",
        r"^stop$",
        r"^wait$",
    ),
)

# Pure acknowledgments that are never worth indexing.
SKIP_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^\.+$",
        r"^ok+$",
        r"^k$",
        r"^y$",
        r"^n$",
        r"^ja+$",
        r"^yes+$",
        r"^no+$",
        r"^nein+$",
    )
)


def calculate_importance(content: str) -> ImportanceResult:
    score = BASELINE_SCORE
    factors: list[str] = []

    for category in IMPORTANCE_PATTERNS:
        if category.matches(content):
            score += category.weight
            factors.append(category.name)

    word_count = len(content.split())
    if word_count < SHORT_MESSAGE_WORDS:
        score -= 1
        factors.append("veryShort")
    elif word_count > DETAILED_MESSAGE_WORDS:
        score += 1
        factors.append("detailed")

    return ImportanceResult(score=max(MIN_SCORE, min(MAX_SCORE, score)), factors=factors)


def should_store(content: str | None) -> bool:
    if not content or not content.strip():
        return False
    trimmed = content.strip().lower()
    return not any(pattern.match(trimmed) for pattern in SKIP_PATTERNS)
