from __future__ import annotations

import re

STOPWORDS_EN = {
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
    "my", "your", "his", "its", "our", "their",
    "this", "that", "these", "those", "what", "which", "who", "whom", "how", "when",
    "where", "why",
    "to", "of", "in", "for", "on", "with", "at", "by", "from", "as", "into", "through",
    "and", "or", "but", "if", "then", "else", "so", "because", "although",
    "all", "each", "every", "both", "few", "more", "most", "other", "some", "such",
    "no", "not", "only", "own", "same", "than", "too", "very", "just", "also",
    "can", "may", "must", "shall", "need", "want", "get", "got", "let",
}  # fmt: skip

STOPWORDS_DE = {
    "der", "die", "das", "ein", "eine", "einer", "einem", "einen", "eines",
    "ist", "sind", "war", "waren", "sein", "haben", "hat", "hatte", "hatten",
    "ich", "du", "er", "sie", "es", "wir", "ihr", "mich", "dich", "sich", "uns", "euch",
    "mein", "dein", "unser", "euer",
    "und", "oder", "aber", "wenn", "dann", "weil", "obwohl", "dass",
    "zu", "von", "in", "an", "auf", "mit", "bei", "nach", "aus", "durch", "fuer",
    "als", "wie", "was", "wer", "wo", "wann", "warum", "welche", "welcher", "welches",
    "auch", "noch", "schon", "nur", "sehr", "mehr", "immer", "wieder", "hier", "da",
    "nicht", "kein", "keine", "keiner", "keinem", "keinen", "keines",
    "kann", "muss", "will", "soll", "darf", "mag",
}  # fmt: skip

STOPWORDS = STOPWORDS_EN | STOPWORDS_DE

_NON_WORD_RE = re.compile(r"[^a-z0-9äöüß\s]")
_NUMERIC_RE = re.compile(r"^\d+$")
MAX_KEYWORD_WEIGHT = 5


def extract_keywords(text: str) -> list[str]:
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    seen: set[str] = set()
    keywords: list[str] = []
    for word in cleaned.split():
        if len(word) <= 2 or word in STOPWORDS or _NUMERIC_RE.match(word):
            continue
        if word in seen:
            continue
        seen.add(word)
        keywords.append(word)
    return keywords


def extract_keywords_with_weight(text: str) -> list[tuple[str, int]]:
    """Keywords paired with how often they occur in ``text`` (capped)."""

    lowered = text.lower()
    weighted: list[tuple[str, int]] = []
    for keyword in extract_keywords(text):
        count = len(re.findall(re.escape(keyword), lowered)) or 1
        weighted.append((keyword, min(count, MAX_KEYWORD_WEIGHT)))
    return weighted
