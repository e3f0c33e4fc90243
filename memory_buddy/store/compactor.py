from __future__ import annotations

import datetime as dt
import logging
import math
import secrets
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

from ..triggers.keywords import extract_keywords_with_weight
from ..triggers.patterns import detect_emotional_tone
from .types import CompactedSession, Event
from .utils import atomic_write_json, now_iso, parse_iso8601, read_json_document, utc_now

if TYPE_CHECKING:
    from .events import EventStore
    from .index import IndexService

logger = logging.getLogger(__name__)

HIGHLIGHT_THRESHOLD = 7
SUMMARY_HIGHLIGHTS = 3
SUMMARY_HIGHLIGHT_CHARS = 100
SUMMARY_TOPICS = 5
TOP_KEYWORDS = 10
ARCHIVE_HIGHLIGHTS = 5
ARCHIVE_HIGHLIGHT_CHARS = 200
NEUTRAL_SESSION_WEIGHT = 5


def generate_session_id(now: dt.datetime | None = None) -> str:
    moment = now or utc_now()
    return f"session_{moment:%Y-%m-%d_%H%M%S}_{secrets.token_hex(3)}"


def top_keywords(events: list[Event], limit: int = TOP_KEYWORDS) -> list[str]:
    counts: Counter[str] = Counter()
    for event in events:
        for keyword in event.keywords:
            counts[keyword.lower()] += 1
    # Counter.most_common keeps first-seen order for ties.
    return [keyword for keyword, _ in counts.most_common(limit)]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def session_emotional_weight(events: list[Event]) -> int:
    """Blend of the session peak (60%) and mean (40%), halves rounded up."""

    if not events:
        return NEUTRAL_SESSION_WEIGHT
    weights = [event.emotional_weight for event in events]
    peak = max(weights)
    mean = sum(weights) / len(weights)
    return _round_half_up(peak * 0.6 + mean * 0.4)


def emotional_highlights(events: list[Event]) -> list[str]:
    strong = [event for event in events if event.emotional_weight >= HIGHLIGHT_THRESHOLD]
    strong.sort(key=lambda event: event.emotional_weight, reverse=True)
    return [event.content[:ARCHIVE_HIGHLIGHT_CHARS] for event in strong[:ARCHIVE_HIGHLIGHTS]]


def create_session_summary(events: list[Event]) -> str:
    first, last = events[0], events[-1]
    user_messages = sum(1 for event in events if event.type == "user")
    insights = sum(1 for event in events if event.type == "insight")

    started = parse_iso8601(first.timestamp)
    ended = parse_iso8601(last.timestamp)
    duration_min = 0
    if started and ended:
        duration_min = _round_half_up((ended - started).total_seconds() / 60)

    highlights = [
        event.content[:SUMMARY_HIGHLIGHT_CHARS]
        for event in events
        if event.emotional_weight >= HIGHLIGHT_THRESHOLD and event.type != "anchor"
    ][:SUMMARY_HIGHLIGHTS]
    topics = top_keywords(events)[:SUMMARY_TOPICS]

    summary = f"Session ({duration_min} min, {user_messages} messages)"
    if insights:
        summary += f", {insights} insights"
    if topics:
        summary += f". Topics: {', '.join(topics)}"
    if highlights:
        summary += f". Highlights: {' | '.join(highlights)}"
    return summary


class Compactor:
    """Closes sessions into anchor events and archives old sessions by month."""

    def __init__(self, store: EventStore, index: IndexService, compacted_dir: Path | str) -> None:
        self.store = store
        self.index = index
        self.compacted_dir = Path(compacted_dir).expanduser()
        self.compacted_dir.mkdir(parents=True, exist_ok=True)
        self.current_session_id: str | None = None

    def start_session(self) -> str:
        session_id = generate_session_id()
        while self.index.get_session(session_id) is not None:
            session_id = generate_session_id()
        self.current_session_id = session_id
        return session_id

    def end_session(
        self, session_id: str | None = None, emotional_tone: str | None = None
    ) -> Event | None:
        """Summarize a session into one anchor event and close it.

        Unknown, empty, or already summarized sessions are left alone.
        """

        target = session_id or self.current_session_id
        if not target:
            return None
        session = self.index.get_session(target)
        if session is None or session.closed:
            logger.info("end_session ignored for unknown or closed session %s", target)
            if target == self.current_session_id:
                self.current_session_id = None
            return None

        events = self.store.get_events(target)
        if not events:
            return None

        summary = create_session_summary(events)
        anchor = self.store.append_event(
            session_id=target,
            kind="anchor",
            content=summary,
            keywords=top_keywords(events),
            emotional_weight=session_emotional_weight(events),
        )
        self.index.add_to_index(anchor)
        if emotional_tone is None:
            user_text = "\n".join(event.content for event in events if event.type == "user")
            emotional_tone = detect_emotional_tone(user_text)
        self.index.update_session_summary(target, summary, emotional_tone)

        if target == self.current_session_id:
            self.current_session_id = None
        logger.info("closed session %s with %d events", target, len(events))
        return anchor

    def compact_old_sessions(
        self, max_age_hours: float = 24, *, now: dt.datetime | None = None
    ) -> int:
        cutoff = (now or utc_now()) - dt.timedelta(hours=max_age_hours)
        by_session: dict[str, list[Event]] = {}
        for event in self.store.iter_events():
            by_session.setdefault(event.session_id, []).append(event)

        archived_ids = self._archived_session_ids()
        compacted = 0
        for session_id, events in by_session.items():
            last_time = parse_iso8601(events[-1].timestamp)
            if last_time is None or last_time >= cutoff:
                continue
            if session_id in archived_ids:
                continue
            try:
                self._archive(self._build_compacted(session_id, events))
            except Exception:
                logger.exception("compaction failed for session %s", session_id)
                continue
            archived_ids.add(session_id)
            compacted += 1
        return compacted

    def compact_session(self, session_id: str) -> bool:
        try:
            events = self.store.get_events(session_id)
            if not events or self.is_session_compacted(session_id):
                return False
            self._archive(self._build_compacted(session_id, events))
        except Exception:
            logger.exception("compaction failed for session %s", session_id)
            return False
        return True

    def _build_compacted(self, session_id: str, events: list[Event]) -> CompactedSession:
        return CompactedSession(
            session_id=session_id,
            original_event_count=len(events),
            summary=create_session_summary(events),
            key_topics=self._weighted_topics(events),
            emotional_highlights=emotional_highlights(events),
            average_importance=session_emotional_weight(events),
            start_time=events[0].timestamp,
            end_time=events[-1].timestamp,
            compacted_at=now_iso(),
        )

    @staticmethod
    def _weighted_topics(events: list[Event]) -> list[str]:
        counts: Counter[str] = Counter()
        for event in events:
            if event.type == "anchor":
                continue
            for keyword, weight in extract_keywords_with_weight(event.content):
                counts[keyword] += weight
        if not counts:
            return top_keywords(events)
        return [keyword for keyword, _ in counts.most_common(TOP_KEYWORDS)]

    def _archive_path(self, start_time: str) -> Path:
        return self.compacted_dir / f"{start_time[:7]}.json"

    def _read_archive(self, path: Path) -> list[CompactedSession]:
        data = read_json_document(path)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"archive {path.name} is not a list")
        return [CompactedSession.from_dict(item) for item in data]

    def _archive(self, compacted: CompactedSession) -> None:
        path = self._archive_path(compacted.start_time)
        sessions = self._read_archive(path)
        if any(item.session_id == compacted.session_id for item in sessions):
            return
        sessions.append(compacted)
        atomic_write_json(path, [item.to_dict() for item in sessions])

    def _archive_files(self) -> list[Path]:
        return sorted(self.compacted_dir.glob("*.json"))

    def _archived_session_ids(self) -> set[str]:
        return {item.session_id for item in self.get_compacted_sessions()}

    def is_session_compacted(self, session_id: str) -> bool:
        return session_id in self._archived_session_ids()

    def get_compacted_sessions(self) -> list[CompactedSession]:
        sessions: list[CompactedSession] = []
        for path in self._archive_files():
            try:
                sessions.extend(self._read_archive(path))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("skipping unreadable archive %s: %s", path.name, exc)
        return sorted(sessions, key=lambda item: item.start_time)
