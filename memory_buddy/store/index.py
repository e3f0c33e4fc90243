from __future__ import annotations

import datetime as dt
import logging
import math
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .types import Event, EventMeta, SessionMeta
from .utils import age_days, atomic_write_json, now_iso, read_json_document

logger = logging.getLogger(__name__)

DEFAULT_HALF_LIFE_DAYS = 30.0
DEFAULT_EMOTIONAL_THRESHOLD = 7
UNTRACKED_EVENT_SCORE = 5.0
ACCESS_BOOST_PER_HIT = 0.2


class IndexService:
    """Keyword index over the event log plus per-event decay metadata.

    Everything here is derived from the event log except ``accessCount`` /
    ``lastAccessed``, so a lost or corrupt ``index.json`` can be rebuilt by
    replaying the log.
    """

    def __init__(
        self,
        index_path: Path | str,
        *,
        emotional_threshold: int = DEFAULT_EMOTIONAL_THRESHOLD,
        half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
    ) -> None:
        self.index_path = Path(index_path).expanduser()
        self.emotional_threshold = emotional_threshold
        self.half_life_days = half_life_days
        self.recovered_from_corruption = False
        self.keywords: dict[str, list[str]] = {}
        self.sessions: dict[str, SessionMeta] = {}
        self.anchors: list[str] = []
        self.event_meta: dict[str, EventMeta] = {}
        self.last_update: str = now_iso()
        self._load()

    def _load(self) -> None:
        try:
            data = read_json_document(self.index_path)
            if data is None:
                return
            self._apply_document(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("index at %s is unreadable, starting empty: %s", self.index_path, exc)
            self._reset()
            self.recovered_from_corruption = True

    def _apply_document(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ValueError("index must be an object")
        keywords = data.get("keywords") or {}
        sessions = data.get("sessions") or {}
        anchors = data.get("anchors") or []
        event_meta = data.get("eventMeta") or {}
        if not isinstance(keywords, dict) or not isinstance(sessions, dict):
            raise ValueError("index keywords/sessions must be objects")
        if not isinstance(anchors, list) or not isinstance(event_meta, dict):
            raise ValueError("index anchors/eventMeta have the wrong shape")
        if any(not isinstance(ids, list) for ids in keywords.values()):
            raise ValueError("index keyword entries must be lists")
        self.keywords = {str(k): [str(i) for i in ids] for k, ids in keywords.items()}
        self.sessions = {str(k): SessionMeta.from_dict(v) for k, v in sessions.items()}
        self.anchors = [str(a) for a in anchors]
        self.event_meta = {str(k): EventMeta.from_dict(v) for k, v in event_meta.items()}
        self.last_update = str(data.get("lastUpdate") or now_iso())

    def _reset(self) -> None:
        self.keywords = {}
        self.sessions = {}
        self.anchors = []
        self.event_meta = {}
        self.last_update = now_iso()

    def to_document(self) -> dict[str, Any]:
        return {
            "keywords": self.keywords,
            "sessions": {k: v.to_dict() for k, v in self.sessions.items()},
            "anchors": self.anchors,
            "eventMeta": {k: v.to_dict() for k, v in self.event_meta.items()},
            "lastUpdate": self.last_update,
        }

    def save(self) -> None:
        self.last_update = now_iso()
        atomic_write_json(self.index_path, self.to_document())

    def _index_event(self, event: Event) -> bool:
        if event.id in self.event_meta:
            return False
        for keyword in event.keywords:
            ids = self.keywords.setdefault(keyword.lower(), [])
            if event.id not in ids:
                ids.append(event.id)

        session = self.sessions.get(event.session_id)
        if session is None:
            session = SessionMeta(id=event.session_id, start_time=event.timestamp)
            self.sessions[event.session_id] = session
        session.event_count += 1
        session.end_time = event.timestamp
        # The anchor in the log is what closes a session.
        if event.type == "anchor" and session.summary is None:
            session.summary = event.content

        if event.emotional_weight >= self.emotional_threshold and event.id not in self.anchors:
            self.anchors.append(event.id)

        self.event_meta[event.id] = EventMeta(
            id=event.id,
            base_score=float(event.emotional_weight),
            created_at=event.timestamp,
        )
        return True

    def add_to_index(self, event: Event) -> None:
        """Index ``event``; calling it again for the same event is a no-op."""

        if self._index_event(event):
            self.save()

    def rebuild(self, events: Iterable[Event]) -> int:
        """Replay ``events`` into a fresh index, keeping access side-state."""

        previous_meta = self.event_meta
        previous_sessions = self.sessions
        self._reset()
        indexed = 0
        for event in events:
            if self._index_event(event):
                indexed += 1
            old = previous_meta.get(event.id)
            if old is not None:
                meta = self.event_meta[event.id]
                meta.access_count = max(meta.access_count, old.access_count)
                meta.last_accessed = old.last_accessed
        for session_id, session in self.sessions.items():
            old_session = previous_sessions.get(session_id)
            if old_session is not None:
                session.summary = old_session.summary or session.summary
                session.emotional_tone = old_session.emotional_tone
        self.recovered_from_corruption = False
        self.save()
        return indexed

    def lookup(self, keywords: Iterable[str]) -> list[str]:
        seen: set[str] = set()
        result: list[str] = []
        for keyword in keywords:
            for event_id in self.keywords.get(keyword.lower(), []):
                if event_id not in seen:
                    seen.add(event_id)
                    result.append(event_id)
        return result

    def get_anchors(self, n: int | None = None) -> list[str]:
        if n is None:
            return list(self.anchors)
        if n <= 0:
            return []
        return self.anchors[-n:]

    def get_sessions_count(self) -> int:
        return len(self.sessions)

    def get_session(self, session_id: str) -> SessionMeta | None:
        return self.sessions.get(session_id)

    def update_session_summary(
        self, session_id: str, summary: str, tone: str | None = None
    ) -> bool:
        session = self.sessions.get(session_id)
        if session is None:
            return False
        session.summary = summary
        if tone:
            session.emotional_tone = tone
        self.save()
        return True

    def calculate_effective_score(
        self,
        event_id: str,
        half_life_days: float | None = None,
        *,
        now: dt.datetime | None = None,
    ) -> float:
        """baseScore * e^(-ageDays / halfLife) * (1 + 0.2 * accessCount)."""

        meta = self.event_meta.get(event_id)
        if meta is None:
            return UNTRACKED_EVENT_SCORE
        half_life = half_life_days or self.half_life_days
        decay = math.exp(-age_days(meta.created_at, now) / half_life)
        boost = 1 + ACCESS_BOOST_PER_HIT * meta.access_count
        return meta.base_score * decay * boost

    def record_access(self, event_id: str) -> None:
        self.record_accesses([event_id])

    def record_accesses(self, event_ids: Iterable[str]) -> int:
        accessed_at = now_iso()
        touched = 0
        for event_id in event_ids:
            meta = self.event_meta.get(event_id)
            if meta is None:
                continue
            meta.access_count += 1
            meta.last_accessed = accessed_at
            touched += 1
        if touched:
            self.save()
        return touched

    def get_event_meta(self, event_id: str) -> EventMeta | None:
        return self.event_meta.get(event_id)
