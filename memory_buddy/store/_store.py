from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .. import __version__
from ..config import MemoryBuddyConfig, load_config
from ..fs_paths import MemoryPaths
from ..semantic import EmbeddingService, create_embedding_service
from ..triggers.importance import calculate_importance, should_store
from ..triggers.keywords import extract_keywords
from ..triggers.patterns import is_goodbye_message, is_greeting_message
from .compactor import Compactor
from .events import EventStore
from .index import IndexService
from .loader import ContextLoader, LoaderConfig
from .types import EVENT_TYPES, CompactedSession, Event
from .utils import utc_now
from .vectors import VectorStore

logger = logging.getLogger(__name__)

STORABLE_TYPES = tuple(t for t in EVENT_TYPES if t != "anchor")


class MemoryStore:
    """Entry point for hosts: store messages, retrieve context, manage sessions.

    One instance owns one memory directory. Nothing here is process-global,
    so tests can point several stores at separate temp directories.
    """

    def __init__(
        self,
        base_path: Path | str | None = None,
        *,
        config: MemoryBuddyConfig | None = None,
        embedding_service: EmbeddingService | None = None,
    ) -> None:
        self.config = config or load_config()
        self.paths = MemoryPaths.from_base(base_path or self.config.memory_path).ensure()
        self.events = EventStore(self.paths.events_dir)
        self.index = IndexService(
            self.paths.index_path,
            emotional_threshold=self.config.emotional_threshold,
            half_life_days=self.config.decay_half_life_days,
        )
        self.embeddings = embedding_service or create_embedding_service(self.config)
        self.vectors = VectorStore(self.paths.vectors_path) if self.embeddings.available else None
        self.loader = ContextLoader(
            self.events,
            self.index,
            LoaderConfig(
                core_identity_tokens=self.config.core_identity_tokens,
                recent_anchors_tokens=self.config.recent_anchors_tokens,
                triggered_memories_tokens=self.config.triggered_memories_tokens,
                recent_anchors_limit=self.config.recent_anchors_limit,
                semantic_top_k=self.config.semantic_top_k,
                semantic_min_similarity=self.config.semantic_min_similarity,
            ),
            vectors=self.vectors,
            embeddings=self.embeddings,
        )
        self.compactor = Compactor(self.events, self.index, self.paths.compacted_dir)
        self._last_activity: dt.datetime | None = None
        self._last_greeting: str | None = None
        self._recover_index()

    @property
    def base_path(self) -> Path:
        return self.paths.root

    def close(self) -> None:
        self.embeddings.close()

    def _recover_index(self) -> None:
        if self.index.recovered_from_corruption or (
            not self.index.event_meta and self.events.partitions()
        ):
            indexed = self.reindex()
            logger.info("rebuilt index from event log (%d events)", indexed)

    def reindex(self) -> int:
        return self.index.rebuild(self.events.iter_events())

    # Sessions

    @property
    def active_session_id(self) -> str | None:
        return self.compactor.current_session_id

    def start_session(self) -> str:
        session_id = self.compactor.start_session()
        self._last_activity = utc_now()
        logger.info("started session %s", session_id)
        return session_id

    def end_session(self, session_id: str | None = None, tone: str | None = None) -> Event | None:
        return self.compactor.end_session(session_id, tone)

    def is_session_closed(self, session_id: str) -> bool:
        session = self.index.get_session(session_id)
        return session is not None and session.closed

    def current_session(self, *, now: dt.datetime | None = None) -> str:
        """Active session id, rolling over after the inactivity timeout."""

        moment = now or utc_now()
        active = self.active_session_id
        if active and self._last_activity is not None:
            idle = moment - self._last_activity
            if idle > dt.timedelta(minutes=self.config.session_timeout_minutes):
                logger.info("session %s idle for %s, closing", active, idle)
                self.end_session(active)
                active = None
        if not active:
            active = self.start_session()
        self._last_activity = moment
        return active

    # Storage and retrieval

    def remember(self, session_id: str, kind: str, content: str) -> Event | None:
        """Store one message. Returns None when the message is rejected."""

        if kind not in STORABLE_TYPES:
            logger.warning("rejecting event with type %r", kind)
            return None
        if not should_store(content):
            return None
        if self.is_session_closed(session_id):
            logger.warning("rejecting event for closed session %s", session_id)
            return None

        importance = calculate_importance(content)
        event = self.events.append_event(
            session_id=session_id,
            kind=kind,
            content=content,
            keywords=extract_keywords(content),
            emotional_weight=importance.score,
        )
        self.index.add_to_index(event)
        if session_id == self.active_session_id:
            self._last_activity = utc_now()
        logger.debug(
            "stored %s event %s (score %d, factors %s)",
            kind,
            event.id,
            importance.score,
            ",".join(importance.factors),
        )

        if kind == "user" and is_greeting_message(content):
            self._last_greeting = event.timestamp
        if kind == "user" and self.config.auto_end_on_goodbye and is_goodbye_message(content):
            self.end_session(session_id)
        return event

    def retrieve_context(self, session_id: str | None, query: str) -> str:
        if session_id and session_id == self.active_session_id:
            self._last_activity = utc_now()
        return self.loader.build_context(query)

    def search(self, keywords: Sequence[str]) -> list[str]:
        return self.index.lookup(k for k in keywords if k and k.strip())

    def get_events(self, event_ids: Sequence[str]) -> list[Event]:
        found = self.events.get_events_by_ids(event_ids)
        return [found[event_id] for event_id in event_ids if event_id in found]

    # Compaction

    def compact_old_sessions(self, max_age_hours: float | None = None) -> int:
        hours = self.config.compact_max_age_hours if max_age_hours is None else max_age_hours
        return self.compactor.compact_old_sessions(hours)

    def get_compacted_sessions(self) -> list[CompactedSession]:
        return self.compactor.get_compacted_sessions()

    def status(self) -> dict[str, Any]:
        return {
            "version": __version__,
            "memoryPath": str(self.paths.root),
            "eventCount": self.events.count(),
            "sessionCount": self.index.get_sessions_count(),
            "anchorCount": len(self.index.get_anchors()),
            "vectorCount": self.vectors.count() if self.vectors is not None else 0,
            "lastUpdate": self.index.last_update,
            "activeSession": self.active_session_id,
            "lastGreeting": self._last_greeting,
            "semanticSearch": self.embeddings.name if self.embeddings.available else "disabled",
        }
