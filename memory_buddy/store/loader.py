"""Budgeted context assembly.

The context handed back to the agent has three sections, in order:

1. core identity (reserved, currently always empty)
2. the most recent session anchors
3. memories triggered by the current message

Triggered memories are ranked by decay-adjusted importance with keyword
overlap as a secondary signal, then accepted greedily until the token budget
for that section is spent. Every accepted memory has its access recorded,
which slows its decay on later queries.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..semantic import DisabledEmbeddings, EmbeddingService
from ..triggers.keywords import extract_keywords
from .utils import estimate_tokens, parse_iso8601

if TYPE_CHECKING:
    from .events import EventStore
    from .index import IndexService
    from .types import Event
    from .vectors import VectorStore

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n---\n\n"
CORE_IDENTITY_HEADER = "## Who You Are Talking To"
RECENT_SESSIONS_HEADER = "## Recent Sessions"
RELEVANT_MEMORIES_HEADER = "## Relevant Memories"

IMPORTANCE_WEIGHT = 0.7
OVERLAP_WEIGHT = 0.3
EFFECTIVE_SCORE_CAP = 15.0


@dataclass
class LoaderConfig:
    core_identity_tokens: int = 500
    recent_anchors_tokens: int = 500
    triggered_memories_tokens: int = 1500
    recent_anchors_limit: int = 5
    semantic_top_k: int = 20
    semantic_min_similarity: float = 0.5


@dataclass
class ScoredCandidate:
    event: Event
    score: float


def combined_score(effective_score: float, matched: int, query_keyword_count: int) -> float:
    importance = min(max(effective_score, 0.0), EFFECTIVE_SCORE_CAP) / EFFECTIVE_SCORE_CAP
    overlap = matched / query_keyword_count if query_keyword_count else 0.0
    return IMPORTANCE_WEIGHT * importance + OVERLAP_WEIGHT * overlap


def format_event(event: Event) -> str:
    parsed = parse_iso8601(event.timestamp)
    date = parsed.date().isoformat() if parsed else event.timestamp[:10]
    return f"[{date}] {event.content}"


class ContextLoader:
    def __init__(
        self,
        store: EventStore,
        index: IndexService,
        config: LoaderConfig | None = None,
        *,
        vectors: VectorStore | None = None,
        embeddings: EmbeddingService | None = None,
    ) -> None:
        self.store = store
        self.index = index
        self.config = config or LoaderConfig()
        self.vectors = vectors
        self.embeddings = embeddings or DisabledEmbeddings()

    @property
    def semantic_enabled(self) -> bool:
        return self.vectors is not None and self.embeddings.available

    def build_context(self, current_message: str, *, now: dt.datetime | None = None) -> str:
        events_by_id = {event.id: event for event in self.store.iter_events()}
        parts: list[str] = []

        core = self.load_core_identity()
        if core:
            parts.append(f"{CORE_IDENTITY_HEADER}\n{core}")

        anchors = self.load_recent_anchors(events_by_id)
        if anchors:
            parts.append(RECENT_SESSIONS_HEADER + "\n" + "\n".join(f"- {a}" for a in anchors))

        if current_message and current_message.strip():
            memories = self.load_triggered_memories(current_message, events_by_id, now=now)
            if memories:
                parts.append(RELEVANT_MEMORIES_HEADER + "\n" + "\n\n".join(memories))

        return SECTION_SEPARATOR.join(parts)

    def load_core_identity(self) -> str | None:
        # Reserved for a user profile document; nothing is loaded yet.
        return None

    def load_recent_anchors(self, events_by_id: dict[str, Event]) -> list[str]:
        limit = self.config.recent_anchors_limit
        if limit <= 0:
            return []
        picked: list[str] = []
        used_tokens = 0
        for event_id in reversed(self.index.get_anchors()):
            event = events_by_id.get(event_id)
            if event is None or event.type != "anchor":
                continue
            cost = estimate_tokens(event.content)
            if used_tokens + cost > self.config.recent_anchors_tokens:
                break
            picked.append(event.content)
            used_tokens += cost
            if len(picked) >= limit:
                break
        picked.reverse()
        return picked

    def load_triggered_memories(
        self,
        message: str,
        events_by_id: dict[str, Event],
        *,
        now: dt.datetime | None = None,
    ) -> list[str]:
        keywords = extract_keywords(message)
        candidate_ids = self.candidate_ids(message, keywords, events_by_id)
        candidates = [events_by_id[i] for i in candidate_ids if i in events_by_id]
        if not candidates:
            return []
        ranked = self.rank_candidates(candidates, keywords, now=now)
        accepted = self.apply_budget(ranked, self.config.triggered_memories_tokens)
        self.index.record_accesses(event.id for event in accepted)
        return [format_event(event) for event in accepted]

    def candidate_ids(
        self, message: str, keywords: list[str], events_by_id: dict[str, Event]
    ) -> list[str]:
        if self.semantic_enabled:
            try:
                return self._semantic_candidates(message, events_by_id)
            except Exception as exc:
                logger.warning(
                    "semantic retrieval failed, falling back to keywords",
                    extra={"provider": self.embeddings.name},
                    exc_info=exc,
                )
        if not keywords:
            return []
        return self.index.lookup(keywords)

    def _semantic_candidates(self, message: str, events_by_id: dict[str, Event]) -> list[str]:
        assert self.vectors is not None
        embedded = self.vectors.embed_missing(list(events_by_id.values()), self.embeddings)
        if embedded:
            logger.debug("embedded %d new events", embedded)
        query_vector = self.embeddings.embed(message)
        similar = self.vectors.find_similar(query_vector, top_k=self.config.semantic_top_k)
        return [
            event_id
            for event_id, similarity in similar
            if similarity > self.config.semantic_min_similarity
        ]

    def rank_candidates(
        self,
        candidates: list[Event],
        query_keywords: list[str],
        *,
        now: dt.datetime | None = None,
    ) -> list[ScoredCandidate]:
        query_set = set(query_keywords)
        scored: list[ScoredCandidate] = []
        for event in candidates:
            effective = self.index.calculate_effective_score(event.id, now=now)
            matched = len(query_set.intersection(k.lower() for k in event.keywords))
            scored.append(
                ScoredCandidate(
                    event=event,
                    score=combined_score(effective, matched, len(query_set)),
                )
            )
        # sorted() is stable, so equal scores keep candidate order.
        return sorted(scored, key=lambda item: item.score, reverse=True)

    @staticmethod
    def apply_budget(ranked: list[ScoredCandidate], max_tokens: int) -> list[Event]:
        accepted: list[Event] = []
        used_tokens = 0
        for candidate in ranked:
            cost = estimate_tokens(candidate.event.content)
            if used_tokens + cost > max_tokens:
                break
            accepted.append(candidate.event)
            used_tokens += cost
        return accepted
