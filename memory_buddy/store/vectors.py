from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from ..semantic import cosine_similarity
from .utils import atomic_write_json, read_json_document

if TYPE_CHECKING:
    from ..semantic import EmbeddingService
    from .types import Event

logger = logging.getLogger(__name__)


class VectorStore:
    """Event id -> embedding map persisted as one JSON document."""

    def __init__(self, vectors_path: Path | str) -> None:
        self.vectors_path = Path(vectors_path).expanduser()
        self.vectors: dict[str, list[float]] = {}
        self._load()

    def _load(self) -> None:
        try:
            data = read_json_document(self.vectors_path)
        except ValueError as exc:
            logger.warning("vector store unreadable, starting empty: %s", exc)
            return
        if data is None:
            return
        if isinstance(data, list):
            # Older layout: [{"eventId": ..., "vector": [...]}, ...]
            data = {
                item.get("eventId"): item.get("vector")
                for item in data
                if isinstance(item, dict)
            }
        if not isinstance(data, dict):
            logger.warning("vector store has unexpected shape, starting empty")
            return
        for event_id, vector in data.items():
            if not isinstance(event_id, str) or not isinstance(vector, list):
                continue
            try:
                self.vectors[event_id] = [float(v) for v in vector]
            except (TypeError, ValueError):
                logger.warning("dropping malformed vector for %s", event_id)

    def save(self) -> None:
        atomic_write_json(self.vectors_path, self.vectors, indent=None)

    def store(self, event_id: str, vector: Sequence[float]) -> None:
        self.vectors[event_id] = list(vector)
        self.save()

    def store_many(self, items: dict[str, list[float]]) -> None:
        if not items:
            return
        self.vectors.update(items)
        self.save()

    def get(self, event_id: str) -> list[float] | None:
        return self.vectors.get(event_id)

    def has(self, event_id: str) -> bool:
        return event_id in self.vectors

    def count(self) -> int:
        return len(self.vectors)

    def find_similar(
        self, query_vector: Sequence[float], top_k: int = 10
    ) -> list[tuple[str, float]]:
        """Most similar event ids first, as (event_id, similarity) pairs."""

        scored = [
            (event_id, cosine_similarity(query_vector, vector))
            for event_id, vector in self.vectors.items()
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[: max(top_k, 0)]

    def embed_missing(self, events: Sequence[Event], service: EmbeddingService) -> int:
        """Embed events without a cached vector in one batch call."""

        pending = [event for event in events if event.id not in self.vectors]
        if not pending:
            return 0
        vectors = service.embed_batch([event.content for event in pending])
        if len(vectors) != len(pending):
            raise ValueError(
                f"embedding provider returned {len(vectors)} vectors for {len(pending)} texts"
            )
        self.store_many({event.id: list(vec) for event, vec in zip(pending, vectors, strict=True)})
        return len(pending)
