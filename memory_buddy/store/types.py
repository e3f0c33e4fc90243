from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

EVENT_TYPES = ("user", "assistant", "insight", "anchor")


@dataclass(frozen=True)
class Event:
    id: str
    timestamp: str
    session_id: str
    type: str
    content: str
    keywords: tuple[str, ...] = ()
    emotional_weight: int = 5

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "type": self.type,
            "content": self.content,
            "keywords": list(self.keywords),
            "emotionalWeight": self.emotional_weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        event_type = data["type"]
        if event_type not in EVENT_TYPES:
            raise ValueError(f"unknown event type: {event_type!r}")
        keywords = data.get("keywords") or []
        if not isinstance(keywords, list):
            raise ValueError("keywords must be a list")
        return cls(
            id=str(data["id"]),
            timestamp=str(data["timestamp"]),
            session_id=str(data["sessionId"]),
            type=event_type,
            content=str(data["content"]),
            keywords=tuple(str(k) for k in keywords),
            emotional_weight=int(data.get("emotionalWeight", 5)),
        )


@dataclass
class EventMeta:
    id: str
    base_score: float
    created_at: str
    access_count: int = 0
    last_accessed: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "baseScore": self.base_score,
            "createdAt": self.created_at,
            "accessCount": self.access_count,
        }
        if self.last_accessed:
            data["lastAccessed"] = self.last_accessed
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventMeta:
        return cls(
            id=str(data["id"]),
            base_score=float(data["baseScore"]),
            created_at=str(data["createdAt"]),
            access_count=int(data.get("accessCount", 0)),
            last_accessed=data.get("lastAccessed"),
        )


@dataclass
class SessionMeta:
    id: str
    start_time: str
    event_count: int = 0
    end_time: str | None = None
    summary: str | None = None
    emotional_tone: str | None = None

    @property
    def closed(self) -> bool:
        return self.summary is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "startTime": self.start_time,
            "eventCount": self.event_count,
        }
        if self.end_time is not None:
            data["endTime"] = self.end_time
        if self.summary is not None:
            data["summary"] = self.summary
        if self.emotional_tone is not None:
            data["emotionalTone"] = self.emotional_tone
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionMeta:
        return cls(
            id=str(data["id"]),
            start_time=str(data["startTime"]),
            event_count=int(data.get("eventCount", 0)),
            end_time=data.get("endTime"),
            summary=data.get("summary"),
            emotional_tone=data.get("emotionalTone"),
        )


@dataclass(frozen=True)
class CompactedSession:
    session_id: str
    original_event_count: int
    summary: str
    start_time: str
    end_time: str
    compacted_at: str
    average_importance: int
    key_topics: list[str] = field(default_factory=list)
    emotional_highlights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "originalEventCount": self.original_event_count,
            "summary": self.summary,
            "keyTopics": list(self.key_topics),
            "emotionalHighlights": list(self.emotional_highlights),
            "averageImportance": self.average_importance,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "compactedAt": self.compacted_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompactedSession:
        return cls(
            session_id=str(data["sessionId"]),
            original_event_count=int(data["originalEventCount"]),
            summary=str(data["summary"]),
            start_time=str(data["startTime"]),
            end_time=str(data["endTime"]),
            compacted_at=str(data["compactedAt"]),
            average_importance=int(data.get("averageImportance", 0)),
            key_topics=list(data.get("keyTopics") or []),
            emotional_highlights=list(data.get("emotionalHighlights") or []),
        )
