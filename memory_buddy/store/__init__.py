from __future__ import annotations

from ._store import MemoryStore
from .compactor import Compactor
from .events import EventStore
from .index import IndexService
from .loader import ContextLoader, LoaderConfig
from .types import CompactedSession, Event, EventMeta, SessionMeta
from .vectors import VectorStore

__all__ = [
    "CompactedSession",
    "Compactor",
    "ContextLoader",
    "Event",
    "EventMeta",
    "EventStore",
    "IndexService",
    "LoaderConfig",
    "MemoryStore",
    "SessionMeta",
    "VectorStore",
]
