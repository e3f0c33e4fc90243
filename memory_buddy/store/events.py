from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Iterable, Iterator
from pathlib import Path
from uuid import uuid4

from .types import EVENT_TYPES, Event
from .utils import now_iso

logger = logging.getLogger(__name__)

PARTITION_SUFFIX = ".jsonl"


def generate_event_id() -> str:
    return f"evt_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def _has_truncated_tail(path: Path) -> bool:
    try:
        with path.open("rb") as handle:
            handle.seek(0, os.SEEK_END)
            if handle.tell() == 0:
                return False
            handle.seek(-1, os.SEEK_END)
            return handle.read(1) != b"\n"
    except FileNotFoundError:
        return False


class EventStore:
    """Append-only event log, one JSONL partition per UTC day.

    Partitions are named ``YYYY-MM-DD.jsonl`` so sorting file names keeps
    chronological order. Events are never rewritten or deleted.
    """

    def __init__(self, events_dir: Path | str) -> None:
        self.events_dir = Path(events_dir).expanduser()
        self.events_dir.mkdir(parents=True, exist_ok=True)

    def _partition_path(self, timestamp: str) -> Path:
        return self.events_dir / f"{timestamp[:10]}{PARTITION_SUFFIX}"

    def append_event(
        self,
        *,
        session_id: str,
        kind: str,
        content: str,
        keywords: Iterable[str] = (),
        emotional_weight: int = 5,
    ) -> Event:
        if kind not in EVENT_TYPES:
            raise ValueError(f"unknown event type: {kind!r}")
        event = Event(
            id=generate_event_id(),
            timestamp=now_iso(),
            session_id=session_id,
            type=kind,
            content=content,
            keywords=tuple(keywords),
            emotional_weight=max(0, min(10, int(emotional_weight))),
        )
        path = self._partition_path(event.timestamp)
        line = json.dumps(event.to_dict(), ensure_ascii=False) + "\n"
        if _has_truncated_tail(path):
            # Terminate the fragment so the new record starts on its own line.
            line = "\n" + line
        with path.open("a", encoding="utf-8") as handle:
            handle.write(line)
            handle.flush()
            os.fsync(handle.fileno())
        return event

    def partitions(self) -> list[Path]:
        if not self.events_dir.exists():
            return []
        return sorted(
            path for path in self.events_dir.iterdir() if path.name.endswith(PARTITION_SUFFIX)
        )

    def _read_partition(self, path: Path) -> Iterator[Event]:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        for line_no, line in enumerate(raw.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
                if not isinstance(data, dict):
                    raise ValueError("record is not an object")
                event = Event.from_dict(data)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(
                    "skipping unreadable event record %s:%d (%s)", path.name, line_no, exc
                )
                continue
            yield event

    def iter_events(self) -> Iterator[Event]:
        for path in self.partitions():
            yield from self._read_partition(path)

    def get_events(self, session_id: str | None = None) -> list[Event]:
        if session_id is None:
            return list(self.iter_events())
        return [event for event in self.iter_events() if event.session_id == session_id]

    def get_recent_events(self, n: int) -> list[Event]:
        if n <= 0:
            return []
        return self.get_events()[-n:]

    def get_event(self, event_id: str) -> Event | None:
        for event in self.iter_events():
            if event.id == event_id:
                return event
        return None

    def get_events_by_ids(self, event_ids: Iterable[str]) -> dict[str, Event]:
        wanted = set(event_ids)
        if not wanted:
            return {}
        return {event.id: event for event in self.iter_events() if event.id in wanted}

    def count(self) -> int:
        return sum(1 for _ in self.iter_events())
