import json
import re
from pathlib import Path

import pytest

from memory_buddy.store.events import EventStore, generate_event_id


def test_generate_event_id_format() -> None:
    assert re.fullmatch(r"evt_\d+_[0-9a-f]{9}", generate_event_id())
    assert generate_event_id() != generate_event_id()


def test_append_writes_daily_partition(tmp_path: Path) -> None:
    events = EventStore(tmp_path / "events")
    event = events.append_event(
        session_id="s1", kind="user", content="Hello there", keywords=["hello"]
    )

    partition = tmp_path / "events" / f"{event.timestamp[:10]}.jsonl"
    assert partition.exists()
    record = json.loads(partition.read_text().splitlines()[0])
    assert record["id"] == event.id
    assert record["sessionId"] == "s1"
    assert record["emotionalWeight"] == 5
    assert record["keywords"] == ["hello"]


def test_append_rejects_unknown_type(tmp_path: Path) -> None:
    events = EventStore(tmp_path / "events")
    with pytest.raises(ValueError):
        events.append_event(session_id="s1", kind="system", content="nope")


def test_append_clamps_weight(tmp_path: Path) -> None:
    events = EventStore(tmp_path / "events")
    event = events.append_event(session_id="s1", kind="user", content="x", emotional_weight=42)
    assert event.emotional_weight == 10


def test_read_skips_malformed_lines(tmp_path: Path) -> None:
    events = EventStore(tmp_path / "events")
    first = events.append_event(session_id="s1", kind="user", content="first")
    partition = events.partitions()[0]
    with partition.open("a", encoding="utf-8") as handle:
        handle.write("not json\n")
        handle.write(json.dumps({"id": "x", "type": "bogus"}) + "\n")
    second = events.append_event(session_id="s1", kind="assistant", content="second")

    assert [e.id for e in events.get_events()] == [first.id, second.id]


def test_append_after_truncated_tail(tmp_path: Path) -> None:
    events = EventStore(tmp_path / "events")
    first = events.append_event(session_id="s1", kind="user", content="first")
    partition = events.partitions()[0]
    with partition.open("a", encoding="utf-8") as handle:
        handle.write('{"id": "broken"')
    second = events.append_event(session_id="s1", kind="user", content="second")

    assert [e.id for e in events.get_events()] == [first.id, second.id]


def test_partitions_read_in_date_order(tmp_path: Path) -> None:
    events_dir = tmp_path / "events"
    events_dir.mkdir()
    for day, event_id in (("2024-03-02", "evt_b"), ("2024-03-01", "evt_a")):
        record = {
            "id": event_id,
            "timestamp": f"{day}T10:00:00+00:00",
            "sessionId": "s1",
            "type": "user",
            "content": event_id,
            "keywords": [],
            "emotionalWeight": 5,
        }
        (events_dir / f"{day}.jsonl").write_text(json.dumps(record) + "\n")
    (events_dir / "notes.txt").write_text("ignored")

    events = EventStore(events_dir)
    assert [e.id for e in events.iter_events()] == ["evt_a", "evt_b"]
    assert events.get_event("evt_b").content == "evt_b"
    assert events.get_event("missing") is None


def test_lookup_helpers(tmp_path: Path) -> None:
    events = EventStore(tmp_path / "events")
    a = events.append_event(session_id="s1", kind="user", content="a")
    b = events.append_event(session_id="s2", kind="user", content="b")
    c = events.append_event(session_id="s1", kind="insight", content="c")

    assert events.count() == 3
    assert [e.id for e in events.get_events("s1")] == [a.id, c.id]
    assert [e.id for e in events.get_recent_events(2)] == [b.id, c.id]
    assert events.get_recent_events(0) == []
    found = events.get_events_by_ids([c.id, "missing", a.id])
    assert set(found) == {a.id, c.id}
    assert events.get_events_by_ids([]) == {}


def test_empty_store(tmp_path: Path) -> None:
    events = EventStore(tmp_path / "events")
    assert events.get_events() == []
    assert events.count() == 0
