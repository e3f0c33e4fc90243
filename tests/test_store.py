import datetime as dt
from pathlib import Path

from memory_buddy import __version__
from memory_buddy.config import MemoryBuddyConfig
from memory_buddy.semantic import EmbeddingService
from memory_buddy.store import MemoryStore
from memory_buddy.store.utils import utc_now


def test_store_creates_layout(tmp_path: Path) -> None:
    store = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig())
    for name in ("events", "embeddings", "compacted"):
        assert (tmp_path / "mem" / name).is_dir()
    assert store.base_path == tmp_path / "mem"
    assert store.vectors is None


def test_store_defaults_to_configured_path(tmp_path: Path) -> None:
    store = MemoryStore()
    assert store.base_path == tmp_path / "memory"


def test_remember_rejects_noise(store: MemoryStore) -> None:
    session_id = store.start_session()
    assert store.remember(session_id, "user", "ok") is None
    assert store.remember(session_id, "user", "   ") is None
    assert store.remember(session_id, "anchor", "forged summary") is None
    assert store.remember(session_id, "system", "unknown type") is None
    assert store.events.count() == 0


def test_remember_scores_and_indexes(store: MemoryStore) -> None:
    session_id = store.start_session()
    event = store.remember(session_id, "user", "My name is Anna and I work as a chef in Berlin")

    assert event is not None
    assert event.emotional_weight == 8
    assert "anna" in event.keywords
    assert store.search(["Anna"]) == [event.id]
    assert store.search(["", "  "]) == []
    assert store.get_events([event.id, "missing"]) == [event]
    assert event.id in store.index.get_anchors()


def test_remember_rejects_closed_session(store: MemoryStore) -> None:
    session_id = store.start_session()
    store.remember(session_id, "user", "We shipped the new onboarding flow")
    assert store.end_session(session_id) is not None
    assert store.is_session_closed(session_id)
    assert store.remember(session_id, "user", "One more thing about onboarding") is None


def test_goodbye_ends_session(store: MemoryStore) -> None:
    session_id = store.start_session()
    store.remember(session_id, "user", "I finished the database migration today")
    goodbye = store.remember(session_id, "user", "Thanks for the help, goodbye!")

    assert goodbye is not None
    assert store.is_session_closed(session_id)
    assert store.active_session_id is None
    assert store.events.get_events(session_id)[-1].type == "anchor"


def test_goodbye_from_assistant_does_not_end_session(store: MemoryStore) -> None:
    session_id = store.start_session()
    store.remember(session_id, "assistant", "Goodbye and good luck with the migration")
    assert not store.is_session_closed(session_id)
    assert store.active_session_id == session_id


def test_goodbye_auto_end_can_be_disabled(tmp_path: Path) -> None:
    store = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig(auto_end_on_goodbye=False))
    session_id = store.start_session()
    store.remember(session_id, "user", "Goodbye for now, see you tomorrow")
    assert not store.is_session_closed(session_id)


def test_current_session_is_stable_within_timeout(store: MemoryStore) -> None:
    first = store.current_session()
    assert store.current_session() == first
    assert store.active_session_id == first


def test_current_session_rolls_over_after_inactivity(store: MemoryStore) -> None:
    first = store.current_session()
    store.remember(first, "user", "I am planning a trip to Norway next summer")
    store._last_activity = utc_now() - dt.timedelta(minutes=31)

    second = store.current_session()

    assert second != first
    assert store.is_session_closed(first)
    assert store.active_session_id == second


def test_current_session_rollover_with_explicit_clock(store: MemoryStore) -> None:
    first = store.current_session()
    store.remember(first, "user", "Notes on the quarterly planning meeting")
    later = utc_now() + dt.timedelta(hours=2)
    assert store.current_session(now=later) != first


def test_status_reports_counts(store: MemoryStore) -> None:
    session_id = store.start_session()
    store.remember(session_id, "user", "My name is Anna and I work as a chef in Berlin")
    store.remember(session_id, "assistant", "Nice to meet you, Anna")

    status = store.status()

    assert status["version"] == __version__
    assert status["eventCount"] == 2
    assert status["sessionCount"] == 1
    assert status["anchorCount"] == 1
    assert status["vectorCount"] == 0
    assert status["activeSession"] == session_id
    assert status["semanticSearch"] == "disabled"
    assert status["lastUpdate"]


def test_corrupt_index_is_rebuilt_from_log(tmp_path: Path) -> None:
    store = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig())
    session_id = store.start_session()
    event = store.remember(session_id, "user", "Our product launch is scheduled for March")
    store.index.record_access(event.id)

    (tmp_path / "mem" / "index.json").write_text("{corrupt")
    reopened = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig())

    assert reopened.search(["launch"]) == [event.id]
    assert reopened.index.get_session(session_id).event_count == 1
    assert not reopened.index.recovered_from_corruption


def test_missing_index_is_rebuilt_from_log(tmp_path: Path) -> None:
    store = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig())
    event = store.remember(store.start_session(), "user", "Remember the router password hint")
    (tmp_path / "mem" / "index.json").unlink()

    reopened = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig())
    assert reopened.search(["router"]) == [event.id]


def test_closed_session_stays_closed_after_index_rebuild(tmp_path: Path) -> None:
    store = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig())
    session_id = store.start_session()
    store.remember(session_id, "user", "We shipped the new onboarding flow")
    assert store.end_session(session_id) is not None

    (tmp_path / "mem" / "index.json").write_text("{corrupt")
    reopened = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig())

    assert reopened.is_session_closed(session_id)
    assert reopened.remember(session_id, "user", "One more thing about onboarding") is None
    assert reopened.end_session(session_id) is None
    anchors = [e for e in reopened.events.get_events(session_id) if e.type == "anchor"]
    assert len(anchors) == 1


def test_close_releases_embedding_client(tmp_path: Path) -> None:
    class ClosingEmbeddings(EmbeddingService):
        name = "closing"

        def __init__(self) -> None:
            self.closed = False

        def embed_batch(self, texts):
            return [[1.0, 0.0] for _ in texts]

        def close(self) -> None:
            self.closed = True

    service = ClosingEmbeddings()
    store = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig(), embedding_service=service)
    store.close()
    assert service.closed


def test_reindex_counts_events(store: MemoryStore) -> None:
    session_id = store.start_session()
    store.remember(session_id, "user", "First message about gardening")
    store.remember(session_id, "user", "Second message about tomatoes")
    assert store.reindex() == 2


def test_compact_through_store(store: MemoryStore) -> None:
    session_id = store.start_session()
    store.remember(session_id, "user", "Notes about the garden shed build")
    assert store.compact_old_sessions() == 0
    assert store.compact_old_sessions(max_age_hours=0) == 1
    assert [item.session_id for item in store.get_compacted_sessions()] == [session_id]


def test_greeting_is_reported_in_status(store: MemoryStore) -> None:
    session_id = store.start_session()
    assert store.status()["lastGreeting"] is None
    event = store.remember(session_id, "user", "Hey, where were we with the parser?")
    assert store.status()["lastGreeting"] == event.timestamp
    assert not store.is_session_closed(session_id)
