from pathlib import Path

import pytest

from memory_buddy.config import MemoryBuddyConfig
from memory_buddy.semantic import EmbeddingError, EmbeddingService
from memory_buddy.store import MemoryStore
from memory_buddy.store.loader import (
    RECENT_SESSIONS_HEADER,
    RELEVANT_MEMORIES_HEADER,
    ContextLoader,
    ScoredCandidate,
    combined_score,
    format_event,
)
from memory_buddy.store.types import Event


class KeywordEmbeddings(EmbeddingService):
    """Maps anything mentioning cats to one axis and everything else to another."""

    name = "fake"

    def embed_batch(self, texts):
        return [[1.0, 0.0] if "cat" in text.lower() else [0.0, 1.0] for text in texts]


class FailingEmbeddings(EmbeddingService):
    name = "failing"

    def embed_batch(self, texts):
        raise EmbeddingError("provider down")


def _event(event_id: str, content: str) -> Event:
    return Event(
        id=event_id,
        timestamp="2026-02-03T12:00:00+00:00",
        session_id="s1",
        type="user",
        content=content,
    )


def test_combined_score() -> None:
    assert combined_score(15.0, 2, 2) == pytest.approx(1.0)
    assert combined_score(30.0, 0, 3) == pytest.approx(0.7)
    assert combined_score(7.5, 1, 2) == pytest.approx(0.5)
    assert combined_score(5.0, 0, 0) == pytest.approx(0.7 / 3)


def test_format_event_uses_date_prefix() -> None:
    assert format_event(_event("evt_1", "hello")) == "[2026-02-03] hello"


def test_apply_budget_stops_at_first_overflow() -> None:
    ranked = [
        ScoredCandidate(event=_event("a", "x" * 40), score=0.9),
        ScoredCandidate(event=_event("b", "y" * 40), score=0.8),
        ScoredCandidate(event=_event("c", "z" * 4), score=0.7),
    ]
    accepted = ContextLoader.apply_budget(ranked, max_tokens=15)
    assert [event.id for event in accepted] == ["a"]
    assert ContextLoader.apply_budget(ranked, max_tokens=21) == [
        ranked[0].event,
        ranked[1].event,
        ranked[2].event,
    ]
    assert ContextLoader.apply_budget(ranked, max_tokens=5) == []


def test_empty_memory_gives_empty_context(store: MemoryStore) -> None:
    assert store.retrieve_context(None, "anything at all") == ""
    assert store.loader.load_core_identity() is None


def test_unmatched_query_has_no_relevant_section(store: MemoryStore) -> None:
    session_id = store.start_session()
    store.remember(session_id, "user", "We migrated the billing service to Postgres")
    context = store.retrieve_context(session_id, "zebra migration patterns")
    assert RELEVANT_MEMORIES_HEADER not in context


def test_triggered_memories_ranked_and_access_recorded(store: MemoryStore) -> None:
    session_id = store.start_session()
    loved = store.remember(session_id, "user", "I love hiking in the Alps with my family")
    boots = store.remember(session_id, "user", "Hiking boots need new laces")

    context = store.retrieve_context(session_id, "Any hiking tips?")

    assert context.startswith(RELEVANT_MEMORIES_HEADER)
    assert f"[{loved.timestamp[:10]}] I love hiking in the Alps" in context
    assert context.index("Alps") < context.index("laces")
    assert store.index.get_event_meta(loved.id).access_count == 1
    assert store.index.get_event_meta(boots.id).access_count == 1


def test_budget_overflow_blocks_lower_ranked_memories(tmp_path: Path) -> None:
    store = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig(triggered_memories_tokens=20))
    session_id = store.start_session()
    store.remember(
        session_id,
        "user",
        "My family and I love hiking; we spend every summer walking long trails "
        "in the Alps near Innsbruck.",
    )
    boots = store.remember(session_id, "user", "Hiking boots need new laces")

    context = store.retrieve_context(session_id, "hiking")

    assert RELEVANT_MEMORIES_HEADER not in context
    assert store.index.get_event_meta(boots.id).access_count == 0


def test_recent_sessions_section(store: MemoryStore) -> None:
    first = store.start_session()
    store.remember(first, "user", "My name is Anna and I work as a chef in Berlin")
    store.end_session(first)

    context = store.retrieve_context(None, "")
    assert context.startswith(RECENT_SESSIONS_HEADER)
    assert "\n- Session (" in context
    assert RELEVANT_MEMORIES_HEADER not in context


def test_recent_sessions_limit_keeps_newest_in_order(tmp_path: Path) -> None:
    store = MemoryStore(tmp_path / "mem", config=MemoryBuddyConfig(recent_anchors_limit=2))
    topics = ["kubernetes cluster upgrade", "pasta recipe ideas", "quarterly budget review"]
    for topic in topics:
        session_id = store.start_session()
        store.remember(session_id, "user", f"I love the {topic} we discussed today")
        store.end_session(session_id)

    context = store.retrieve_context(None, "")
    entries = [line for line in context.splitlines() if line.startswith("- Session")]
    assert len(entries) == 2
    assert "pasta" in entries[0]
    assert "quarterly" in entries[1]


def test_both_sections_are_separated(store: MemoryStore) -> None:
    session_id = store.start_session()
    store.remember(session_id, "user", "My wife starts her new job at the hospital in September")
    store.end_session(session_id)

    context = store.retrieve_context(None, "When does my wife start the new job?")
    recent, relevant = context.split("\n\n---\n\n")
    assert recent.startswith(RECENT_SESSIONS_HEADER)
    assert relevant.startswith(RELEVANT_MEMORIES_HEADER)


def test_semantic_retrieval_finds_related_wording(tmp_path: Path) -> None:
    store = MemoryStore(
        tmp_path / "mem", config=MemoryBuddyConfig(), embedding_service=KeywordEmbeddings()
    )
    session_id = store.start_session()
    store.remember(session_id, "user", "My cat Felix loves sleeping on the sofa")
    store.remember(session_id, "user", "The quarterly budget review is due on Friday")

    context = store.retrieve_context(session_id, "tell me about cats")

    assert "Felix" in context
    assert "quarterly" not in context
    assert store.vectors is not None
    assert store.vectors.count() == 2


def test_semantic_failure_falls_back_to_keywords(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    store = MemoryStore(
        tmp_path / "mem", config=MemoryBuddyConfig(), embedding_service=FailingEmbeddings()
    )
    session_id = store.start_session()
    store.remember(session_id, "user", "Deploying the release pipeline on Friday")

    with caplog.at_level("WARNING"):
        context = store.retrieve_context(session_id, "release pipeline status")

    assert "Deploying the release pipeline" in context
    assert "falling back to keywords" in caplog.text
