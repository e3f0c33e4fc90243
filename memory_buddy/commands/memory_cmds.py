from __future__ import annotations

import json

import typer
from rich import print
from rich.markup import escape

from ..triggers.keywords import extract_keywords


def status_cmd(*, store_from_path, memory_path: str | None, as_json: bool) -> None:
    """Show event, session and index counts."""

    store = store_from_path(memory_path)
    try:
        status = store.status()
    finally:
        store.close()
    if as_json:
        typer.echo(json.dumps(status, indent=2))
        return
    cfg = store.config
    print("[bold]Memory Buddy[/bold]")
    print(f"- Path: {status['memoryPath']}")
    print(f"- Events: {status['eventCount']}")
    print(f"- Sessions: {status['sessionCount']}")
    print(f"- Anchors: {status['anchorCount']}")
    print(f"- Semantic search: {status['semanticSearch']} ({status['vectorCount']} vectors)")
    print(f"- Last update: {status['lastUpdate']}")
    print("\n[bold]Budget[/bold]")
    print(f"- Triggered memories: {cfg.triggered_memories_tokens} tokens")
    print(f"- Recent anchors: {cfg.recent_anchors_limit} / {cfg.recent_anchors_tokens} tokens")
    print(f"- Session timeout: {cfg.session_timeout_minutes} min")
    print(f"- Decay half-life: {cfg.decay_half_life_days:g} days")


def search_cmd(*, store_from_path, memory_path: str | None, query: str, limit: int) -> None:
    """Look up events by keyword."""

    store = store_from_path(memory_path)
    try:
        keywords = extract_keywords(query) or query.split()
        event_ids = store.search(keywords)
        if not event_ids:
            print("[yellow]No matching memories[/yellow]")
            return
        for event in store.get_events(event_ids[:limit]):
            score = store.index.calculate_effective_score(event.id)
            print(
                f"{event.id} ({event.type}) {event.timestamp[:10]}\n"
                f"{escape(event.content)}\nscore={score:.2f}\n"
            )
    finally:
        store.close()


def context_cmd(*, store_from_path, memory_path: str | None, query: str) -> None:
    """Print the context block that would be injected for a message."""

    store = store_from_path(memory_path)
    try:
        context = store.retrieve_context(None, query)
    finally:
        store.close()
    if not context:
        print("[yellow]No context available yet[/yellow]")
        return
    typer.echo(context)


def remember_cmd(
    *,
    store_from_path,
    memory_path: str | None,
    kind: str,
    content: str,
    session_id: str | None,
) -> None:
    """Manually add a memory."""

    store = store_from_path(memory_path)
    try:
        manual_session = session_id is None
        target_session = session_id or store.start_session()
        event = store.remember(target_session, kind, content)
        if event is None:
            print("[yellow]Skipped: message not worth storing[/yellow]")
            raise typer.Exit(code=1)
        if manual_session:
            store.end_session(target_session)
    finally:
        store.close()
    print(f"Stored {event.id} (weight {event.emotional_weight}) in {target_session}")


def end_session_cmd(
    *, store_from_path, memory_path: str | None, session_id: str, tone: str | None
) -> None:
    """Summarize a session into an anchor."""

    store = store_from_path(memory_path)
    try:
        anchor = store.end_session(session_id, tone)
    finally:
        store.close()
    if anchor is None:
        print(f"[yellow]Session {session_id} is unknown or already closed[/yellow]")
        return
    print(f"Closed {session_id}: {escape(anchor.content)}")
