from __future__ import annotations

import typer
from rich import print
from rich.markup import escape

from ..config import get_config_path, get_default_config, load_config
from ..semantic import create_embedding_service


def init_cmd(
    *,
    store_from_path,
    read_config_or_exit,
    write_config_or_exit,
    memory_path: str | None,
    force: bool,
) -> None:
    """Create the memory directory and a default config file."""

    store = store_from_path(memory_path)
    store.close()
    config_path = get_config_path()
    existing = read_config_or_exit()
    if existing and not force:
        print(f"Config already present at {config_path}")
    else:
        data = get_default_config().to_dict()
        data["memory_path"] = str(store.base_path)
        write_config_or_exit(data)
        print(f"Wrote config to {config_path}")
    print(f"Initialized memory at {store.base_path}")


def compact_cmd(
    *, store_from_path, memory_path: str | None, max_age_hours: float | None
) -> None:
    """Archive sessions older than the age threshold."""

    store = store_from_path(memory_path)
    try:
        compacted = store.compact_old_sessions(max_age_hours)
    finally:
        store.close()
    print(f"Compacted {compacted} sessions")


def compacted_cmd(*, store_from_path, memory_path: str | None, limit: int) -> None:
    store = store_from_path(memory_path)
    try:
        sessions = store.get_compacted_sessions()
    finally:
        store.close()
    if not sessions:
        print("[yellow]No compacted sessions[/yellow]")
        return
    for item in sessions[-limit:]:
        topics = ", ".join(item.key_topics[:5]) or "-"
        print(
            f"[bold]{item.session_id}[/bold] {item.start_time[:10]} "
            f"({item.original_event_count} events, importance {item.average_importance})\n"
            f"{escape(item.summary)}\ntopics: {topics}\n"
        )


def reindex_cmd(*, store_from_path, memory_path: str | None) -> None:
    """Rebuild the keyword index from the event log."""

    store = store_from_path(memory_path)
    try:
        indexed = store.reindex()
    finally:
        store.close()
    print(f"Reindexed {indexed} events")


def doctor_cmd(*, read_config_or_exit, memory_path: str | None) -> None:
    """Check config, storage and the semantic provider."""

    ok = True
    read_config_or_exit()
    cfg = load_config()
    if memory_path:
        cfg.memory_path = memory_path
    print(f"[green]✓[/green] Config: {get_config_path()}")

    root = cfg.resolved_memory_path
    if root.exists() and not root.is_dir():
        print(f"[red]✗[/red] Memory path is not a directory: {root}")
        ok = False
    elif root.exists():
        print(f"[green]✓[/green] Memory path: {root}")
    else:
        print(f"[yellow]![/yellow] Memory path missing (run `memory-buddy init`): {root}")

    if not cfg.semantic_search_enabled:
        print("[green]✓[/green] Semantic search: disabled (keyword retrieval)")
    else:
        service = create_embedding_service(cfg)
        if not service.available:
            print(
                f"[yellow]![/yellow] Semantic search: {cfg.semantic_search_provider} "
                "unavailable, falling back to keywords"
            )
        else:
            try:
                service.embed("memory buddy health check")
            except Exception as exc:
                print(f"[red]✗[/red] Semantic search: {service.name} failed: {exc}")
                ok = False
            else:
                print(f"[green]✓[/green] Semantic search: {service.name}")
            finally:
                service.close()

    if not ok:
        raise typer.Exit(code=1)


def mcp_cmd() -> None:
    """Run the MCP server on stdio."""

    from memory_buddy.mcp_server import run as mcp_run

    mcp_run()
