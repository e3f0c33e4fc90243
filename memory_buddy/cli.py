from __future__ import annotations

import typer

from . import __version__
from .commands.common import (
    configure_logging,
    read_config_or_exit,
    store_from_path,
    write_config_or_exit,
)
from .commands.maintenance_cmds import (
    compact_cmd,
    compacted_cmd,
    doctor_cmd,
    init_cmd,
    mcp_cmd,
    reindex_cmd,
)
from .commands.memory_cmds import (
    context_cmd,
    end_session_cmd,
    remember_cmd,
    search_cmd,
    status_cmd,
)

app = typer.Typer(help="memory-buddy: long-term conversational memory for AI agents")

MEMORY_PATH_HELP = "Memory directory (defaults to config or ~/.memory-buddy)"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command()
def init(
    memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP),
    force: bool = typer.Option(False, help="Overwrite an existing config file"),
) -> None:
    """Create the memory directory and default config."""
    init_cmd(
        store_from_path=store_from_path,
        read_config_or_exit=read_config_or_exit,
        write_config_or_exit=write_config_or_exit,
        memory_path=memory_path,
        force=force,
    )


@app.command()
def status(
    memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """Show memory statistics."""
    status_cmd(store_from_path=store_from_path, memory_path=memory_path, as_json=as_json)


@app.command()
def search(
    query: str,
    limit: int = typer.Option(10, help="Max results"),
    memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP),
) -> None:
    """Search memories by keyword."""
    search_cmd(store_from_path=store_from_path, memory_path=memory_path, query=query, limit=limit)


@app.command()
def context(
    message: str = typer.Argument(..., help="Message to build context for"),
    memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP),
) -> None:
    """Print the memory context for a message."""
    context_cmd(store_from_path=store_from_path, memory_path=memory_path, query=message)


@app.command()
def remember(
    content: str = typer.Argument(..., help="Text to remember"),
    kind: str = typer.Option("insight", "--kind", "-k", help="user, assistant or insight"),
    session_id: str = typer.Option(None, "--session", help="Existing session to append to"),
    memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP),
) -> None:
    """Manually add a memory."""
    remember_cmd(
        store_from_path=store_from_path,
        memory_path=memory_path,
        kind=kind,
        content=content,
        session_id=session_id,
    )


@app.command("end-session")
def end_session(
    session_id: str = typer.Argument(..., help="Session to close"),
    tone: str = typer.Option(None, help="Emotional tone to record"),
    memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP),
) -> None:
    """Summarize a session into an anchor."""
    end_session_cmd(
        store_from_path=store_from_path,
        memory_path=memory_path,
        session_id=session_id,
        tone=tone,
    )


@app.command()
def compact(
    max_age_hours: float = typer.Option(None, help="Archive sessions older than this"),
    memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP),
) -> None:
    """Archive old sessions into monthly files."""
    compact_cmd(
        store_from_path=store_from_path, memory_path=memory_path, max_age_hours=max_age_hours
    )


@app.command()
def compacted(
    limit: int = typer.Option(20, help="Max sessions to show"),
    memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP),
) -> None:
    """List archived session summaries."""
    compacted_cmd(store_from_path=store_from_path, memory_path=memory_path, limit=limit)


@app.command()
def reindex(memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP)) -> None:
    """Rebuild the keyword index from the event log."""
    reindex_cmd(store_from_path=store_from_path, memory_path=memory_path)


@app.command()
def doctor(memory_path: str = typer.Option(None, help=MEMORY_PATH_HELP)) -> None:
    """Check config, storage and semantic search."""
    doctor_cmd(read_config_or_exit=read_config_or_exit, memory_path=memory_path)


@app.command()
def mcp() -> None:
    """Run the MCP server on stdio."""
    mcp_cmd()


if __name__ == "__main__":
    app()
