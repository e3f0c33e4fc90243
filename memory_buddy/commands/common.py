from __future__ import annotations

import logging
import sys
from typing import Any

import typer
from rich import print

from memory_buddy.config import MemoryBuddyConfig, load_config, read_config_file, write_config_file
from memory_buddy.store import MemoryStore


def store_from_path(memory_path: str | None) -> MemoryStore:
    return MemoryStore(memory_path)


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def configure_logging(cfg: MemoryBuddyConfig | None = None, *, verbose: bool = False) -> None:
    # stdout carries MCP traffic when serving, so logs always go to stderr.
    cfg = cfg or load_config()
    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
