from __future__ import annotations

import os
from pathlib import Path

import pytest

from memory_buddy.config import MemoryBuddyConfig
from memory_buddy.store import MemoryStore


@pytest.fixture(autouse=True)
def _isolate_memory_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for key in list(os.environ):
        if key.startswith("MEMORY_BUDDY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("MEMORY_BUDDY_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("MEMORY_BUDDY_PATH", str(tmp_path / "memory"))


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    return MemoryStore(tmp_path / "memory", config=MemoryBuddyConfig())
