from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


def ensure_path(path: str | Path) -> Path:
    resolved = Path(path).expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved


@dataclass(frozen=True)
class MemoryPaths:
    """On-disk layout of one memory directory."""

    root: Path

    @classmethod
    def from_base(cls, base_path: str | Path) -> MemoryPaths:
        return cls(root=Path(base_path).expanduser())

    @property
    def events_dir(self) -> Path:
        return self.root / "events"

    @property
    def index_path(self) -> Path:
        return self.root / "index.json"

    @property
    def embeddings_dir(self) -> Path:
        return self.root / "embeddings"

    @property
    def vectors_path(self) -> Path:
        return self.embeddings_dir / "vectors.json"

    @property
    def compacted_dir(self) -> Path:
        return self.root / "compacted"

    def ensure(self) -> MemoryPaths:
        for directory in (self.root, self.events_dir, self.embeddings_dir, self.compacted_dir):
            directory.mkdir(parents=True, exist_ok=True)
        return self
