from __future__ import annotations

import datetime as dt
import json
import os
from pathlib import Path
from typing import Any
from uuid import uuid4

from ..fs_paths import ensure_path


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


def now_iso() -> str:
    return utc_now().isoformat()


def parse_iso8601(value: str) -> dt.datetime | None:
    raw = value.strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)


def age_days(timestamp: str, now: dt.datetime | None = None) -> float:
    created = parse_iso8601(timestamp)
    if created is None:
        return 0.0
    reference = now or utc_now()
    return max(0.0, (reference - created).total_seconds() / 86400.0)


def estimate_tokens(text: str) -> int:
    # ~4 characters per token
    return (len(text) + 3) // 4


def atomic_write_json(path: Path, data: Any, *, indent: int | None = 2) -> None:
    """Write ``data`` so readers never see a half-written document."""

    target = ensure_path(path)
    tmp_path = target.with_name(f".{target.name}.{uuid4().hex[:8]}.tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def read_json_document(path: Path) -> Any:
    """Load a JSON document, returning None when the file is missing.

    Raises ValueError when the content is not valid JSON.
    """

    if not path.exists():
        return None
    raw = path.read_text(encoding="utf-8")
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid json in {path}") from exc
