from __future__ import annotations

import json
import os
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

DEFAULT_MEMORY_PATH = "~/.memory-buddy"
DEFAULT_CONFIG_PATH = Path(DEFAULT_MEMORY_PATH, "config.json").expanduser()

SEMANTIC_PROVIDERS = {"none", "openai", "google", "fastembed"}
LOG_LEVELS = {"debug", "info", "warning", "error"}

CONFIG_ENV_OVERRIDES = {
    "memory_path": "MEMORY_BUDDY_PATH",
    "triggered_memories_tokens": "MEMORY_BUDDY_TRIGGERED_TOKENS",
    "session_timeout_minutes": "MEMORY_BUDDY_SESSION_TIMEOUT_MINUTES",
    "emotional_threshold": "MEMORY_BUDDY_EMOTIONAL_THRESHOLD",
    "decay_half_life_days": "MEMORY_BUDDY_DECAY_HALF_LIFE_DAYS",
    "log_level": "MEMORY_BUDDY_LOG_LEVEL",
    "semantic_search_enabled": "MEMORY_BUDDY_SEMANTIC_SEARCH",
    "semantic_search_provider": "MEMORY_BUDDY_SEMANTIC_PROVIDER",
    "semantic_search_api_key": "MEMORY_BUDDY_SEMANTIC_API_KEY",
    "semantic_search_model": "MEMORY_BUDDY_SEMANTIC_MODEL",
}

# Valid ranges for numeric settings; out of range values are clamped.
INT_RANGES: dict[str, tuple[int, int]] = {
    "core_identity_tokens": (100, 2000),
    "recent_anchors_tokens": (100, 2000),
    "triggered_memories_tokens": (100, 5000),
    "recent_anchors_limit": (0, 50),
    "session_timeout_minutes": (5, 120),
    "emotional_threshold": (1, 10),
    "compact_max_age_hours": (1, 24 * 365),
    "semantic_top_k": (1, 200),
}
FLOAT_RANGES: dict[str, tuple[float, float]] = {
    "decay_half_life_days": (1.0, 3650.0),
    "semantic_min_similarity": (-1.0, 1.0),
    "embedding_timeout_s": (0.5, 120.0),
}
BOOL_KEYS = {"auto_end_on_goodbye", "semantic_search_enabled"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("MEMORY_BUDDY_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class MemoryBuddyConfig:
    memory_path: str = DEFAULT_MEMORY_PATH

    # Context budget (estimated tokens per section)
    core_identity_tokens: int = 500
    recent_anchors_tokens: int = 500
    triggered_memories_tokens: int = 1500
    recent_anchors_limit: int = 5

    # Sessions and compaction
    session_timeout_minutes: int = 30
    emotional_threshold: int = 7
    decay_half_life_days: float = 30.0
    compact_max_age_hours: int = 24
    auto_end_on_goodbye: bool = True

    log_level: str = "info"

    # Semantic search stays off unless a provider and credential are configured.
    semantic_search_enabled: bool = False
    semantic_search_provider: str = "none"
    semantic_search_api_key: str | None = None
    semantic_search_model: str | None = None
    semantic_top_k: int = 20
    semantic_min_similarity: float = 0.5
    embedding_timeout_s: float = 10.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def resolved_memory_path(self) -> Path:
        return Path(self.memory_path).expanduser()


def get_default_config() -> MemoryBuddyConfig:
    return MemoryBuddyConfig()


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in {"1", "true", "yes", "on"}:
        return True
    if value.lower() in {"0", "false", "off", "no"}:
        return False
    return default


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    bounds = INT_RANGES.get(key)
    if bounds is None:
        return parsed
    low, high = bounds
    if parsed < low or parsed > high:
        warnings.warn(
            f"{key}={parsed} outside [{low}, {high}], clamping", RuntimeWarning, stacklevel=2
        )
        return max(low, min(high, parsed))
    return parsed


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    if isinstance(value, bool):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    bounds = FLOAT_RANGES.get(key)
    if bounds is None:
        return parsed
    low, high = bounds
    if parsed < low or parsed > high:
        warnings.warn(
            f"{key}={parsed} outside [{low}, {high}], clamping", RuntimeWarning, stacklevel=2
        )
        return max(low, min(high, parsed))
    return parsed


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def _coerce_choice(value: object, default: str, choices: set[str], *, key: str) -> str:
    if value is None:
        return default
    if isinstance(value, str) and value.strip().lower() in choices:
        return value.strip().lower()
    warnings.warn(f"Invalid value for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> MemoryBuddyConfig:
    cfg = MemoryBuddyConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text() or "{}")
        except json.JSONDecodeError:
            warnings.warn(f"Invalid config file {config_path}, using defaults", RuntimeWarning)
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: MemoryBuddyConfig, data: dict[str, Any]) -> MemoryBuddyConfig:
    for key, value in data.items():
        if key == "semanticSearch" and isinstance(value, dict):
            # Nested block written by older releases.
            nested = {
                "semantic_search_enabled": value.get("enabled"),
                "semantic_search_provider": value.get("provider"),
                "semantic_search_api_key": value.get("apiKey"),
            }
            cfg = _apply_dict(cfg, {k: v for k, v in nested.items() if v is not None})
            continue
        if not hasattr(cfg, key):
            continue
        if key in INT_RANGES:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in FLOAT_RANGES:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key in BOOL_KEYS:
            setattr(cfg, key, _coerce_bool(value, getattr(cfg, key), key=key))
            continue
        if key == "semantic_search_provider":
            cfg.semantic_search_provider = _coerce_choice(
                value, cfg.semantic_search_provider, SEMANTIC_PROVIDERS, key=key
            )
            continue
        if key == "log_level":
            cfg.log_level = _coerce_choice(value, cfg.log_level, LOG_LEVELS, key=key)
            continue
        setattr(cfg, key, value)
    return cfg
