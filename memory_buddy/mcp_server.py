from __future__ import annotations

import atexit
import json
import threading
from typing import Any, Dict, Optional

try:
    from mcp.server.fastmcp import FastMCP
except Exception as exc:  # pragma: no cover
    raise SystemExit(
        "mcp package is required for the MCP server. Install with `pip install -e .`"
    ) from exc

from .config import load_config
from .store import MemoryStore
from .store.types import Event
from .triggers.keywords import extract_keywords


def build_store() -> MemoryStore:
    return MemoryStore(config=load_config())


def _event_item(store: MemoryStore, event: Event) -> Dict[str, Any]:
    item = event.to_dict()
    item["score"] = round(store.index.calculate_effective_score(event.id), 3)
    return item


def build_server(store: MemoryStore | None = None) -> FastMCP:
    mcp = FastMCP("memory-buddy")
    # The memory directory is plain files, so every tool call shares one store.
    state: Dict[str, MemoryStore] = {}
    store_lock = threading.Lock()
    if store is not None:
        state["store"] = store

    def with_store(handler):
        with store_lock:
            if "store" not in state:
                state["store"] = build_store()
            return handler(state["store"])

    def close_store() -> None:
        with store_lock:
            active = state.pop("store", None)
        if active is not None:
            active.close()

    atexit.register(close_store)

    @mcp.tool()
    def memory_status() -> Dict[str, Any]:
        return with_store(lambda s: s.status())

    @mcp.tool()
    def memory_search(query: str, limit: int = 10) -> Dict[str, Any]:
        def handler(s: MemoryStore) -> Dict[str, Any]:
            ids = s.search(extract_keywords(query) or query.split())
            return {"items": [_event_item(s, event) for event in s.get_events(ids[:limit])]}

        return with_store(handler)

    @mcp.tool()
    def memory_store(
        content: str, kind: str = "user", session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        def handler(s: MemoryStore) -> Dict[str, Any]:
            target = session_id or s.current_session()
            event = s.remember(target, kind, content)
            if event is None:
                return {"stored": False, "sessionId": target}
            return {
                "stored": True,
                "sessionId": target,
                "event": event.to_dict(),
                "sessionEnded": s.is_session_closed(target),
            }

        return with_store(handler)

    @mcp.tool()
    def memory_context(message: str, session_id: Optional[str] = None) -> Dict[str, Any]:
        def handler(s: MemoryStore) -> Dict[str, Any]:
            target = session_id or s.current_session()
            return {"sessionId": target, "context": s.retrieve_context(target, message)}

        return with_store(handler)

    @mcp.tool()
    def memory_compact(max_age_hours: Optional[float] = None) -> Dict[str, Any]:
        return with_store(lambda s: {"compacted": s.compact_old_sessions(max_age_hours)})

    @mcp.tool()
    def memory_end_session(
        session_id: Optional[str] = None, tone: Optional[str] = None
    ) -> Dict[str, Any]:
        def handler(s: MemoryStore) -> Dict[str, Any]:
            anchor = s.end_session(session_id, tone)
            if anchor is None:
                return {"ended": False}
            return {"ended": True, "sessionId": anchor.session_id, "anchor": anchor.to_dict()}

        return with_store(handler)

    @mcp.resource("memory://context")
    def context_resource() -> str:
        return with_store(lambda s: s.retrieve_context(None, ""))

    @mcp.resource("memory://status")
    def status_resource() -> str:
        return with_store(lambda s: json.dumps(s.status(), indent=2))

    @mcp.tool()
    def memory_learn() -> Dict[str, Any]:
        return {
            "intro": "memory-buddy keeps a long-term, append-only memory of conversations.",
            "recall": {
                "when": [
                    "Before answering a message that may relate to earlier conversations.",
                    "At the start of a conversation, to load recent session summaries.",
                ],
                "how": [
                    "Call memory_context with the user's message and inject the result.",
                    "Use memory_search for explicit keyword lookups.",
                ],
            },
            "persistence": {
                "how": [
                    "Call memory_store for each user and assistant message.",
                    "Use kind=insight for facts you learned about the user.",
                    "Short acknowledgements are skipped automatically.",
                ],
            },
            "sessions": {
                "how": [
                    "Sessions start automatically and close after inactivity or a goodbye.",
                    "Call memory_end_session to close one explicitly.",
                    "Call memory_compact periodically to archive old sessions.",
                ],
            },
        }

    return mcp


def run() -> None:
    server = build_server()
    server.run()


if __name__ == "__main__":
    run()
