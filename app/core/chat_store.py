"""
In-memory chat record store. Keyed by chat_id; each record keeps the topic,
the user/assistant conversation and metadata of files attached to the chat.

Plain record store: no durability guarantees.
"""

import logging
import threading
from typing import Any

logger = logging.getLogger(__name__)

# chat_id -> {"chat_id", "chat_topic", "conversation": [...], "files": [...]}
_chats: dict[str, dict[str, Any]] = {}
_lock = threading.Lock()

TOPIC_MAX_LEN = 60


def _copy(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "chat_id": record["chat_id"],
        "chat_topic": record["chat_topic"],
        "conversation": [dict(m) for m in record["conversation"]],
        "files": [dict(f) for f in record["files"]],
    }


def get_history(chat_id: str | None) -> list[dict[str, Any]]:
    """Return the conversation of a chat (copy so caller cannot mutate store)."""
    if not chat_id or not isinstance(chat_id, str):
        return []
    with _lock:
        record = _chats.get(chat_id)
        out = [dict(m) for m in record["conversation"]] if record else []
    logger.info("[chat_store:get_history] IN  chat_id=%s OUT messages=%d", chat_id[:16], len(out))
    return out


def append_exchange(
    chat_id: str,
    user_content: str,
    assistant_content: str,
    files: list[dict[str, Any]] | None = None,
) -> None:
    """Append one user/assistant exchange; the first user message becomes the topic."""
    if not chat_id or not isinstance(chat_id, str):
        logger.info("[chat_store:append_exchange] skip invalid chat_id=%r", chat_id)
        return
    with _lock:
        record = _chats.get(chat_id)
        if record is None:
            topic = (user_content or "").strip()[:TOPIC_MAX_LEN] or "Untitled chat"
            record = {"chat_id": chat_id, "chat_topic": topic, "conversation": [], "files": []}
            _chats[chat_id] = record
        record["conversation"].append({"role": "user", "content": user_content or ""})
        record["conversation"].append({"role": "assistant", "content": assistant_content or ""})
        record["files"].extend(dict(f) for f in (files or []))
    logger.info(
        "[chat_store:append_exchange] chat_id=%s answer_len=%d files=%d",
        chat_id[:16], len(assistant_content or ""), len(files or []),
    )


def get_chat(chat_id: str) -> dict[str, Any] | None:
    with _lock:
        record = _chats.get(chat_id)
        return _copy(record) if record else None


def list_chats() -> list[dict[str, Any]]:
    """Return every chat record (copies), oldest first."""
    with _lock:
        return [_copy(r) for r in _chats.values()]


def delete_chat(chat_id: str) -> bool:
    """Remove a chat. Returns False when it did not exist."""
    with _lock:
        removed = _chats.pop(chat_id, None) is not None
    logger.info("[chat_store:delete_chat] chat_id=%s removed=%s", chat_id[:16], removed)
    return removed


def clear() -> None:
    with _lock:
        _chats.clear()
