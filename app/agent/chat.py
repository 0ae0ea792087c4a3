"""
Direct chat: one streamed completion, no tools. Emits the same progress
events as the document agent so both routes share the response emitter.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

from app.agent.llm import LLMGateway
from app.schemas.chat import Message
from app.schemas.events import CompletionEvent, ErrorEvent, LLMFragmentEvent, ProgressEvent, StatusEvent

logger = logging.getLogger(__name__)


async def run_direct_chat(
    gateway: LLMGateway,
    query: str,
    system_prompt: str,
    history: list[dict[str, Any]] | None = None,
) -> AsyncIterator[ProgressEvent]:
    """Prior history goes between the system prompt and the query; only user/assistant turns are kept."""
    messages = [{"role": "system", "content": system_prompt}]
    for m in history or []:
        role = (m.get("role") or "").strip().lower()
        content = (m.get("content") or "").strip()
        if role in ("user", "assistant") and content:
            messages.append({"role": role, "content": content})
    messages.append({"role": "user", "content": query})
    logger.info("[chat:run_direct_chat] START query=%r history_len=%d", query, len(messages) - 2)
    yield StatusEvent(step=0, message="Chat started")

    transcript = [Message(role=m["role"], content=m["content"]) for m in messages]
    parts: list[str] = []
    try:
        async with gateway.stream(messages) as channel:
            async for fragment in channel:
                parts.append(fragment)
                yield LLMFragmentEvent(step=1, content=fragment)
    except Exception as e:
        logger.exception("[chat:run_direct_chat] LLM call failed")
        yield ErrorEvent(step=1, message=f"LLM call failed: {e}", transcript=transcript)
        return

    answer = "".join(parts)
    transcript.append(Message(role="assistant", content=answer))
    logger.info("[chat:run_direct_chat] END answer_len=%d", len(answer))
    yield CompletionEvent(step=1, message="Chat complete", response=answer, transcript=transcript)
