"""
Conversation context for one agent run: system directive, user query, then
alternating assistant turns and tool-result messages. Append-only.
"""

import json
from typing import Any

from app.schemas.chat import Message, Role


class ConversationContext:
    """Ordered transcript owned by a single run. Never reordered or truncated."""

    def __init__(self, system_prompt: str, query: str) -> None:
        self._messages: list[Message] = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=query),
        ]

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content)
        self._messages.append(message)
        return message

    def add_assistant(self, content: str) -> Message:
        return self.append("assistant", content)

    def add_user(self, content: str) -> Message:
        return self.append("user", content)

    def snapshot(self) -> list[Message]:
        """Copy of the transcript; Message objects are frozen so sharing them is safe."""
        return list(self._messages)

    def to_llm_messages(self) -> list[dict[str, str]]:
        """Chat-completions payload. Tool-result entries are sent as user messages."""
        return [
            {"role": "user" if m.role == "tool" else m.role, "content": m.content}
            for m in self._messages
        ]


def tool_result_content(result: Any) -> str:
    """Text fed back to the model for a tool result: its ``context`` when set, else JSON."""
    if isinstance(result, dict):
        context = result.get("context")
        if context:
            return str(context)
    return json.dumps(result, default=str)
