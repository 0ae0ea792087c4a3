"""
Shared fakes: scripted LLM gateway, embedder and in-memory vector store.

Nothing here talks to the network, so the agent runs deterministically.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from app.agent.llm import FragmentChannel, LLMGateway
from app.agent.registry import ToolParam, ToolRegistry, ToolSpec
from app.core.config import Settings


class ScriptedGateway(LLMGateway):
    """
    Replays canned turns in order (the last one repeats once the script runs out).
    A turn that is an Exception is raised instead. Streamed turns are cut into
    fragments of fragment_size characters, so they always join back to complete().
    """

    def __init__(self, turns: list[Any], fragment_size: int = 7) -> None:
        self.turns = list(turns)
        self.fragment_size = fragment_size
        self.calls = 0
        self.seen: list[list[dict[str, str]]] = []

    def _next_turn(self, messages: list[dict[str, str]]) -> str:
        self.seen.append([dict(m) for m in messages])
        turn = self.turns[min(self.calls, len(self.turns) - 1)]
        self.calls += 1
        if isinstance(turn, Exception):
            raise turn
        return turn

    async def complete(self, messages: list[dict[str, str]]) -> str:
        return self._next_turn(messages)

    async def _produce(self, messages: list[dict[str, str]], channel: FragmentChannel) -> None:
        text = self._next_turn(messages)
        for i in range(0, len(text), self.fragment_size):
            await channel.send(text[i : i + self.fragment_size])


class FakeEmbedder:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [[float(len(t)), 1.0] for t in texts]


class InMemoryVectorStore:
    """Search returns rows in insertion order; good enough to drive the tools."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []

    async def insert(self, rows: list[dict[str, Any]]) -> int:
        self.rows.extend(rows)
        return len(rows)

    async def search(self, vector: list[float], top_k: int) -> list[dict[str, Any]]:
        return [
            {"id": i, "text": r["text"], "source": r.get("source", ""), "distance": 0.0}
            for i, r in enumerate(self.rows[:top_k])
        ]

    async def all_texts(self, limit: int = 16_384) -> list[str]:
        return [r["text"] for r in self.rows[:limit]]

    async def clear(self) -> None:
        self.rows.clear()


def directive(function: str, args: dict[str, Any] | None = None, status: str = "continue") -> str:
    return json.dumps({"function": function, "args": args or {}, "status": status})


async def collect(events) -> list[Any]:
    return [event async for event in events]


def echo_registry(calls: list[tuple[str, tuple]] | None = None) -> ToolRegistry:
    """Registry with 'noop', 'echo(text)', 'finalResponse(answer)' and a failing 'explode'."""
    calls = calls if calls is not None else []

    async def noop():
        calls.append(("noop", ()))
        return {"ok": True}

    async def echo(text):
        calls.append(("echo", (text,)))
        return {"context": f"echo: {text}"}

    async def final_response(answer):
        calls.append(("finalResponse", (answer,)))
        return {"context": answer}

    async def explode():
        calls.append(("explode", ()))
        raise RuntimeError("boom")

    registry = ToolRegistry()
    registry.register(ToolSpec("noop", "does nothing", noop))
    registry.register(ToolSpec("echo", "echo text", echo, (ToolParam("text"),)))
    registry.register(ToolSpec("finalResponse", "final answer", final_response, (ToolParam("answer"),)))
    registry.register(ToolSpec("explode", "always fails", explode))
    return registry


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(step_delay_seconds=0.0, documents_dir=str(tmp_path / "documents"))
