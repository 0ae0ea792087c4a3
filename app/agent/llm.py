"""
LLM gateway: chat completions in two modes.

- complete(messages) returns the whole turn as one string.
- stream(messages) returns a FragmentChannel; a producer task pushes text
  fragments into a queue and the consumer iterates them until end-of-turn.
  The concatenated fragments equal complete() for the same messages.

No retries here: transport failures propagate to the caller.
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from app.core.config import Settings
from app.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

_END_OF_TURN = object()


class _TurnFailed:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


class FragmentChannel:
    """
    Single-consumer channel carrying one model turn.

    Use as ``async with gateway.stream(messages) as channel: async for fragment in channel``.
    Iteration ends at end-of-turn; a producer error is raised from the iteration.
    Leaving the ``async with`` block cancels a producer that is still running.
    """

    def __init__(self, producer: Callable[["FragmentChannel"], Awaitable[None]]) -> None:
        self._producer = producer
        # One slot: send() waits at every fragment boundary until the consumer takes it.
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self._task: asyncio.Task | None = None
        self._finished = False

    async def send(self, fragment: str) -> None:
        """Called by the producer for every non-empty text fragment."""
        if fragment:
            await self._queue.put(fragment)

    async def _run(self) -> None:
        try:
            await self._producer(self)
        except Exception as e:
            await self._queue.put(_TurnFailed(e))
        else:
            await self._queue.put(_END_OF_TURN)

    async def __aenter__(self) -> "FragmentChannel":
        self._task = asyncio.create_task(self._run())
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        return False

    def __aiter__(self) -> "FragmentChannel":
        return self

    async def __anext__(self) -> str:
        if self._finished:
            raise StopAsyncIteration
        if self._task is None:
            raise RuntimeError("FragmentChannel must be entered with 'async with' before iterating")
        item = await self._queue.get()
        if item is _END_OF_TURN:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _TurnFailed):
            self._finished = True
            raise item.error
        return item


class LLMGateway(ABC):
    """Base gateway. Subclasses implement complete() and _produce()."""

    @abstractmethod
    async def complete(self, messages: list[dict[str, str]]) -> str:
        ...

    def stream(self, messages: list[dict[str, str]]) -> FragmentChannel:
        return FragmentChannel(lambda channel: self._produce(messages, channel))

    @abstractmethod
    async def _produce(self, messages: list[dict[str, str]], channel: FragmentChannel) -> None:
        ...


class OpenAIChatGateway(LLMGateway):
    """
    OpenAI-compatible chat completions (OpenAI, Groq, HF router) via AsyncOpenAI.
    The client is created on first use so the app can boot without a key.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._settings.llm_api_key:
                raise ServiceUnavailableError(
                    "LLM API key is not configured. Set GROQ_API_KEY or OPENAI_API_KEY in .env"
                )
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self._settings.llm_api_key,
                base_url=self._settings.llm_base_url,
                timeout=self._settings.llm_timeout,
                max_retries=0,
            )
        return self._client

    async def complete(self, messages: list[dict[str, str]]) -> str:
        logger.info("[llm:complete] IN  messages=%d model=%s", len(messages), self._settings.llm_model)
        response = await self._get_client().chat.completions.create(
            model=self._settings.llm_model,
            messages=messages,
            max_tokens=self._settings.llm_max_tokens,
        )
        msg = response.choices[0].message if response.choices else None
        out = (getattr(msg, "content", None) or "") if msg else ""
        logger.info("[llm:complete] OUT response_len=%d", len(out))
        return out

    async def _produce(self, messages: list[dict[str, str]], channel: FragmentChannel) -> None:
        logger.info("[llm:stream] IN  messages=%d model=%s", len(messages), self._settings.llm_model)
        stream = await self._get_client().chat.completions.create(
            model=self._settings.llm_model,
            messages=messages,
            max_tokens=self._settings.llm_max_tokens,
            stream=True,
        )
        total = 0
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = getattr(chunk.choices[0].delta, "content", None) or ""
            if content:
                total += len(content)
                await channel.send(content)
        logger.info("[llm:stream] OUT streamed_len=%d", total)
