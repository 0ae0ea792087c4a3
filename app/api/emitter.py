"""
Response emitter: adapt a progress-event stream to the caller.

- collect(): buffered mode, one aggregated ChatResponse.
- stream(): Server-Sent Events, one frame per event in emission order, then a
  "summary" frame with the aggregated envelope when the run completed or ran
  out of steps. A failed run ends with its error frame.

Both adapters stop at the first terminal event, turn any exception from the
event source into a terminal error event, run the on_finish hook once and
release uploaded artifacts exactly once, on every path (client disconnect
included).
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing

from app.schemas.chat import ChatResponse, FileInfo
from app.schemas.events import (
    CompletionEvent,
    ErrorEvent,
    LLMFragmentEvent,
    ProgressEvent,
    WarningEvent,
    is_terminal,
)
from app.services.ingestion_service import UploadedArtifacts

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
SUMMARY_EVENT = "summary"


def format_sse(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


class ResponseAggregator:
    """
    Folds events into the aggregated envelope. Fragments are kept per step, so a
    run that ends without completing reports its last (partial) model turn.
    """

    def __init__(self, chat_id: str | None = None, files: list[FileInfo] | None = None) -> None:
        self._chat_id = chat_id
        self._files = list(files or [])
        self._fragment_step: int | None = None
        self._fragments: list[str] = []
        self.terminal: ProgressEvent | None = None

    def feed(self, event: ProgressEvent) -> None:
        if isinstance(event, LLMFragmentEvent):
            if event.step != self._fragment_step:
                self._fragment_step = event.step
                self._fragments = []
            self._fragments.append(event.content)
        elif is_terminal(event):
            self.terminal = event

    @property
    def partial_response(self) -> str:
        return "".join(self._fragments)

    def result(self) -> ChatResponse:
        event = self.terminal
        common = {"chat_id": self._chat_id, "files": self._files}
        if isinstance(event, CompletionEvent):
            return ChatResponse(
                success=True, message=event.message, response=event.response,
                transcript=event.transcript, **common,
            )
        if isinstance(event, WarningEvent):
            return ChatResponse(
                success=True, message=event.message, response=self.partial_response,
                transcript=event.transcript, **common,
            )
        if isinstance(event, ErrorEvent):
            return ChatResponse(
                success=False, message="Failed to process chat", response=self.partial_response,
                transcript=event.transcript, error=event.message, **common,
            )
        return ChatResponse(
            success=False, message="Failed to process chat", response=self.partial_response,
            error="Run ended without a result", **common,
        )


class ResponseEmitter:
    def __init__(
        self,
        artifacts: UploadedArtifacts | None = None,
        chat_id: str | None = None,
        on_finish: Callable[[ChatResponse], None] | None = None,
    ) -> None:
        self._artifacts = artifacts or UploadedArtifacts()
        self._chat_id = chat_id
        self._on_finish = on_finish

    def _aggregator(self) -> ResponseAggregator:
        return ResponseAggregator(chat_id=self._chat_id, files=self._artifacts.files)

    async def _events(self, source: AsyncIterator[ProgressEvent]) -> AsyncIterator[ProgressEvent]:
        """Source events up to and including the first terminal one; always ends on a terminal event."""
        step = 0
        async with aclosing(source) as events:
            try:
                async for event in events:
                    step = event.step
                    yield event
                    if is_terminal(event):
                        return
            except Exception as e:
                logger.exception("[emitter] event source failed")
                yield ErrorEvent(step=step, message=str(e) or type(e).__name__)
                return
        logger.warning("[emitter] event source ended without a terminal event")
        yield ErrorEvent(step=step, message="Run ended without a result")

    def _finish(self, response: ChatResponse) -> None:
        if self._on_finish is None:
            return
        try:
            self._on_finish(response)
        except Exception as e:
            logger.warning("[emitter] on_finish hook failed: %s", e)

    def release(self) -> None:
        self._artifacts.release()

    async def collect(self, source: AsyncIterator[ProgressEvent]) -> ChatResponse:
        """Buffered adapter: drain the run and return one envelope."""
        aggregator = self._aggregator()
        try:
            async with aclosing(self._events(source)) as events:
                async for event in events:
                    aggregator.feed(event)
            response = aggregator.result()
            self._finish(response)
            logger.info("[emitter:collect] OUT success=%s response_len=%d", response.success, len(response.response))
            return response
        finally:
            self.release()

    async def stream(self, source: AsyncIterator[ProgressEvent]) -> AsyncIterator[str]:
        """Streaming adapter: SSE frames, forwarded as they are produced."""
        aggregator = self._aggregator()
        try:
            async with aclosing(self._events(source)) as events:
                async for event in events:
                    aggregator.feed(event)
                    yield format_sse(event.type, event.model_dump_json())
            response = aggregator.result()
            self._finish(response)
            if not isinstance(aggregator.terminal, ErrorEvent):
                yield format_sse(SUMMARY_EVENT, response.model_dump_json(exclude_none=True))
            logger.info("[emitter:stream] OUT success=%s", response.success)
        finally:
            self.release()
