"""
Tests for the response emitter: buffered and streamed modes agree, and
uploaded artifacts are released exactly once on every terminal path.
"""

import json

import pytest

from app.agent.document_agent import DocumentAgent
from app.api.emitter import ResponseAggregator, ResponseEmitter
from app.schemas.chat import ChatResponse, FileInfo
from app.schemas.events import StatusEvent, progress_event_adapter
from app.services.ingestion_service import UploadedArtifacts
from conftest import ScriptedGateway, directive, echo_registry

SCRIPTS = {
    "done": [directive("echo", {"text": "a"}), directive("finalResponse", {"answer": "All good."}, "done")],
    "failed": [directive("echo", {"text": "a"}), "not json"],
    "exhausted": [directive("noop")],
}


class CountingArtifacts(UploadedArtifacts):
    def __init__(self, files=None) -> None:
        super().__init__(files=list(files or []))
        self.release_calls = 0

    def release(self) -> int:
        self.release_calls += 1
        return super().release()


def agent_events(script, max_steps=4):
    agent = DocumentAgent(ScriptedGateway(script), echo_registry(), max_steps=max_steps, step_delay=0)
    return agent.run("what are the pdfs about")


def parse_frames(body: str) -> list[tuple[str, dict]]:
    frames = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        frames.append((lines["event"], json.loads(lines["data"])))
    return frames


async def stream_body(emitter: ResponseEmitter, events) -> str:
    return "".join([frame async for frame in emitter.stream(events)])


@pytest.mark.asyncio
@pytest.mark.parametrize("outcome", ["done", "failed", "exhausted"])
async def test_streamed_frames_rebuild_the_buffered_result(outcome: str) -> None:
    buffered = await ResponseEmitter(chat_id="c1").collect(agent_events(SCRIPTS[outcome]))
    body = await stream_body(ResponseEmitter(chat_id="c1"), agent_events(SCRIPTS[outcome]))

    frames = parse_frames(body)
    aggregator = ResponseAggregator(chat_id="c1")
    for name, data in frames:
        if name == "summary":
            continue
        assert data["type"] == name
        aggregator.feed(progress_event_adapter.validate_python(data))

    assert aggregator.result() == buffered
    if outcome == "failed":
        assert frames[-1][0] == "error"
        assert buffered.success is False
    else:
        assert frames[-1][0] == "summary"
        assert ChatResponse.model_validate(frames[-1][1]) == buffered
        assert buffered.success is True


@pytest.mark.asyncio
async def test_buffered_result_for_completed_run() -> None:
    response = await ResponseEmitter(chat_id="c1").collect(agent_events(SCRIPTS["done"]))

    assert response.success is True
    assert response.message == "Workflow complete"
    assert response.response == "All good."
    assert response.error is None
    assert response.transcript[0].role == "system"


@pytest.mark.asyncio
async def test_buffered_result_for_failed_run_keeps_partial_turn() -> None:
    response = await ResponseEmitter().collect(agent_events(SCRIPTS["failed"]))

    assert response.success is False
    assert "Invalid JSON" in response.error
    assert response.response == "not json"
    assert len(response.transcript) == 4


@pytest.mark.asyncio
async def test_exhausted_run_returns_last_partial_turn() -> None:
    response = await ResponseEmitter().collect(agent_events(SCRIPTS["exhausted"], max_steps=2))

    assert response.success is True
    assert "limit of 2 steps" in response.message
    assert response.response == directive("noop")


@pytest.mark.asyncio
@pytest.mark.parametrize("outcome", ["done", "failed", "exhausted"])
@pytest.mark.parametrize("mode", ["buffered", "stream"])
async def test_artifacts_released_exactly_once(outcome: str, mode: str, tmp_path) -> None:
    upload = tmp_path / "report.pdf"
    upload.write_bytes(b"%PDF-1.4")
    artifacts = CountingArtifacts([FileInfo(filename="report.pdf", path=str(upload))])
    emitter = ResponseEmitter(artifacts)

    if mode == "buffered":
        response = await emitter.collect(agent_events(SCRIPTS[outcome]))
        assert response.files[0].filename == "report.pdf"
    else:
        await stream_body(emitter, agent_events(SCRIPTS[outcome]))

    assert artifacts.release_calls == 1
    assert not upload.exists()


@pytest.mark.asyncio
async def test_client_disconnect_releases_and_abandons_the_run() -> None:
    calls = []
    gateway = ScriptedGateway([directive("echo", {"text": "a"})])
    agent = DocumentAgent(gateway, echo_registry(calls), step_delay=0)
    artifacts = CountingArtifacts()
    frames = ResponseEmitter(artifacts).stream(agent.run("q"))

    first = await frames.__anext__()
    assert first.startswith("event: status")
    await frames.aclose()

    assert artifacts.release_calls == 1
    assert calls == []
    assert gateway.calls <= 1


@pytest.mark.asyncio
async def test_exception_from_event_source_becomes_error_event() -> None:
    async def broken():
        yield StatusEvent(step=0, message="started")
        raise RuntimeError("vector store went away")

    artifacts = CountingArtifacts()
    body = await stream_body(ResponseEmitter(artifacts), broken())
    response = await ResponseEmitter().collect(broken())

    frames = parse_frames(body)
    assert [name for name, _ in frames] == ["status", "error"]
    assert frames[-1][1]["message"] == "vector store went away"
    assert response.success is False
    assert response.error == "vector store went away"
    assert artifacts.release_calls == 1


@pytest.mark.asyncio
async def test_source_without_terminal_event_is_reported_as_failure() -> None:
    async def truncated():
        yield StatusEvent(step=0, message="started")

    response = await ResponseEmitter().collect(truncated())

    assert response.success is False
    assert response.error == "Run ended without a result"


@pytest.mark.asyncio
async def test_on_finish_called_once_with_envelope() -> None:
    seen: list[ChatResponse] = []
    emitter = ResponseEmitter(chat_id="c9", on_finish=seen.append)

    await stream_body(emitter, agent_events(SCRIPTS["done"]))

    assert len(seen) == 1
    assert seen[0].chat_id == "c9"
    assert seen[0].response == "All good."


@pytest.mark.asyncio
async def test_failing_on_finish_hook_does_not_break_response() -> None:
    def hook(_: ChatResponse) -> None:
        raise OSError("disk full")

    response = await ResponseEmitter(on_finish=hook).collect(agent_events(SCRIPTS["done"]))

    assert response.success is True
