"""
API handlers: read request data (e.g. UploadFile), call services, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Saves attached files, picks the
route through AgentService and hands the event stream to the response emitter.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import logging
import uuid

from fastapi import HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from app.api.emitter import SSE_HEADERS, SSE_MEDIA_TYPE, ResponseEmitter
from app.core import chat_store
from app.schemas.chat import ChatRequest, ChatResponse
from app.services.agent_service import AgentService
from app.services.ingestion_service import InvalidFileTypeError, save_uploaded_files

logger = logging.getLogger(__name__)


def _persist_exchange(chat_id: str, query: str):
    def hook(response: ChatResponse) -> None:
        if not response.success:
            return
        chat_store.append_exchange(
            chat_id, query, response.response, [f.model_dump() for f in response.files]
        )

    return hook


async def handle_chat(
    service: AgentService,
    body: ChatRequest,
    uploads: list[tuple[str, bytes]] | None = None,
) -> Response:
    """
    Run one chat request in buffered or streaming mode.
    Uploaded files are released once the run is over, whatever the outcome.
    """
    chat_id = body.chat_id or uuid.uuid4().hex
    logger.info(
        "[api:handle_chat] IN  query=%r stream=%s mode=%s chat_id=%s uploads=%d",
        body.query, body.stream, body.mode, chat_id[:16], len(uploads or []),
    )
    try:
        artifacts = save_uploaded_files(uploads or [], service.settings)
    except InvalidFileTypeError as e:
        allowed = ", ".join(sorted(service.settings.allowed_extensions))
        raise HTTPException(
            status_code=400,
            detail=f"Only {allowed} files are allowed. Rejected: {', '.join(e.invalid)}",
        ) from e
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save files: {e!s}") from e

    try:
        history = chat_store.get_history(chat_id)
        events = service.events_for(body, has_files=bool(artifacts.files), history=history)
    except Exception:
        artifacts.release()
        raise

    emitter = ResponseEmitter(artifacts, chat_id=chat_id, on_finish=_persist_exchange(chat_id, body.query))
    if body.stream:
        return StreamingResponse(
            emitter.stream(events),
            media_type=SSE_MEDIA_TYPE,
            headers=SSE_HEADERS,
        )
    response = await emitter.collect(events)
    logger.info("[api:handle_chat] OUT success=%s response_len=%d", response.success, len(response.response))
    return JSONResponse(status_code=200 if response.success else 500, content=response.model_dump(mode="json"))


async def handle_chat_with_files(
    service: AgentService,
    query: str,
    stream: bool,
    mode: str,
    chat_id: str | None,
    files: list[UploadFile],
) -> Response:
    """Multipart variant: validate the form fields into a ChatRequest, read the files, delegate."""
    try:
        body = ChatRequest(query=query, stream=stream, mode=mode, chat_id=chat_id or None)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False)) from e

    items: list[tuple[str, bytes]] = []
    for upload in files or []:
        items.append((upload.filename or "", await upload.read()))
    return await handle_chat(service, body, items)
