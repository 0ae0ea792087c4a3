"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response

from app.api.handlers import handle_chat, handle_chat_with_files
from app.core import chat_store
from app.schemas.chat import ChatRequest, ChatResponse
from app.services.agent_service import AgentService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_agent_service(request: Request) -> AgentService:
    return request.app.state.agent_service


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Chat backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


@router.get("/tools", tags=["system"], summary="List the document agent's tools")
def list_tools(service: AgentService = Depends(get_agent_service)) -> dict:
    return {"tools": service.registry.manifest()}


# --- Chat ---

@router.post(
    "/chat",
    response_model=ChatResponse,
    tags=["chat"],
    summary="Chat (direct completion or document agent)",
    description=(
        "stream=false: one JSON envelope (500 with the envelope when the run fails). "
        "stream=true: Server-Sent Events status, llm_fragment, function_start, function_result, "
        "completion, error, warning, then summary."
    ),
)
async def post_chat(body: ChatRequest, service: AgentService = Depends(get_agent_service)) -> Response:
    return await handle_chat(service, body)


@router.post(
    "/chat/files",
    response_model=ChatResponse,
    tags=["chat"],
    summary="Chat with attached documents",
    description="Multipart form: query, stream, mode, chat_id and .pdf/.txt files. Files are deleted when the request is over.",
)
async def post_chat_with_files(
    query: str = Form(..., description="User message."),
    stream: bool = Form(False),
    mode: str = Form("auto"),
    chat_id: str | None = Form(None),
    files: list[UploadFile] = File(default=[], description="One or more .pdf or .txt files."),
    service: AgentService = Depends(get_agent_service),
) -> Response:
    return await handle_chat_with_files(service, query, stream, mode, chat_id, files)


# --- Chat history ---

@router.get("/chats", tags=["history"], summary="List stored chats")
def get_chats() -> dict:
    return {"success": True, "message": "Chat history", "data": chat_store.list_chats()}


@router.get("/chats/{chat_id}", tags=["history"], summary="Get one chat")
def get_chat(chat_id: str) -> dict:
    chat = chat_store.get_chat(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail=f"Chat {chat_id} not found")
    return {"success": True, "data": chat}


@router.delete("/chats/{chat_id}", tags=["history"], summary="Delete one chat")
def delete_chat(chat_id: str) -> dict:
    if not chat_store.delete_chat(chat_id):
        raise HTTPException(status_code=404, detail=f"Chat {chat_id} not found")
    return {"success": True, "message": f"Chat {chat_id} deleted successfully"}
