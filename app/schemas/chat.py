"""Schemas for the chat endpoints: transcript messages, request and aggregated response."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant", "tool"]


class Message(BaseModel):
    """One transcript entry. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class FileInfo(BaseModel):
    """Metadata of a file uploaded with a chat request."""

    filename: str = Field(..., description="Original filename as sent by the client.")
    path: str = Field(..., description="Stored path, e.g. data/uploads/documents/report.pdf")


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    query: str = Field(..., min_length=1, description="User message.")
    stream: bool = Field(False, description="Stream progress events (SSE) instead of one JSON object.")
    chat_id: str | None = Field(None, description="Existing chat to continue; a new id is assigned when omitted.")
    mode: Literal["auto", "chat", "document"] = Field(
        "auto",
        description="chat = direct completion, document = document agent, auto = document agent when files are attached.",
    )


class ChatResponse(BaseModel):
    """Aggregated response for a non-streamed chat (also the final SSE summary frame)."""

    success: bool
    message: str
    response: str = ""
    transcript: list[Message] = Field(default_factory=list)
    error: str | None = None
    chat_id: str | None = None
    files: list[FileInfo] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "message": "Workflow complete",
                    "response": "The documents describe the 2024 leave policy.",
                    "transcript": [
                        {"role": "system", "content": "..."},
                        {"role": "user", "content": "what are the pdfs about"},
                    ],
                    "chat_id": "5b0f6c1e",
                    "files": [],
                }
            ]
        }
    }
