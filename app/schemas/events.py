"""
Progress events emitted by the document agent and the direct chat route.

Every event carries ``type`` (the discriminator) and ``step`` (0 while
initializing, then the 1-based iteration number). Terminal events
(completion, error, warning) carry a transcript snapshot.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from app.schemas.chat import Message


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: int = 0


class StatusEvent(_Event):
    type: Literal["status"] = "status"
    message: str


class LLMFragmentEvent(_Event):
    type: Literal["llm_fragment"] = "llm_fragment"
    content: str


class FunctionStartEvent(_Event):
    type: Literal["function_start"] = "function_start"
    function: str
    args: dict[str, Any] = Field(default_factory=dict)


class FunctionResultEvent(_Event):
    type: Literal["function_result"] = "function_result"
    function: str
    result: Any = None


class CompletionEvent(_Event):
    type: Literal["completion"] = "completion"
    message: str
    response: str = ""
    transcript: list[Message] = Field(default_factory=list)


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    message: str
    function: str | None = None
    transcript: list[Message] = Field(default_factory=list)


class WarningEvent(_Event):
    type: Literal["warning"] = "warning"
    message: str
    transcript: list[Message] = Field(default_factory=list)


ProgressEvent = Annotated[
    Union[
        StatusEvent,
        LLMFragmentEvent,
        FunctionStartEvent,
        FunctionResultEvent,
        CompletionEvent,
        ErrorEvent,
        WarningEvent,
    ],
    Field(discriminator="type"),
]

TERMINAL_TYPES = frozenset({"completion", "error", "warning"})

progress_event_adapter: TypeAdapter[ProgressEvent] = TypeAdapter(ProgressEvent)


def is_terminal(event: ProgressEvent) -> bool:
    return event.type in TERMINAL_TYPES
