"""
Directive: the JSON object the model must emit every turn.

    {"function": "<tool name>", "args": {...}, "status": "continue" | "retry" | "done"}

A single code-fence wrapper (```json ... ```) is tolerated and stripped.
Anything else (prose, extra keys, wrong types) is a parse failure.
"""

import json
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.errors import DirectiveParseError

_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")


class Directive(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    function: str = Field(..., min_length=1)
    args: dict[str, Any] = Field(default_factory=dict)
    status: Literal["continue", "retry", "done"]


def strip_code_fence(raw: str) -> str:
    """Remove one leading/trailing fence pair and surrounding whitespace, if the turn starts with a fence."""
    text = raw.strip()
    if not text.startswith("```"):
        return text
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text.rstrip(), count=1)
    return text.strip()


def parse_directive(raw: str) -> Directive:
    """Parse a full model turn into a Directive or raise DirectiveParseError."""
    text = strip_code_fence(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DirectiveParseError(f"Invalid JSON from LLM: {e.msg}", raw=raw) from e
    if not isinstance(data, dict):
        raise DirectiveParseError("Directive must be a JSON object", raw=raw)
    try:
        return Directive.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "directive" for err in e.errors())
        raise DirectiveParseError(f"Directive does not match schema ({fields})", raw=raw) from e
