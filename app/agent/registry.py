"""
Tool registry: fixed mapping from tool name to an async callable with a
declared parameter list.

Argument binding is a declared contract: directive args whose key matches a
parameter name bind by name; leftover values fill the remaining parameters
positionally, in the order the model wrote them; defaults fill the rest.
No validation beyond that: shape mismatches surface as the tool's own error.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from app.core.errors import ToolExecutionError, UnknownFunctionError

logger = logging.getLogger(__name__)

REQUIRED: Any = object()

ToolFunc = Callable[..., Awaitable[Any]]
FollowUp = Callable[[Any], str | None]


@dataclass(frozen=True)
class ToolParam:
    name: str
    default: Any = REQUIRED
    description: str = ""

    @property
    def required(self) -> bool:
        return self.default is REQUIRED


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    func: ToolFunc
    params: tuple[ToolParam, ...] = ()
    # Returns an extra user message to append after a successful call, or None.
    follow_up: FollowUp | None = None

    def bind(self, args: dict[str, Any] | None) -> list[Any]:
        """Map directive args onto the declared parameters; returns positional values."""
        args = dict(args or {})
        declared = [p.name for p in self.params]
        bound: dict[str, Any] = {k: args.pop(k) for k in declared if k in args}
        leftovers = list(args.values())
        for param in self.params:
            if param.name in bound:
                continue
            if leftovers:
                bound[param.name] = leftovers.pop(0)
            elif not param.required:
                bound[param.name] = param.default
            else:
                raise TypeError(f"{self.name}() missing required argument: '{param.name}'")
        if leftovers:
            raise TypeError(
                f"{self.name}() takes {len(self.params)} arguments but {len(self.params) + len(leftovers)} were given"
            )
        return [bound[name] for name in declared]

    def signature(self) -> str:
        parts = []
        for p in self.params:
            parts.append(p.name if p.required else f"{p.name}={p.default!r}")
        return f"{self.name}({', '.join(parts)})"


@dataclass
class ToolRegistry:
    tools: dict[str, ToolSpec] = field(default_factory=dict)

    def register(self, spec: ToolSpec) -> None:
        self.tools[spec.name] = spec

    def get(self, name: str) -> ToolSpec | None:
        return self.tools.get(name)

    def require(self, name: str) -> ToolSpec:
        spec = self.tools.get(name)
        if spec is None:
            raise UnknownFunctionError(name)
        return spec

    def names(self) -> list[str]:
        return list(self.tools)

    async def call(self, name: str, args: dict[str, Any] | None) -> Any:
        """Run a tool. Any failure, including argument binding, is raised as ToolExecutionError."""
        spec = self.require(name)
        try:
            values = spec.bind(args)
            logger.info("[registry:call] IN  name=%s args=%r", name, values)
            result = await spec.func(*values)
        except Exception as e:
            logger.warning("[registry:call] %s raised %s: %s", name, type(e).__name__, e)
            raise ToolExecutionError(name, e) from e
        logger.info("[registry:call] OUT name=%s result_type=%s", name, type(result).__name__)
        return result

    def describe(self) -> str:
        """Tool list for the system prompt."""
        return "\n".join(f"- {s.signature()}: {s.description}" for s in self.tools.values())

    def manifest(self) -> list[dict[str, Any]]:
        """Discovery listing, served by GET /tools."""
        return [
            {
                "name": s.name,
                "description": s.description,
                "params": [
                    {"name": p.name, "required": p.required, "description": p.description}
                    for p in s.params
                ],
            }
            for s in self.tools.values()
        ]
