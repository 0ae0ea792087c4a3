"""
Document agent: bounded tool-calling loop.

Each iteration waits the pacing delay, streams one model turn (forwarding
every fragment), parses it as a Directive, runs the named tool, feeds the
result back into the context and either finishes (status "done") or goes
round again. Parse, lookup, tool and transport failures end the run with a
single error event; running out of steps ends it with a warning.

State: INITIALIZING → ITERATING → SUMMARIZING → DISPATCHING → ITERATING | DONE
| FAILED | EXHAUSTED. Events come out in exactly that causal order.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from app.agent.context import ConversationContext, tool_result_content
from app.agent.directive import parse_directive, strip_code_fence
from app.agent.llm import LLMGateway
from app.agent.prompts import build_system_prompt
from app.agent.registry import ToolRegistry
from app.core.config import MAX_AGENT_STEPS, STEP_DELAY_SECONDS
from app.core.errors import DirectiveParseError, ToolExecutionError, UnknownFunctionError
from app.schemas.events import (
    CompletionEvent,
    ErrorEvent,
    FunctionResultEvent,
    FunctionStartEvent,
    LLMFragmentEvent,
    ProgressEvent,
    StatusEvent,
    WarningEvent,
)

logger = logging.getLogger(__name__)


class DocumentAgent:
    def __init__(
        self,
        gateway: LLMGateway,
        registry: ToolRegistry,
        max_steps: int = MAX_AGENT_STEPS,
        step_delay: float = STEP_DELAY_SECONDS,
        system_prompt: str | None = None,
    ) -> None:
        self._gateway = gateway
        self._registry = registry
        self._max_steps = max_steps
        self._step_delay = step_delay
        self._system_prompt = system_prompt or build_system_prompt(registry)

    async def run(self, query: str) -> AsyncIterator[ProgressEvent]:
        """Run to DONE, FAILED or EXHAUSTED, yielding progress events. Never raises Exception."""
        context = ConversationContext(self._system_prompt, query)
        logger.info("[document_agent:run] START query=%r max_steps=%d", query, self._max_steps)
        yield StatusEvent(step=0, message="Document agent started")

        step = 0
        while step < self._max_steps:
            await asyncio.sleep(self._step_delay)
            step += 1
            logger.info("[document_agent:run] step=%d calling LLM context_len=%d", step, len(context))

            parts: list[str] = []
            try:
                async with self._gateway.stream(context.to_llm_messages()) as channel:
                    async for fragment in channel:
                        parts.append(fragment)
                        yield LLMFragmentEvent(step=step, content=fragment)
            except Exception as e:
                logger.exception("[document_agent:run] step=%d LLM call failed", step)
                yield ErrorEvent(step=step, message=f"LLM call failed: {e}", transcript=context.snapshot())
                return
            raw = "".join(parts)
            logger.info("[document_agent:run] step=%d turn complete len=%d", step, len(raw))

            try:
                directive = parse_directive(raw)
                spec = self._registry.require(directive.function)
            except DirectiveParseError as e:
                logger.warning("[document_agent:run] step=%d %s raw=%r", step, e, raw[:200])
                yield ErrorEvent(step=step, message=str(e), transcript=context.snapshot())
                return
            except UnknownFunctionError as e:
                logger.warning("[document_agent:run] step=%d %s", step, e)
                yield ErrorEvent(step=step, message=str(e), function=e.function, transcript=context.snapshot())
                return

            yield FunctionStartEvent(step=step, function=directive.function, args=directive.args)
            try:
                result = await self._registry.call(directive.function, directive.args)
            except ToolExecutionError as e:
                yield ErrorEvent(step=step, message=str(e), function=e.function, transcript=context.snapshot())
                return
            yield FunctionResultEvent(step=step, function=directive.function, result=result)

            # What was parsed goes into the transcript, without the fence.
            context.add_assistant(strip_code_fence(raw))
            context.add_user(tool_result_content(result))
            nudge = spec.follow_up(result) if spec.follow_up else None
            if nudge:
                logger.info("[document_agent:run] step=%d follow-up for %s: %r", step, spec.name, nudge)
                context.add_user(nudge)

            if directive.status == "done":
                logger.info("[document_agent:run] END done step=%d", step)
                yield CompletionEvent(
                    step=step,
                    message="Workflow complete",
                    response=tool_result_content(result),
                    transcript=context.snapshot(),
                )
                return
            if directive.status == "retry":
                logger.info("[document_agent:run] step=%d model asked to retry; continuing", step)
            yield StatusEvent(step=step, message=f"{directive.function} finished; continuing")

        logger.warning("[document_agent:run] END exhausted after %d steps", step)
        yield WarningEvent(
            step=step,
            message=f"Stopped after reaching the limit of {self._max_steps} steps",
            transcript=context.snapshot(),
        )
