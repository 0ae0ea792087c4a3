"""
Agent service: wire collaborators from Settings and pick the route for a request.

Responsibility: Build the LLM gateway, embedder, vector store and tool registry
once, then hand out a progress-event stream per request, either the document
agent or a direct chat completion. Called by the API; no HTTP here.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from app.agent.chat import run_direct_chat
from app.agent.document_agent import DocumentAgent
from app.agent.llm import LLMGateway, OpenAIChatGateway
from app.agent.registry import ToolRegistry
from app.agent.tools import DocumentTools, build_registry
from app.core.config import Settings
from app.schemas.chat import ChatRequest
from app.schemas.events import ProgressEvent
from app.services.vector_store import HFEmbedder, MilvusVectorStore

logger = logging.getLogger(__name__)


@dataclass
class AgentService:
    settings: Settings
    gateway: LLMGateway
    registry: ToolRegistry

    def document_agent(self) -> DocumentAgent:
        return DocumentAgent(
            self.gateway,
            self.registry,
            max_steps=self.settings.max_agent_steps,
            step_delay=self.settings.step_delay_seconds,
        )

    def uses_document_agent(self, request: ChatRequest, has_files: bool) -> bool:
        if request.mode == "document":
            return True
        if request.mode == "chat":
            return False
        return has_files

    def events_for(
        self,
        request: ChatRequest,
        has_files: bool = False,
        history: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Progress events for one request. Nothing runs until the caller iterates."""
        if self.uses_document_agent(request, has_files):
            logger.info("[agent_service:events_for] route=document mode=%s files=%s", request.mode, has_files)
            return self.document_agent().run(request.query)
        logger.info("[agent_service:events_for] route=chat mode=%s", request.mode)
        return run_direct_chat(self.gateway, request.query, self.settings.system_prompt, history)


def build_agent_service(settings: Settings) -> AgentService:
    embedder = HFEmbedder(settings)
    store = MilvusVectorStore(settings)
    registry = build_registry(DocumentTools(settings, embedder, store))
    return AgentService(settings=settings, gateway=OpenAIChatGateway(settings), registry=registry)
