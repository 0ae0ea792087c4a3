"""
Agent tools: the document tool set and its registry.

Tools: retrieveSimilar, retrieveAllDocs, createThenRetrieve, clearAllData,
finalResponse. Every tool is async and returns a dict whose "context" string
is what the model sees next.
"""

import logging
from typing import Any

from app.agent.registry import ToolParam, ToolRegistry, ToolSpec
from app.core.config import Settings
from app.services.ingestion_service import ingest_documents
from app.services.retrieval_service import join_context, retrieve_similar

logger = logging.getLogger(__name__)

CONTEXT_FOUND_NUDGE = "Context found. Please summarize."
NO_DOCS_NUDGE = (
    "No docs found. Use createThenRetrieve(query, topK) to create PDF vectors "
    "and then retrieve similar chunks based on query."
)
NO_PDFS_NUDGE = "No PDFs found in database. Use createThenRetrieve(query) to load and process PDFs."


def _after_retrieve_similar(result: Any) -> str | None:
    if isinstance(result, dict) and result.get("context"):
        return CONTEXT_FOUND_NUDGE
    return NO_DOCS_NUDGE


def _after_retrieve_all(result: Any) -> str | None:
    if isinstance(result, dict) and not result.get("count"):
        return NO_PDFS_NUDGE
    return None


class DocumentTools:
    """Tool implementations bound to one embedder and vector store."""

    def __init__(self, settings: Settings, embedder, store) -> None:
        self._settings = settings
        self._embedder = embedder
        self._store = store

    async def retrieve_similar(self, query: str, top_k: int = 2) -> dict[str, Any]:
        matches = await retrieve_similar(query, int(top_k), self._embedder, self._store)
        return {
            "context": join_context([m.get("text", "") for m in matches]),
            "matches": matches,
        }

    async def retrieve_all_docs(self) -> dict[str, Any]:
        texts = await self._store.all_texts()
        logger.info("[tools:retrieve_all_docs] Retrieved %d chunks", len(texts))
        return {"context": join_context(texts), "count": len(texts)}

    async def create_then_retrieve(self, query: str, top_k: int = 3) -> dict[str, Any]:
        ingested = await ingest_documents(self._settings, self._embedder, self._store)
        result = await self.retrieve_similar(query, top_k)
        result["ingested"] = ingested
        return result

    async def clear_all_data(self) -> dict[str, Any]:
        await self._store.clear()
        return {"context": "All data in the vector store cleared successfully"}

    async def final_response(self, answer: str) -> dict[str, Any]:
        return {"context": str(answer)}


def build_registry(tools: DocumentTools) -> ToolRegistry:
    """The fixed tool set exposed to the document agent, in prompt order."""
    registry = ToolRegistry()
    registry.register(ToolSpec(
        name="retrieveSimilar",
        description="Search for content similar to query in the stored documents",
        func=tools.retrieve_similar,
        params=(ToolParam("query", description="search text"), ToolParam("topK", 2, "number of chunks")),
        follow_up=_after_retrieve_similar,
    ))
    registry.register(ToolSpec(
        name="retrieveAllDocs",
        description="Get the content of every stored document chunk",
        func=tools.retrieve_all_docs,
        follow_up=_after_retrieve_all,
    ))
    registry.register(ToolSpec(
        name="createThenRetrieve",
        description="Process the uploaded PDFs into vectors, then search (use when no documents exist)",
        func=tools.create_then_retrieve,
        params=(ToolParam("query", description="search text"), ToolParam("topK", 3, "number of chunks")),
    ))
    registry.register(ToolSpec(
        name="clearAllData",
        description="Clear all vector data (use carefully)",
        func=tools.clear_all_data,
    ))
    registry.register(ToolSpec(
        name="finalResponse",
        description="Give the final answer to the user",
        func=tools.final_response,
        params=(ToolParam("answer", description="final answer text"),),
    ))
    return registry
