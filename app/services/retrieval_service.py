"""
Retrieval: embed the query, similarity search in the vector store, join context.

Responsibility: Turn a question into the top chunks for the agent.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n"


async def retrieve_similar(query: str, top_k: int, embedder, store) -> list[dict[str, Any]]:
    """Top-k nearest chunks for query, nearest first. Empty query → []."""
    logger.info("[retrieval:retrieve_similar] IN  query=%r top_k=%d", query, top_k)
    if not query or not query.strip():
        return []
    vectors = await embedder.embed([query.strip()])
    if not vectors:
        logger.warning("[retrieval:retrieve_similar] embedder returned no vector")
        return []
    matches = await store.search(vectors[0], top_k)
    for i, m in enumerate(matches):
        logger.info(
            "[retrieval:retrieve_similar] match_%d source=%s distance=%.4f text_preview=%r",
            i + 1, m.get("source"), m.get("distance", 0.0), (m.get("text") or "")[:200],
        )
    return matches


def join_context(texts: list[str]) -> str:
    return CONTEXT_SEPARATOR.join(t for t in texts if t)
