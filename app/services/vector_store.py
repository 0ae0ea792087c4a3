"""
Vector store client: Milvus connection, embeddings (HF Inference API), and chunk storage.

Responsibility: Embed texts via all-MiniLM-L6-v2, store chunks with metadata,
similarity search. Both classes take the Settings object in their constructor.
"""

import asyncio
import logging
from typing import Any

import httpx

from app.core.config import Settings
from app.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

HF_ROUTER_URL = "https://router.huggingface.co/hf-inference/models/{model}/pipeline/feature-extraction"

SEARCH_FIELDS = ["id", "text", "source", "chunk_id"]


def _normalize(vec: list[float]) -> list[float]:
    norm = sum(x * x for x in vec) ** 0.5
    if norm == 0:
        norm = 1.0
    return [x / norm for x in vec]


class HFEmbedder:
    """Batch text → vector via the Hugging Face feature-extraction router."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport
        self._url = HF_ROUTER_URL.format(model=settings.hf_embed_model)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Returns one L2-normalized vector per text (cosine similarity in Milvus).
        """
        if not texts:
            return []
        if not self._settings.hf_api_key:
            raise ServiceUnavailableError(
                "HF_API_KEY must be set in .env. Get a token from https://huggingface.co/settings/tokens"
            )
        headers = {
            "Authorization": f"Bearer {self._settings.hf_api_key}",
            "Content-Type": "application/json",
        }
        batch_size = self._settings.embed_batch_size
        vectors: list[list[float]] = []
        async with httpx.AsyncClient(timeout=self._settings.embed_timeout, transport=self._transport) as client:
            for i in range(0, len(texts), batch_size):
                batch = texts[i : i + batch_size]
                payload = {"inputs": batch, "options": {"wait_for_model": True}}
                response = await client.post(self._url, json=payload, headers=headers)
                if response.status_code == 401:
                    raise ServiceUnavailableError(
                        "Invalid HF API key. Check HF_API_KEY at https://huggingface.co/settings/tokens"
                    )
                if response.status_code == 503:
                    raise RuntimeError(f"HF model is loading. Retry later. {response.text[:200]}")
                if response.status_code != 200:
                    raise RuntimeError(f"HF API error {response.status_code}: {response.text[:200]}")
                result = response.json()
                if isinstance(result, list) and result and isinstance(result[0], list):
                    batch_emb = result
                else:
                    batch_emb = [result] if isinstance(result, list) else []
                vectors.extend(_normalize(v) for v in batch_emb)
        logger.info("[vector_store:embed] OUT texts=%d vectors=%d", len(texts), len(vectors))
        return vectors


class MilvusVectorStore:
    """
    Milvus collection of chunks (vector, text, source, chunk_id).
    pymilvus is blocking, so every call runs in a worker thread.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client: Any = None

    def _get_client(self) -> Any:
        """Connect on first use and create the collection if it does not exist."""
        if self._client is not None:
            return self._client
        if not self._settings.milvus_uri or not self._settings.milvus_token:
            raise ServiceUnavailableError("MILVUS_URI and MILVUS_TOKEN must be set in .env")

        from pymilvus import MilvusClient

        client = MilvusClient(uri=self._settings.milvus_uri, token=self._settings.milvus_token)
        logger.info("Milvus connection established")
        self._ensure_collection(client)
        self._client = client
        return client

    def _ensure_collection(self, client: Any) -> None:
        name = self._settings.collection_name
        if not client.has_collection(name):
            client.create_collection(
                collection_name=name,
                dimension=self._settings.vector_dim,
                primary_field_name="id",
                vector_field_name="vector",
                metric_type="COSINE",
                auto_id=True,
            )
            logger.info("Collection %s created (dim=%s)", name, self._settings.vector_dim)

    def _insert_sync(self, rows: list[dict[str, Any]]) -> int:
        client = self._get_client()
        client.insert(collection_name=self._settings.collection_name, data=rows)
        client.flush(collection_name=self._settings.collection_name)
        return len(rows)

    def _search_sync(self, vector: list[float], top_k: int) -> list[dict[str, Any]]:
        client = self._get_client()
        results = client.search(
            collection_name=self._settings.collection_name,
            data=[vector],
            limit=top_k,
            output_fields=SEARCH_FIELDS,
        )
        hits = results[0] if results else []
        out = []
        for h in hits:
            e = h.get("entity") or h
            out.append({
                "id": e.get("id", h.get("id")),
                "text": e.get("text", ""),
                "source": e.get("source", ""),
                "distance": float(h.get("distance", 0.0)),
            })
        return out

    def _all_texts_sync(self, limit: int) -> list[str]:
        client = self._get_client()
        rows = client.query(
            collection_name=self._settings.collection_name,
            filter="",
            limit=limit,
            output_fields=["id", "text"],
        )
        rows = sorted(rows, key=lambda r: r.get("id", 0))
        return [r.get("text", "") for r in rows]

    def _clear_sync(self) -> None:
        client = self._get_client()
        name = self._settings.collection_name
        if client.has_collection(name):
            client.drop_collection(collection_name=name)
        self._ensure_collection(client)
        logger.info("Knowledge base cleared: collection %s recreated empty", name)

    async def insert(self, rows: list[dict[str, Any]]) -> int:
        """Rows: {"vector", "text", "source", "chunk_id"}. Returns rows inserted."""
        if not rows:
            return 0
        return await asyncio.to_thread(self._insert_sync, rows)

    async def search(self, vector: list[float], top_k: int) -> list[dict[str, Any]]:
        """Nearest chunks first: [{"id", "text", "source", "distance"}]."""
        return await asyncio.to_thread(self._search_sync, vector, top_k)

    async def all_texts(self, limit: int = 16_384) -> list[str]:
        """Every stored chunk text in insertion order."""
        return await asyncio.to_thread(self._all_texts_sync, limit)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear_sync)
