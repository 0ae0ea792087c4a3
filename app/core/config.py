"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. The module constants are defaults; load_settings() reads the
environment once and returns a Settings object that is passed explicitly into
the gateway, vector store, tools and agent.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Document storage (uploads land here; createThenRetrieve ingests from here)
DOCUMENTS_DIR_NAME: str = "data/uploads/documents"

# Allowed file extensions for upload and ingestion
ALLOWED_EXTENSIONS: frozenset[str] = frozenset({".pdf", ".txt"})

# Chunking defaults (tuning these affects retrieval quality)
CHUNK_SIZE: int = 1000
CHUNK_OVERLAP: int = 200

# Vector collection: all-MiniLM-L6-v2 = 384 dims
VECTOR_DIM: int = 384
COLLECTION_NAME: str = "pdf_vectors"
HF_EMBED_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
EMBED_BATCH_SIZE: int = 32

# API timeouts (seconds)
EMBED_API_TIMEOUT: float = 30.0
LLM_API_TIMEOUT: float = 60.0

# Chat completions (OpenAI-compatible endpoint, e.g. Groq)
LLM_MODEL: str = "openai/gpt-oss-120b"
LLM_MAX_TOKENS: int = 1024

# Document agent
MAX_AGENT_STEPS: int = 15
STEP_DELAY_SECONDS: float = 2.0

CHAT_SYSTEM_PROMPT: str = (
    "You are a helpful assistant. Answer the user's question clearly and concisely."
)


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and passed by reference."""

    llm_api_key: str = ""
    llm_base_url: str | None = None
    llm_model: str = LLM_MODEL
    llm_timeout: float = LLM_API_TIMEOUT
    llm_max_tokens: int = LLM_MAX_TOKENS

    hf_api_key: str = ""
    hf_embed_model: str = HF_EMBED_MODEL
    embed_timeout: float = EMBED_API_TIMEOUT
    embed_batch_size: int = EMBED_BATCH_SIZE

    milvus_uri: str = ""
    milvus_token: str = ""
    collection_name: str = COLLECTION_NAME
    vector_dim: int = VECTOR_DIM

    documents_dir: str = DOCUMENTS_DIR_NAME
    chunk_size: int = CHUNK_SIZE
    chunk_overlap: int = CHUNK_OVERLAP
    allowed_extensions: frozenset[str] = field(default=ALLOWED_EXTENSIONS)

    max_agent_steps: int = MAX_AGENT_STEPS
    step_delay_seconds: float = STEP_DELAY_SECONDS
    system_prompt: str = CHAT_SYSTEM_PROMPT


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def load_settings() -> Settings:
    """
    Read .env and the process environment into a Settings object.

    GROQ_API_KEY / GROQ_API_URL take precedence; OPENAI_API_KEY works for the
    plain OpenAI endpoint.
    """
    load_dotenv()
    api_key = _env("GROQ_API_KEY") or _env("OPENAI_API_KEY")
    base_url = _env("GROQ_API_URL") or _env("OPENAI_BASE_URL") or None
    return Settings(
        llm_api_key=api_key,
        llm_base_url=base_url,
        llm_model=_env("LLM_MODEL", LLM_MODEL) or LLM_MODEL,
        hf_api_key=_env("HF_API_KEY"),
        milvus_uri=_env("MILVUS_URI"),
        milvus_token=_env("MILVUS_TOKEN"),
        documents_dir=_env("DOCUMENTS_DIR", DOCUMENTS_DIR_NAME) or DOCUMENTS_DIR_NAME,
        max_agent_steps=int(_env("MAX_AGENT_STEPS", str(MAX_AGENT_STEPS)) or MAX_AGENT_STEPS),
        step_delay_seconds=float(
            _env("STEP_DELAY_SECONDS", str(STEP_DELAY_SECONDS)) or STEP_DELAY_SECONDS
        ),
    )
