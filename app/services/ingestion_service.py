"""
Document ingestion: persist uploads, load, chunk, embed and store documents.

Responsibility: Save files attached to a chat request (and release them once the
request is over), and run the load → clean → chunk → embed → store pipeline the
createThenRetrieve tool relies on. No HTTP or FastAPI here.
"""

import asyncio
import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path

from app.core.config import Settings
from app.ingest.loader import load_directory
from app.schemas.chat import FileInfo
from app.services.text_processing import chunk_text, clean_text

logger = logging.getLogger(__name__)


class InvalidFileTypeError(Exception):
    """Raised when one or more files have disallowed extensions."""

    def __init__(self, invalid: list[str]) -> None:
        self.invalid = invalid
        super().__init__(f"Rejected: {', '.join(invalid)}")


@dataclass
class UploadedArtifacts:
    """
    Files saved for one request. release() deletes them; only the first call
    does anything, whichever terminal path gets there first.
    """

    files: list[FileInfo] = field(default_factory=list)
    _released: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> int:
        """Delete the saved files. Returns the number removed (0 on repeat calls)."""
        with self._lock:
            if self._released:
                return 0
            self._released = True
        removed = 0
        for info in self.files:
            try:
                Path(info.path).unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Failed to remove %s: %s", info.path, e)
        logger.info("[ingestion:release] files=%d removed=%d", len(self.files), removed)
        return removed


def _sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent path traversal (../). Returns safe basename."""
    if not filename or not filename.strip():
        return "unnamed"
    base = Path(filename).name
    safe = base.replace("..", "").replace("/", "").replace("\\", "")
    safe = re.sub(r"[^\w.\-]", "_", safe)
    return safe.strip() or "unnamed"


def _unique_destination(root: Path, safe_name: str, taken: set[str]) -> Path:
    dest = root / safe_name
    n = 0
    while dest.exists() or dest.name in taken:
        n += 1
        dest = root / f"{Path(safe_name).stem}_{n}{Path(safe_name).suffix}"
    return dest


def save_uploaded_files(items: list[tuple[str, bytes]], settings: Settings) -> UploadedArtifacts:
    """
    Validate, sanitize, and persist uploaded files under the documents directory.

    Args:
        items: List of (filename, raw_bytes) for each file.
        settings: Provides documents_dir and allowed_extensions.

    Returns:
        UploadedArtifacts describing the saved files (empty when items is empty).

    Raises:
        InvalidFileTypeError: If any file has a disallowed extension. Nothing is written then.
        OSError: If creating the directory or writing a file fails.
    """
    if not items:
        return UploadedArtifacts()

    invalid = [name for name, _ in items if Path(name or "").suffix.lower() not in settings.allowed_extensions]
    if invalid:
        raise InvalidFileTypeError(invalid)

    root = Path(settings.documents_dir)
    root.mkdir(parents=True, exist_ok=True)
    artifacts = UploadedArtifacts()
    taken: set[str] = set()
    try:
        for filename, content in items:
            dest = _unique_destination(root, _sanitize_filename(filename), taken)
            if not str(dest.resolve()).startswith(str(root.resolve())):
                raise InvalidFileTypeError([filename])
            taken.add(dest.name)
            dest.write_bytes(content)
            artifacts.files.append(FileInfo(filename=filename, path=str(dest)))
    except Exception:
        artifacts.release()
        raise
    logger.info("[ingestion:save_uploaded_files] saved=%d dir=%s", len(artifacts.files), root)
    return artifacts


def _chunk_documents_sync(settings: Settings) -> list[dict]:
    """Sync part: read files → clean → chunk. Runs in a worker thread."""
    chunks: list[dict] = []
    for doc in load_directory(Path(settings.documents_dir), settings.allowed_extensions):
        pieces = chunk_text(clean_text(doc.text), chunk_size=settings.chunk_size, overlap=settings.chunk_overlap)
        for i, piece in enumerate(pieces):
            chunks.append({"text": piece, "source": doc.source, "chunk_id": i})
        logger.info("File %s → %d chunks created", doc.source, len(pieces))
    return chunks


async def ingest_documents(settings: Settings, embedder, store) -> int:
    """
    Load every document in the documents directory, embed its chunks and
    insert them into the vector store. Returns the number of chunks stored.
    """
    chunks = await asyncio.to_thread(_chunk_documents_sync, settings)
    if not chunks:
        logger.info("[ingestion:ingest_documents] no documents to ingest")
        return 0
    vectors = await embedder.embed([c["text"] for c in chunks])
    rows = [{**c, "vector": v} for c, v in zip(chunks, vectors)]
    stored = await store.insert(rows)
    logger.info("[ingestion:ingest_documents] OUT chunks=%d stored=%d", len(chunks), stored)
    return stored
