# Document loader: file/bytes → text. No embeddings, no vector DB, no chunking.
# Supports .pdf and .txt; load_directory() is what the ingestion tool reads.

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class LoadedDocument:
    source: str
    text: str
    metadata: dict = field(default_factory=dict)


def bytes_to_text(raw: bytes, filename: str) -> str:
    """Convert raw file bytes to text by extension."""
    ext = Path(filename).suffix.lower() if filename else ""
    if ext == ".pdf":
        return _read_pdf(raw)
    return raw.decode("utf-8", errors="replace")


def _read_pdf(raw: bytes) -> str:
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(raw))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def load_directory(directory: Path, extensions: frozenset[str]) -> list[LoadedDocument]:
    """
    Read every supported file directly under directory, sorted by name.
    Unreadable files are logged and skipped.
    """
    if not directory.is_dir():
        logger.info("[loader:load_directory] %s does not exist", directory)
        return []
    docs: list[LoadedDocument] = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix.lower() not in extensions:
            continue
        try:
            text = bytes_to_text(path.read_bytes(), path.name)
        except Exception as e:
            logger.warning("Failed to read %s: %s", path, e)
            continue
        docs.append(LoadedDocument(source=path.name, text=text, metadata={"path": str(path)}))
    logger.info("[loader:load_directory] Loaded %d documents from %s", len(docs), directory)
    return docs
