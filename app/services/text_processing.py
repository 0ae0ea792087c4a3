"""
Text processing for RAG: cleaning and chunking.

Cleaning reduces noise and encoding inconsistencies so embeddings focus on
content. Chunking is recursive: split on the coarsest separator that keeps
pieces under chunk_size, then merge pieces back with overlap.
"""

import unicodedata

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", " ", "")


def clean_text(text: str) -> str:
    """
    Normalize unicode, strip each line, drop consecutive duplicate lines and
    collapse runs of blank lines to one.
    """
    if not text or not text.strip():
        return ""
    text = unicodedata.normalize("NFKC", text)
    result: list[str] = []
    for line in (ln.strip() for ln in text.splitlines()):
        if result and result[-1] == line:
            continue
        result.append(line)
    return "\n".join(result).strip()


def _split(text: str, separator: str) -> list[str]:
    if separator == "":
        return list(text)
    return [piece for piece in text.split(separator) if piece]


def _merge(pieces: list[str], separator: str, chunk_size: int, overlap: int) -> list[str]:
    """Greedily join pieces up to chunk_size, carrying a tail of up to overlap chars forward."""
    chunks: list[str] = []
    window: list[str] = []
    window_len = 0
    sep_len = len(separator)
    for piece in pieces:
        extra = len(piece) + (sep_len if window else 0)
        if window and window_len + extra > chunk_size:
            chunks.append(separator.join(window).strip())
            while window and (window_len > overlap or window_len + len(piece) + sep_len > chunk_size):
                window_len -= len(window[0]) + (sep_len if len(window) > 1 else 0)
                window.pop(0)
            extra = len(piece) + (sep_len if window else 0)
        window.append(piece)
        window_len += extra
    if window:
        chunks.append(separator.join(window).strip())
    return [c for c in chunks if c]


def chunk_text(
    text: str,
    chunk_size: int = 1000,
    overlap: int = 200,
    separators: tuple[str, ...] = DEFAULT_SEPARATORS,
) -> list[str]:
    """
    Split text into chunks of at most chunk_size characters with up to overlap
    characters shared between neighbours. Paragraphs are preferred split
    points, then lines, then words, then raw characters.
    """
    if not text or not text.strip():
        return []
    text = text.strip()
    if len(text) <= chunk_size:
        return [text]

    separator = separators[-1]
    rest: tuple[str, ...] = ()
    for i, sep in enumerate(separators):
        if sep == "" or sep in text:
            separator, rest = sep, separators[i + 1 :]
            break

    chunks: list[str] = []
    fitting: list[str] = []
    for piece in _split(text, separator):
        if len(piece) <= chunk_size:
            fitting.append(piece)
            continue
        if fitting:
            chunks.extend(_merge(fitting, separator, chunk_size, overlap))
            fitting = []
        if rest:
            chunks.extend(chunk_text(piece, chunk_size, overlap, rest))
        else:
            chunks.extend(piece[i : i + chunk_size] for i in range(0, len(piece), max(1, chunk_size - overlap)))
    if fitting:
        chunks.extend(_merge(fitting, separator, chunk_size, overlap))
    return chunks
