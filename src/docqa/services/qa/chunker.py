from __future__ import annotations

from collections.abc import Iterable
import re

from docqa.services.qa.types import Chunk

DEFAULT_MIN_CHUNK_CHARS = 50

# A run of whitespace that contains at least one blank line.
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def chunk_document(
    text: str,
    *,
    document_id: str,
    document_name: str,
    min_chars: int = DEFAULT_MIN_CHUNK_CHARS,
) -> list[Chunk]:
    if min_chars < 0:
        raise ValueError("min_chars must be >= 0")

    chunks: list[Chunk] = []
    for fragment in _PARAGRAPH_BREAK.split(text):
        fragment = fragment.strip()
        if len(fragment) <= min_chars:
            continue
        chunks.append(
            Chunk(
                document_id=document_id,
                document_name=document_name,
                text=fragment,
            )
        )

    return chunks


def chunk_documents(
    documents: Iterable[tuple[str, str, str]],
    *,
    min_chars: int = DEFAULT_MIN_CHUNK_CHARS,
) -> list[Chunk]:
    """Pool the chunks of ``(document_id, document_name, text)`` triples in order."""
    pooled: list[Chunk] = []
    for document_id, document_name, text in documents:
        pooled.extend(
            chunk_document(
                text,
                document_id=document_id,
                document_name=document_name,
                min_chars=min_chars,
            )
        )
    return pooled
