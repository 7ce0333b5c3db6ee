"""Character-based document chunking with overlap.

Only used when ``config.CHUNKING_ENABLED`` is set; by default documents are
stored whole.
"""
from dataclasses import dataclass
from typing import List

import structlog

from aidemo import config
from aidemo.rag.document import Document

logger = structlog.get_logger()

# Preferred break points, tried in order, with the minimum fraction of the
# window that must precede them
_BREAKS = (
    ((". ", "! ", "? ", "。", "！", "？", ".\n", "!\n", "?\n"), 0.7),
    (("\n\n",), 0.7),
    (("\n",), 0.7),
    ((" ", "，", ","), 0.8),
)


@dataclass
class TextChunk:
    """A slice of a text with its position."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


class TextChunker:
    """Splits long texts into overlapping windows on natural boundaries."""

    def __init__(self, chunk_size: int = None, chunk_overlap: int = None):
        self.chunk_size = chunk_size or config.CHUNK_SIZE
        self.chunk_overlap = config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap

        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )

    def chunk_text(self, text: str) -> List[TextChunk]:
        if not text:
            return []

        text_length = len(text)
        if text_length <= self.chunk_size:
            return [TextChunk(content=text, char_start=0, char_end=text_length, chunk_index=0)]

        chunks: List[TextChunk] = []
        start = 0

        while start < text_length:
            end = min(start + self.chunk_size, text_length)
            window = text[start:end]

            if end < text_length:
                window = self._trim_to_boundary(window)
                end = start + len(window)

            chunks.append(
                TextChunk(content=window, char_start=start, char_end=end, chunk_index=len(chunks))
            )

            if end >= text_length:
                break

            next_start = end - self.chunk_overlap
            # Always make progress
            start = next_start if next_start > chunks[-1].char_start else end

        return chunks

    def _trim_to_boundary(self, window: str) -> str:
        for separators, min_fraction in _BREAKS:
            best = max(window.rfind(sep) + len(sep) for sep in separators)
            if best > len(window) * min_fraction:
                return window[:best]
        return window

    def split_documents(self, documents: List[Document]) -> List[Document]:
        """Split each document into chunk documents that keep its metadata.

        Each chunk gains ``chunk_index`` and ``chunk_count`` metadata keys.
        """
        result: List[Document] = []
        for doc in documents:
            chunks = self.chunk_text(doc.content)
            for chunk in chunks:
                result.append(
                    Document(
                        content=chunk.content,
                        metadata={
                            **doc.metadata,
                            "chunk_index": chunk.chunk_index,
                            "chunk_count": len(chunks),
                        },
                    )
                )

        logger.info(
            "documents_chunked",
            documents=len(documents),
            chunks=len(result),
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )
        return result
