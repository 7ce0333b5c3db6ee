"""In-memory FAISS vector store for semantic search.

Handles:
- Runtime embedding dimension detection
- Cosine similarity via inner product over L2-normalized vectors
- Document bookkeeping aligned with FAISS row ids
- Thresholded top-k search

The index lives in process memory only and is lost on restart.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

import faiss
import numpy as np
import structlog

from aidemo.errors import InvalidArgumentError
from aidemo.lazy import AsyncOnce
from aidemo.llm_client import ollama_client
from aidemo.rag.document import Document

logger = structlog.get_logger()

Embedder = Callable[[str], Awaitable[List[float]]]


class FAISSVectorStore:
    """Stores Documents with their embeddings and answers similarity queries."""

    def __init__(self, embedder: Optional[Embedder] = None, dimension: Optional[int] = None):
        """Initialize the vector store.

        Args:
            embedder: Async callable mapping text to a vector
                (default: the shared Ollama client's ``embed``)
            dimension: Embedding dimension; detected on first use if omitted
        """
        self.embedder = embedder or ollama_client.embed
        self._fixed_dimension = dimension
        self._index = AsyncOnce(self._create_index, name="faiss_index")
        self._documents: List[Document] = []
        self._write_lock = asyncio.Lock()

    @property
    def dimension(self) -> Optional[int]:
        index = self._index.peek()
        return index.d if index is not None else self._fixed_dimension

    @property
    def count(self) -> int:
        return len(self._documents)

    async def _create_index(self) -> faiss.Index:
        dimension = self._fixed_dimension
        if dimension is None:
            logger.info("detecting_embedding_dimension")
            dimension = len(await self.embedder("test"))
            if dimension == 0:
                raise RuntimeError("Empty embedding returned while detecting dimension")

        logger.info("faiss_index_initialized", dimension=dimension, index_type="IndexFlatIP")
        return faiss.IndexFlatIP(dimension)

    async def _embed_all(self, texts: List[str]) -> np.ndarray:
        vectors = []
        for text in texts:
            vectors.append(await self.embedder(text))
        return self._normalize(np.array(vectors, dtype=np.float32))

    @staticmethod
    def _normalize(vectors: np.ndarray) -> np.ndarray:
        norms = np.linalg.norm(vectors, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return vectors / norms

    async def add(self, documents: List[Document]) -> int:
        """Embed and store documents in one batch.

        Raises:
            InvalidArgumentError: If a document lacks a ``source`` metadata value
            ValueError: On embedding dimension mismatch
        """
        if not documents:
            return 0

        for doc in documents:
            if not doc.has_source:
                raise InvalidArgumentError(f"Document {doc.id} has no 'source' metadata")

        index = await self._index.get()
        vectors = await self._embed_all([doc.content for doc in documents])

        if vectors.shape[1] != index.d:
            raise ValueError(
                f"Embedding dimension mismatch: expected {index.d}, got {vectors.shape[1]}"
            )

        async with self._write_lock:
            index.add(vectors)
            self._documents.extend(documents)

        logger.info("vectors_added", count=len(documents), total_vectors=index.ntotal)
        return len(documents)

    async def similarity_search(
        self,
        query: str,
        top_k: int,
        similarity_threshold: float = 0.0,
    ) -> List[Document]:
        """Return up to ``top_k`` documents most similar to ``query``.

        Results are ordered best first and carry a ``score`` metadata entry
        (cosine similarity). A threshold of 0.0 disables filtering.
        """
        index = self._index.peek()
        if index is None or index.ntotal == 0:
            logger.info("empty_index_no_results")
            return []

        query_vector = self._normalize(np.array([await self.embedder(query)], dtype=np.float32))
        if query_vector.shape[1] != index.d:
            raise ValueError(
                f"Query dimension mismatch: expected {index.d}, got {query_vector.shape[1]}"
            )

        k = min(top_k, index.ntotal)
        scores, ids = index.search(query_vector, k)

        results = []
        for vector_id, score in zip(ids[0].tolist(), scores[0].tolist()):
            if vector_id < 0:
                continue
            if similarity_threshold > 0.0 and score < similarity_threshold:
                continue
            results.append(self._documents[vector_id].with_metadata(score=round(score, 6)))

        logger.info(
            "vector_search_completed",
            top_k=top_k,
            threshold=similarity_threshold,
            results_found=len(results),
        )
        return results

    async def clear(self) -> None:
        """Drop every stored document and vector."""
        async with self._write_lock:
            index = self._index.peek()
            if index is not None:
                index.reset()
            self._documents.clear()
        logger.warning("vector_store_cleared")

    def get_stats(self) -> Dict[str, Any]:
        index = self._index.peek()
        return {
            "initialized": index is not None,
            "vector_count": index.ntotal if index is not None else 0,
            "document_count": len(self._documents),
            "dimension": self.dimension,
        }


# Singleton instance for convenience
_store_instance: Optional[FAISSVectorStore] = None


def get_vector_store() -> FAISSVectorStore:
    """Get or create the process-wide vector store."""
    global _store_instance
    if _store_instance is None:
        _store_instance = FAISSVectorStore()
    return _store_instance
