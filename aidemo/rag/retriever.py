"""Retriever for semantic search over the knowledge base."""
import time
from typing import List, Optional

import structlog

from aidemo.errors import InvalidArgumentError
from aidemo.logging_setup import truncate_for_log
from aidemo.rag.document import Document
from aidemo.rag.store import FAISSVectorStore, get_vector_store

logger = structlog.get_logger()


def validate_query(query: str, top_k: int, similarity_threshold: float) -> None:
    """Check retrieval parameters.

    Raises:
        InvalidArgumentError: On a blank query, non-positive top_k or a
            threshold outside [0, 1]
    """
    if not query or not query.strip():
        raise InvalidArgumentError("Query must not be blank")
    if top_k is None or top_k <= 0:
        raise InvalidArgumentError(f"top_k must be a positive integer, got {top_k}")
    if similarity_threshold is None or not 0.0 <= similarity_threshold <= 1.0:
        raise InvalidArgumentError(
            f"similarity_threshold must be within [0, 1], got {similarity_threshold}"
        )


class Retriever:
    """Semantic retriever for the RAG pipeline.

    Search failures inside the vector store degrade to an empty result;
    only invalid arguments are raised to the caller.
    """

    def __init__(self, vector_store: Optional[FAISSVectorStore] = None):
        self.vector_store = vector_store or get_vector_store()

    async def search(
        self,
        query: str,
        top_k: int,
        similarity_threshold: float = 0.0,
    ) -> List[Document]:
        """Retrieve documents relevant to a query.

        Args:
            query: User query text
            top_k: Maximum number of results
            similarity_threshold: Minimum cosine similarity (0.0 = no filtering)

        Returns:
            Documents in relevance order, possibly empty

        Raises:
            InvalidArgumentError: If the arguments are invalid
        """
        validate_query(query, top_k, similarity_threshold)

        started_at = time.perf_counter()
        logger.info(
            "retrieval_started",
            query_preview=truncate_for_log(query),
            top_k=top_k,
            threshold=similarity_threshold,
        )

        try:
            documents = await self.vector_store.similarity_search(
                query, top_k=top_k, similarity_threshold=similarity_threshold
            )
        except Exception as e:
            logger.error(
                "retrieval_failed",
                error=str(e),
                error_type=type(e).__name__,
                query_preview=truncate_for_log(query),
            )
            return []

        logger.info(
            "retrieval_completed",
            results_returned=len(documents),
            duration_ms=int((time.perf_counter() - started_at) * 1000),
        )
        return documents
