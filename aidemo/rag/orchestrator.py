"""Retrieval-augmented question answering."""
import time
from typing import List, Optional

import structlog

from aidemo import config
from aidemo.errors import InvalidArgumentError, RagError
from aidemo.logging_setup import truncate_for_log
from aidemo.rag.document import Document
from aidemo.rag.generator import AnswerGenerator
from aidemo.rag.retriever import Retriever

logger = structlog.get_logger()

NO_RESULTS_MESSAGE = "抱歉，知识库中没有找到与您的问题相关的信息。"


class RagOrchestrator:
    """Retrieve, then generate; a fixed apology when nothing was retrieved."""

    def __init__(
        self,
        retriever: Optional[Retriever] = None,
        generator: Optional[AnswerGenerator] = None,
        top_k: int = None,
        similarity_threshold: float = None,
        system_prompt: str = None,
    ):
        self.retriever = retriever or Retriever()
        self.generator = generator or AnswerGenerator()
        self.top_k = config.RAG_TOP_K if top_k is None else top_k
        self.similarity_threshold = (
            config.RAG_SIMILARITY_THRESHOLD if similarity_threshold is None else similarity_threshold
        )
        self.system_prompt = config.RAG_SYSTEM_PROMPT if system_prompt is None else system_prompt

    async def answer(
        self,
        question: str,
        top_k: Optional[int] = None,
        similarity_threshold: Optional[float] = None,
    ) -> str:
        """Answer a question from the knowledge base.

        Args:
            question: User question
            top_k: Retrieval size (default from config)
            similarity_threshold: Minimum similarity (default from config)

        Returns:
            The generated answer, or NO_RESULTS_MESSAGE when retrieval is empty

        Raises:
            InvalidArgumentError: If the question is blank
            RagError: If retrieval or generation fails
        """
        if not question or not question.strip():
            raise InvalidArgumentError("Question must not be blank")

        top_k = self.top_k if top_k is None else top_k
        threshold = self.similarity_threshold if similarity_threshold is None else similarity_threshold

        started_at = time.perf_counter()
        logger.info(
            "rag_answer_started",
            question_preview=truncate_for_log(question),
            top_k=top_k,
            threshold=threshold,
        )

        try:
            documents = await self.retriever.search(question, top_k, threshold)

            if not documents:
                logger.warning("rag_no_relevant_documents", question_preview=truncate_for_log(question))
                return NO_RESULTS_MESSAGE

            logger.info("rag_documents_retrieved", count=len(documents))
            answer = await self.generator.generate(self.system_prompt, documents, question)

        except Exception as e:
            elapsed = int((time.perf_counter() - started_at) * 1000)
            logger.error(
                "rag_answer_failed",
                duration_ms=elapsed,
                question_preview=truncate_for_log(question),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RagError("RAG answering failed", cause=e, elapsed_ms=elapsed) from e

        logger.info(
            "rag_answer_completed",
            duration_ms=int((time.perf_counter() - started_at) * 1000),
            answer_length=len(answer),
        )
        return answer

    async def search_documents(self, query: str, top_k: Optional[int] = None) -> List[Document]:
        """Retrieve documents without generating an answer.

        Raises:
            InvalidArgumentError: If the query is blank or top_k invalid
        """
        top_k = self.top_k if top_k is None else top_k
        return await self.retriever.search(query, top_k, self.similarity_threshold)


# Singleton instance for convenience
_orchestrator_instance: Optional[RagOrchestrator] = None


def get_orchestrator() -> RagOrchestrator:
    """Get or create the shared RAG orchestrator."""
    global _orchestrator_instance
    if _orchestrator_instance is None:
        _orchestrator_instance = RagOrchestrator()
    return _orchestrator_instance
