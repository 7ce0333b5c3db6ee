"""Answer generation from retrieved context."""
from typing import List, Optional, Sequence

import structlog

from aidemo.errors import EmptyResponseError, InvalidArgumentError
from aidemo.llm_client import OllamaClient, ollama_client
from aidemo.rag.document import Document

logger = structlog.get_logger()

DEFAULT_RAG_SYSTEM_PROMPT = (
    "你是一个智能助手，基于提供的知识库内容回答问题。\n"
    "请根据以下知识库内容回答用户的问题。如果知识库中没有相关信息，请如实说明。\n"
    "回答要准确、简洁，并引用知识库中的具体内容。"
)

CONTEXT_SEPARATOR = "\n\n---\n\n"


def format_document(document: Document) -> str:
    """Render one document with its source label."""
    return f"【来源：{document.source}】\n{document.content}"


def build_context(documents: Sequence[Document]) -> str:
    """Join documents into a context block, keeping retrieval order."""
    if not documents:
        return ""
    return CONTEXT_SEPARATOR.join(format_document(doc) for doc in documents)


def build_user_message(context: str, question: str) -> str:
    return f"知识库内容：\n{context}\n\n用户问题：{question}"


class AnswerGenerator:
    """Builds the grounded prompt and asks the chat model for an answer."""

    def __init__(self, llm: Optional[OllamaClient] = None, default_system_prompt: str = None):
        self.llm = llm or ollama_client
        self.default_system_prompt = default_system_prompt or DEFAULT_RAG_SYSTEM_PROMPT

    async def generate(
        self,
        system_prompt: Optional[str],
        documents: List[Document],
        question: str,
    ) -> str:
        """Generate an answer grounded in ``documents``.

        Args:
            system_prompt: Caller prompt; the built-in default is used when blank
            documents: Retrieved documents, most relevant first
            question: The user's question

        Returns:
            The model's answer

        Raises:
            InvalidArgumentError: If the question is blank
            EmptyResponseError: If the model answered with nothing
        """
        if not question or not question.strip():
            raise InvalidArgumentError("Question must not be blank")

        prompt = system_prompt if system_prompt and system_prompt.strip() else self.default_system_prompt
        context = build_context(documents)
        user_message = build_user_message(context, question)

        logger.debug(
            "rag_prompt_built",
            documents=len(documents),
            context_length=len(context),
        )

        answer = await self.llm.generate(prompt, user_message)
        if not answer or not answer.strip():
            raise EmptyResponseError("Model returned an empty answer")

        return answer
