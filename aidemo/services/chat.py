"""Plain chat completion."""
import time
from typing import Optional

import structlog

from aidemo.errors import EmptyResponseError, InvalidArgumentError
from aidemo.llm_client import OllamaClient, ollama_client
from aidemo.logging_setup import truncate_for_log

logger = structlog.get_logger()


class ChatbotService:
    """Single-turn chat with an optional system prompt."""

    def __init__(self, llm: Optional[OllamaClient] = None):
        self.llm = llm or ollama_client

    async def chat(self, message: str) -> str:
        return await self.chat_with_system_prompt(None, message)

    async def chat_with_system_prompt(self, system_prompt: Optional[str], message: str) -> str:
        """Send one user message, prefixed by ``system_prompt`` when it is not blank.

        Raises:
            InvalidArgumentError: If the message is blank
            EmptyResponseError: If the model answered with nothing
        """
        started_at = time.perf_counter()
        logger.info(
            "chat_started",
            system_prompt_preview=truncate_for_log(system_prompt),
            message_preview=truncate_for_log(message),
        )

        if not message or not message.strip():
            raise InvalidArgumentError("Message must not be blank")

        try:
            reply = await self.llm.generate(system_prompt, message)
        except EmptyResponseError:
            logger.error("chat_empty_response", duration_ms=int((time.perf_counter() - started_at) * 1000))
            raise
        except Exception as e:
            logger.error(
                "chat_failed",
                duration_ms=int((time.perf_counter() - started_at) * 1000),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        logger.info(
            "chat_completed",
            duration_ms=int((time.perf_counter() - started_at) * 1000),
            reply_preview=truncate_for_log(reply),
        )
        return reply
