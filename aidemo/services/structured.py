"""Structured output: model replies validated against pydantic schemas.

The JSON schema of the target model is sent as Ollama's ``format``
constraint. A reply that still fails validation is sent back to the model
together with the validation error, up to ``max_retry_attempts`` calls.
"""
import json
import time
from typing import Dict, List, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from aidemo import config
from aidemo.errors import EmptyResponseError, InvalidArgumentError, StructuredOutputError
from aidemo.llm_client import OllamaClient, ollama_client
from aidemo.schemas import ActorsFilms, WeatherInfo

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)


def _format_instructions(model: Type[BaseModel]) -> str:
    schema = json.dumps(model.model_json_schema(), ensure_ascii=False, indent=2)
    return (
        "请只输出一个符合以下 JSON Schema 的 JSON 对象，不要输出任何其他内容：\n"
        f"{schema}"
    )


class StructuredOutputService:
    """Asks the model for JSON and validates it into pydantic models."""

    def __init__(self, llm: Optional[OllamaClient] = None):
        self.llm = llm or ollama_client

    async def call_entity(
        self,
        prompt: str,
        output_type: Type[M],
        max_retry_attempts: int = 1,
    ) -> M:
        """Prompt the model and parse the reply into ``output_type``.

        Args:
            prompt: User prompt
            output_type: Pydantic model the reply must validate against
            max_retry_attempts: Total number of model calls allowed

        Raises:
            InvalidArgumentError: If max_retry_attempts < 1
            StructuredOutputError: If no reply validated
        """
        if max_retry_attempts < 1:
            raise InvalidArgumentError("max_retry_attempts must be at least 1")

        messages: List[Dict[str, str]] = [
            {"role": "user", "content": f"{prompt}\n\n{_format_instructions(output_type)}"},
        ]
        schema = output_type.model_json_schema()
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retry_attempts + 1):
            response = await self.llm.chat(messages, format=schema)
            content = response.get("message", {}).get("content", "")

            try:
                if not content or not content.strip():
                    raise EmptyResponseError("Model returned an empty response")
                result = output_type.model_validate_json(content)
            except (ValidationError, EmptyResponseError) as e:
                last_error = e
                logger.warning(
                    "structured_output_invalid",
                    output_type=output_type.__name__,
                    attempt=attempt,
                    max_attempts=max_retry_attempts,
                    error=str(e)[:500],
                )
                messages.append({"role": "assistant", "content": content})
                messages.append({
                    "role": "user",
                    "content": f"上一次的输出没有通过校验：{e}\n请修正后重新输出完整的 JSON 对象。",
                })
                continue

            logger.info(
                "structured_output_validated",
                output_type=output_type.__name__,
                attempt=attempt,
            )
            return result

        raise StructuredOutputError(
            f"{output_type.__name__} output failed validation after "
            f"{max_retry_attempts} attempt(s): {last_error}"
        )

    async def get_actors_films(self, actor_name: str, movie_count: int = 5) -> ActorsFilms:
        """List ``movie_count`` films starring ``actor_name``.

        Raises:
            InvalidArgumentError: If the actor is blank or movie_count <= 0
        """
        if not actor_name or not actor_name.strip():
            raise InvalidArgumentError("Actor name must not be blank")
        if movie_count <= 0:
            raise InvalidArgumentError("movie_count must be greater than 0")

        started_at = time.perf_counter()
        logger.info("actors_films_started", actor=actor_name, movie_count=movie_count)

        prompt = f"列出{actor_name}主演的{movie_count}部电影"
        result = await self.call_entity(prompt, ActorsFilms)

        logger.info(
            "actors_films_completed",
            actor=result.actor,
            movies=len(result.movies),
            duration_ms=int((time.perf_counter() - started_at) * 1000),
        )
        return result

    async def get_weather_info(
        self,
        city: str,
        month: int,
        max_retry_attempts: int = None,
    ) -> WeatherInfo:
        """Describe the typical weather of ``city`` in ``month``.

        Replies are validated and re-requested on failure.

        Raises:
            InvalidArgumentError: On a blank city, a month outside 1-12 or
                max_retry_attempts < 1
            StructuredOutputError: If no reply validated
        """
        if max_retry_attempts is None:
            max_retry_attempts = config.STRUCTURED_MAX_RETRY_ATTEMPTS
        if not city or not city.strip():
            raise InvalidArgumentError("City must not be blank")
        if month < 1 or month > 12:
            raise InvalidArgumentError("Month must be between 1 and 12")
        if max_retry_attempts < 1:
            raise InvalidArgumentError("max_retry_attempts must be at least 1")

        started_at = time.perf_counter()
        logger.info(
            "weather_info_started",
            city=city,
            month=month,
            max_retry_attempts=max_retry_attempts,
        )

        prompt = f"{city}{month}月的天气通常怎么样？请提供城市名称、月份、平均温度（摄氏度）和天气描述。"
        result = await self.call_entity(prompt, WeatherInfo, max_retry_attempts=max_retry_attempts)

        logger.info(
            "weather_info_completed",
            city=result.city,
            month=result.month,
            average_temperature=result.average_temperature,
            duration_ms=int((time.perf_counter() - started_at) * 1000),
        )
        return result
