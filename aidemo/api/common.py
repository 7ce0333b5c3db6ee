"""Shared pieces of the HTTP layer: the service container and error mapping."""
import time
from dataclasses import dataclass, field
from typing import Optional

from quart import current_app, request

from aidemo.errors import DocumentNotFoundError, InvalidArgumentError, WrappedError
from aidemo.llm_client import OllamaClient, ollama_client
from aidemo.rag.ingest import IngestionPipeline, get_ingestion_pipeline
from aidemo.rag.orchestrator import RagOrchestrator, get_orchestrator
from aidemo.services import AgentService, ChatbotService, StructuredOutputService
from aidemo.tools import ToolRegistry, get_registry

EXTENSION_KEY = "aidemo_services"
ERROR_PREFIX = "处理请求时发生错误: "
TEXT_HEADERS = {"Content-Type": "text/plain; charset=utf-8"}


@dataclass
class Services:
    """Everything the blueprints call into. Tests pass fakes here."""
    llm: OllamaClient = field(default_factory=lambda: ollama_client)
    chatbot: ChatbotService = field(default_factory=ChatbotService)
    structured: StructuredOutputService = field(default_factory=StructuredOutputService)
    pipeline: IngestionPipeline = field(default_factory=get_ingestion_pipeline)
    orchestrator: RagOrchestrator = field(default_factory=get_orchestrator)
    agent: AgentService = field(default_factory=AgentService)
    registry: ToolRegistry = field(default_factory=get_registry)


def services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def root_cause(error: BaseException) -> BaseException:
    """Unwrap IngestionError/RagError down to the error that caused them."""
    while isinstance(error, WrappedError) and error.cause is not None:
        error = error.cause
    return error


def error_status(error: BaseException) -> int:
    cause = root_cause(error)
    if isinstance(cause, InvalidArgumentError):
        return 400
    if isinstance(cause, DocumentNotFoundError):
        return 404
    return 500


def error_message(error: BaseException) -> str:
    return f"{ERROR_PREFIX}{error}"


async def param(name: str) -> Optional[str]:
    """Read a parameter from the query string, falling back to form data."""
    value = request.args.get(name)
    if value is None:
        form = await request.form
        value = form.get(name)
    return value


def elapsed_ms(started_at: float) -> int:
    return int((time.perf_counter() - started_at) * 1000)


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


async def int_param(name: str, default: Optional[int] = None) -> Optional[int]:
    """Integer parameter; a present but malformed value is an InvalidArgumentError."""
    value = await param(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidArgumentError(f"Parameter '{name}' must be an integer, got {value!r}") from None
