"""Chat, structured output and RAG endpoints under /api/chat."""
import time
from typing import List

import structlog
from pydantic import ValidationError
from quart import Blueprint, jsonify, request

from aidemo.api.common import (
    TEXT_HEADERS,
    elapsed_ms,
    error_message,
    error_status,
    int_param,
    is_blank,
    param,
    services,
)
from aidemo.errors import InvalidArgumentError
from aidemo.logging_setup import truncate_for_log
from aidemo.schemas import (
    ActorsFilms,
    ChatRequest,
    ChatResponse,
    DocumentInfo,
    RagRequest,
    StructuredResponse,
    WeatherInfo,
)

logger = structlog.get_logger()

bp = Blueprint("chat", __name__, url_prefix="/api/chat")


def _structured(response: StructuredResponse, status: int = 200):
    return jsonify(response.model_dump(mode="json")), status


def _chat_response(reply: str, conversation_id: str = None):
    if is_blank(conversation_id):
        response = ChatResponse(reply=reply)
    else:
        response = ChatResponse(reply=reply, conversation_id=conversation_id)
    return jsonify(response.model_dump(mode="json"))


@bp.route("/simple", methods=["GET"])
async def simple_chat():
    """Plain-text chat: ?message=... returns the reply as text."""
    started_at = time.perf_counter()
    message = request.args.get("message")
    logger.info("simple_chat_request", message_preview=truncate_for_log(message))

    if is_blank(message):
        return "消息内容不能为空", 400, TEXT_HEADERS

    try:
        reply = await services().chatbot.chat(message)
    except Exception as e:
        logger.error("simple_chat_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return error_message(e), error_status(e), TEXT_HEADERS

    logger.info("simple_chat_completed", duration_ms=elapsed_ms(started_at))
    return reply, 200, TEXT_HEADERS


@bp.route("", methods=["POST"])
async def chat():
    """Standard chat.

    Expects JSON body:
    {
        "message": "user message text",
        "conversation_id": "optional id, echoed back"
    }

    Returns JSON ChatResponse {reply, conversation_id, timestamp}.
    """
    started_at = time.perf_counter()
    data = await request.get_json(silent=True)

    try:
        chat_request = ChatRequest.model_validate(data or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    logger.info(
        "chat_request_received",
        message_preview=truncate_for_log(chat_request.message),
        conversation_id=chat_request.conversation_id,
    )

    if is_blank(chat_request.message):
        return jsonify({"error": "消息内容不能为空"}), 400

    try:
        reply = await services().chatbot.chat(chat_request.message)
    except Exception as e:
        logger.error("chat_endpoint_error", duration_ms=elapsed_ms(started_at), error=str(e))
        return jsonify({"error": error_message(e)}), error_status(e)

    logger.info("chat_response_sent", duration_ms=elapsed_ms(started_at))
    return _chat_response(reply, chat_request.conversation_id)


@bp.route("/with-prompt", methods=["POST"])
async def chat_with_prompt():
    """Chat with an optional system_prompt; parameters come from the query or form."""
    started_at = time.perf_counter()
    system_prompt = await param("system_prompt")
    message = await param("message")
    logger.info(
        "chat_with_prompt_request",
        system_prompt_preview=truncate_for_log(system_prompt),
        message_preview=truncate_for_log(message),
    )

    if is_blank(message):
        return jsonify({"error": "消息内容不能为空"}), 400

    try:
        reply = await services().chatbot.chat_with_system_prompt(system_prompt, message)
    except Exception as e:
        logger.error("chat_with_prompt_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return jsonify({"error": error_message(e)}), error_status(e)

    logger.info("chat_with_prompt_completed", duration_ms=elapsed_ms(started_at))
    return _chat_response(reply)


@bp.route("/structured/actors-films", methods=["GET"])
async def actors_films():
    started_at = time.perf_counter()
    actor_name = request.args.get("actor_name")

    if is_blank(actor_name):
        return _structured(StructuredResponse[ActorsFilms].fail("演员姓名不能为空"), 400)

    try:
        movie_count = await int_param("movie_count", 5)
        result = await services().structured.get_actors_films(actor_name, movie_count)
    except Exception as e:
        logger.error("actors_films_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return _structured(StructuredResponse[ActorsFilms].fail(error_message(e)), error_status(e))

    return _structured(StructuredResponse[ActorsFilms].ok(result))


@bp.route("/structured/weather", methods=["GET"])
async def weather():
    """Typical weather for ?city=...&month=1-12[&max_retry_attempts=3]."""
    started_at = time.perf_counter()
    city = request.args.get("city")

    if is_blank(city):
        return _structured(StructuredResponse[WeatherInfo].fail("城市名称不能为空"), 400)

    try:
        month = await int_param("month")
        max_retry_attempts = await int_param("max_retry_attempts")
    except InvalidArgumentError as e:
        return _structured(StructuredResponse[WeatherInfo].fail(str(e)), 400)

    if month is None or month < 1 or month > 12:
        return _structured(StructuredResponse[WeatherInfo].fail("月份必须在1-12之间"), 400)

    try:
        result = await services().structured.get_weather_info(city, month, max_retry_attempts)
    except Exception as e:
        logger.error("weather_info_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return _structured(StructuredResponse[WeatherInfo].fail(error_message(e)), error_status(e))

    return _structured(StructuredResponse[WeatherInfo].ok(result))


@bp.route("/rag", methods=["POST"])
async def rag_answer():
    """RAG question answering.

    Expects JSON body:
    {
        "question": "...",
        "top_k": 4,                    // optional
        "similarity_threshold": 0.5    // optional
    }
    """
    started_at = time.perf_counter()
    data = await request.get_json(silent=True)

    try:
        rag_request = RagRequest.model_validate(data or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    logger.info("rag_request_received", question_preview=truncate_for_log(rag_request.question))

    if is_blank(rag_request.question):
        return jsonify({"error": "问题不能为空"}), 400

    try:
        answer = await services().orchestrator.answer(
            rag_request.question,
            top_k=rag_request.top_k,
            similarity_threshold=rag_request.similarity_threshold,
        )
    except Exception as e:
        logger.error("rag_endpoint_error", duration_ms=elapsed_ms(started_at), error=str(e))
        return jsonify({"error": error_message(e)}), error_status(e)

    logger.info("rag_response_sent", duration_ms=elapsed_ms(started_at))
    return _chat_response(answer)


@bp.route("/rag", methods=["GET"])
async def rag_answer_simple():
    started_at = time.perf_counter()
    question = request.args.get("question")

    if is_blank(question):
        return "问题不能为空", 400, TEXT_HEADERS

    try:
        answer = await services().orchestrator.answer(question)
    except Exception as e:
        logger.error("rag_simple_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return error_message(e), error_status(e), TEXT_HEADERS

    return answer, 200, TEXT_HEADERS


@bp.route("/rag/test-upload", methods=["POST"])
async def test_upload():
    """Store raw ?text=... (or form field) as one document."""
    started_at = time.perf_counter()
    text = await param("text")

    if is_blank(text):
        return _structured(StructuredResponse[str].fail("文本内容不能为空"), 400)

    try:
        await services().pipeline.ingest_text(text)
    except Exception as e:
        logger.error("test_upload_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return _structured(StructuredResponse[str].fail(f"上传失败: {e}"), error_status(e))

    logger.info("test_upload_completed", duration_ms=elapsed_ms(started_at), text_length=len(text))
    return _structured(StructuredResponse[str].ok("文本上传成功！已向量化并存储到向量库"))


@bp.route("/rag/load-documents", methods=["POST"])
async def load_documents():
    started_at = time.perf_counter()
    try:
        count = await services().pipeline.ingest_all()
    except Exception as e:
        logger.error("load_documents_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return _structured(StructuredResponse[int].fail(error_message(e)), error_status(e))

    logger.info("load_documents_completed", duration_ms=elapsed_ms(started_at), documents=count)
    return _structured(StructuredResponse[int].ok(count))


@bp.route("/rag/load-document", methods=["POST"])
async def load_document():
    started_at = time.perf_counter()
    file_path = await param("file_path")

    if is_blank(file_path):
        return _structured(StructuredResponse[int].fail("文件路径不能为空"), 400)

    try:
        count = await services().pipeline.ingest_file(file_path)
    except Exception as e:
        logger.error("load_document_failed", path=file_path, duration_ms=elapsed_ms(started_at), error=str(e))
        return _structured(StructuredResponse[int].fail(error_message(e)), error_status(e))

    logger.info("load_document_completed", path=file_path, documents=count)
    return _structured(StructuredResponse[int].ok(count))


@bp.route("/rag/search", methods=["GET"])
async def search_documents():
    """Retrieval only: ?query=...&top_k=4 returns the matching documents."""
    started_at = time.perf_counter()
    query = request.args.get("query")

    if is_blank(query):
        return _structured(StructuredResponse[List[DocumentInfo]].fail("查询文本不能为空"), 400)

    try:
        top_k = await int_param("top_k", 4)
        documents = await services().orchestrator.search_documents(query, top_k)
    except Exception as e:
        logger.error("search_documents_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return _structured(StructuredResponse[List[DocumentInfo]].fail(error_message(e)), error_status(e))

    infos = [
        DocumentInfo(content=doc.content, metadata=dict(doc.metadata), source=doc.source)
        for doc in documents
    ]
    logger.info("search_documents_completed", duration_ms=elapsed_ms(started_at), results=len(infos))
    return _structured(StructuredResponse[List[DocumentInfo]].ok(infos))


@bp.route("/rag/clear", methods=["POST"])
async def clear_documents():
    """Empty the in-memory vector store."""
    try:
        await services().pipeline.vector_store.clear()
    except Exception as e:
        logger.error("clear_documents_failed", error=str(e))
        return _structured(StructuredResponse[str].fail(error_message(e)), 500)

    return _structured(StructuredResponse[str].ok("向量存储已清空"))
