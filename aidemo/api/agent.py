"""Tool-using agent endpoints under /api/agent."""
import time

import structlog
from pydantic import ValidationError
from quart import Blueprint, jsonify, request

from aidemo.api.common import (
    TEXT_HEADERS,
    elapsed_ms,
    error_message,
    error_status,
    is_blank,
    param,
    services,
)
from aidemo.logging_setup import truncate_for_log
from aidemo.schemas import AgentInfo, AgentRequest, ChatResponse

logger = structlog.get_logger()

bp = Blueprint("agent", __name__, url_prefix="/api/agent")

AGENT_CAPABILITIES = [
    "自动调用 MCP 工具",
    "知识库文档加载",
    "知识库问答",
    "文档检索",
]


@bp.route("/chat", methods=["GET"])
async def simple_chat():
    started_at = time.perf_counter()
    message = request.args.get("message")
    logger.info("agent_simple_chat_request", message_preview=truncate_for_log(message))

    if is_blank(message):
        return "消息内容不能为空", 400, TEXT_HEADERS

    try:
        reply = await services().agent.chat(message)
    except Exception as e:
        logger.error("agent_simple_chat_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return error_message(e), error_status(e), TEXT_HEADERS

    return reply, 200, TEXT_HEADERS


@bp.route("/chat", methods=["POST"])
async def chat():
    """Agent chat.

    Expects JSON body:
    {
        "message": "user message text",
        "system_prompt": "optional, replaces the default agent prompt",
        "conversation_id": "optional id, echoed back"
    }
    """
    started_at = time.perf_counter()
    data = await request.get_json(silent=True)

    try:
        agent_request = AgentRequest.model_validate(data or {})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    if is_blank(agent_request.message):
        return jsonify({"error": "消息内容不能为空"}), 400

    agent = services().agent
    try:
        if is_blank(agent_request.system_prompt):
            reply = await agent.chat(agent_request.message)
        else:
            reply = await agent.chat_with_system_prompt(agent_request.system_prompt, agent_request.message)
    except Exception as e:
        logger.error("agent_chat_endpoint_error", duration_ms=elapsed_ms(started_at), error=str(e))
        return jsonify({"error": error_message(e)}), error_status(e)

    if is_blank(agent_request.conversation_id):
        response = ChatResponse(reply=reply)
    else:
        response = ChatResponse(reply=reply, conversation_id=agent_request.conversation_id)

    logger.info(
        "agent_chat_response_sent",
        duration_ms=elapsed_ms(started_at),
        conversation_id=response.conversation_id,
    )
    return jsonify(response.model_dump(mode="json"))


@bp.route("/chat/with-prompt", methods=["POST"])
async def chat_with_prompt():
    started_at = time.perf_counter()
    system_prompt = await param("system_prompt")
    message = await param("message")

    if is_blank(message):
        return jsonify({"error": "消息内容不能为空"}), 400

    try:
        reply = await services().agent.chat_with_system_prompt(system_prompt, message)
    except Exception as e:
        logger.error("agent_chat_with_prompt_failed", duration_ms=elapsed_ms(started_at), error=str(e))
        return jsonify({"error": error_message(e)}), error_status(e)

    return jsonify(ChatResponse(reply=reply).model_dump(mode="json"))


@bp.route("/info", methods=["GET"])
async def info():
    """Describe the agent and the tools it may call."""
    tools = services().registry.list_tools()
    agent_info = AgentInfo(
        name="AI Demo Agent with MCP Tools",
        description="集成 MCP 工具的智能 Agent，可以自动调用工具完成任务",
        capabilities=AGENT_CAPABILITIES,
        tools=[f"{tool.name} - {tool.description}" for tool in tools],
    )
    return jsonify(agent_info.model_dump(mode="json"))
