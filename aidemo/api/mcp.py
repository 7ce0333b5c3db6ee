"""MCP tool discovery and manual invocation under /api/mcp."""
import time

import structlog
from quart import Blueprint, jsonify, request

from aidemo import config
from aidemo.api.common import elapsed_ms, services
from aidemo.schemas import McpServerInfo, McpToolResult, McpToolsResponse

logger = structlog.get_logger()

bp = Blueprint("mcp", __name__, url_prefix="/api/mcp")


@bp.route("/info", methods=["GET"])
async def server_info():
    server = McpServerInfo(
        enabled=config.MCP_SERVER_ENABLED,
        name=config.MCP_SERVER_NAME,
        version=config.MCP_SERVER_VERSION,
        port=config.MCP_SERVER_PORT,
        path=config.MCP_SERVER_PATH,
        base_url=f"http://localhost:{config.MCP_SERVER_PORT}{config.MCP_SERVER_PATH}",
    )
    return jsonify(server.model_dump(mode="json"))


@bp.route("/tools", methods=["GET"])
async def list_tools():
    try:
        tools = [tool.describe() for tool in services().registry.list_tools()]
    except Exception as e:
        logger.error("mcp_list_tools_failed", error=str(e))
        response = McpToolsResponse(
            success=False,
            tool_count=0,
            tools=[],
            error_message=f"获取工具列表失败: {e}",
        )
        return jsonify(response.model_dump(mode="json")), 500

    logger.info("mcp_tools_listed", tool_count=len(tools))
    response = McpToolsResponse(success=True, tool_count=len(tools), tools=tools)
    return jsonify(response.model_dump(mode="json"))


@bp.route("/tools/test/<tool_name>", methods=["POST"])
async def test_tool(tool_name: str):
    """Invoke a registered tool directly.

    Arguments are taken from the query string, overridden by a JSON object body.
    """
    registry = services().registry
    if registry.get_tool(tool_name) is None:
        result = McpToolResult(tool_name=tool_name, success=False, result=f"未知工具: {tool_name}")
        return jsonify(result.model_dump(mode="json")), 404

    args = dict(request.args)
    body = await request.get_json(silent=True)
    if isinstance(body, dict):
        args.update(body)

    logger.info("mcp_tool_test_request", tool_name=tool_name, args=args)

    started_at = time.perf_counter()
    tool_result = await registry.execute_tool(tool_name, args)
    duration = elapsed_ms(started_at)

    if not tool_result.success:
        status = 400 if tool_result.invalid_arguments else 500
        result = McpToolResult(
            tool_name=tool_name,
            success=False,
            result=f"调用失败: {tool_result.error}",
            duration_ms=duration,
        )
        return jsonify(result.model_dump(mode="json")), status

    logger.info("mcp_tool_test_completed", tool_name=tool_name, duration_ms=duration)
    result = McpToolResult(tool_name=tool_name, success=True, result=tool_result.output, duration_ms=duration)
    return jsonify(result.model_dump(mode="json"))
