"""Agent that answers with the help of the knowledge-base tools.

The model is told which tools exist and replies either in natural language
or with a JSON tool call. Tool results are fed back until the model gives
a plain answer or the iteration limit is reached.
"""
import json
import re
import time
from typing import Any, Dict, List, Optional

import structlog

from aidemo import config
from aidemo.errors import EmptyResponseError, InvalidArgumentError
from aidemo.lazy import AsyncOnce
from aidemo.llm_client import OllamaClient, ollama_client
from aidemo.logging_setup import truncate_for_log
from aidemo.tools import ToolRegistry, get_registry

logger = structlog.get_logger()

DEFAULT_AGENT_SYSTEM_PROMPT = """你是一个智能助手，可以使用以下工具来帮助用户：

1. loadAllDocuments - 加载知识库中的所有文档到向量存储。返回加载的文档数量。
2. loadDocument - 加载指定文件到向量存储。参数：filePath - 文件的完整路径。返回加载的文档数量。
3. answerQuestion - 基于知识库回答用户问题。使用RAG（检索增强生成）技术，从知识库中检索相关信息并生成回答。参数：question - 用户的问题。
4. searchDocuments - 从知识库中检索与查询相关的文档。参数：query - 查询文本；topK - 返回的文档数量（可选，默认4）。返回检索到的文档摘要。

当用户需要查询知识库、加载文档或检索信息时，你应该主动使用相应的工具。
使用工具后，请根据工具返回的结果给用户一个清晰的回答。
"""

TOOL_CALL_INSTRUCTIONS = """
调用工具时，只回复一个如下格式的 JSON 对象，不要输出其他内容：
{
  "tool": "工具名称",
  "args": {
    "参数名": "参数值"
  }
}
不需要工具时，直接用自然语言回答。

工具列表：
"""


def parse_tool_call(text: str) -> dict | None:
    """Parse a tool call from LLM response.

    Looks for JSON in the format:
    {
      "tool": "tool_name",
      "args": {...}
    }

    Handles markdown code blocks (```json ... ```)

    Returns:
        Dict with tool and args if found, None otherwise
    """
    code_block_match = re.search(r'```(?:json)?\s*(\{.*?\})\s*```', text, re.DOTALL)
    if code_block_match:
        text = code_block_match.group(1).strip()

    start_idx = text.find('{')
    if start_idx == -1:
        return None

    brace_count = 0
    end_idx = start_idx
    for i in range(start_idx, len(text)):
        if text[i] == '{':
            brace_count += 1
        elif text[i] == '}':
            brace_count -= 1
            if brace_count == 0:
                end_idx = i + 1
                break

    if brace_count != 0:
        return None

    json_str = text[start_idx:end_idx]

    try:
        tool_call = json.loads(json_str)
        if isinstance(tool_call, dict) and "tool" in tool_call and isinstance(tool_call.get("args", {}), dict):
            tool_call.setdefault("args", {})
            return tool_call
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("failed_to_parse_tool_call", error=str(e), text_preview=json_str[:100])

    return None


class AgentService:
    """Chat agent with access to the registered tools."""

    def __init__(
        self,
        llm: Optional[OllamaClient] = None,
        registry: Optional[ToolRegistry] = None,
        default_system_prompt: str = None,
        max_tool_iterations: int = None,
    ):
        self.llm = llm or ollama_client
        self.registry = registry or get_registry()
        self.default_system_prompt = (
            default_system_prompt
            or config.AGENT_SYSTEM_PROMPT
            or DEFAULT_AGENT_SYSTEM_PROMPT
        )
        self.max_tool_iterations = max_tool_iterations or config.AGENT_MAX_TOOL_ITERATIONS
        # Tools register on import, so the description is read on first use
        self._tools_description = AsyncOnce(
            lambda: self.registry.get_tools_description(),
            name="agent_tools_description",
        )

    async def chat(self, message: str) -> str:
        return await self.chat_with_system_prompt(None, message)

    async def chat_with_system_prompt(self, system_prompt: Optional[str], message: str) -> str:
        """Run the tool loop for one user message.

        A blank ``system_prompt`` falls back to the default agent prompt.

        Raises:
            InvalidArgumentError: If the message is blank
            EmptyResponseError: If the final answer is blank
        """
        started_at = time.perf_counter()
        logger.info("agent_chat_started", message_preview=truncate_for_log(message))

        if not message or not message.strip():
            raise InvalidArgumentError("消息内容不能为空")

        prompt = system_prompt if system_prompt and system_prompt.strip() else self.default_system_prompt
        tools_description = await self._tools_description.get()

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": prompt + TOOL_CALL_INSTRUCTIONS + tools_description},
            {"role": "user", "content": message},
        ]

        try:
            answer, tool_calls = await self._run(messages)
        except Exception as e:
            logger.error(
                "agent_chat_failed",
                duration_ms=int((time.perf_counter() - started_at) * 1000),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        logger.info(
            "agent_chat_completed",
            duration_ms=int((time.perf_counter() - started_at) * 1000),
            tool_calls=len(tool_calls),
            reply_preview=truncate_for_log(answer),
        )
        return answer

    async def _run(self, messages: List[Dict[str, str]]) -> tuple[str, List[Dict[str, Any]]]:
        tool_calls: List[Dict[str, Any]] = []
        assistant_message = ""

        for iteration in range(self.max_tool_iterations):
            response = await self.llm.chat(messages)
            assistant_message = response.get("message", {}).get("content", "")

            if not assistant_message or not assistant_message.strip():
                raise EmptyResponseError("Agent返回内容为空")

            tool_call = parse_tool_call(assistant_message)
            if not tool_call:
                return assistant_message, tool_calls

            tool_name = tool_call.get("tool")
            tool_args = tool_call.get("args", {})
            logger.info("tool_call_detected", tool=tool_name, args=tool_args, iteration=iteration)

            tool_result = await self.registry.execute_tool(tool_name, tool_args)
            tool_calls.append({
                "tool": tool_name,
                "args": tool_args,
                "result": tool_result.output,
                "error": tool_result.error,
            })

            messages.append({"role": "assistant", "content": assistant_message})
            if tool_result.success:
                messages.append({
                    "role": "user",
                    "content": f"工具 '{tool_name}' 返回：\n{tool_result.output}\n请根据这个结果用自然语言回答用户。",
                })
            else:
                messages.append({
                    "role": "user",
                    "content": f"工具调用失败：{tool_result.error}。请不使用工具直接回答。",
                })

        logger.warning("agent_tool_iterations_exhausted", max_iterations=self.max_tool_iterations)
        return assistant_message, tool_calls
