"""Tool Registry for MCP-style tool calling.

Provides a dataclass-based tool system where LLMs can call tools
via JSON-formatted requests.
"""
import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from pydantic import BaseModel, ValidationError

from aidemo import config
from aidemo.schemas import ParameterInfo, ToolInfo

logger = structlog.get_logger()

_JSON_TYPES = {
    "string": "string",
    "integer": "integer",
    "number": "number",
    "boolean": "boolean",
    "array": "array",
    "object": "object",
}


@dataclass
class Tool:
    """Tool definition with input schema and handler."""
    name: str
    description: str
    input_model: type[BaseModel]
    handler: Callable[[BaseModel], Awaitable[str]]

    def describe(self) -> ToolInfo:
        """Summarize the tool's parameters from its input model's JSON schema."""
        schema = self.input_model.model_json_schema(by_alias=True)
        required = set(schema.get("required", []))
        parameters = []
        for name, prop in schema.get("properties", {}).items():
            json_type = prop.get("type")
            if json_type is None and "anyOf" in prop:
                json_type = next(
                    (option.get("type") for option in prop["anyOf"] if option.get("type") != "null"),
                    None,
                )
            parameters.append(
                ParameterInfo(
                    name=name,
                    type=_JSON_TYPES.get(json_type, "string"),
                    required=name in required,
                    description=prop.get("description"),
                )
            )
        return ToolInfo(name=self.name, description=self.description, parameters=parameters)


@dataclass
class ToolResult:
    """Result of a tool execution."""
    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    invalid_arguments: bool = False


class ToolRegistry:
    """Registry for available tools."""

    def __init__(self, timeout: float = None):
        self.tools: Dict[str, Tool] = {}
        self._timeout = timeout or config.TOOL_TIMEOUT

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self.tools[tool.name] = tool
        logger.info("tool_registered", tool_name=tool.name)

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        if not isinstance(name, str):
            return None
        return self.tools.get(name)

    def list_tools(self) -> List[Tool]:
        """List all registered tools."""
        return list(self.tools.values())

    def get_tools_description(self) -> str:
        """Get a formatted description of all tools for the LLM system prompt."""
        if not self.tools:
            return "No tools available."

        descriptions = []
        for tool in self.tools.values():
            input_schema = tool.input_model.model_json_schema(by_alias=True)
            descriptions.append(
                f"Tool: {tool.name}\n"
                f"Description: {tool.description}\n"
                f"Input schema: {json.dumps(input_schema, ensure_ascii=False, indent=2)}\n"
            )

        return "\n".join(descriptions)

    async def execute_tool(self, tool_name: str, args: Dict[str, Any]) -> ToolResult:
        """Execute a tool with the given arguments.

        Args:
            tool_name: Name of the tool to execute
            args: Arguments to pass to the tool

        Returns:
            ToolResult with success status and output or error
        """
        tool = self.get_tool(tool_name)

        if not tool:
            logger.error("tool_not_found", tool_name=tool_name)
            return ToolResult(success=False, error=f"Tool '{tool_name}' not found")

        try:
            validated_input = tool.input_model.model_validate(args or {})

            async with asyncio.timeout(self._timeout):
                output = await tool.handler(validated_input)

            logger.info(
                "tool_executed",
                tool_name=tool_name,
                success=True,
                result_preview=str(output)[:100],
            )

            return ToolResult(success=True, output=output)

        except ValidationError as e:
            logger.warning("tool_arguments_invalid", tool_name=tool_name, error=str(e))
            return ToolResult(success=False, error=f"Invalid arguments: {e}", invalid_arguments=True)

        except TimeoutError:
            logger.error("tool_timeout", tool_name=tool_name, timeout=self._timeout)
            return ToolResult(
                success=False,
                error=f"Tool execution timeout after {self._timeout}s"
            )

        except Exception as e:
            logger.exception("tool_execution_failed", tool_name=tool_name, error=str(e))
            return ToolResult(success=False, error=f"Tool execution failed: {str(e)}")


# Global registry instance
_registry = ToolRegistry()


def get_registry() -> ToolRegistry:
    """Get the global tool registry."""
    return _registry


def register_tool(tool: Tool) -> None:
    """Register a tool in the global registry."""
    _registry.register(tool)
