"""Tools package - imports all tools to trigger registration."""
from aidemo.tools.registry import get_registry, Tool, ToolResult, ToolRegistry
from aidemo.tools import knowledge

__all__ = ["get_registry", "Tool", "ToolResult", "ToolRegistry"]
