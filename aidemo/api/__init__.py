"""HTTP blueprints."""
from aidemo.api import agent, chat, mcp

blueprints = [chat.bp, agent.bp, mcp.bp]

__all__ = ["blueprints"]
