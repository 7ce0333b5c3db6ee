"""Model-backed services: plain chat, structured output and the tool agent."""
from aidemo.services.agent import AgentService
from aidemo.services.chat import ChatbotService
from aidemo.services.structured import StructuredOutputService

__all__ = ["AgentService", "ChatbotService", "StructuredOutputService"]
