"""Application configuration with sensible defaults."""
import os
from pathlib import Path


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Paths
BASE_DIR = Path(__file__).parent.parent
KNOWLEDGE_BASE_DIR = Path(os.getenv("KNOWLEDGE_BASE_DIR", str(BASE_DIR / "knowledge-base")))

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
CHAT_MODEL = os.getenv("CHAT_MODEL", "qwen2.5:7b")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "mxbai-embed-large:latest")

# Outbound HTTP (explicit proxy instead of process-wide settings)
HTTP_PROXY_URL = os.getenv("HTTP_PROXY_URL") or None   # e.g. http://127.0.0.1:7890
HTTP_NO_PROXY_HOSTS = ("localhost", "127.0.0.1")
HTTP_CONNECT_TIMEOUT = float(os.getenv("HTTP_CONNECT_TIMEOUT", "30.0"))
HTTP_READ_TIMEOUT = float(os.getenv("HTTP_READ_TIMEOUT", "60.0"))
HTTP_LOG_BODIES = _env_bool("HTTP_LOG_BODIES")

# RAG parameters
RAG_TOP_K = int(os.getenv("RAG_TOP_K", "4"))
RAG_SIMILARITY_THRESHOLD = float(os.getenv("RAG_SIMILARITY_THRESHOLD", "0.0"))
RAG_SYSTEM_PROMPT = os.getenv("RAG_SYSTEM_PROMPT", "")

# Chunking is off by default: documents are stored whole
CHUNKING_ENABLED = _env_bool("CHUNKING_ENABLED")
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))          # characters
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))

# Structured output & agent
STRUCTURED_MAX_RETRY_ATTEMPTS = int(os.getenv("STRUCTURED_MAX_RETRY_ATTEMPTS", "3"))
AGENT_SYSTEM_PROMPT = os.getenv("AGENT_SYSTEM_PROMPT", "")
AGENT_MAX_TOOL_ITERATIONS = int(os.getenv("AGENT_MAX_TOOL_ITERATIONS", "5"))
TOOL_TIMEOUT = float(os.getenv("TOOL_TIMEOUT", "120.0"))

# MCP server descriptor (reported by /api/mcp/info)
MCP_SERVER_ENABLED = _env_bool("MCP_SERVER_ENABLED")
MCP_SERVER_NAME = os.getenv("MCP_SERVER_NAME", "aidemo-mcp-server")
MCP_SERVER_VERSION = os.getenv("MCP_SERVER_VERSION", "1.0.0")
MCP_SERVER_PORT = int(os.getenv("MCP_SERVER_PORT", "8081"))
MCP_SERVER_PATH = os.getenv("MCP_SERVER_PATH", "/mcp")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_PREVIEW_CHARS = 200
