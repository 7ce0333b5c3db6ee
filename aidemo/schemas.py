"""Request and response models for the HTTP API."""
import time
import uuid
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


def now_ms() -> int:
    return int(time.time() * 1000)


def new_conversation_id() -> str:
    return str(uuid.uuid4())


class ChatRequest(BaseModel):
    message: Optional[str] = None
    conversation_id: Optional[str] = None


class AgentRequest(BaseModel):
    message: Optional[str] = None
    system_prompt: Optional[str] = None
    conversation_id: Optional[str] = None


class RagRequest(BaseModel):
    question: Optional[str] = None
    top_k: Optional[int] = Field(default=None, gt=0)
    similarity_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class ChatResponse(BaseModel):
    reply: str
    conversation_id: str = Field(default_factory=new_conversation_id)
    timestamp: int = Field(default_factory=now_ms)


class StructuredResponse(BaseModel, Generic[T]):
    """Envelope for structured results: either data or an error message."""

    data: Optional[T] = None
    success: bool = True
    error_message: Optional[str] = None
    timestamp: int = Field(default_factory=now_ms)

    @classmethod
    def ok(cls, data: Any) -> "StructuredResponse":
        return cls(data=data, success=True)

    @classmethod
    def fail(cls, message: str) -> "StructuredResponse":
        return cls(success=False, error_message=message)


class DocumentInfo(BaseModel):
    content: str
    metadata: Dict[str, Any]
    source: str


class ActorsFilms(BaseModel):
    """An actor and some of the films they starred in."""

    actor: str = Field(..., min_length=1, description="演员姓名")
    movies: List[str] = Field(..., description="电影名称列表")


class WeatherInfo(BaseModel):
    """Typical weather of a city in a given month."""

    city: str = Field(..., min_length=1, description="城市名称")
    month: int = Field(..., ge=1, le=12, description="月份（1-12）")
    average_temperature: float = Field(..., ge=-90, le=60, description="平均温度（摄氏度）")
    description: str = Field(..., min_length=1, description="天气描述")


class AgentInfo(BaseModel):
    name: str
    description: str
    capabilities: List[str]
    tools: List[str]


class McpServerInfo(BaseModel):
    enabled: bool
    name: str
    version: str
    port: int
    path: str
    base_url: str


class ParameterInfo(BaseModel):
    name: str
    type: str
    required: bool
    description: Optional[str] = None


class ToolInfo(BaseModel):
    name: str
    description: str
    parameters: List[ParameterInfo]
    return_type: str = "string"


class McpToolsResponse(BaseModel):
    success: bool
    tool_count: int
    tools: List[ToolInfo]
    error_message: Optional[str] = None
    timestamp: int = Field(default_factory=now_ms)


class McpToolResult(BaseModel):
    tool_name: str
    success: bool
    result: Optional[str] = None
    duration_ms: Optional[int] = None
    timestamp: int = Field(default_factory=now_ms)
