"""Document representation shared by loaders, the vector store and the RAG chain."""
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

UNKNOWN_SOURCE = "未知来源"


@dataclass(frozen=True)
class Document:
    """A unit of text with metadata.

    Immutable: the metadata mapping is copied on creation and exposed
    read-only. Use ``with_metadata`` to derive a new document.
    """

    content: str
    metadata: Mapping[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def source(self) -> str:
        """Origin of the document, or the unknown-source label."""
        value = self.metadata.get("source")
        if value is None or not str(value).strip():
            return UNKNOWN_SOURCE
        return str(value)

    @property
    def has_source(self) -> bool:
        value = self.metadata.get("source")
        return value is not None and bool(str(value).strip())

    def with_metadata(self, **extra: Any) -> "Document":
        """Return a copy with extra metadata keys and the same id."""
        return Document(content=self.content, metadata={**self.metadata, **extra}, id=self.id)

    def __hash__(self):
        return hash(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": dict(self.metadata),
            "source": self.source,
        }
