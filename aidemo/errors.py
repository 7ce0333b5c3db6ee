"""Exception types shared across the assistant services."""
from typing import Optional


class AssistantError(Exception):
    """Base exception for all assistant errors."""


class InvalidArgumentError(AssistantError, ValueError):
    """Raised when caller input is blank or out of range."""


class DocumentNotFoundError(AssistantError):
    """Raised when a file path to ingest does not exist."""


class EmptyDocumentError(AssistantError):
    """Raised when a parsed document has no usable content."""


class EmptyResponseError(AssistantError):
    """Raised when the language model returns a blank answer."""


class StructuredOutputError(AssistantError):
    """Raised when the model output never validated against the target schema."""


class WrappedError(AssistantError):
    """Failure of a top-level operation, carrying the original cause.

    Attributes:
        cause: The underlying exception (also chained as ``__cause__``)
        elapsed_ms: Milliseconds spent before the failure
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None, elapsed_ms: int = 0):
        super().__init__(message)
        self.cause = cause
        self.elapsed_ms = elapsed_ms

    def __str__(self) -> str:
        base = super().__str__()
        if self.cause is not None:
            return f"{base}: {self.cause}"
        return base


class IngestionError(WrappedError):
    """Raised when loading documents into the vector store fails."""


class RagError(WrappedError):
    """Raised when retrieval-augmented answering fails."""
