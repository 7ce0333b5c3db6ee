"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Document loading and format dispatch (PDF, plain text, auto-detected)
- Optional chunking with overlap
- In-memory FAISS vector storage
- Retrieval, answer generation and orchestration
"""
from aidemo.rag.document import Document

__all__ = ["Document"]
