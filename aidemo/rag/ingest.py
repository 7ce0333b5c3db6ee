"""Ingest pipeline for loading the knowledge base into the vector store.

Orchestrates:
- Knowledge-base directory bootstrap
- File discovery and parsing (via DocumentLoader)
- Optional chunking
- A single bulk upsert per call
"""
import time
from pathlib import Path
from typing import List, Optional

import structlog

from aidemo import config
from aidemo.errors import IngestionError, InvalidArgumentError
from aidemo.rag.chunker import TextChunker
from aidemo.rag.document import Document
from aidemo.rag.loader import DocumentLoader, ProgressCallback
from aidemo.rag.store import FAISSVectorStore, get_vector_store

logger = structlog.get_logger()

MANUAL_UPLOAD_SOURCE = "manual-upload"


def _elapsed_ms(started_at: float) -> int:
    return int((time.perf_counter() - started_at) * 1000)


class IngestionPipeline:
    """Pipeline for ingesting knowledge-base files into the vector store."""

    def __init__(
        self,
        vector_store: Optional[FAISSVectorStore] = None,
        loader: Optional[DocumentLoader] = None,
        knowledge_base_dir: Optional[Path] = None,
        chunking_enabled: Optional[bool] = None,
        chunker: Optional[TextChunker] = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            vector_store: Target store (default: the shared store)
            loader: Document loader (default: a new DocumentLoader)
            knowledge_base_dir: Root directory (default from config)
            chunking_enabled: Split documents before storing (default from config)
            chunker: Chunker used when chunking is enabled
        """
        self.vector_store = vector_store or get_vector_store()
        self.loader = loader or DocumentLoader()
        self.knowledge_base_dir = Path(knowledge_base_dir or config.KNOWLEDGE_BASE_DIR)
        self.chunking_enabled = (
            config.CHUNKING_ENABLED if chunking_enabled is None else chunking_enabled
        )
        self.chunker = chunker or (TextChunker() if self.chunking_enabled else None)

        logger.info(
            "ingest_pipeline_initialized",
            knowledge_base_dir=str(self.knowledge_base_dir),
            chunking_enabled=self.chunking_enabled,
        )

    def _prepare(self, documents: List[Document]) -> List[Document]:
        if self.chunking_enabled and self.chunker is not None:
            return self.chunker.split_documents(documents)
        return documents

    async def _store(self, documents: List[Document]) -> int:
        documents = self._prepare(documents)
        await self.vector_store.add(documents)
        return len(documents)

    async def ingest_all(
        self,
        root: Optional[Path] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> int:
        """Load every document under the knowledge-base root.

        A missing root directory is created and the call returns 0.

        Returns:
            Number of documents stored

        Raises:
            IngestionError: If directory creation or the store upsert fails
        """
        root = Path(root) if root is not None else self.knowledge_base_dir
        started_at = time.perf_counter()
        logger.info("ingest_all_started", root=str(root))

        try:
            if not root.exists():
                logger.warning("knowledge_base_missing_creating", root=str(root))
                root.mkdir(parents=True, exist_ok=True)
                return 0

            documents = self.loader.load_all(root, progress_callback=progress_callback)
            if not documents:
                logger.warning("no_documents_found", root=str(root))
                return 0

            stored = await self._store(documents)

        except Exception as e:
            elapsed = _elapsed_ms(started_at)
            logger.error(
                "ingest_all_failed",
                root=str(root),
                duration_ms=elapsed,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise IngestionError("Failed to load knowledge base", cause=e, elapsed_ms=elapsed) from e

        logger.info(
            "ingest_all_completed",
            root=str(root),
            documents=stored,
            duration_ms=_elapsed_ms(started_at),
        )
        return stored

    async def ingest_file(self, file_path: str | Path) -> int:
        """Load a single file into the vector store.

        Returns:
            Number of documents stored (0 when the file yielded nothing)

        Raises:
            InvalidArgumentError: If the path is blank
            DocumentNotFoundError: If the path does not exist
            IngestionError: If the store upsert fails
        """
        started_at = time.perf_counter()
        logger.info("ingest_file_started", path=str(file_path))

        documents = self.loader.load_one(file_path)
        if not documents:
            logger.warning("file_yielded_no_documents", path=str(file_path))
            return 0

        try:
            stored = await self._store(documents)
        except Exception as e:
            elapsed = _elapsed_ms(started_at)
            logger.error(
                "ingest_file_failed",
                path=str(file_path),
                duration_ms=elapsed,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise IngestionError(
                f"Failed to load document {file_path}", cause=e, elapsed_ms=elapsed
            ) from e

        logger.info(
            "ingest_file_completed",
            path=str(file_path),
            documents=stored,
            duration_ms=_elapsed_ms(started_at),
        )
        return stored

    async def ingest_text(self, text: str, source: str = MANUAL_UPLOAD_SOURCE) -> int:
        """Store a piece of raw text as a document.

        Raises:
            InvalidArgumentError: If text or source is blank
            IngestionError: If the store upsert fails
        """
        if not text or not text.strip():
            raise InvalidArgumentError("Text must not be blank")
        if not source or not source.strip():
            raise InvalidArgumentError("Source must not be blank")

        started_at = time.perf_counter()
        document = Document(
            content=text,
            metadata={
                "source": source,
                "type": "manual",
                "timestamp": int(time.time() * 1000),
            },
        )

        try:
            stored = await self._store([document])
        except Exception as e:
            elapsed = _elapsed_ms(started_at)
            logger.error("ingest_text_failed", duration_ms=elapsed, error=str(e))
            raise IngestionError("Failed to upload text", cause=e, elapsed_ms=elapsed) from e

        logger.info("ingest_text_completed", text_length=len(text), documents=stored)
        return stored


# Singleton instance for convenience
_pipeline_instance: Optional[IngestionPipeline] = None


def get_ingestion_pipeline() -> IngestionPipeline:
    """Get or create the shared ingestion pipeline."""
    global _pipeline_instance
    if _pipeline_instance is None:
        _pipeline_instance = IngestionPipeline()
    return _pipeline_instance
