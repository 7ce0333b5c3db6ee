"""Pytest configuration and shared fixtures."""
import hashlib
import re
from typing import List
from unittest.mock import AsyncMock

import pytest

from aidemo.llm_client import OllamaClient
from aidemo.rag.ingest import IngestionPipeline
from aidemo.rag.store import FAISSVectorStore

EMBEDDING_DIMENSION = 64


class HashEmbedder:
    """Deterministic bag-of-words embedder.

    Each lowercase word lands in a bucket picked by its md5 digest, so texts
    sharing words get a high cosine similarity.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        self.dimension = dimension
        self.calls: List[str] = []

    async def __call__(self, text: str) -> List[float]:
        self.calls.append(text)
        vector = [0.0] * self.dimension
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % self.dimension
            vector[bucket] += 1.0
        return vector


@pytest.fixture
def embedder():
    return HashEmbedder()


@pytest.fixture
def vector_store(embedder):
    """In-memory FAISS store backed by the hash embedder."""
    return FAISSVectorStore(embedder=embedder)


@pytest.fixture
def knowledge_dir(tmp_path):
    path = tmp_path / "knowledge-base"
    path.mkdir()
    return path


@pytest.fixture
def pipeline(vector_store, knowledge_dir):
    return IngestionPipeline(
        vector_store=vector_store,
        knowledge_base_dir=knowledge_dir,
        chunking_enabled=False,
    )


@pytest.fixture
def fake_llm():
    """Ollama client double; every coroutine method is an AsyncMock."""
    llm = AsyncMock(spec=OllamaClient)
    llm.chat_model = "qwen2.5:7b"
    llm.embedding_model = "mxbai-embed-large:latest"
    llm.generate.return_value = "generated answer"
    return llm
