"""Tests for the in-memory FAISS vector store."""
import asyncio

import pytest

from aidemo.errors import InvalidArgumentError
from aidemo.rag.document import Document
from aidemo.rag.store import FAISSVectorStore


def _doc(content, source):
    return Document(content=content, metadata={"source": source})


@pytest.mark.asyncio
async def test_search_on_empty_store_returns_nothing(vector_store):
    assert await vector_store.similarity_search("anything", top_k=3) == []


@pytest.mark.asyncio
async def test_most_similar_document_ranks_first(vector_store):
    await vector_store.add([
        _doc("python asyncio event loop", "python.txt"),
        _doc("baking sourdough bread at home", "bread.txt"),
        _doc("faiss vector index search", "faiss.txt"),
    ])

    results = await vector_store.similarity_search("sourdough bread", top_k=2)

    assert len(results) == 2
    assert results[0].source == "bread.txt"
    assert results[0].metadata["score"] >= results[1].metadata["score"]


@pytest.mark.asyncio
async def test_top_k_larger_than_store(vector_store):
    await vector_store.add([_doc("one", "1.txt"), _doc("two", "2.txt")])

    results = await vector_store.similarity_search("one", top_k=10)

    assert len(results) == 2


@pytest.mark.asyncio
async def test_threshold_filters_weak_matches(vector_store):
    await vector_store.add([
        _doc("alpha beta gamma", "greek.txt"),
        _doc("completely unrelated words", "other.txt"),
    ])

    results = await vector_store.similarity_search("alpha beta gamma", top_k=5, similarity_threshold=0.9)

    assert [d.source for d in results] == ["greek.txt"]
    assert results[0].metadata["score"] == pytest.approx(1.0, abs=1e-4)


@pytest.mark.asyncio
async def test_documents_without_source_are_rejected(vector_store):
    with pytest.raises(InvalidArgumentError):
        await vector_store.add([Document(content="orphan")])
    assert vector_store.count == 0


@pytest.mark.asyncio
async def test_clear_empties_store(vector_store):
    await vector_store.add([_doc("one", "1.txt")])

    await vector_store.clear()

    assert vector_store.count == 0
    assert await vector_store.similarity_search("one", top_k=1) == []
    assert vector_store.get_stats()["vector_count"] == 0


@pytest.mark.asyncio
async def test_dimension_detected_once_under_concurrency(embedder):
    store = FAISSVectorStore(embedder=embedder)

    await asyncio.gather(*(store.add([_doc(f"text {i}", f"{i}.txt")]) for i in range(5)))

    assert embedder.calls.count("test") == 1
    assert store.count == 5
    assert store.dimension == embedder.dimension


@pytest.mark.asyncio
async def test_dimension_mismatch_is_rejected(embedder):
    store = FAISSVectorStore(embedder=embedder, dimension=8)

    with pytest.raises(ValueError):
        await store.add([_doc("text", "a.txt")])
