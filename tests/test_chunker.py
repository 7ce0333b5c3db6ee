"""Tests for TextChunker."""
import pytest

from aidemo.rag.chunker import TextChunker
from aidemo.rag.document import Document


def test_short_text_is_one_chunk():
    chunks = TextChunker(chunk_size=100, chunk_overlap=10).chunk_text("short text")

    assert len(chunks) == 1
    assert chunks[0].content == "short text"


def test_chunks_overlap_and_cover_text():
    text = " ".join(f"word{i}" for i in range(300))
    chunker = TextChunker(chunk_size=200, chunk_overlap=50)

    chunks = chunker.chunk_text(text)

    assert len(chunks) > 1
    assert chunks[0].char_start == 0
    assert chunks[-1].char_end == len(text)
    for previous, current in zip(chunks, chunks[1:]):
        assert current.char_start < previous.char_end
        assert current.char_start > previous.char_start
    assert all(len(c.content) <= 200 for c in chunks)


def test_prefers_sentence_boundaries():
    text = "First sentence here. " * 20
    chunks = TextChunker(chunk_size=100, chunk_overlap=10).chunk_text(text)

    assert chunks[0].content.endswith(". ")


def test_overlap_must_be_smaller_than_size():
    with pytest.raises(ValueError):
        TextChunker(chunk_size=100, chunk_overlap=100)


def test_split_documents_keeps_metadata():
    doc = Document(content="a " * 500, metadata={"source": "big.txt"})

    chunks = TextChunker(chunk_size=200, chunk_overlap=20).split_documents([doc])

    assert len(chunks) > 1
    assert all(c.metadata["source"] == "big.txt" for c in chunks)
    assert [c.metadata["chunk_index"] for c in chunks] == list(range(len(chunks)))
    assert all(c.metadata["chunk_count"] == len(chunks) for c in chunks)
