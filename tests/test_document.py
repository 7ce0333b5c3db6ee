"""Tests for the Document value type."""
import pytest

from aidemo.rag.document import UNKNOWN_SOURCE, Document


def test_source_falls_back_to_unknown_label():
    assert Document(content="x").source == UNKNOWN_SOURCE
    assert Document(content="x", metadata={"source": "  "}).source == UNKNOWN_SOURCE
    assert not Document(content="x").has_source


def test_metadata_is_read_only_copy():
    meta = {"source": "a.txt"}
    doc = Document(content="x", metadata=meta)
    meta["source"] = "changed"

    assert doc.source == "a.txt"
    with pytest.raises(TypeError):
        doc.metadata["source"] = "b.txt"


def test_with_metadata_keeps_id_and_adds_keys():
    doc = Document(content="x", metadata={"source": "a.txt"})
    scored = doc.with_metadata(score=0.5)

    assert scored.id == doc.id
    assert scored.metadata["score"] == 0.5
    assert "score" not in doc.metadata


def test_ids_are_unique():
    assert Document(content="x").id != Document(content="x").id


def test_documents_are_hashable_by_id():
    doc = Document(content="x", metadata={"source": "a.txt"})

    assert hash(doc) == hash(doc.with_metadata(score=0.5))
    assert len({doc, doc}) == 1
