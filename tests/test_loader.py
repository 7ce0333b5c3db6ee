"""Tests for DocumentLoader and the file parsers."""
import json

import pytest
from docx import Document as DocxDocument
from pypdf import PdfWriter

from aidemo.errors import DocumentNotFoundError, InvalidArgumentError
from aidemo.rag.loader import DocumentLoader
from aidemo.rag.parsers import parse_auto


@pytest.fixture
def loader():
    return DocumentLoader()


class TestLoadAll:
    def test_text_file_becomes_one_document_with_source(self, loader, knowledge_dir):
        path = knowledge_dir / "a.txt"
        path.write_text("hello", encoding="utf-8")

        documents = loader.load_all(knowledge_dir)

        assert len(documents) == 1
        assert documents[0].content == "hello"
        assert documents[0].metadata["source"] == str(path)
        assert documents[0].metadata["filename"] == "a.txt"

    def test_walks_subdirectories_in_sorted_order(self, loader, knowledge_dir):
        (knowledge_dir / "sub").mkdir()
        (knowledge_dir / "b.md").write_text("# B", encoding="utf-8")
        (knowledge_dir / "a.txt").write_text("A", encoding="utf-8")
        (knowledge_dir / "sub" / "c.txt").write_text("C", encoding="utf-8")

        documents = loader.load_all(knowledge_dir)

        assert [d.metadata["filename"] for d in documents] == ["a.txt", "b.md", "c.txt"]

    def test_blank_and_broken_files_are_skipped(self, loader, knowledge_dir):
        (knowledge_dir / "empty.txt").write_text("   \n", encoding="utf-8")
        (knowledge_dir / "broken.pdf").write_bytes(b"not a pdf at all")
        (knowledge_dir / "ok.txt").write_text("fine", encoding="utf-8")

        documents = loader.load_all(knowledge_dir)

        assert [d.content for d in documents] == ["fine"]

    def test_text_that_is_not_utf8_is_skipped(self, loader, knowledge_dir):
        (knowledge_dir / "latin1.txt").write_bytes(b"caf\xe9 \xff\xfe latin-1 bytes")
        (knowledge_dir / "ok.md").write_text("fine", encoding="utf-8")

        documents = loader.load_all(knowledge_dir)

        assert [d.content for d in documents] == ["fine"]

    def test_progress_callback_sees_every_file(self, loader, knowledge_dir):
        for name in ("a.txt", "b.txt", "c.txt"):
            (knowledge_dir / name).write_text(name, encoding="utf-8")
        seen = []

        loader.load_all(knowledge_dir, progress_callback=lambda i, total, p: seen.append((i, total, p.name)))

        assert seen == [(1, 3, "a.txt"), (2, 3, "b.txt"), (3, 3, "c.txt")]

    def test_missing_root_yields_nothing(self, loader, tmp_path):
        assert loader.load_all(tmp_path / "absent") == []


class TestLoadOne:
    @pytest.mark.parametrize("path", ["", "   ", None])
    def test_blank_path_is_invalid(self, loader, path):
        with pytest.raises(InvalidArgumentError):
            loader.load_one(path)

    def test_missing_file_is_not_found(self, loader, tmp_path):
        with pytest.raises(DocumentNotFoundError):
            loader.load_one(tmp_path / "nope.txt")

    def test_extension_match_is_case_insensitive(self, loader, tmp_path):
        path = tmp_path / "NOTES.TXT"
        path.write_text("upper", encoding="utf-8")

        documents = loader.load_one(path)

        assert documents[0].content == "upper"

    def test_pdf_without_text_yields_no_documents(self, loader, tmp_path):
        path = tmp_path / "blank.pdf"
        writer = PdfWriter()
        writer.add_blank_page(width=200, height=200)
        with path.open("wb") as f:
            writer.write(f)

        assert loader.load_one(path) == []


class TestParseAuto:
    def test_json_is_pretty_printed(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"name": "知识库"}), encoding="utf-8")

        documents = parse_auto(path)

        assert '"name": "知识库"' in documents[0].content
        assert documents[0].metadata["content_type"] == "application/json"

    def test_html_tags_and_scripts_are_stripped(self, tmp_path):
        path = tmp_path / "page.html"
        path.write_text(
            "<html><script>var x = 1;</script><body><p>Hello</p> <b>world</b></body></html>",
            encoding="utf-8",
        )

        assert parse_auto(path)[0].content == "Hello world"

    def test_csv_rows_become_lines(self, tmp_path):
        path = tmp_path / "table.csv"
        path.write_text("a,b\n1,2\n", encoding="utf-8")

        assert parse_auto(path)[0].content == "a\tb\n1\t2"

    def test_docx_paragraphs_are_read(self, tmp_path):
        path = tmp_path / "doc.docx"
        doc = DocxDocument()
        doc.add_paragraph("first paragraph")
        doc.add_paragraph("second paragraph")
        doc.save(str(path))

        content = parse_auto(path)[0].content

        assert "first paragraph" in content
        assert "second paragraph" in content

    def test_binary_content_is_ignored(self, tmp_path):
        path = tmp_path / "blob.bin"
        path.write_bytes(b"\x00\x01\x02\x03")

        assert parse_auto(path) == []
