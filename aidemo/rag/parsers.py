"""File parsers that turn knowledge-base files into Documents.

- ``parse_text``: whole file as a single Document
- ``parse_pdf``: one Document per non-empty page (pypdf)
- ``parse_auto``: mimetype-based best effort for everything else
"""
import csv
import json
import mimetypes
from html.parser import HTMLParser
from pathlib import Path
from typing import List, Optional

import structlog
from docx import Document as DocxDocument
from pypdf import PdfReader

from aidemo.errors import EmptyDocumentError
from aidemo.rag.document import Document

logger = structlog.get_logger()

TEXT_EXTENSIONS = (".txt", ".md", ".text")
PDF_EXTENSION = ".pdf"

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def base_metadata(path: Path) -> dict:
    """Metadata every file-derived document carries."""
    return {"source": str(path), "filename": path.name}


def parse_text(path: Path) -> List[Document]:
    """Read a plain-text or markdown file as one Document.

    Raises:
        EmptyDocumentError: If the file content is blank
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not valid UTF-8
    """
    content = path.read_text(encoding="utf-8")
    if not content.strip():
        raise EmptyDocumentError(f"Document is empty: {path}")

    return [Document(content=content, metadata=base_metadata(path))]


def parse_pdf(path: Path) -> List[Document]:
    """Read a PDF, one Document per page with extractable text."""
    documents = []
    with path.open("rb") as f:
        reader = PdfReader(f)
        total_pages = len(reader.pages)
        for page_number, page in enumerate(reader.pages, 1):
            try:
                text = page.extract_text() or ""
            except Exception as e:
                logger.warning(
                    "pdf_page_extraction_failed",
                    path=str(path),
                    page=page_number,
                    error=str(e),
                )
                continue

            if not text.strip():
                continue

            metadata = base_metadata(path)
            metadata.update({"page_number": page_number, "total_pages": total_pages})
            documents.append(Document(content=text, metadata=metadata))

    logger.debug("pdf_parsed", path=str(path), pages=len(documents))
    return documents


class _HTMLStripper(HTMLParser):
    """Collects text nodes, dropping tags, scripts and styles."""

    def __init__(self):
        super().__init__()
        self._chunks = []
        self._skip = 0

    def handle_starttag(self, tag, attrs):
        if tag in ("script", "style"):
            self._skip += 1

    def handle_endtag(self, tag):
        if tag in ("script", "style") and self._skip:
            self._skip -= 1

    def handle_data(self, data):
        if not self._skip:
            self._chunks.append(data)

    def get_text(self) -> str:
        return " ".join(" ".join(self._chunks).split())


def _read_docx(path: Path) -> str:
    doc = DocxDocument(str(path))
    return "\n".join(p.text for p in doc.paragraphs)


def _read_html(path: Path) -> str:
    stripper = _HTMLStripper()
    stripper.feed(path.read_text(encoding="utf-8", errors="replace"))
    return stripper.get_text()


def _read_csv(path: Path) -> str:
    with path.open("r", encoding="utf-8", errors="replace", newline="") as f:
        return "\n".join("\t".join(row) for row in csv.reader(f))


def _read_json(path: Path) -> str:
    raw = path.read_text(encoding="utf-8", errors="replace")
    try:
        return json.dumps(json.loads(raw), ensure_ascii=False, indent=2)
    except json.JSONDecodeError:
        return raw


def _read_bytes_as_text(path: Path) -> Optional[str]:
    data = path.read_bytes()
    # NUL bytes mean binary content we cannot index
    if b"\x00" in data[:1024]:
        return None
    return data.decode("utf-8", errors="replace")


def detect_mime(path: Path) -> Optional[str]:
    mime, _ = mimetypes.guess_type(path.name)
    return mime


def parse_auto(path: Path) -> List[Document]:
    """Best-effort parsing for formats without a dedicated parser.

    Never raises: unsupported or unreadable files are logged and yield an
    empty list.
    """
    mime = detect_mime(path)

    try:
        if mime == DOCX_MIME:
            text = _read_docx(path)
        elif mime == "application/pdf":
            return parse_pdf(path)
        elif mime in ("text/html", "application/xhtml+xml"):
            text = _read_html(path)
        elif mime == "text/csv":
            text = _read_csv(path)
        elif mime == "application/json":
            text = _read_json(path)
        elif mime is None or mime.startswith("text/") or mime in ("application/xml",):
            text = _read_bytes_as_text(path)
        else:
            logger.warning("unsupported_file_type", path=str(path), mime=mime)
            return []
    except Exception as e:
        logger.warning(
            "auto_detect_parse_failed",
            path=str(path),
            mime=mime,
            error=str(e),
            error_type=type(e).__name__,
        )
        return []

    if not text or not text.strip():
        logger.warning("auto_detect_no_text", path=str(path), mime=mime)
        return []

    metadata = base_metadata(path)
    if mime:
        metadata["content_type"] = mime
    return [Document(content=text, metadata=metadata)]
