"""Knowledge-base file discovery and format dispatch."""
from pathlib import Path
from typing import Callable, List, Optional

import structlog

from aidemo.errors import DocumentNotFoundError, EmptyDocumentError, InvalidArgumentError
from aidemo.rag.document import Document
from aidemo.rag.parsers import PDF_EXTENSION, TEXT_EXTENSIONS, parse_auto, parse_pdf, parse_text

logger = structlog.get_logger()

ProgressCallback = Callable[[int, int, Path], None]


class DocumentLoader:
    """Walks a directory tree and parses every regular file it finds.

    Dispatch is by lowercase file extension:
    ``.pdf`` goes to the PDF parser, ``.txt``/``.md``/``.text`` are read
    whole, anything else goes through mimetype auto-detection.
    """

    def discover_files(self, root: Path) -> List[Path]:
        """List regular files under ``root`` recursively, in stable order."""
        if not root.is_dir():
            return []
        return sorted(p for p in root.rglob("*") if p.is_file())

    def load_all(
        self,
        root: Path,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[Document]:
        """Load every parseable document under ``root``.

        Per-file failures are logged and contribute zero documents; they never
        abort the walk.

        Args:
            root: Knowledge-base directory
            progress_callback: Optional callback(current, total, file_path)

        Returns:
            Documents in file discovery order
        """
        root = Path(root)
        files = self.discover_files(root)

        logger.info("knowledge_base_files_discovered", root=str(root), count=len(files))

        documents: List[Document] = []
        failed = 0

        for idx, file_path in enumerate(files, 1):
            if progress_callback:
                progress_callback(idx, len(files), file_path)

            try:
                documents.extend(self._load_file(file_path))
            except EmptyDocumentError:
                logger.warning("empty_document_skipped", path=str(file_path))
            except Exception as e:
                failed += 1
                logger.warning(
                    "file_load_failed",
                    path=str(file_path),
                    error=str(e),
                    error_type=type(e).__name__,
                )

        logger.info(
            "knowledge_base_loaded",
            root=str(root),
            files=len(files),
            files_failed=failed,
            documents=len(documents),
        )
        return documents

    def load_one(self, file_path: str | Path) -> List[Document]:
        """Load a single file.

        Raises:
            InvalidArgumentError: If the path is blank
            DocumentNotFoundError: If the path does not exist
        """
        if file_path is None or not str(file_path).strip():
            raise InvalidArgumentError("File path must not be blank")

        path = Path(str(file_path).strip())
        if not path.exists():
            raise DocumentNotFoundError(f"File not found: {path}")

        if not path.is_file():
            logger.warning("not_a_regular_file", path=str(path))
            return []

        try:
            return self._load_file(path)
        except EmptyDocumentError:
            logger.warning("empty_document_skipped", path=str(path))
            return []
        except Exception as e:
            logger.warning(
                "file_load_failed",
                path=str(path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    def _load_file(self, path: Path) -> List[Document]:
        name = path.name.lower()

        if name.endswith(PDF_EXTENSION):
            return parse_pdf(path)
        if name.endswith(TEXT_EXTENSIONS):
            return parse_text(path)
        return parse_auto(path)
