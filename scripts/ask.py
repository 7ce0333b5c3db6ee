#!/usr/bin/env python
"""Load the knowledge base and ask it questions from the command line.

The vector index lives in memory, so every run ingests the knowledge base
first and then answers the given questions.

Usage:
    python scripts/ask.py "What is in the handbook?"
    python scripts/ask.py -q "First question" -q "Second question"
    python scripts/ask.py --kb-dir ./docs --top-k 6 "Question"
    python scripts/ask.py --search "Query"    # Show matching documents only
"""
import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from aidemo import config
from aidemo.errors import AssistantError
from aidemo.llm_client import ollama_client
from aidemo.logging_setup import configure_logging
from aidemo.rag.ingest import IngestionPipeline
from aidemo.rag.orchestrator import RagOrchestrator
from aidemo.rag.retriever import Retriever
from aidemo.rag.store import FAISSVectorStore

logger = structlog.get_logger()


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.start_time = None

    def start(self, message: str):
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, file_path: Path):
        percentage = (current / total) * 100 if total > 0 else 0
        bar_length = 40
        filled = int(bar_length * current / total) if total > 0 else 0
        bar = "█" * filled + "░" * (bar_length - filled)

        print(
            f"\r  [{bar}] {percentage:5.1f}% ({current}/{total}) {file_path.name[:30]:<30}",
            end="",
            flush=True,
        )

        if self.verbose:
            print()

    def finish(self, document_count: int):
        print("\n")
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()
        print(f"  Documents stored: {document_count}")
        print(f"  Time elapsed:     {elapsed_seconds:.1f}s\n")


async def run(args) -> int:
    store = FAISSVectorStore()
    pipeline = IngestionPipeline(
        vector_store=store,
        knowledge_base_dir=args.kb_dir,
        chunking_enabled=args.chunk or None,
    )
    orchestrator = RagOrchestrator(
        retriever=Retriever(store),
        top_k=args.top_k,
        similarity_threshold=args.threshold,
    )

    progress = ProgressReporter(verbose=args.verbose)
    progress.start(f"Loading {pipeline.knowledge_base_dir}")
    count = await pipeline.ingest_all(progress_callback=progress.update)
    progress.finish(count)

    if count == 0:
        print("⚠️  Knowledge base is empty, nothing to search.\n")
        return 1

    for question in args.questions:
        print(f"❓ {question}\n")
        if args.search:
            documents = await orchestrator.search_documents(question)
            for i, doc in enumerate(documents, 1):
                score = doc.metadata.get("score")
                print(f"  {i}. {doc.source} (score: {score})")
                print(f"     {doc.content[:200]}")
            if not documents:
                print("  No matching documents.")
        else:
            answer = await orchestrator.answer(question)
            print(answer)
        print(f"\n{'-' * 60}\n")

    return 0


async def main():
    """Main entry point for the ask script."""
    parser = argparse.ArgumentParser(
        description="Answer questions from the knowledge base",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("question", nargs="*", help="Question(s) to ask")
    parser.add_argument(
        "-q",
        "--question",
        dest="extra_questions",
        action="append",
        default=[],
        help="Additional question (repeatable)",
    )
    parser.add_argument(
        "--kb-dir",
        type=Path,
        default=None,
        help=f"Knowledge base directory (default: {config.KNOWLEDGE_BASE_DIR})",
    )
    parser.add_argument("--top-k", type=int, default=None, help=f"Documents to retrieve (default: {config.RAG_TOP_K})")
    parser.add_argument("--threshold", type=float, default=None, help="Minimum similarity, 0.0 disables filtering")
    parser.add_argument("--chunk", action="store_true", help="Split documents into chunks before indexing")
    parser.add_argument("--search", action="store_true", help="Print matching documents instead of an answer")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show verbose progress output")

    args = parser.parse_args()
    args.questions = list(args.question) + args.extra_questions
    if not args.questions:
        parser.error("at least one question is required")

    configure_logging("DEBUG" if args.verbose else "WARNING")

    try:
        exit_code = await run(args)

    except KeyboardInterrupt:
        print("\n\n⚠️  Cancelled by user.\n")
        exit_code = 1

    except AssistantError as e:
        print(f"\n❌ Error: {e}\n")
        logger.error("ask_script_failed", error=str(e), error_type=type(e).__name__)
        exit_code = 1

    finally:
        await ollama_client.aclose()

    sys.exit(exit_code)


if __name__ == "__main__":
    asyncio.run(main())
