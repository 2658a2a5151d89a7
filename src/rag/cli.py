"""
RAG CLI
=======

Command-line interface for the project index.

Usage:
    python -m src.rag.cli init                    # Create the Qdrant collection
    python -m src.rag.cli index                   # Index the project table
    python -m src.rag.cli index --from-json projects.json
    python -m src.rag.cli search "query"          # Show matches and context
    python -m src.rag.cli ask "query"             # Stream a grounded answer
    python -m src.rag.cli status                  # Show configuration and index stats
"""

import argparse
import asyncio
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import psycopg2
from dotenv import load_dotenv
load_dotenv()

from src.ai.llm_client import get_llm_client
from src.data.config import get_settings
from src.data.logging_config import configure_logging
from src.data.project_store import PostgresProjectSource, StaticProjectSource
from src.rag.embedder import RAGEmbedder
from src.rag.errors import RAGError
from src.rag.grounding import format_context
from src.rag.ingestion import RAGIngestion
from src.rag.retriever import RAGRetriever
from src.rag.vector_index import VectorIndexClient

logger = logging.getLogger(__name__)


def init_index() -> bool:
    """Create the collection with the embedder's dimension."""
    settings = get_settings()
    try:
        index = VectorIndexClient(settings.vector_index)
        created = index.ensure_index(settings.embedding.dimensions)
    except RAGError as e:
        logger.error(f"Init failed: {e.message}")
        return False

    if created:
        logger.info(f"Collection '{index.index_name}' created")
    else:
        logger.info(f"Collection '{index.index_name}' already exists")
    return True


def run_index(from_json: str = None) -> bool:
    """Run one indexing pass."""
    settings = get_settings()
    try:
        source = (
            StaticProjectSource.from_json_file(from_json)
            if from_json
            else PostgresProjectSource(settings.database)
        )
        ingestion = RAGIngestion(
            embedder=RAGEmbedder(settings.embedding),
            index=VectorIndexClient(settings.vector_index),
            source=source,
            id_strategy=settings.retrieval.id_strategy,
        )
        result = asyncio.run(ingestion.run())
    except (RAGError, psycopg2.Error, OSError, ValueError) as e:
        logger.error(f"Indexing failed: {e}")
        return False

    print(f"""
Indexing complete:
- Projects indexed: {result.projects_processed}
- Skipped (no description): {result.skipped}
""")
    return True


def _build_retriever(settings) -> RAGRetriever:
    return RAGRetriever(
        embedder=RAGEmbedder(settings.embedding),
        index=VectorIndexClient(settings.vector_index),
        llm=get_llm_client(settings.generation),
        top_k=settings.retrieval.top_k,
        context_max_tokens=settings.retrieval.context_max_tokens,
    )


def run_search(query: str, k: int = None) -> bool:
    """Show the matches and the context block for a query."""
    settings = get_settings()
    try:
        embedder = RAGEmbedder(settings.embedding)
        index = VectorIndexClient(settings.vector_index)
        vector = embedder.embed(query)
        matches = index.query(vector, k or settings.retrieval.top_k)
    except RAGError as e:
        logger.error(f"Search failed: {e.message}")
        return False

    print(f"\n{'='*60}")
    print(f"Query: {query}")
    print(f"Results: {len(matches)}")
    print('='*60)

    for i, m in enumerate(matches, 1):
        print(f"\n[{i}] Score: {m.score:.4f}  id={m.id}")
        print(f"    Project: {m.metadata.project_name} ({m.metadata.owner})")
        print(f"    Description: {m.metadata.description[:200]}")

    print(f"\n{'='*60}")
    print("FORMATTED CONTEXT FOR LLM:")
    print('='*60)
    print(format_context(matches, settings.retrieval.context_max_tokens))
    return True


async def _stream_answer(retriever: RAGRetriever, query: str) -> None:
    async for chunk in retriever.answer([{"role": "user", "content": query}]):
        sys.stdout.write(chunk)
        sys.stdout.flush()
    sys.stdout.write("\n")


def ask(query: str) -> bool:
    """Stream a grounded answer to stdout."""
    settings = get_settings()
    try:
        settings.validate()
        retriever = _build_retriever(settings)
        asyncio.run(_stream_answer(retriever, query))
    except RAGError as e:
        logger.error(f"Ask failed: {e.message}")
        return False
    return True


def show_status() -> bool:
    """Show configuration and index statistics."""
    settings = get_settings()
    missing = settings.missing_credentials()

    print(f"\n{'='*60}")
    print("RAG STATUS")
    print('='*60)
    print(f"Embeddings: {settings.embedding.provider} ({settings.embedding.dimensions} dims)")
    print(f"Index: {settings.vector_index.index_name} @ {settings.vector_index.url or 'not set'}")
    print(f"LLM: {settings.generation.resolved_provider or 'not configured'}")
    print(f"Id strategy: {settings.retrieval.id_strategy}")

    if missing:
        print(f"\nMissing configuration: {', '.join(missing)}")

    try:
        info = VectorIndexClient(settings.vector_index).describe()
    except RAGError as e:
        logger.error(f"Status failed: {e.message}")
        return False

    print(f"\nIndexed projects: {info['points_count']} (status: {info['status']})")
    return not missing


def main():
    parser = argparse.ArgumentParser(description="Openwave project RAG CLI")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    # Init command
    subparsers.add_parser("init", help="Create the vector collection")

    # Index command
    index_parser = subparsers.add_parser("index", help="Index project records")
    index_parser.add_argument("--from-json", help="Read records from a JSON export instead of Postgres")

    # Search command
    search_parser = subparsers.add_parser("search", help="Test retrieval")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("-k", type=int, default=None, help="Number of results")

    # Ask command
    ask_parser = subparsers.add_parser("ask", help="Stream a grounded answer")
    ask_parser.add_argument("query", help="Question")

    # Status command
    subparsers.add_parser("status", help="Show status")

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings)

    if args.command == "init":
        success = init_index()
    elif args.command == "index":
        success = run_index(args.from_json)
    elif args.command == "search":
        success = run_search(args.query, args.k)
    elif args.command == "ask":
        success = ask(args.query)
    elif args.command == "status":
        success = show_status()
    else:
        parser.print_help()
        return

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
