"""
Openwave API Services
=====================

Wires the RAG components together once, from validated settings.
Route handlers receive the resulting RAGServices; nothing reads
credentials per request.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from ..ai.llm_client import LLMClient, get_llm_client
from ..data.config import Settings
from ..data.project_store import PostgresProjectSource, ProjectSource
from ..rag import RAGEmbedder, RAGIngestion, RAGRetriever, VectorIndexClient

logger = logging.getLogger(__name__)


@dataclass
class RAGServices:
    """Components shared by every request."""
    settings: Settings
    embedder: RAGEmbedder
    index: VectorIndexClient
    llm: LLMClient
    ingestion: RAGIngestion
    retriever: RAGRetriever


def build_services(
    settings: Settings,
    source: Optional[ProjectSource] = None,
) -> RAGServices:
    """
    Construct every component from settings.

    Args:
        settings: Validated settings
        source: Project source; defaults to the Postgres project table

    Raises:
        ConfigurationError: if a component's configuration is missing
    """
    embedder = RAGEmbedder(settings.embedding)
    index = VectorIndexClient(settings.vector_index)
    llm = get_llm_client(settings.generation)

    ingestion = RAGIngestion(
        embedder=embedder,
        index=index,
        source=source or PostgresProjectSource(settings.database),
        id_strategy=settings.retrieval.id_strategy,
    )
    retriever = RAGRetriever(
        embedder=embedder,
        index=index,
        llm=llm,
        top_k=settings.retrieval.top_k,
        context_max_tokens=settings.retrieval.context_max_tokens,
    )

    logger.info(
        f"RAG services ready: embeddings={embedder.provider}/{embedder.model}, "
        f"index={index.index_name}, llm={llm.provider.value}/{llm.model}"
    )

    return RAGServices(
        settings=settings,
        embedder=embedder,
        index=index,
        llm=llm,
        ingestion=ingestion,
        retriever=retriever,
    )
