"""
Openwave RAG Module
===================

Retrieval-Augmented Generation over the openwave project catalogue.

Two phases:
- Indexing: project descriptions → sentence embeddings → Qdrant
- Query: last user message → top-K projects → grounded, streamed answer

Architecture:
- Hugging Face sentence-transformers/all-MiniLM-L6-v2 (384 dims) for embeddings
- Qdrant for vector storage and similarity search
- Claude or GPT for generation, constrained to the retrieved context
"""

from .embedder import RAGEmbedder, normalize_embedding
from .vector_index import VectorIndexClient
from .ingestion import RAGIngestion
from .retriever import RAGRetriever, RAGRequest
from .grounding import build_system_prompt, format_context, REFUSAL_SENTENCE
from .errors import (
    RAGError,
    ConfigurationError,
    EmbeddingError,
    VectorIndexError,
    InvalidRequest,
    GenerationError,
)
from .models import (
    SourceRecord,
    VectorRecord,
    VectorMetadata,
    QueryMatch,
    ConversationMessage,
    IndexingResult,
    RequestState,
    Role,
)

__all__ = [
    "RAGEmbedder",
    "normalize_embedding",
    "VectorIndexClient",
    "RAGIngestion",
    "RAGRetriever",
    "RAGRequest",
    "build_system_prompt",
    "format_context",
    "REFUSAL_SENTENCE",
    "RAGError",
    "ConfigurationError",
    "EmbeddingError",
    "VectorIndexError",
    "InvalidRequest",
    "GenerationError",
    "SourceRecord",
    "VectorRecord",
    "VectorMetadata",
    "QueryMatch",
    "ConversationMessage",
    "IndexingResult",
    "RequestState",
    "Role",
]
