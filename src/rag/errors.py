"""
RAG Error Taxonomy
==================

Every failure the pipeline can surface to a caller. Routes map
InvalidRequest to a 400 response and everything else to a 500.
"""

from typing import Optional


class RAGError(Exception):
    """Base exception for the RAG pipeline."""

    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(self.message)


class ConfigurationError(RAGError):
    """Missing or malformed credentials, index name, or settings."""
    pass


class EmbeddingError(RAGError):
    """Embedding model call failed or returned an unusable vector."""
    pass


class VectorIndexError(RAGError):
    """Upsert or query rejected by the vector index backend."""
    pass


class InvalidRequest(RAGError):
    """Request carries no usable user message."""

    status_code = 400


class GenerationError(RAGError):
    """Answer generation failed, possibly after some chunks were delivered."""
    pass
