"""
Openwave RAG API Routes
=======================

Endpoints for the project knowledge base:

    GET  /api/rag         - Rebuild the index from the project table
    POST /api/rag         - Answer a chat request, streamed
    GET  /api/rag/status  - Which collaborators are configured
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

from ..rag.errors import InvalidRequest, RAGError, VectorIndexError
from ..rag.retriever import INVALID_USER_MESSAGE
from .services import RAGServices
from .streaming import MEDIA_TYPE, encode_stream, stream_headers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rag", tags=["RAG"])


# =============================================================================
# MODELS
# =============================================================================

class IndexResponse(BaseModel):
    """Result of an indexing run."""
    success: bool
    message: str
    projects_processed: int = Field(alias="projectsProcessed")

    class Config:
        populate_by_name = True


class RAGStatusResponse(BaseModel):
    """Configuration and index status."""
    rag_available: bool
    embeddings_configured: bool
    vector_index_configured: bool
    llm_configured: bool
    index: Optional[Dict[str, Any]] = None
    index_error: Optional[str] = None


def get_services(request: Request) -> RAGServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="RAG services not initialized")
    return services


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


# =============================================================================
# INDEX ENDPOINT
# =============================================================================

@router.get("", response_model=IndexResponse)
async def build_index(services: RAGServices = Depends(get_services)):
    """
    Read every project, embed the described ones and upsert them.

    All-or-nothing: any embedding failure writes nothing.
    """
    try:
        result = await services.ingestion.run()
    except RAGError as e:
        logger.error(f"Error in index handler: {e.message}")
        return error_response(f"Failed to process data: {e.message}", 500)
    except Exception as e:
        logger.exception("Unexpected error in index handler")
        return error_response(f"Failed to process data: {e}", 500)

    return IndexResponse(
        success=result.success,
        message=result.message,
        projects_processed=result.projects_processed,
    )


# =============================================================================
# QUERY ENDPOINT
# =============================================================================

@router.post("")
async def answer_query(request: Request, services: RAGServices = Depends(get_services)):
    """
    Answer the latest user message from the indexed projects.

    Body: {"messages": [{"role": "user", "content": "..."}, ...]}

    Validation and retrieval errors are returned as JSON before any
    model call. Generation errors arrive as the last part of the stream.
    """
    try:
        body = await request.json()
    except ValueError:
        return error_response(INVALID_USER_MESSAGE, 400)

    messages = body.get("messages") if isinstance(body, dict) else None

    try:
        rag_request = await services.retriever.prepare(messages)
    except InvalidRequest as e:
        return error_response(e.message, 400)
    except RAGError as e:
        logger.error(f"Error in query handler (RAG): {e.message}")
        return error_response(f"Failed to process RAG request: {e.message}", 500)
    except Exception as e:
        logger.exception("Unexpected error in query handler (RAG)")
        return error_response(f"Failed to process RAG request: {e}", 500)

    protocol = services.settings.retrieval.stream_protocol
    return StreamingResponse(
        encode_stream(services.retriever.stream(rag_request), protocol),
        media_type=MEDIA_TYPE,
        headers=stream_headers(protocol),
    )


# =============================================================================
# STATUS ENDPOINT
# =============================================================================

@router.get("/status", response_model=RAGStatusResponse)
async def rag_status(services: RAGServices = Depends(get_services)):
    """
    Check the RAG collaborators.
    """
    settings = services.settings
    embeddings_ok = not settings.embedding.missing()
    index_ok = not settings.vector_index.missing()
    llm_ok = not settings.generation.missing()

    index_info = None
    index_error = None
    try:
        index_info = services.index.describe()
    except VectorIndexError as e:
        index_error = e.message

    return RAGStatusResponse(
        rag_available=embeddings_ok and index_ok and llm_ok and index_info is not None,
        embeddings_configured=embeddings_ok,
        vector_index_configured=index_ok,
        llm_configured=llm_ok,
        index=index_info,
        index_error=index_error,
    )
