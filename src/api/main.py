"""
Openwave RAG FastAPI Application
================================

HTTP surface for the project RAG pipeline.

Endpoints:
    GET  /api/health      - Health check
    GET  /api/rag         - Rebuild the project index
    POST /api/rag         - Streamed, grounded answer
    GET  /api/rag/status  - RAG configuration status

Usage:
    uvicorn src.api.main:app --reload --port 8000

    Or with CLI:
    python -m src.api.main
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os
from typing import List

from ..data.config import get_settings
from ..data.logging_config import configure_logging
from .rag_routes import router as rag_router
from .services import build_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging(settings)

    logger.info("Starting Openwave RAG API...")

    # Fail at startup, not on the first request
    settings.validate()
    app.state.services = build_services(settings)

    logger.info("Services initialized")

    yield

    app.state.services = None
    logger.info("Shutting down Openwave RAG API...")


DEV_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


def cors_origins() -> List[str]:
    """The Next.js dev server plus any comma-separated CORS_ORIGINS."""
    extra = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",")]
    return list(DEV_ORIGINS) + [o for o in extra if o]


app = FastAPI(
    title="Openwave RAG API",
    description="Retrieval-augmented answers over the openwave project catalogue",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    expose_headers=["x-vercel-ai-data-stream"],
)
app.include_router(rag_router)


# ============================================================================
# HEALTH ENDPOINT
# ============================================================================

@app.get("/api/health")
async def health_check():
    """Liveness, and whether startup wiring has finished."""
    services = getattr(app.state, "services", None)
    return {
        "status": "healthy" if services is not None else "starting",
        "version": app.version,
    }


def main():
    import uvicorn
    uvicorn.run(
        "src.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
