"""
Openwave Data Module
====================

Configuration and the read-only project store the index is built from.

Quick Start:
    from src.data import get_settings, PostgresProjectSource

    settings = get_settings().validate()
    source = PostgresProjectSource(settings.database)
    records = source.fetch_all()

Configuration:
    Set environment variables or create a .env file.
    See .env.example for all available options.
"""

from .config import (
    Settings,
    EmbeddingConfig,
    VectorIndexConfig,
    GenerationConfig,
    DatabaseConfig,
    RetrievalConfig,
    LoggingConfig,
    get_settings,
    load_settings,
    reset_settings,
)
from .project_store import ProjectSource, PostgresProjectSource, StaticProjectSource

__all__ = [
    # Configuration
    "Settings",
    "EmbeddingConfig",
    "VectorIndexConfig",
    "GenerationConfig",
    "DatabaseConfig",
    "RetrievalConfig",
    "LoggingConfig",
    "get_settings",
    "load_settings",
    "reset_settings",
    # Project store
    "ProjectSource",
    "PostgresProjectSource",
    "StaticProjectSource",
]
