"""
RAG Data Models
===============

Dataclasses shared by the indexing and retrieval pipelines.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# Sentence embedding, fixed dimension per deployment
EmbeddingVector = List[float]

DEFAULT_PROJECT_NAME = "Unnamed Project"
DEFAULT_OWNER = "Unknown Owner"


class Role(str, Enum):
    """Conversation message author."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class RequestState(str, Enum):
    """Lifecycle of a single retrieval request."""
    RECEIVED = "received"
    VALIDATED = "validated"
    EMBEDDED = "embedded"
    RETRIEVED = "retrieved"
    GROUNDED = "grounded"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SourceRecord:
    """A project row read from the source store."""
    name: Optional[str]
    description: Optional[str]
    owner: Optional[str] = None
    languages: Any = field(default_factory=dict)

    # Primary key in the source store, when known
    id: Optional[str] = None

    @property
    def is_eligible(self) -> bool:
        """Only records with a non-blank description can be embedded."""
        return bool(self.description and self.description.strip())

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SourceRecord":
        """
        Build from a store row.

        Accepts both the snake_case column names and the camelCase
        field names used by the web application's ORM.
        """
        def pick(*keys):
            for key in keys:
                if row.get(key) is not None:
                    return row[key]
            return None

        record_id = pick("id", "projectId", "project_id")
        return cls(
            id=str(record_id) if record_id is not None else None,
            name=pick("projectName", "project_name", "name"),
            description=pick("aiDescription", "ai_description", "description"),
            owner=pick("projectOwner", "project_owner", "owner"),
            languages=pick("languages") or {},
        )


@dataclass
class VectorMetadata:
    """Metadata stored alongside each vector."""
    project_name: str
    description: str
    languages: str  # JSON string
    owner: str

    @classmethod
    def from_source(cls, record: SourceRecord) -> "VectorMetadata":
        return cls(
            project_name=record.name or DEFAULT_PROJECT_NAME,
            description=record.description or "",
            languages=json.dumps(record.languages),
            owner=record.owner or DEFAULT_OWNER,
        )

    def to_payload(self) -> Dict[str, str]:
        """Wire form, camelCase keys as read by the frontend."""
        return {
            "projectName": self.project_name,
            "description": self.description,
            "languages": self.languages,
            "owner": self.owner,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "VectorMetadata":
        return cls(
            project_name=payload.get("projectName", DEFAULT_PROJECT_NAME),
            description=payload.get("description", ""),
            languages=payload.get("languages", "{}"),
            owner=payload.get("owner", DEFAULT_OWNER),
        )


@dataclass
class VectorRecord:
    """An (id, vector, metadata) triple ready for upsert."""
    id: str
    vector: EmbeddingVector
    metadata: VectorMetadata


@dataclass
class QueryMatch:
    """A similarity search hit."""
    id: str
    metadata: VectorMetadata
    score: float


@dataclass
class ConversationMessage:
    """One chat turn. Content is usually a string but may be multi-part."""
    role: Role
    content: Any

    def __post_init__(self):
        if isinstance(self.role, str):
            self.role = Role(self.role)

    @property
    def has_text(self) -> bool:
        return isinstance(self.content, str)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class IndexingResult:
    """Outcome of one indexing run."""
    success: bool
    message: str
    projects_processed: int
    skipped: int = 0
    record_ids: List[str] = field(default_factory=list)
