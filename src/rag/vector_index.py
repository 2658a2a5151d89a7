"""
RAG Vector Index Client
=======================

Thin client over a managed Qdrant collection.

- upsert: write (id, vector, metadata) points, last write wins
- query: top-K cosine similarity, payload always included

Qdrant point ids must be unsigned integers or UUIDs. Numeric record
ids are stored as integers, anything else as a deterministic UUIDv5.
The original record id travels in the payload as `recordId`.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from qdrant_client import QdrantClient
from qdrant_client.http import models

from .errors import ConfigurationError, VectorIndexError
from .models import EmbeddingVector, QueryMatch, VectorMetadata, VectorRecord

logger = logging.getLogger(__name__)

RECORD_ID_KEY = "recordId"
_ID_NAMESPACE = uuid.UUID("6f1d2a52-3c1e-4b7a-9a55-0b8e5f0c2d41")


def to_point_id(record_id: str) -> Union[int, str]:
    """Map a record id onto a valid Qdrant point id."""
    if record_id.isdigit():
        return int(record_id)
    return str(uuid.uuid5(_ID_NAMESPACE, record_id))


class VectorIndexClient:
    """
    Upserts and queries project vectors in a Qdrant collection.

    No transactional isolation: an upsert is visible to every later
    query, and concurrent upserts of the same id are last-write-wins.
    """

    def __init__(self, config, client: Optional[QdrantClient] = None):
        missing = config.missing()
        if missing and client is None:
            raise ConfigurationError(
                "Vector index not configured: " + ", ".join(missing)
            )

        self.config = config
        self.index_name = config.index_name
        self._client = client

    @property
    def client(self) -> QdrantClient:
        if self._client is None:
            self._client = QdrantClient(
                url=self.config.url,
                api_key=self.config.api_key or None,
                timeout=self.config.timeout,
            )
            logger.info(f"Qdrant client created for collection '{self.index_name}'")
        return self._client

    def upsert(self, records: List[VectorRecord]) -> None:
        """
        Write records in a single batch.

        Args:
            records: VectorRecords to write; an empty list is a no-op

        Raises:
            VectorIndexError: if the backend rejects the batch
        """
        if not records:
            return

        points = []
        for record in records:
            payload = record.metadata.to_payload()
            payload[RECORD_ID_KEY] = record.id
            points.append(models.PointStruct(
                id=to_point_id(record.id),
                vector=record.vector,
                payload=payload,
            ))

        try:
            self.client.upsert(
                collection_name=self.index_name,
                points=points,
                wait=True,
            )
        except Exception as e:
            raise VectorIndexError(f"Upsert rejected by vector index: {e}", cause=e) from e

        logger.info(f"Upserted {len(points)} vectors into '{self.index_name}'")

    def query(self, vector: EmbeddingVector, k: int) -> List[QueryMatch]:
        """
        Top-K similarity search.

        Args:
            vector: Query embedding
            k: Maximum number of matches

        Returns:
            Up to k QueryMatch ordered by descending score. Points
            without a payload are never returned.

        Raises:
            VectorIndexError: if the backend rejects the query
        """
        try:
            response = self.client.query_points(
                collection_name=self.index_name,
                query=vector,
                limit=k,
                with_payload=True,
            )
        except Exception as e:
            raise VectorIndexError(f"Query rejected by vector index: {e}", cause=e) from e

        matches = []
        for point in response.points:
            payload = point.payload
            if not payload:
                continue
            matches.append(QueryMatch(
                id=str(payload.get(RECORD_ID_KEY, point.id)),
                metadata=VectorMetadata.from_payload(payload),
                score=float(point.score),
            ))

        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:k]

    def ensure_index(self, dimension: int) -> bool:
        """
        Create the collection with cosine distance if it does not exist.

        Returns:
            True if the collection was created
        """
        try:
            if self.client.collection_exists(self.index_name):
                return False
            self.client.create_collection(
                collection_name=self.index_name,
                vectors_config=models.VectorParams(
                    size=dimension,
                    distance=models.Distance.COSINE,
                ),
            )
        except Exception as e:
            raise VectorIndexError(f"Could not create collection '{self.index_name}': {e}", cause=e) from e

        logger.info(f"Created collection '{self.index_name}' ({dimension} dims, cosine)")
        return True

    def describe(self) -> Dict[str, Any]:
        """Collection name, point count and status."""
        try:
            info = self.client.get_collection(self.index_name)
        except Exception as e:
            raise VectorIndexError(f"Could not read collection '{self.index_name}': {e}", cause=e) from e

        return {
            "name": self.index_name,
            "points_count": info.points_count,
            "status": str(getattr(info.status, "value", info.status)),
        }
