"""
Tests for the Qdrant vector index client.

The Qdrant client is mocked; these tests check what is sent and how
responses are mapped back.
"""

import uuid

import pytest
from unittest.mock import MagicMock, Mock

from src.data.config import VectorIndexConfig
from src.rag.errors import ConfigurationError, VectorIndexError
from src.rag.models import VectorMetadata, VectorRecord
from src.rag.vector_index import VectorIndexClient, to_point_id


def make_config(**overrides):
    values = {
        "url": "http://qdrant.test:6333",
        "api_key": None,
        "index_name": "openwave",
        "timeout": 5,
    }
    values.update(overrides)
    return VectorIndexConfig(**values)


def make_record(record_id="0", name="A"):
    return VectorRecord(
        id=record_id,
        vector=[0.1, 0.2, 0.3],
        metadata=VectorMetadata(
            project_name=name,
            description=f"{name} description",
            languages='{"js": 10}',
            owner="bob",
        ),
    )


def make_point(point_id, score, payload):
    return Mock(id=point_id, score=score, payload=payload)


def payload_for(name, record_id):
    return {
        "projectName": name,
        "description": f"{name} description",
        "languages": "{}",
        "owner": f"{name.lower()}-owner",
        "recordId": record_id,
    }


class TestPointIds:
    """Tests for record id → Qdrant point id mapping."""

    def test_numeric_ids_become_integers(self):
        assert to_point_id("0") == 0
        assert to_point_id("42") == 42

    def test_other_ids_become_stable_uuids(self):
        """Non-numeric ids map to the same UUID every time."""
        first = to_point_id("proj_abc")
        assert first == to_point_id("proj_abc")
        assert first != to_point_id("proj_abd")
        uuid.UUID(first)


class TestVectorIndexClientInit:
    """Tests for configuration handling."""

    def test_missing_url(self):
        """No URL is a configuration error at construction."""
        with pytest.raises(ConfigurationError, match="QDRANT_URL"):
            VectorIndexClient(make_config(url=None))

    def test_missing_index_name(self):
        with pytest.raises(ConfigurationError, match="VECTOR_INDEX_NAME"):
            VectorIndexClient(make_config(index_name=""))


class TestUpsert:
    """Tests for VectorIndexClient.upsert."""

    def setup_method(self):
        self.qdrant = MagicMock()
        self.index = VectorIndexClient(make_config(), client=self.qdrant)

    def test_empty_list_is_noop(self):
        """Nothing is sent for an empty batch."""
        self.index.upsert([])
        self.qdrant.upsert.assert_not_called()

    def test_single_batch_with_payload(self):
        """All records go out in one call with camelCase metadata."""
        self.index.upsert([make_record("0", "A"), make_record("proj_b", "B")])

        self.qdrant.upsert.assert_called_once()
        kwargs = self.qdrant.upsert.call_args.kwargs
        assert kwargs["collection_name"] == "openwave"

        points = kwargs["points"]
        assert len(points) == 2
        assert points[0].id == 0
        assert points[0].vector == [0.1, 0.2, 0.3]
        assert points[0].payload == {
            "projectName": "A",
            "description": "A description",
            "languages": '{"js": 10}',
            "owner": "bob",
            "recordId": "0",
        }
        assert points[1].id == to_point_id("proj_b")
        assert points[1].payload["recordId"] == "proj_b"

    def test_backend_rejection(self):
        """Backend errors (e.g. wrong dimension) become VectorIndexError."""
        self.qdrant.upsert.side_effect = RuntimeError("Wrong input: Vector dimension error")

        with pytest.raises(VectorIndexError, match="dimension"):
            self.index.upsert([make_record()])


class TestQuery:
    """Tests for VectorIndexClient.query."""

    def setup_method(self):
        self.qdrant = MagicMock()
        self.index = VectorIndexClient(make_config(), client=self.qdrant)

    def test_payload_requested_and_limit_passed(self):
        self.qdrant.query_points.return_value = Mock(points=[])

        assert self.index.query([0.1, 0.2], 3) == []
        self.qdrant.query_points.assert_called_once_with(
            collection_name="openwave",
            query=[0.1, 0.2],
            limit=3,
            with_payload=True,
        )

    def test_matches_sorted_and_mapped(self):
        """Matches come back in descending score order with metadata."""
        self.qdrant.query_points.return_value = Mock(points=[
            make_point(1, 0.41, payload_for("B", "1")),
            make_point(0, 0.87, payload_for("A", "0")),
        ])

        matches = self.index.query([0.1], 3)

        assert [m.id for m in matches] == ["0", "1"]
        assert matches[0].score == 0.87
        assert matches[0].metadata.project_name == "A"
        assert matches[0].metadata.owner == "a-owner"

    def test_matches_without_payload_dropped(self):
        self.qdrant.query_points.return_value = Mock(points=[
            make_point(0, 0.9, None),
            make_point(1, 0.8, {}),
            make_point(2, 0.7, payload_for("C", "2")),
        ])

        matches = self.index.query([0.1], 3)

        assert [m.metadata.project_name for m in matches] == ["C"]

    def test_never_more_than_k(self):
        self.qdrant.query_points.return_value = Mock(points=[
            make_point(i, 1.0 - i / 10, payload_for(f"P{i}", str(i))) for i in range(5)
        ])

        assert len(self.index.query([0.1], 3)) == 3

    def test_backend_rejection(self):
        self.qdrant.query_points.side_effect = RuntimeError("collection not found")

        with pytest.raises(VectorIndexError, match="collection not found"):
            self.index.query([0.1], 3)


class TestCollectionManagement:
    """Tests for ensure_index and describe."""

    def setup_method(self):
        self.qdrant = MagicMock()
        self.index = VectorIndexClient(make_config(), client=self.qdrant)

    def test_creates_missing_collection(self):
        self.qdrant.collection_exists.return_value = False

        assert self.index.ensure_index(384) is True

        kwargs = self.qdrant.create_collection.call_args.kwargs
        assert kwargs["collection_name"] == "openwave"
        assert kwargs["vectors_config"].size == 384

    def test_existing_collection_untouched(self):
        self.qdrant.collection_exists.return_value = True

        assert self.index.ensure_index(384) is False
        self.qdrant.create_collection.assert_not_called()

    def test_describe(self):
        self.qdrant.get_collection.return_value = Mock(points_count=12, status="green")

        assert self.index.describe() == {
            "name": "openwave",
            "points_count": 12,
            "status": "green",
        }

    def test_describe_failure(self):
        self.qdrant.get_collection.side_effect = RuntimeError("unauthorized")

        with pytest.raises(VectorIndexError):
            self.index.describe()
