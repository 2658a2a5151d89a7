"""
Tests for project record sources.
"""

import json

import pytest
from unittest.mock import MagicMock, patch

from src.data.config import DatabaseConfig
from src.data.project_store import PostgresProjectSource, StaticProjectSource
from src.rag.models import SourceRecord


class TestSourceRecordFromRow:
    """Row → SourceRecord mapping."""

    def test_camel_case_row(self):
        record = SourceRecord.from_row({
            "id": 12,
            "projectName": "Tide",
            "aiDescription": "Weather CLI",
            "projectOwner": "alice",
            "languages": {"go": 120},
        })

        assert record.id == "12"
        assert record.name == "Tide"
        assert record.description == "Weather CLI"
        assert record.owner == "alice"
        assert record.languages == {"go": 120}

    def test_snake_case_row(self):
        record = SourceRecord.from_row({
            "project_id": "p-1",
            "project_name": "Tide",
            "ai_description": "Weather CLI",
            "project_owner": "alice",
        })

        assert record.id == "p-1"
        assert record.name == "Tide"
        assert record.owner == "alice"
        assert record.languages == {}

    def test_missing_fields(self):
        record = SourceRecord.from_row({"projectName": "Empty"})

        assert record.id is None
        assert record.description is None
        assert record.is_eligible is False


class TestStaticProjectSource:
    """JSON export loading."""

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text(json.dumps([
            {"id": 1, "projectName": "A", "aiDescription": "x", "projectOwner": "bob"},
            {"id": 2, "projectName": "B", "aiDescription": ""},
        ]), encoding="utf-8")

        records = StaticProjectSource.from_json_file(path).fetch_all()

        assert [r.name for r in records] == ["A", "B"]
        assert [r.is_eligible for r in records] == [True, False]

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text('{"projects": []}', encoding="utf-8")

        with pytest.raises(ValueError, match="JSON array"):
            StaticProjectSource.from_json_file(path)


class TestPostgresProjectSource:
    """Database reads with psycopg2 mocked."""

    @patch.dict("os.environ", {"DATABASE_URL": "postgresql://u:p@db/openwave"}, clear=True)
    def test_fetch_all(self):
        cursor = MagicMock()
        cursor.fetchall.return_value = [
            {"id": 1, "projectName": "A", "aiDescription": "x", "projectOwner": "bob", "languages": {}},
        ]
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cursor

        with patch("src.data.project_store.psycopg2.connect", return_value=conn) as connect:
            records = PostgresProjectSource(DatabaseConfig()).fetch_all()

        connect.assert_called_once_with("postgresql://u:p@db/openwave")
        cursor.execute.assert_called_once_with('SELECT * FROM "project"')
        conn.close.assert_called_once()
        assert records[0].name == "A"
        assert records[0].id == "1"

    @patch.dict("os.environ", {}, clear=True)
    def test_connection_closed_on_error(self):
        cursor = MagicMock()
        cursor.execute.side_effect = RuntimeError("relation does not exist")
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cursor

        with patch("src.data.project_store.psycopg2.connect", return_value=conn):
            with pytest.raises(RuntimeError):
                PostgresProjectSource(DatabaseConfig()).fetch_all()

        conn.close.assert_called_once()
