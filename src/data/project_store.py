"""
Openwave Project Store
======================

Read-only access to the project records the index is built from.

The web application owns the `project` table; this module only reads
it. Column names are accepted in both the ORM's camelCase form
(projectName, projectOwner, aiDescription) and snake_case.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union

import psycopg2
from psycopg2.extras import RealDictCursor

from ..rag.models import SourceRecord

logger = logging.getLogger(__name__)


class ProjectSource(ABC):
    """Bulk, read-only source of project records."""

    @abstractmethod
    def fetch_all(self) -> List[SourceRecord]:
        """Return every project record, in store order."""
        pass


class PostgresProjectSource(ProjectSource):
    """Reads the project table with psycopg2."""

    def __init__(self, config):
        self.config = config
        self.table = config.project_table

    def _get_connection(self):
        """Get database connection."""
        return psycopg2.connect(self.config.connection_string)

    def fetch_all(self) -> List[SourceRecord]:
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                # Table name is validated in DatabaseConfig
                cur.execute(f'SELECT * FROM "{self.table}"')
                rows = cur.fetchall()
        finally:
            conn.close()

        records = [SourceRecord.from_row(dict(row)) for row in rows]
        logger.info(f"Fetched {len(records)} project records from '{self.table}'")
        return records


class StaticProjectSource(ProjectSource):
    """In-memory records, e.g. loaded from a JSON export."""

    def __init__(self, records: List[SourceRecord]):
        self.records = list(records)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "StaticProjectSource":
        """
        Load a JSON array of project rows.

        Each row uses the same keys as the database table.
        """
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)

        if not isinstance(rows, list):
            raise ValueError(f"{path}: expected a JSON array of project rows")

        return cls([SourceRecord.from_row(row) for row in rows])

    def fetch_all(self) -> List[SourceRecord]:
        return list(self.records)
