"""
RAG Ingestion Pipeline
======================

Builds the project index from the source store.

Flow:
1. Fetch all project records
2. Drop records without a description
3. Embed every description concurrently (fail-fast join)
4. Upsert the whole batch in one call

All-or-nothing: a single embedding failure aborts the run before
anything is written. There is no retry; re-run the pipeline.
"""

import asyncio
import logging
import time
import uuid
from typing import List

from .errors import EmbeddingError
from .models import (
    EmbeddingVector,
    IndexingResult,
    SourceRecord,
    VectorMetadata,
    VectorRecord,
)

logger = logging.getLogger(__name__)


class RAGIngestion:
    """
    Indexing pipeline for project records.

    Id strategies:
    - source: the record's primary key, so re-runs overwrite the same
      logical project. Falls back to positional ids for the whole run
      if any eligible record has no key.
    - positional: index among eligible records in fetch order. Not
      stable across runs; if the fetch order changes, ids point at
      different projects and stale vectors are left behind.
    """

    def __init__(self, embedder, index, source, id_strategy: str = "source"):
        self.embedder = embedder
        self.index = index
        self.source = source
        self.id_strategy = id_strategy

    def assign_ids(self, records: List[SourceRecord]) -> List[str]:
        """Vector ids for eligible records, in the same order."""
        if self.id_strategy == "source":
            if all(r.id for r in records):
                return [r.id for r in records]
            logger.warning(
                "Some project records have no primary key; using positional ids for this run"
            )
        return [str(position) for position in range(len(records))]

    async def _embed_all(self, records: List[SourceRecord]) -> List[EmbeddingVector]:
        """
        Embed every description concurrently.

        The first failure cancels the calls still in flight and is
        re-raised as an EmbeddingError naming the project.
        """
        if not records:
            return []

        tasks = [
            asyncio.create_task(self.embedder.aembed(record.description))
            for record in records
        ]

        try:
            _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for record, task in zip(records, tasks):
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                detail = error.message if isinstance(error, EmbeddingError) else str(error)
                raise EmbeddingError(
                    f"Invalid embedding for project {record.name}: {detail}",
                    cause=error,
                ) from error

        return [task.result() for task in tasks]

    def build_records(
        self,
        records: List[SourceRecord],
        ids: List[str],
        vectors: List[EmbeddingVector],
    ) -> List[VectorRecord]:
        return [
            VectorRecord(
                id=record_id,
                vector=vector,
                metadata=VectorMetadata.from_source(record),
            )
            for record, record_id, vector in zip(records, ids, vectors)
        ]

    async def run(self) -> IndexingResult:
        """
        Run one full indexing pass.

        Returns:
            IndexingResult with the number of projects written

        Raises:
            EmbeddingError: if any eligible record fails to embed
            VectorIndexError: if the upsert is rejected
        """
        run_id = uuid.uuid4().hex[:8]
        started = time.monotonic()

        records = await asyncio.to_thread(self.source.fetch_all)
        eligible = [r for r in records if r.is_eligible]
        skipped = len(records) - len(eligible)

        logger.info(
            f"Indexing {len(eligible)} projects ({skipped} without description skipped)",
            extra={"run_id": run_id, "stage": "fetch"},
        )

        ids = self.assign_ids(eligible)
        vectors = await self._embed_all(eligible)
        vector_records = self.build_records(eligible, ids, vectors)

        if vector_records:
            await asyncio.to_thread(self.index.upsert, vector_records)

        duration = round(time.monotonic() - started, 3)
        logger.info(
            f"Indexing run {run_id} complete: {len(vector_records)} projects",
            extra={"run_id": run_id, "stage": "upsert", "duration": duration},
        )

        return IndexingResult(
            success=True,
            message="Data successfully indexed.",
            projects_processed=len(vector_records),
            skipped=skipped,
            record_ids=ids,
        )
