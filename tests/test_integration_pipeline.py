"""
Integration tests for the full RAG pipeline.

Tests the complete flow: Project source → Embeddings → Index → Retrieval
→ Grounding → Streamed answer

No network or database: a bag-of-words embedder and an in-memory cosine
index stand in for the model and Qdrant, so the real ingestion and
retrieval code runs end to end.

Usage:
    pytest tests/test_integration_pipeline.py -v
"""

import asyncio
import json
import math
import re

import pytest

from src.data.project_store import StaticProjectSource
from src.rag.errors import EmbeddingError, InvalidRequest
from src.rag.grounding import REFUSAL_SENTENCE
from src.rag.ingestion import RAGIngestion
from src.rag.models import QueryMatch, SourceRecord
from src.rag.retriever import RAGRetriever


# =============================================================================
# Test Doubles
# =============================================================================

VOCABULARY = ["weather", "cli", "rust", "game", "engine", "python", "data", "chat"]


class BagOfWordsEmbedder:
    """Deterministic embedder over a tiny vocabulary."""

    dimensions = len(VOCABULARY)

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = 0

    def embed(self, text):
        self.calls += 1
        if self.fail_on and self.fail_on in text:
            raise EmbeddingError("Embedding model error: 503 - loading")
        words = re.findall(r"[a-z]+", text.lower())
        vector = [float(words.count(term)) for term in VOCABULARY]
        # Keep every vector non-zero so cosine is defined
        vector.append(0.01)
        return vector

    async def aembed(self, text):
        return await asyncio.to_thread(self.embed, text)


class InMemoryIndex:
    """Cosine-similarity index with last-write-wins upserts."""

    def __init__(self):
        self.records = {}
        self.upsert_calls = 0

    def upsert(self, records):
        if not records:
            return
        self.upsert_calls += 1
        for record in records:
            self.records[record.id] = record

    def query(self, vector, k):
        def cosine(a, b):
            dot = sum(x * y for x, y in zip(a, b))
            return dot / (math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b)))

        matches = [
            QueryMatch(id=r.id, metadata=r.metadata, score=cosine(vector, r.vector))
            for r in self.records.values()
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:k]


class EchoLLM:
    """Streams back the first context line it was grounded on."""

    def __init__(self):
        self.system_prompts = []

    async def stream_chat(self, system, messages):
        self.system_prompts.append(system)
        first_project = next(
            (line for line in system.splitlines() if line.startswith("Project: ")),
            REFUSAL_SENTENCE,
        )
        for word in first_project.split(" "):
            yield word + " "


# =============================================================================
# Fixtures
# =============================================================================

def catalogue():
    return [
        SourceRecord(id="1", name="A", description="weather cli written in rust",
                     owner="bob", languages={"rust": 900}),
        SourceRecord(id="2", name="B", description="", owner="carol"),
        SourceRecord(id="3", name="Pixel", description="game engine in python",
                     owner="dana", languages={"python": 400}),
        SourceRecord(id="4", name="Parley", description="chat data python tooling",
                     owner=None),
    ]


def build(records=None, embedder=None, id_strategy="source"):
    embedder = embedder or BagOfWordsEmbedder()
    index = InMemoryIndex()
    llm = EchoLLM()
    ingestion = RAGIngestion(
        embedder=embedder,
        index=index,
        source=StaticProjectSource(records if records is not None else catalogue()),
        id_strategy=id_strategy,
    )
    retriever = RAGRetriever(embedder=embedder, index=index, llm=llm, top_k=2)
    return ingestion, retriever, index, llm


async def ask(retriever, question):
    return "".join([chunk async for chunk in retriever.answer([
        {"role": "user", "content": question},
    ])])


# =============================================================================
# Full Pipeline
# =============================================================================

class TestFullPipeline:
    """Index then query through the real pipeline code."""

    def test_index_then_answer(self):
        ingestion, retriever, index, llm = build()

        result = asyncio.run(ingestion.run())
        answer = asyncio.run(ask(retriever, "Is there a weather CLI in Rust?"))

        assert result.projects_processed == 3
        assert set(index.records) == {"1", "3", "4"}

        system = llm.system_prompts[0]
        assert "Project: A" in system
        assert "Owner: bob" in system
        assert "Do NOT use any prior knowledge" in system
        assert answer.startswith("Project: A")

    def test_metadata_stored(self):
        ingestion, _, index, _ = build()

        asyncio.run(ingestion.run())

        payload = index.records["1"].metadata.to_payload()
        assert payload["projectName"] == "A"
        assert json.loads(payload["languages"]) == {"rust": 900}
        assert index.records["4"].metadata.owner == "Unknown Owner"

    def test_top_k_respected(self):
        ingestion, retriever, _, llm = build()

        asyncio.run(ingestion.run())
        asyncio.run(ask(retriever, "python"))

        assert llm.system_prompts[0].count("Project: ") == 2

    def test_reindex_overwrites(self):
        """Re-running indexing does not duplicate projects."""
        ingestion, _, index, _ = build()

        asyncio.run(ingestion.run())
        asyncio.run(ingestion.run())

        assert len(index.records) == 3
        assert index.upsert_calls == 2

    def test_blank_only_catalogue(self):
        """Nothing indexed: the answer path still works and refuses."""
        ingestion, retriever, index, llm = build(records=[
            SourceRecord(name="B", description="  "),
        ])

        result = asyncio.run(ingestion.run())
        answer = asyncio.run(ask(retriever, "anything?"))

        assert result.projects_processed == 0
        assert index.upsert_calls == 0
        assert REFUSAL_SENTENCE in llm.system_prompts[0]
        assert answer.strip() == REFUSAL_SENTENCE

    def test_positional_scenario(self):
        """A (described) and B (blank) without keys: A gets id 0."""
        ingestion, _, index, _ = build(records=[
            SourceRecord(name="A", description="x", owner="bob", languages={"js": 10}),
            SourceRecord(name="B", description=""),
        ])

        asyncio.run(ingestion.run())

        assert list(index.records) == ["0"]
        assert index.records["0"].metadata.project_name == "A"
        assert index.records["0"].metadata.languages == '{"js": 10}'


class TestPipelineFailures:
    """Failures stop the pipeline at the right point."""

    def test_embedding_failure_writes_nothing(self):
        embedder = BagOfWordsEmbedder(fail_on="game")
        ingestion, _, index, _ = build(embedder=embedder)

        with pytest.raises(EmbeddingError, match="Pixel"):
            asyncio.run(ingestion.run())

        assert index.records == {}
        assert index.upsert_calls == 0

    def test_invalid_request_before_embedding(self):
        embedder = BagOfWordsEmbedder()
        _, retriever, _, llm = build(embedder=embedder)

        async def run():
            return [chunk async for chunk in retriever.answer([
                {"role": "assistant", "content": "hello"},
            ])]

        with pytest.raises(InvalidRequest):
            asyncio.run(run())

        assert embedder.calls == 0
        assert llm.system_prompts == []
