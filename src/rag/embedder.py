"""
RAG Embedder
============

Turns text into a fixed-length sentence embedding.

Backends:
- huggingface: Inference API feature-extraction (default,
  sentence-transformers/all-MiniLM-L6-v2, 384 dimensions)
- openai: text-embedding-3-small with the dimensions parameter

The configured dimension must match the vector index. A model that
returns token-level output is flattened rather than pooled, so the
result only passes the dimension check when the model already pools.
"""

import asyncio
import logging
import math
from numbers import Real
from typing import Any, List, Optional

import requests

from .errors import EmbeddingError
from .models import EmbeddingVector

logger = logging.getLogger(__name__)


def normalize_embedding(raw: Any) -> EmbeddingVector:
    """
    Flatten a model response into a flat list of finite floats.

    Raises:
        EmbeddingError: on a non-sequence response, an empty vector, or
            any non-numeric or non-finite component
    """
    if hasattr(raw, "tolist"):
        raw = raw.tolist()
    if not isinstance(raw, (list, tuple)):
        raise EmbeddingError("Invalid embedding response format")

    flat: List[float] = []
    stack = [iter(raw)]
    while stack:
        try:
            item = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue
        if isinstance(item, (list, tuple)):
            stack.append(iter(item))
            continue
        if isinstance(item, bool) or not isinstance(item, Real):
            raise EmbeddingError(f"Non-numeric embedding component: {item!r}")
        value = float(item)
        if not math.isfinite(value):
            raise EmbeddingError(f"Non-finite embedding component: {value}")
        flat.append(value)

    if not flat:
        raise EmbeddingError("Empty embedding returned by model")
    return flat


class RAGEmbedder:
    """
    Generates sentence embeddings for indexing and for queries.

    Deterministic for a fixed model and input. Every returned vector
    has exactly `dimensions` components.
    """

    DEFAULT_MODELS = {
        "huggingface": "sentence-transformers/all-MiniLM-L6-v2",
        "openai": "text-embedding-3-small",
    }

    def __init__(self, config, session: Optional[requests.Session] = None):
        self.config = config
        self.provider = config.provider
        self.model = config.model or self.DEFAULT_MODELS[self.provider]
        self.dimensions = config.dimensions
        self.timeout = config.timeout

        self._session = session
        self._client = None
        self._total_requests = 0

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    @property
    def client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(
                api_key=self.config.openai_api_key,
                timeout=self.timeout,
            )
        return self._client

    def _request_huggingface(self, text: str) -> Any:
        url = f"{self.config.huggingface_url.rstrip('/')}/{self.model}/pipeline/feature-extraction"
        try:
            response = self.session.post(
                url,
                headers={"Authorization": f"Bearer {self.config.huggingface_token}"},
                json={"inputs": text},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise EmbeddingError(f"Embedding request timed out after {self.timeout}s", cause=e) from e
        except requests.RequestException as e:
            raise EmbeddingError(f"Embedding request failed: {e}", cause=e) from e

        if response.status_code != 200:
            raise EmbeddingError(
                f"Embedding model error: {response.status_code} - {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise EmbeddingError("Embedding response is not valid JSON", cause=e) from e

    def _request_openai(self, text: str) -> Any:
        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text,
                dimensions=self.dimensions,
            )
        except Exception as e:
            raise EmbeddingError(f"Embedding request failed: {e}", cause=e) from e

        return response.data[0].embedding

    def embed(self, text: str) -> EmbeddingVector:
        """
        Generate the embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Flat list of `dimensions` floats

        Raises:
            EmbeddingError: on call failure, timeout, malformed output,
                or a dimension mismatch
        """
        if self.provider == "openai":
            raw = self._request_openai(text)
        else:
            raw = self._request_huggingface(text)
        self._total_requests += 1

        vector = normalize_embedding(raw)
        if len(vector) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions} "
                f"(model {self.model} must return a pooled sentence embedding)"
            )

        logger.debug(f"Embedded {len(text)} chars with {self.model}")
        return vector

    async def aembed(self, text: str) -> EmbeddingVector:
        """embed() without blocking the event loop."""
        return await asyncio.to_thread(self.embed, text)

    @property
    def total_requests(self) -> int:
        return self._total_requests
