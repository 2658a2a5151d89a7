"""
RAG Retriever
=============

Answers a chat request from the project index.

Per request:
    RECEIVED → VALIDATED → EMBEDDED → RETRIEVED → GROUNDED → STREAMING
    → COMPLETED | FAILED

Everything up to GROUNDED happens before the model is called, so those
failures can still be reported as a plain error response. Once
streaming starts, chunks already delivered stay delivered.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, List, Optional

from .errors import GenerationError, InvalidRequest, RAGError
from .grounding import build_system_prompt, format_context
from .models import ConversationMessage, QueryMatch, RequestState, Role

logger = logging.getLogger(__name__)

INVALID_USER_MESSAGE = "Invalid user message in request."


@dataclass
class RAGRequest:
    """State of one retrieval request."""
    messages: List[ConversationMessage]
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: RequestState = RequestState.RECEIVED

    query: Optional[str] = None
    matches: List[QueryMatch] = field(default_factory=list)
    context: str = ""
    system_prompt: str = ""

    def advance(self, state: RequestState) -> None:
        logger.debug(
            f"Request {self.request_id}: {self.state.value} -> {state.value}",
            extra={"request_id": self.request_id, "stage": state.value},
        )
        self.state = state


def parse_messages(raw: Any) -> List[ConversationMessage]:
    """
    Parse the request body's message list.

    Raises:
        InvalidRequest: if it is not a list of {role, content} objects
            with a known role
    """
    if not isinstance(raw, list):
        raise InvalidRequest(INVALID_USER_MESSAGE)

    messages = []
    for item in raw:
        if not isinstance(item, dict) or "role" not in item:
            raise InvalidRequest(INVALID_USER_MESSAGE)
        try:
            messages.append(ConversationMessage(role=item["role"], content=item.get("content")))
        except ValueError:
            raise InvalidRequest(f"Unknown message role: {item['role']!r}")
    return messages


def latest_user_message(messages: List[ConversationMessage]) -> ConversationMessage:
    """
    The most recent user-authored message.

    Raises:
        InvalidRequest: if there is none, or its content is not text
    """
    user_messages = [m for m in messages if m.role == Role.USER]
    if not user_messages or not user_messages[-1].has_text:
        raise InvalidRequest(INVALID_USER_MESSAGE)
    return user_messages[-1]


class RAGRetriever:
    """
    Retrieval-and-grounding pipeline.

    Stateless across requests: all state lives in the vector index and
    in the message history the caller sends.
    """

    def __init__(
        self,
        embedder,
        index,
        llm,
        top_k: int = 3,
        context_max_tokens: Optional[int] = 2000,
    ):
        self.embedder = embedder
        self.index = index
        self.llm = llm
        self.top_k = top_k
        self.context_max_tokens = context_max_tokens

    async def prepare(self, raw_messages: Any) -> RAGRequest:
        """
        Validate, retrieve and ground a request. No model call is made.

        Raises:
            InvalidRequest: no usable user message
            EmbeddingError / VectorIndexError: retrieval failed
        """
        messages = parse_messages(raw_messages)
        request = RAGRequest(messages=messages)

        try:
            query = latest_user_message(messages).content
            request.query = query
            request.advance(RequestState.VALIDATED)

            vector = await self.embedder.aembed(query)
            request.advance(RequestState.EMBEDDED)

            request.matches = await asyncio.to_thread(self.index.query, vector, self.top_k)
            request.advance(RequestState.RETRIEVED)

            request.context = format_context(request.matches, self.context_max_tokens)
            request.system_prompt = build_system_prompt(request.context)
            request.advance(RequestState.GROUNDED)
        except RAGError:
            request.advance(RequestState.FAILED)
            raise

        logger.info(
            f"Request {request.request_id}: {len(request.matches)} matches for query: {query[:50]}",
            extra={"request_id": request.request_id},
        )
        return request

    async def stream(self, request: RAGRequest) -> AsyncIterator[str]:
        """
        Stream the grounded answer.

        The model sees the grounding prompt plus the full original
        message list, not just the last user message.

        Raises:
            GenerationError: on provider failure, possibly mid-stream
        """
        request.advance(RequestState.STREAMING)
        history = [m.to_dict() for m in request.messages]

        try:
            async for chunk in self.llm.stream_chat(request.system_prompt, history):
                yield chunk
        except GenerationError:
            request.advance(RequestState.FAILED)
            raise
        except Exception as e:
            request.advance(RequestState.FAILED)
            raise GenerationError(f"Generation failed: {e}", cause=e) from e

        request.advance(RequestState.COMPLETED)

    async def answer(self, raw_messages: Any) -> AsyncIterator[str]:
        """prepare() followed by stream()."""
        request = await self.prepare(raw_messages)
        async for chunk in self.stream(request):
            yield chunk
