"""
Openwave LLM Client
===================

Streaming chat client for the answer generation model.
Supports Claude (Anthropic) and OpenAI.

The RAG pipeline passes a grounding system prompt plus the caller's
full message history and relays the text chunks as they arrive.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from ..rag.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported LLM providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


@dataclass
class LLMResponse:
    """A complete (non-streamed) answer."""
    content: str
    model: str
    provider: LLMProvider


class LLMClient(ABC):
    """Abstract streaming LLM client."""

    provider: LLMProvider
    model: str

    @abstractmethod
    def stream_chat(
        self,
        system: str,
        messages: List[Dict[str, Any]],
    ) -> AsyncIterator[str]:
        """
        Stream the answer as text chunks.

        Raises:
            GenerationError: if the provider call fails, before or
                during the stream
        """
        pass

    async def generate(self, system: str, messages: List[Dict[str, Any]]) -> LLMResponse:
        """Collect the whole stream into one response."""
        chunks = []
        async for chunk in self.stream_chat(system, messages):
            chunks.append(chunk)
        return LLMResponse(content="".join(chunks), model=self.model, provider=self.provider)


class AnthropicClient(LLMClient):
    """
    Client for Claude (Anthropic).

    Anthropic takes the system prompt separately and only accepts
    user/assistant turns, so system-role messages from the history are
    appended to the system prompt.
    """

    provider = LLMProvider.ANTHROPIC
    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        client=None,
    ):
        if not api_key and client is None:
            raise ConfigurationError("ANTHROPIC_API_KEY required")

        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client

    def _get_client(self):
        """Lazy init of the async Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    @staticmethod
    def split_system(system: str, messages: List[Dict[str, Any]]) -> Tuple[str, List[Dict[str, Any]]]:
        extra = [m["content"] for m in messages if m.get("role") == "system" and isinstance(m.get("content"), str)]
        turns = [m for m in messages if m.get("role") != "system"]
        if extra:
            system = system + "\n\n" + "\n\n".join(extra)
        return system, turns

    async def stream_chat(
        self,
        system: str,
        messages: List[Dict[str, Any]],
    ) -> AsyncIterator[str]:
        client = self._get_client()
        system, turns = self.split_system(system, messages)

        try:
            async with client.messages.stream(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system,
                messages=turns,
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except Exception as e:
            logger.error(f"Anthropic stream failed: {e}")
            raise GenerationError(f"Generation failed: {e}", cause=e) from e


class OpenAIClient(LLMClient):
    """Client for OpenAI chat completions."""

    provider = LLMProvider.OPENAI
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        client=None,
    ):
        if not api_key and client is None:
            raise ConfigurationError("OPENAI_API_KEY required")

        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client

    def _get_client(self):
        if self._client is None:
            import openai
            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def stream_chat(
        self,
        system: str,
        messages: List[Dict[str, Any]],
    ) -> AsyncIterator[str]:
        client = self._get_client()

        full_messages = [{"role": "system", "content": system}]
        full_messages.extend(messages)

        try:
            stream = await client.chat.completions.create(
                model=self.model,
                messages=full_messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except Exception as e:
            logger.error(f"OpenAI stream failed: {e}")
            raise GenerationError(f"Generation failed: {e}", cause=e) from e


def get_llm_client(config) -> LLMClient:
    """
    Factory for the generation client.

    Uses GenerationConfig.resolved_provider: explicit LLM_PROVIDER,
    else Anthropic when its key is set, else OpenAI.

    Raises:
        ConfigurationError: if no provider key is available
    """
    provider = config.resolved_provider
    kwargs = {
        "model": config.model,
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
    }

    if provider == "anthropic":
        return AnthropicClient(api_key=config.anthropic_api_key, **kwargs)
    if provider == "openai":
        return OpenAIClient(api_key=config.openai_api_key, **kwargs)

    raise ConfigurationError(
        "No LLM API key found. Set ANTHROPIC_API_KEY, OPENAI_API_KEY, or GPT_API_KEY"
    )
