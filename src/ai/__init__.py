"""
Openwave AI Module
==================

Generation model clients used to answer questions from retrieved
project context.
"""

from .llm_client import (
    LLMClient,
    LLMProvider,
    LLMResponse,
    AnthropicClient,
    OpenAIClient,
    get_llm_client,
)

__all__ = [
    "LLMClient",
    "LLMProvider",
    "LLMResponse",
    "AnthropicClient",
    "OpenAIClient",
    "get_llm_client",
]
