"""
Context rendering and the grounding instruction.

The system prompt pins the model to the retrieved projects and gives it
a fixed refusal sentence for questions the context cannot answer.
"""

from typing import List, Optional

from .models import QueryMatch

REFUSAL_SENTENCE = "I don't have enough information to answer that."

MATCH_SEPARATOR = "\n---\n"

CHARS_PER_TOKEN = 4

SYSTEM_PROMPT_TEMPLATE = """You are an expert assistant for openwave, a platform connecting open-source projects with contributors.
Your task is to answer user questions based ONLY on the context provided below.

CONTEXT:
---
{context}
---

IMPORTANT INSTRUCTIONS:
1.  ONLY use the information from the CONTEXT section to answer the query.
2.  If the context does not contain the answer, you MUST state: "{refusal}"
3.  Do NOT use any prior knowledge or information outside of the provided context.
4.  Do NOT make up or infer details not explicitly stated.
5.  When returning a project's details, format it clearly.
"""


def format_match(match: QueryMatch) -> str:
    metadata = match.metadata
    return (
        f"Project: {metadata.project_name}\n"
        f"Owner: {metadata.owner}\n"
        f"Description: {metadata.description}\n"
        f"Relevance Score: {match.score:.4f}\n"
    )


def format_context(matches: List[QueryMatch], max_tokens: Optional[int] = None) -> str:
    """
    Render matches as the CONTEXT block.

    Args:
        matches: Matches in descending score order
        max_tokens: Approximate budget; matches that would exceed it
            are dropped from the tail

    Returns:
        One paragraph per match joined by a separator line, or an
        empty string when there are no matches
    """
    parts = []
    estimated_tokens = 0

    for match in matches:
        part = format_match(match)
        part_tokens = len(part) // CHARS_PER_TOKEN

        if max_tokens is not None and estimated_tokens + part_tokens > max_tokens:
            break

        parts.append(part)
        estimated_tokens += part_tokens

    return MATCH_SEPARATOR.join(parts)


def build_system_prompt(context: str) -> str:
    """Grounding instruction embedding the context block verbatim."""
    return SYSTEM_PROMPT_TEMPLATE.format(context=context, refusal=REFUSAL_SENTENCE)
