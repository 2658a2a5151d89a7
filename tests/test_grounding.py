"""
Tests for context rendering and the grounding prompt.
"""

from src.rag.grounding import (
    MATCH_SEPARATOR,
    REFUSAL_SENTENCE,
    build_system_prompt,
    format_context,
    format_match,
)
from src.rag.models import QueryMatch, VectorMetadata


def make_match(name="A", owner="bob", description="x", score=0.87):
    return QueryMatch(
        id="0",
        metadata=VectorMetadata(
            project_name=name,
            description=description,
            languages="{}",
            owner=owner,
        ),
        score=score,
    )


class TestFormatContext:
    """Tests for the CONTEXT block."""

    def test_single_match(self):
        context = format_context([make_match()])
        assert context == (
            "Project: A\n"
            "Owner: bob\n"
            "Description: x\n"
            "Relevance Score: 0.8700\n"
        )

    def test_score_four_decimals(self):
        assert "Relevance Score: 0.1235" in format_match(make_match(score=0.123456))
        assert "Relevance Score: 1.0000" in format_match(make_match(score=1))

    def test_matches_joined_by_separator(self):
        context = format_context([
            make_match("A", score=0.9),
            make_match("B", score=0.5),
        ])

        parts = context.split(MATCH_SEPARATOR)
        assert len(parts) == 2
        assert parts[0].startswith("Project: A\n")
        assert parts[1].startswith("Project: B\n")

    def test_no_matches(self):
        assert format_context([]) == ""

    def test_budget_drops_tail(self):
        """Matches past the token budget are dropped, best ones kept."""
        matches = [
            make_match("First", description="a" * 200, score=0.9),
            make_match("Second", description="b" * 200, score=0.8),
            make_match("Third", description="c" * 200, score=0.7),
        ]
        one_match_tokens = len(format_match(matches[0])) // 4

        context = format_context(matches, max_tokens=one_match_tokens + 10)

        assert "Project: First" in context
        assert "Project: Second" not in context
        assert "Project: Third" not in context

    def test_no_budget_keeps_everything(self):
        matches = [make_match(f"P{i}", description="d" * 500) for i in range(5)]
        assert format_context(matches, max_tokens=None).count("Project: ") == 5


class TestSystemPrompt:
    """Tests for the grounding instruction."""

    def test_context_embedded_verbatim(self):
        context = format_context([make_match()])
        prompt = build_system_prompt(context)

        assert f"CONTEXT:\n---\n{context}\n---" in prompt

    def test_refusal_sentence_verbatim(self):
        prompt = build_system_prompt("")
        assert REFUSAL_SENTENCE == "I don't have enough information to answer that."
        assert f'"{REFUSAL_SENTENCE}"' in prompt

    def test_outside_knowledge_forbidden(self):
        prompt = build_system_prompt("")
        assert "ONLY on the context" in prompt
        assert "Do NOT use any prior knowledge" in prompt

    def test_braces_in_context_preserved(self):
        """Descriptions containing braces are not treated as placeholders."""
        context = format_context([make_match(description='config like {"a": 1} and {name}')])
        prompt = build_system_prompt(context)

        assert 'config like {"a": 1} and {name}' in prompt
