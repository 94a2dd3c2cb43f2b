"""Citations and prompt-context formatting for retrieved chunks."""

import math
import re

from ragcheck.text.metrics import tokenize_keywords

from .document import Citation, SearchResult

EXCERPT_LENGTH = 200
CONTEXT_SEPARATOR = "\n\n---\n\n"


def _source_name(result: SearchResult, number: int) -> str:
    return result.file_name or f"Document {number}"


def extract_citations(results: list[SearchResult]) -> list[Citation]:
    """Create one citation per result, numbered from 1 in result order."""
    citations = []
    for index, result in enumerate(results, start=1):
        excerpt = result.content[:EXCERPT_LENGTH]
        if len(result.content) > EXCERPT_LENGTH:
            excerpt += "..."

        citations.append(Citation(
            source_id=result.file_id,
            source_name=_source_name(result, index),
            page_number=result.page_number,
            chunk_id=result.chunk_id,
            excerpt=excerpt,
            # Reranked scores can exceed 1
            confidence=min(max(result.score, 0.0), 1.0),
        ))
    return citations


def format_context_with_citations(results: list[SearchResult]) -> str:
    """Format results as numbered, page-cited blocks for an LLM prompt.

    Each block is ``[n] <source>, Page <p>`` followed by the chunk content on
    the next line; blocks are separated by ``CONTEXT_SEPARATOR``.
    """
    return CONTEXT_SEPARATOR.join(
        f"[{index}] {_source_name(result, index)}, Page {result.page_number}\n{result.content}"
        for index, result in enumerate(results, start=1)
    )


def format_compact_context(results: list[SearchResult]) -> str:
    """Token-saving variant: ``[n:p<page>] <content>`` blocks."""
    return "\n\n".join(
        f"[{index}:p{result.page_number}] {result.content}"
        for index, result in enumerate(results, start=1)
    )


def estimate_context_tokens(context: str) -> int:
    """Rough token estimate, about 4 characters per token."""
    return math.ceil(len(context) / 4)


def highlight_keywords(text: str, query: str) -> str:
    """Wrap whole-word occurrences of the query's keywords in ``**``."""
    for keyword in dict.fromkeys(tokenize_keywords(query)):
        pattern = re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)
        text = pattern.sub(lambda m: f"**{m.group(0)}**", text)
    return text
