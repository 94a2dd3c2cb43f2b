"""Reranker implementations."""

import logging
from typing import Optional

from ragcheck.text.metrics import tokenize_keywords

from .base import BaseReranker
from .document import SearchResult

logger = logging.getLogger(__name__)


class IdentityReranker(BaseReranker):
    """Identity reranker that doesn't change the order.

    Useful as a default when no reranking is needed.
    """

    async def rerank(
        self,
        query: str,
        results: list[SearchResult],
        top_k: Optional[int] = None,
    ) -> list[SearchResult]:
        """Return results unchanged, limited to top_k."""
        return results[:top_k]


class HeuristicReranker(BaseReranker):
    """Reranker that bumps fused scores using lexical evidence.

    Bonuses added to each result's score:

    - ``phrase_bonus`` when the whole query appears in the content
    - ``early_bonus * (1 - position / early_window)`` for every query keyword
      first found within the first ``early_window`` characters
    - ``coverage_bonus * matched / total`` for keyword coverage

    Results are re-sorted by the bumped score; ties keep their prior order.
    """

    def __init__(
        self,
        phrase_bonus: float = 0.2,
        early_bonus: float = 0.05,
        early_window: int = 100,
        coverage_bonus: float = 0.1,
    ):
        self.phrase_bonus = phrase_bonus
        self.early_bonus = early_bonus
        self.early_window = early_window
        self.coverage_bonus = coverage_bonus

    def bonus(self, query: str, content: str) -> float:
        """Compute the score bonus for one piece of content."""
        query_lower = query.lower()
        content_lower = content.lower()
        keywords = tokenize_keywords(query)

        bonus = 0.0
        if query_lower and query_lower in content_lower:
            bonus += self.phrase_bonus

        for word in keywords:
            position = content_lower.find(word)
            if 0 <= position < self.early_window:
                bonus += self.early_bonus * (1 - position / self.early_window)

        if keywords:
            matched = sum(1 for word in keywords if word in content_lower)
            bonus += self.coverage_bonus * matched / len(keywords)

        return bonus

    async def rerank(
        self,
        query: str,
        results: list[SearchResult],
        top_k: Optional[int] = None,
    ) -> list[SearchResult]:
        """Rerank results by fused score plus lexical bonus."""
        if not results:
            return []

        reranked = [
            result.model_copy(update={"score": result.score + self.bonus(query, result.content)})
            for result in results
        ]
        reranked.sort(key=lambda x: x.score, reverse=True)

        logger.debug(f"Reranked {len(reranked)} results")
        return reranked[:top_k]
