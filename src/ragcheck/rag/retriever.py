"""Hybrid vector + keyword retrieval."""

import asyncio
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from ragcheck.exceptions import RetrievalUnavailableError
from ragcheck.text.metrics import bm25_keyword_score, tokenize_keywords
from ragcheck.utils.config import BM25Config, ProviderConfig, SearchConfig

from .base import BaseDocumentStore, BaseReranker, VectorSearchFn
from .document import Chunk, SearchResult, VectorHit
from .reranker import HeuristicReranker
from .sources import SourceOutcome, run_source

logger = logging.getLogger(__name__)

KeywordSearchFn = Callable[[str, list[Chunk], int], list[SearchResult]]


class HybridSearchOptions(BaseModel):
    """Per-request options for hybrid search."""

    file_ids: Optional[list[str]] = None
    limit: int = Field(default=10, gt=0)
    vector_weight: float = Field(default=0.6, ge=0)
    keyword_weight: float = Field(default=0.4, ge=0)
    min_score: float = Field(default=0.3, ge=0)
    rerank: bool = False

    @classmethod
    def from_config(cls, config: SearchConfig, **overrides: Any) -> "HybridSearchOptions":
        """Build options from configured defaults plus request overrides."""
        values = {
            "limit": config.limit,
            "vector_weight": config.vector_weight,
            "keyword_weight": config.keyword_weight,
            "min_score": config.min_score,
            "rerank": config.rerank,
        }
        values.update(overrides)
        return cls(**values)


def keyword_search(
    query: str,
    chunks: list[Chunk],
    limit: int = 10,
    bm25: Optional[BM25Config] = None,
) -> list[SearchResult]:
    """Score chunks against the query's keywords.

    Chunks scoring 0 are dropped; the rest are sorted by descending score
    and truncated to ``limit``. A query without keywords matches nothing.
    """
    keywords = tokenize_keywords(query)
    if not keywords:
        return []

    results = []
    for chunk in chunks:
        score = bm25_keyword_score(chunk.content, keywords, bm25)
        if score > 0:
            results.append(SearchResult.from_chunk(chunk, keyword_score=score, score=score))

    results.sort(key=lambda x: x.score, reverse=True)
    return results[:limit]


def fuse_results(
    vector_hits: list[VectorHit],
    keyword_results: list[SearchResult],
    chunks_by_id: dict[str, Chunk],
    vector_weight: float = 0.6,
    keyword_weight: float = 0.4,
) -> list[SearchResult]:
    """Combine vector and keyword results by chunk id.

    ``score = vector_score * vector_weight + keyword_score * keyword_weight``;
    a chunk found by only one search keeps 0 for the other score. Vector
    hits for chunks outside the candidate set are ignored.

    Returns:
        Fused results, unsorted (vector hits first, then keyword-only chunks)
    """
    scores: dict[str, dict[str, float]] = {}

    for hit in vector_hits:
        if hit.chunk_id not in chunks_by_id:
            logger.debug(f"Ignoring vector hit for unknown chunk {hit.chunk_id}")
            continue
        scores[hit.chunk_id] = {"vector_score": hit.similarity, "keyword_score": 0.0}

    for result in keyword_results:
        entry = scores.setdefault(result.chunk_id, {"vector_score": 0.0, "keyword_score": 0.0})
        entry["keyword_score"] = result.keyword_score

    fused = []
    for chunk_id, entry in scores.items():
        score = entry["vector_score"] * vector_weight + entry["keyword_score"] * keyword_weight
        fused.append(SearchResult.from_chunk(chunks_by_id[chunk_id], score=score, **entry))

    return fused


class HybridRetriever:
    """Hybrid retriever combining vector and keyword search.

    Vector search is an external collaborator; keyword search runs locally
    over the same candidate chunks. Each is an independent named source: if
    one fails or times out, results come from the other. Only when every
    source fails is RetrievalUnavailableError raised.
    """

    def __init__(
        self,
        vector_search: Optional[VectorSearchFn] = None,
        store: Optional[BaseDocumentStore] = None,
        reranker: Optional[BaseReranker] = None,
        keyword_search_fn: Optional[KeywordSearchFn] = None,
        bm25: Optional[BM25Config] = None,
        search_config: Optional[SearchConfig] = None,
        provider_config: Optional[ProviderConfig] = None,
    ):
        """Initialize the hybrid retriever.

        Args:
            vector_search: Vector search collaborator (skipped if None)
            store: Storage collaborator for candidate chunks and file names
            reranker: Reranker used when options.rerank is set (default: HeuristicReranker)
            keyword_search_fn: Keyword scorer (default: keyword_search with ``bm25``)
            bm25: Keyword scorer parameters
            search_config: Default search options
            provider_config: Source timeouts
        """
        self.vector_search = vector_search
        self.store = store
        self.reranker = reranker or HeuristicReranker()
        self.bm25 = bm25 or BM25Config()
        self.keyword_search_fn = keyword_search_fn or (
            lambda query, chunks, limit: keyword_search(query, chunks, limit, self.bm25)
        )
        self.search_config = search_config or SearchConfig()
        self.provider_config = provider_config or ProviderConfig()
        self.last_sources: list[str] = []

    def default_options(self, **overrides: Any) -> HybridSearchOptions:
        return HybridSearchOptions.from_config(self.search_config, **overrides)

    async def search(
        self,
        query: str,
        options: Optional[HybridSearchOptions] = None,
        chunks: Optional[list[Chunk]] = None,
    ) -> list[SearchResult]:
        """Run hybrid search over candidate chunks.

        Args:
            query: Query string
            options: Search options (configured defaults if None)
            chunks: Candidate chunks (fetched from the store if None)

        Returns:
            Up to ``options.limit`` results sorted by descending score

        Raises:
            RetrievalUnavailableError: If no source produced results
        """
        options = options or self.default_options()
        self.last_sources = []

        if chunks is None:
            chunks = await self._load_candidates(options.file_ids)
        if not chunks:
            return []

        chunks_by_id = {chunk.id: chunk for chunk in chunks}
        candidate_limit = options.limit * self.search_config.candidate_multiplier

        outcomes = await self._run_sources(query, chunks, candidate_limit)
        available = [outcome for outcome in outcomes if outcome.is_ok]
        if not available:
            raise RetrievalUnavailableError(
                {outcome.name: outcome.reason for outcome in outcomes}
            )

        self.last_sources = [outcome.name for outcome in available]
        data = {outcome.name: outcome.data for outcome in available}

        results = fuse_results(
            data.get("vector", []),
            data.get("keyword", []),
            chunks_by_id,
            options.vector_weight,
            options.keyword_weight,
        )
        results = [result for result in results if result.score >= options.min_score]
        results.sort(key=lambda x: x.score, reverse=True)

        if options.rerank and results:
            results = await self.reranker.rerank(query, results)

        results = await self._attach_file_names(results)

        logger.info(
            f"Hybrid search returned {min(len(results), options.limit)} of {len(results)} "
            f"results from sources {self.last_sources}"
        )
        return results[:options.limit]

    async def _run_sources(
        self,
        query: str,
        chunks: list[Chunk],
        limit: int,
    ) -> list[SourceOutcome]:
        """Run every configured source concurrently, in a fixed order."""
        calls = []
        if self.vector_search is not None:
            calls.append(run_source(
                "vector",
                self._vector_source(query, chunks, limit),
                self.provider_config.vector_search_timeout,
            ))
        calls.append(run_source(
            "keyword",
            self._keyword_source(query, chunks, limit),
            self.provider_config.keyword_search_timeout,
        ))
        return list(await asyncio.gather(*calls))

    async def _vector_source(
        self,
        query: str,
        chunks: list[Chunk],
        limit: int,
    ) -> list[VectorHit]:
        hits = await self.vector_search(query, chunks, limit)
        return list(hits or [])

    async def _keyword_source(
        self,
        query: str,
        chunks: list[Chunk],
        limit: int,
    ) -> list[SearchResult]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.keyword_search_fn(query, chunks, limit),
        )

    async def _load_candidates(self, file_ids: Optional[list[str]]) -> list[Chunk]:
        if self.store is None:
            return []

        outcome = await run_source(
            "storage",
            self.store.fetch_chunks(file_ids),
            self.provider_config.storage_timeout,
        )
        if not outcome.is_ok:
            raise RetrievalUnavailableError({outcome.name: outcome.reason})
        return outcome.data

    async def _attach_file_names(self, results: list[SearchResult]) -> list[SearchResult]:
        if self.store is None or not results:
            return results

        file_ids = list(dict.fromkeys(result.file_id for result in results))
        outcome = await run_source(
            "file_names",
            self.store.fetch_file_names(file_ids),
            self.provider_config.storage_timeout,
        )
        if not outcome.is_ok:
            return results

        names = outcome.data
        return [
            result.model_copy(update={"file_name": names.get(result.file_id, result.file_name)})
            for result in results
        ]


async def hybrid_search(
    query: str,
    chunks: list[Chunk],
    vector_search: Optional[VectorSearchFn] = None,
    options: Optional[HybridSearchOptions] = None,
    **kwargs: Any,
) -> list[SearchResult]:
    """Hybrid search over an explicit candidate set.

    Convenience wrapper around HybridRetriever; extra keyword arguments are
    passed to its constructor.
    """
    retriever = HybridRetriever(vector_search=vector_search, **kwargs)
    return await retriever.search(query, options, chunks=chunks)
