"""RAG pipeline: hybrid search, context building and grounding."""

from typing import Any, Literal, Optional

from ragcheck.utils.config import EngineConfig
from ragcheck.utils.logging import get_logger, set_log_level

from .base import BaseDocumentStore, BaseReranker, VectorSearchFn
from .context import (
    estimate_context_tokens,
    extract_citations,
    format_compact_context,
    format_context_with_citations,
)
from .document import Chunk, GroundedClaim, RAGContext, SearchResult
from .grounding import ground_sources
from .retriever import HybridRetriever, HybridSearchOptions

logger = get_logger(__name__)

ContextFormat = Literal["detailed", "compact"]


class RAGPipeline:
    """Retrieval pipeline over a user's document chunks.

    Example:
        ```python
        store = MemoryDocumentStore()
        store.add_file(FileRecord(id="f1", filename="paper.pdf"), chunks)

        pipeline = RAGPipeline(
            store=store,
            vector_search=EmbeddingVectorSearch(HashingEmbedding()),
        )

        context = await pipeline.build_rag_context("What is attention?")
        print(context.formatted_context)
        ```
    """

    def __init__(
        self,
        store: Optional[BaseDocumentStore] = None,
        vector_search: Optional[VectorSearchFn] = None,
        reranker: Optional[BaseReranker] = None,
        config: Optional[EngineConfig] = None,
    ):
        """Initialize the pipeline.

        Args:
            store: Storage collaborator for chunks and file names
            vector_search: Vector search collaborator (keyword-only if None)
            reranker: Reranker for ``rerank=True`` searches (default: HeuristicReranker)
            config: Engine configuration (defaults if None); its ``log_level``
                is applied to the ragcheck loggers
        """
        if config is not None:
            set_log_level(config.log_level)

        self.config = config or EngineConfig()
        self.retriever = HybridRetriever(
            vector_search=vector_search,
            store=store,
            reranker=reranker,
            bm25=self.config.bm25,
            search_config=self.config.search,
            provider_config=self.config.providers,
        )

    def options(self, **overrides: Any) -> HybridSearchOptions:
        """Search options from configured defaults plus overrides."""
        return self.retriever.default_options(**overrides)

    async def hybrid_search(
        self,
        query: str,
        options: Optional[HybridSearchOptions] = None,
        chunks: Optional[list[Chunk]] = None,
    ) -> list[SearchResult]:
        """Run hybrid search; see HybridRetriever.search."""
        return await self.retriever.search(query, options, chunks=chunks)

    async def build_rag_context(
        self,
        query: str,
        options: Optional[HybridSearchOptions] = None,
        format: ContextFormat = "detailed",
        chunks: Optional[list[Chunk]] = None,
    ) -> RAGContext:
        """Retrieve chunks for a query and format them as prompt context.

        Args:
            query: Query string
            options: Search options
            format: "detailed" (numbered citation headers) or "compact"
            chunks: Candidate chunks (fetched from the store if None)

        Returns:
            RAGContext with results, citations, formatted context and token estimate
        """
        results = await self.hybrid_search(query, options, chunks=chunks)

        if format == "detailed":
            formatted = format_context_with_citations(results)
        else:
            formatted = format_compact_context(results)

        return RAGContext(
            results=results,
            citations=extract_citations(results),
            formatted_context=formatted,
            total_tokens=estimate_context_tokens(formatted),
        )

    async def get_relevant_context(
        self,
        question: str,
        file_ids: Optional[list[str]] = None,
        max_tokens: int = 3000,
        limit: int = 10,
    ) -> RAGContext:
        """Build reranked context that fits in a token budget.

        The result limit shrinks by 30% while the context is over budget and
        more than 3 results are requested; if it is still too large, the
        formatted context is truncated and suffixed with ``...``.
        """
        context = await self.build_rag_context(
            question,
            self.options(file_ids=file_ids, limit=limit, rerank=True),
        )

        while context.total_tokens > max_tokens and limit > 3:
            limit = int(limit * 0.7)
            logger.debug(f"Context has {context.total_tokens} tokens, retrying with limit={limit}")
            context = await self.build_rag_context(
                question,
                self.options(file_ids=file_ids, limit=limit, rerank=True),
            )

        if context.total_tokens > max_tokens:
            ratio = max_tokens / context.total_tokens
            truncated = context.formatted_context[:int(len(context.formatted_context) * ratio)]
            context = context.model_copy(update={
                "formatted_context": truncated + "...",
                "total_tokens": max_tokens,
            })

        logger.info(
            f"Built context with {len(context.results)} results ({context.total_tokens} tokens)"
        )
        return context

    def ground(
        self,
        generated_text: str,
        results: list[SearchResult],
    ) -> list[GroundedClaim]:
        """Attribute sentences of generated text to retrieved results."""
        return ground_sources(generated_text, results, self.config.grounding)
