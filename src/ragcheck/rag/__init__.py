"""Hybrid retrieval, citation extraction and source grounding.

Example:
    ```python
    from ragcheck.rag import (
        Chunk,
        EmbeddingVectorSearch,
        HashingEmbedding,
        RAGPipeline,
    )

    pipeline = RAGPipeline(vector_search=EmbeddingVectorSearch(HashingEmbedding()))
    results = await pipeline.hybrid_search("transformer attention", chunks=chunks)
    claims = pipeline.ground(answer_text, results)
    ```
"""

# Data structures
from .document import (
    Chunk,
    Citation,
    FileRecord,
    GroundedClaim,
    RAGContext,
    SearchResult,
    VectorHit,
)

# Base classes
from .base import (
    BaseDocumentStore,
    BaseEmbedding,
    BaseReranker,
    VectorSearchFn,
)

# Collaborators
from .embeddings import HashingEmbedding, OpenAIEmbedding
from .vectorstore import EmbeddingVectorSearch, vector_cosine_similarity
from .store import MemoryDocumentStore

# Retrieval
from .sources import SourceOutcome, run_source
from .reranker import HeuristicReranker, IdentityReranker
from .retriever import (
    HybridRetriever,
    HybridSearchOptions,
    fuse_results,
    hybrid_search,
    keyword_search,
)

# Grounding and context
from .grounding import ground_sources, split_sentences, support_confidence
from .context import (
    estimate_context_tokens,
    extract_citations,
    format_compact_context,
    format_context_with_citations,
    highlight_keywords,
)
from .pipeline import RAGPipeline

__all__ = [
    # Data structures
    "Chunk",
    "Citation",
    "FileRecord",
    "GroundedClaim",
    "RAGContext",
    "SearchResult",
    "VectorHit",
    # Base classes
    "BaseDocumentStore",
    "BaseEmbedding",
    "BaseReranker",
    "VectorSearchFn",
    # Collaborators
    "HashingEmbedding",
    "OpenAIEmbedding",
    "EmbeddingVectorSearch",
    "vector_cosine_similarity",
    "MemoryDocumentStore",
    # Retrieval
    "SourceOutcome",
    "run_source",
    "HeuristicReranker",
    "IdentityReranker",
    "HybridRetriever",
    "HybridSearchOptions",
    "fuse_results",
    "hybrid_search",
    "keyword_search",
    # Grounding and context
    "ground_sources",
    "split_sentences",
    "support_confidence",
    "estimate_context_tokens",
    "extract_citations",
    "format_compact_context",
    "format_context_with_citations",
    "highlight_keywords",
    "RAGPipeline",
]
