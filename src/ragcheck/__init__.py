"""
ragcheck - Hybrid retrieval, source grounding and plagiarism detection
over a user's document chunks.
"""

from ragcheck.exceptions import (
    InvalidInputError,
    ProviderError,
    RagCheckError,
    RetrievalUnavailableError,
)
from ragcheck.rag import (
    Chunk,
    Citation,
    GroundedClaim,
    HybridRetriever,
    HybridSearchOptions,
    RAGContext,
    RAGPipeline,
    SearchResult,
    ground_sources,
    hybrid_search,
)
from ragcheck.plagiarism import (
    CandidateDocument,
    MatchType,
    PlagiarismChecker,
    PlagiarismMatch,
    PlagiarismReport,
    check_against_corpus,
    merge_overlapping_matches,
)
from ragcheck.utils.config import EngineConfig, load_config

__version__ = "0.1.0"
__all__ = [
    # Errors
    "InvalidInputError",
    "ProviderError",
    "RagCheckError",
    "RetrievalUnavailableError",
    # Retrieval
    "Chunk",
    "Citation",
    "GroundedClaim",
    "HybridRetriever",
    "HybridSearchOptions",
    "RAGContext",
    "RAGPipeline",
    "SearchResult",
    "ground_sources",
    "hybrid_search",
    # Plagiarism
    "CandidateDocument",
    "MatchType",
    "PlagiarismChecker",
    "PlagiarismMatch",
    "PlagiarismReport",
    "check_against_corpus",
    "merge_overlapping_matches",
    # Config
    "EngineConfig",
    "load_config",
]
