"""Base classes and abstract interfaces for retrieval collaborators."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

if TYPE_CHECKING:
    from ragcheck.plagiarism.models import CandidateDocument

    from .document import Chunk, SearchResult, VectorHit


VectorSearchFn = Callable[[str, list["Chunk"], int], Awaitable[list["VectorHit"]]]
"""Signature of the vector search collaborator: (query, candidates, limit) -> hits."""


class BaseEmbedding(ABC):
    """Abstract base class for embedding models.

    Embedding models convert text into dense vector representations.
    """

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of documents.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors
        """
        pass

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query.

        Args:
            text: Query text to embed

        Returns:
            Embedding vector
        """
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        pass


class BaseDocumentStore(ABC):
    """Abstract base class for the storage collaborator.

    The engine only reads from the store.
    """

    @abstractmethod
    async def fetch_chunks(self, file_ids: Optional[list[str]] = None) -> list["Chunk"]:
        """Fetch chunks, optionally restricted to some files.

        Args:
            file_ids: Files to read chunks from (all files if None or empty)

        Returns:
            List of chunks
        """
        pass

    @abstractmethod
    async def fetch_file_names(self, file_ids: list[str]) -> dict[str, str]:
        """Map file IDs to human-readable file names.

        Unknown IDs are left out of the mapping.
        """
        pass

    @abstractmethod
    async def fetch_documents(
        self,
        exclude_id: Optional[str] = None,
    ) -> list["CandidateDocument"]:
        """Fetch full documents for plagiarism checks.

        Args:
            exclude_id: Document to leave out (usually the one being checked)

        Returns:
            List of candidate documents
        """
        pass


class BaseReranker(ABC):
    """Abstract base class for rerankers.

    Rerankers reorder search results to improve relevance.
    """

    @abstractmethod
    async def rerank(
        self,
        query: str,
        results: list["SearchResult"],
        top_k: Optional[int] = None,
    ) -> list["SearchResult"]:
        """Rerank search results.

        Args:
            query: Original query string
            results: Search results to rerank
            top_k: Number of results to return (all if None)

        Returns:
            Reranked search results
        """
        pass
