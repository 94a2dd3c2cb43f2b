"""Chunk, search result and citation data structures."""

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """A slice of a source document's text, the unit of retrieval.

    Chunks are owned by the storage collaborator and never modified by the
    engine.

    Attributes:
        id: Unique identifier for the chunk
        file_id: ID of the file the chunk was cut from
        content: The text content of the chunk
        page_number: Page of the source file the chunk starts on
        embedding: Optional embedding vector
        metadata: Additional metadata
    """

    model_config = ConfigDict(frozen=True, strict=True)

    id: str
    file_id: str
    content: str
    page_number: int = Field(default=1, ge=0)
    embedding: Optional[list[float]] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Chunk":
        """Build a chunk from a storage row.

        Rows use snake_case column names (``file_id``, ``page_number``).
        An embedding stored as a JSON string is decoded; any other type
        mismatch fails validation.
        """
        embedding = row.get("embedding")
        if isinstance(embedding, str):
            embedding = json.loads(embedding)

        return cls.model_validate({
            "id": row["id"],
            "file_id": row["file_id"],
            "content": row["content"],
            "page_number": row.get("page_number", 1),
            "embedding": embedding,
            "metadata": row.get("metadata") or {},
        })

    def __repr__(self) -> str:
        content_preview = self.content[:30] + "..." if len(self.content) > 30 else self.content
        return f"Chunk(id={self.id!r}, file_id={self.file_id!r}, content={content_preview!r})"


class FileRecord(BaseModel):
    """A stored file that chunks belong to."""

    model_config = ConfigDict(frozen=True)

    id: str
    filename: str


class VectorHit(BaseModel):
    """A chunk id scored by the vector search collaborator."""

    chunk_id: str
    similarity: float = Field(ge=0, le=1)


class SearchResult(BaseModel):
    """A chunk ranked for a query.

    Attributes:
        chunk_id: ID of the matching chunk
        content: Chunk text
        page_number: Page the chunk starts on
        file_id: ID of the parent file
        file_name: Human-readable file name, when known
        vector_score: Embedding similarity in [0, 1] (0 if not found by vector search)
        keyword_score: Keyword relevance in [0, 1] (0 if not found by keyword search)
        score: Fused ranking key
    """

    chunk_id: str
    content: str
    page_number: int
    file_id: str
    file_name: Optional[str] = None
    vector_score: float = Field(default=0.0, ge=0, le=1)
    keyword_score: float = Field(default=0.0, ge=0, le=1)
    score: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_chunk(cls, chunk: Chunk, **scores: float) -> "SearchResult":
        """Create a result for a chunk with the given scores."""
        return cls(
            chunk_id=chunk.id,
            content=chunk.content,
            page_number=chunk.page_number,
            file_id=chunk.file_id,
            metadata=dict(chunk.metadata),
            **scores,
        )

    def __repr__(self) -> str:
        return f"SearchResult(chunk_id={self.chunk_id!r}, score={self.score:.4f})"


class Citation(BaseModel):
    """A citation derived from a single search result."""

    source_id: str
    source_name: str
    page_number: int
    chunk_id: str
    excerpt: str
    confidence: float = Field(ge=0, le=1)


class GroundedClaim(BaseModel):
    """A generated sentence and the retrieved chunks that support it."""

    claim: str
    sources: list[SearchResult] = Field(default_factory=list)
    confidence: float = Field(ge=0, le=1)


class RAGContext(BaseModel):
    """Retrieved context ready to be placed in a prompt."""

    results: list[SearchResult] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    formatted_context: str = ""
    total_tokens: int = 0
