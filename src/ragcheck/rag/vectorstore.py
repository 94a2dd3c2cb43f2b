"""Vector similarity search over chunk embeddings."""

import logging
import math

from ragcheck.exceptions import InvalidInputError

from .base import BaseEmbedding
from .document import Chunk, VectorHit

logger = logging.getLogger(__name__)


def vector_cosine_similarity(a: list[float], b: list[float]) -> float:
    """Calculate cosine similarity between two embedding vectors.

    Raises:
        InvalidInputError: If the vectors have different dimensions
    """
    if len(a) != len(b):
        raise InvalidInputError(
            f"Embedding dimension mismatch: {len(a)} != {len(b)}"
        )

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot_product / (norm_a * norm_b)


class EmbeddingVectorSearch:
    """Rank candidate chunks by cosine similarity to the query embedding.

    Exact O(n) scan over the candidates. Chunks without an embedding are
    skipped and negative similarities are reported as 0.
    """

    def __init__(self, embedding: BaseEmbedding):
        self.embedding = embedding

    async def __call__(self, query: str, chunks: list[Chunk], limit: int) -> list[VectorHit]:
        candidates = [chunk for chunk in chunks if chunk.embedding is not None]
        if not candidates:
            return []

        query_embedding = await self.embedding.embed_query(query)

        scored = []
        for chunk in candidates:
            score = vector_cosine_similarity(query_embedding, chunk.embedding)
            scored.append((chunk.id, min(max(score, 0.0), 1.0)))

        scored.sort(key=lambda x: x[1], reverse=True)
        logger.debug(f"Vector search scored {len(scored)} chunks")

        return [VectorHit(chunk_id=chunk_id, similarity=score) for chunk_id, score in scored[:limit]]
