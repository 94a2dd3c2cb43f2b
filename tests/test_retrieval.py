"""Tests for hybrid retrieval."""

import asyncio
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from ragcheck.exceptions import InvalidInputError, RetrievalUnavailableError
from ragcheck.rag import (
    Chunk,
    EmbeddingVectorSearch,
    HashingEmbedding,
    HeuristicReranker,
    HybridRetriever,
    HybridSearchOptions,
    IdentityReranker,
    MemoryDocumentStore,
    OpenAIEmbedding,
    SearchResult,
    SourceOutcome,
    VectorHit,
    fuse_results,
    hybrid_search,
    keyword_search,
    run_source,
    vector_cosine_similarity,
)
from ragcheck.utils.config import ProviderConfig


class UnavailableStore(MemoryDocumentStore):
    """Store whose chunk or file-name lookups fail."""

    def __init__(self, chunks_fail: bool = True, names_fail: bool = False):
        super().__init__()
        self.chunks_fail = chunks_fail
        self.names_fail = names_fail

    async def fetch_chunks(self, file_ids=None):
        if self.chunks_fail:
            raise ConnectionError("database is down")
        return await super().fetch_chunks(file_ids)

    async def fetch_file_names(self, file_ids):
        if self.names_fail:
            raise ConnectionError("database is down")
        return await super().fetch_file_names(file_ids)


async def failing_vector_search(query, chunks, limit):
    raise ConnectionError("vector index offline")


async def slow_vector_search(query, chunks, limit):
    await asyncio.sleep(1)
    return []


def failing_keyword_search(query, chunks, limit):
    raise RuntimeError("keyword scorer crashed")


class TestChunk:
    """Tests for the Chunk model."""

    def test_from_row_decodes_json_embedding(self):
        chunk = Chunk.from_row({
            "id": "c1",
            "file_id": "f1",
            "content": "text",
            "page_number": 3,
            "embedding": "[0.1, 0.2]",
        })

        assert chunk.embedding == [0.1, 0.2]
        assert chunk.page_number == 3

    def test_from_row_is_strict(self):
        """Test that a page number stored as text is rejected."""
        with pytest.raises(ValidationError):
            Chunk.from_row({"id": "c1", "file_id": "f1", "content": "x", "page_number": "3"})

    def test_frozen(self):
        chunk = Chunk(id="c1", file_id="f1", content="text")
        with pytest.raises(ValidationError):
            chunk.content = "changed"

    def test_repr(self):
        chunk = Chunk(id="c1", file_id="f1", content="x" * 50)
        assert "c1" in repr(chunk)
        assert "..." in repr(chunk)


class TestKeywordSearch:
    """Tests for local keyword search."""

    def test_matches_only_chunks_with_keywords(self, ml_chunks):
        results = keyword_search("pasta wheat", ml_chunks)

        assert [r.chunk_id for r in results] == ["c3"]
        assert results[0].keyword_score == 1.0
        assert results[0].vector_score == 0.0

    def test_limit(self, ml_chunks):
        assert len(keyword_search("machine", ml_chunks)) == 2
        assert len(keyword_search("machine", ml_chunks, limit=1)) == 1

    def test_query_without_keywords(self, ml_chunks):
        assert keyword_search("the and of", ml_chunks) == []


class TestFuseResults:
    """Tests for weighted score fusion."""

    def test_weighted_sum(self, ml_chunks):
        chunks_by_id = {c.id: c for c in ml_chunks}
        keyword_results = [
            SearchResult.from_chunk(ml_chunks[0], keyword_score=0.5, score=0.5),
            SearchResult.from_chunk(ml_chunks[1], keyword_score=1.0, score=1.0),
        ]

        fused = fuse_results(
            [VectorHit(chunk_id="c1", similarity=0.5)],
            keyword_results,
            chunks_by_id,
        )
        scores = {r.chunk_id: r for r in fused}

        assert scores["c1"].score == pytest.approx(0.5)
        assert scores["c1"].vector_score == 0.5
        assert scores["c2"].score == pytest.approx(0.4)
        assert scores["c2"].vector_score == 0.0

    def test_unknown_chunk_ignored(self, ml_chunks):
        fused = fuse_results(
            [VectorHit(chunk_id="missing", similarity=0.9)],
            [],
            {c.id: c for c in ml_chunks},
        )
        assert fused == []

    def test_higher_vector_score_never_ranks_lower(self, ml_chunks):
        chunks_by_id = {c.id: c for c in ml_chunks}
        keyword_results = [
            SearchResult.from_chunk(ml_chunks[0], keyword_score=0.3, score=0.3),
            SearchResult.from_chunk(ml_chunks[1], keyword_score=0.3, score=0.3),
        ]

        for low, high in [(0.1, 0.2), (0.4, 0.9), (0.0, 1.0)]:
            fused = fuse_results(
                [VectorHit(chunk_id="c1", similarity=low), VectorHit(chunk_id="c2", similarity=high)],
                keyword_results,
                chunks_by_id,
            )
            scores = {r.chunk_id: r.score for r in fused}
            assert scores["c2"] >= scores["c1"]


class TestHybridRetriever:
    """Tests for the hybrid retriever."""

    @pytest.mark.asyncio
    async def test_search(self, store, static_vector_search):
        """Test fused ranking with file names attached."""
        retriever = HybridRetriever(
            vector_search=static_vector_search({"c1": 0.9, "c3": 0.1}),
            store=store,
        )

        results = await retriever.search("machine learning")

        assert [r.chunk_id for r in results] == ["c1", "c2"]
        assert results[0].score == pytest.approx(0.94)
        assert results[1].score == pytest.approx(0.4)
        assert results[0].file_name == "ml-survey.pdf"
        assert results[1].file_name == "history.pdf"
        assert retriever.last_sources == ["vector", "keyword"]

    @pytest.mark.asyncio
    async def test_scores_sorted_and_above_minimum(self, store, static_vector_search):
        retriever = HybridRetriever(
            vector_search=static_vector_search({"c1": 0.2, "c2": 0.7, "c3": 0.35}),
            store=store,
        )

        results = await retriever.search("machine learning")

        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(score >= 0.3 for score in scores)

    @pytest.mark.asyncio
    async def test_vector_failure_degrades_to_keyword(self, store):
        retriever = HybridRetriever(vector_search=failing_vector_search, store=store)

        results = await retriever.search("machine learning")

        assert {r.chunk_id for r in results} == {"c1", "c2"}
        assert all(r.vector_score == 0.0 for r in results)
        assert all(r.score == pytest.approx(0.4) for r in results)
        assert retriever.last_sources == ["keyword"]

    @pytest.mark.asyncio
    async def test_keyword_failure_degrades_to_vector(self, store, static_vector_search):
        retriever = HybridRetriever(
            vector_search=static_vector_search({"c1": 0.9, "c3": 0.1}),
            store=store,
            keyword_search_fn=failing_keyword_search,
        )

        results = await retriever.search("machine learning")

        assert [r.chunk_id for r in results] == ["c1"]
        assert results[0].score == pytest.approx(0.54)
        assert retriever.last_sources == ["vector"]

    @pytest.mark.asyncio
    async def test_vector_timeout_degrades_to_keyword(self, store):
        retriever = HybridRetriever(
            vector_search=slow_vector_search,
            store=store,
            provider_config=ProviderConfig(vector_search_timeout=0.05),
        )

        results = await retriever.search("machine learning")

        assert {r.chunk_id for r in results} == {"c1", "c2"}
        assert retriever.last_sources == ["keyword"]

    @pytest.mark.asyncio
    async def test_all_sources_failing(self, store):
        retriever = HybridRetriever(
            vector_search=failing_vector_search,
            store=store,
            keyword_search_fn=failing_keyword_search,
        )

        with pytest.raises(RetrievalUnavailableError) as exc_info:
            await retriever.search("machine learning")

        assert set(exc_info.value.reasons) == {"vector", "keyword"}
        assert "vector index offline" in exc_info.value.reasons["vector"]

    @pytest.mark.asyncio
    async def test_storage_failure(self):
        retriever = HybridRetriever(store=UnavailableStore())

        with pytest.raises(RetrievalUnavailableError) as exc_info:
            await retriever.search("machine learning")

        assert "storage" in exc_info.value.reasons

    @pytest.mark.asyncio
    async def test_file_name_lookup_failure_keeps_results(self, ml_chunks):
        store = UnavailableStore(chunks_fail=False, names_fail=True)
        for chunk in ml_chunks:
            store.add_chunk(chunk)
        retriever = HybridRetriever(store=store)

        results = await retriever.search("pasta")

        assert [r.chunk_id for r in results] == ["c3"]
        assert results[0].file_name is None

    @pytest.mark.asyncio
    async def test_empty_candidates(self, static_vector_search):
        vector_search = static_vector_search({"c1": 0.9})
        retriever = HybridRetriever(vector_search=vector_search, store=MemoryDocumentStore())

        assert await retriever.search("machine learning") == []
        assert await retriever.search("machine learning", chunks=[]) == []
        assert vector_search.calls == []

    @pytest.mark.asyncio
    async def test_file_id_filter(self, store):
        retriever = HybridRetriever(store=store)

        results = await retriever.search(
            "machine",
            retriever.default_options(file_ids=["f1"]),
        )

        assert [r.chunk_id for r in results] == ["c1"]

    @pytest.mark.asyncio
    async def test_limit_and_candidate_pool(self, store, static_vector_search):
        vector_search = static_vector_search({"c1": 0.9, "c2": 0.8})
        retriever = HybridRetriever(vector_search=vector_search, store=store)

        results = await retriever.search("machine", HybridSearchOptions(limit=1))

        assert len(results) == 1
        assert vector_search.calls == [("machine", 2)]

    @pytest.mark.asyncio
    async def test_rerank_reorders_ties(self, static_vector_search):
        """Test that the lexical bonus lifts the chunk with the query phrase."""
        chunks = [
            Chunk(id="b", file_id="f", content="Training deep models takes data; neural networks appear late."),
            Chunk(id="a", file_id="f", content="Neural networks are loosely inspired by the brain."),
        ]
        retriever = HybridRetriever(
            vector_search=static_vector_search({"b": 0.6, "a": 0.6}),
            keyword_search_fn=lambda query, chunks, limit: [],
        )

        plain = await retriever.search("neural networks", chunks=chunks)
        reranked = await retriever.search(
            "neural networks",
            HybridSearchOptions(rerank=True),
            chunks=chunks,
        )

        assert [r.chunk_id for r in plain] == ["b", "a"]
        assert [r.chunk_id for r in reranked] == ["a", "b"]
        assert reranked[0].score > plain[0].score

    @pytest.mark.asyncio
    async def test_rerank_prefers_early_full_coverage(self, ml_chunks, static_vector_search):
        """A chunk opening with every query word outranks one mentioning a single word late."""
        retriever = HybridRetriever(vector_search=static_vector_search({"c2": 0.5, "c1": 0.5}))
        query = "machine learning applications"

        plain = await retriever.search(query, chunks=ml_chunks[:2])
        reranked = await retriever.search(
            query,
            HybridSearchOptions(rerank=True),
            chunks=ml_chunks[:2],
        )

        assert plain[0].score == pytest.approx(plain[1].score)
        assert [r.chunk_id for r in reranked] == ["c1", "c2"]
        assert reranked[0].score > reranked[1].score

    @pytest.mark.asyncio
    async def test_identity_reranker(self, static_vector_search):
        chunks = [
            Chunk(id="b", file_id="f", content="Training deep models takes data; neural networks appear late."),
            Chunk(id="a", file_id="f", content="Neural networks are loosely inspired by the brain."),
        ]
        retriever = HybridRetriever(
            vector_search=static_vector_search({"b": 0.6, "a": 0.6}),
            reranker=IdentityReranker(),
            keyword_search_fn=lambda query, chunks, limit: [],
        )

        results = await retriever.search(
            "neural networks",
            HybridSearchOptions(rerank=True),
            chunks=chunks,
        )

        assert [r.chunk_id for r in results] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_hybrid_search_function(self, ml_chunks):
        results = await hybrid_search("pasta", ml_chunks)

        assert [r.chunk_id for r in results] == ["c3"]
        assert results[0].score == pytest.approx(0.4)


class TestHeuristicReranker:
    """Tests for the lexical bonus."""

    def test_bonus(self):
        """Phrase 0.2, early positions 0.05 and 0.0465, coverage 0.1."""
        reranker = HeuristicReranker()
        bonus = reranker.bonus("neural networks", "Neural networks are loosely inspired by the brain.")
        assert bonus == pytest.approx(0.3965)

    def test_no_bonus_without_overlap(self):
        assert HeuristicReranker().bonus("neural networks", "Pasta and sauce.") == 0.0

    @pytest.mark.asyncio
    async def test_rerank_empty(self):
        assert await HeuristicReranker().rerank("query", []) == []


class TestEmbeddingVectorSearch:
    """Tests for embedding-based vector search."""

    @pytest.mark.asyncio
    async def test_ranks_by_similarity(self, ml_chunks):
        embedding = HashingEmbedding()
        vectors = await embedding.embed_documents([c.content for c in ml_chunks])
        chunks = [
            c.model_copy(update={"embedding": vector})
            for c, vector in zip(ml_chunks, vectors)
        ]

        hits = await EmbeddingVectorSearch(embedding)(
            "machine learning applications are transforming healthcare", chunks, 10,
        )

        assert hits[0].chunk_id == "c1"
        assert all(0 <= hit.similarity <= 1 for hit in hits)
        assert [h.similarity for h in hits] == sorted((h.similarity for h in hits), reverse=True)

    @pytest.mark.asyncio
    async def test_skips_chunks_without_embedding(self, ml_chunks):
        hits = await EmbeddingVectorSearch(HashingEmbedding())("machine", ml_chunks, 10)
        assert hits == []

    @pytest.mark.asyncio
    async def test_dimension_mismatch_degrades_search(self, ml_chunks):
        """A mismatched embedding fails the vector source, not the search."""
        chunks = [ml_chunks[0].model_copy(update={"embedding": [1.0, 0.0]})] + ml_chunks[1:]
        retriever = HybridRetriever(vector_search=EmbeddingVectorSearch(HashingEmbedding(dimension=8)))

        results = await retriever.search("machine", chunks=chunks)

        assert {r.chunk_id for r in results} == {"c1", "c2"}
        assert retriever.last_sources == ["keyword"]

    def test_vector_cosine_similarity(self):
        assert vector_cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
        assert vector_cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert vector_cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_vector_dimension_mismatch(self):
        with pytest.raises(InvalidInputError):
            vector_cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_hashing_embedding_rejects_bad_dimension(self):
        with pytest.raises(ValueError):
            HashingEmbedding(dimension=0)


class TestRunSource:
    """Tests for named source outcomes."""

    @pytest.mark.asyncio
    async def test_success(self):
        async def fetch():
            return [1, 2, 3]

        outcome = await run_source("numbers", fetch())

        assert outcome.is_ok
        assert outcome.data == [1, 2, 3]
        assert outcome.name == "numbers"

    @pytest.mark.asyncio
    async def test_error(self):
        async def fetch():
            raise ValueError("bad row")

        outcome = await run_source("rows", fetch())

        assert not outcome.is_ok
        assert outcome.reason == "bad row"

    @pytest.mark.asyncio
    async def test_timeout(self):
        outcome = await run_source("slow", asyncio.sleep(1), timeout=0.01)

        assert not outcome.is_ok
        assert "timed out" in outcome.reason

    def test_constructors(self):
        assert SourceOutcome.ok("a", None).is_ok
        assert not SourceOutcome.err("a", "down").is_ok


class RecordingEmbeddingsAPI:
    """Stand-in for ``client.embeddings`` returning one vector per input."""

    def __init__(self):
        self.inputs: list = []

    async def create(self, model: str, input):
        self.inputs.append(input)
        texts = input if isinstance(input, list) else [input]
        return SimpleNamespace(data=[
            SimpleNamespace(embedding=[float(len(text)), 1.0]) for text in texts
        ])


class TestOpenAIEmbedding:
    """Tests for the OpenAI embedding client with an injected API client."""

    @pytest.fixture
    def api(self) -> RecordingEmbeddingsAPI:
        return RecordingEmbeddingsAPI()

    @pytest.fixture
    def embedding(self, api) -> OpenAIEmbedding:
        model = OpenAIEmbedding(batch_size=2)
        model._client = SimpleNamespace(embeddings=api)
        return model

    @pytest.mark.asyncio
    async def test_embed_documents_in_batches(self, embedding, api):
        texts = ["a", "bb", "ccc", "dddd", "eeeee"]

        vectors = await embedding.embed_documents(texts)

        assert api.inputs == [["a", "bb"], ["ccc", "dddd"], ["eeeee"]]
        assert vectors == [[float(len(text)), 1.0] for text in texts]

    @pytest.mark.asyncio
    async def test_embed_no_documents(self, embedding, api):
        assert await embedding.embed_documents([]) == []
        assert api.inputs == []

    @pytest.mark.asyncio
    async def test_embed_query(self, embedding, api):
        vector = await embedding.embed_query("coral")

        assert vector == [5.0, 1.0]
        assert api.inputs == ["coral"]

    def test_dimension(self):
        assert OpenAIEmbedding().dimension == 1536
        assert OpenAIEmbedding(model="text-embedding-3-large").dimension == 3072
        assert OpenAIEmbedding(model="custom-embedder").dimension == 1536

    @pytest.mark.asyncio
    async def test_drives_vector_search(self, embedding, api, ml_chunks):
        vectors = await embedding.embed_documents([c.content for c in ml_chunks])
        chunks = [
            c.model_copy(update={"embedding": vector})
            for c, vector in zip(ml_chunks, vectors)
        ]

        hits = await EmbeddingVectorSearch(embedding)(ml_chunks[2].content, chunks, 1)

        assert [hit.chunk_id for hit in hits] == ["c3"]
        assert api.inputs[-1] == ml_chunks[2].content
