"""
Test configuration and fixtures.
"""

import pytest

from ragcheck.plagiarism.models import CandidateDocument
from ragcheck.rag.document import Chunk, FileRecord, VectorHit
from ragcheck.rag.store import MemoryDocumentStore


class StaticVectorSearch:
    """Vector search stub returning fixed similarities per chunk id."""

    def __init__(self, similarities: dict[str, float]):
        self.similarities = similarities
        self.calls: list[tuple[str, int]] = []

    async def __call__(self, query: str, chunks: list[Chunk], limit: int) -> list[VectorHit]:
        self.calls.append((query, limit))
        return [
            VectorHit(chunk_id=chunk_id, similarity=score)
            for chunk_id, score in self.similarities.items()
        ][:limit]


@pytest.fixture
def static_vector_search():
    """Factory for vector search stubs with fixed similarities."""
    return StaticVectorSearch


@pytest.fixture
def ml_chunks() -> list[Chunk]:
    """Chunks about machine learning and unrelated topics."""
    return [
        Chunk(
            id="c1",
            content="Machine learning applications are transforming healthcare and finance.",
            file_id="f1",
            page_number=2,
        ),
        Chunk(
            id="c2",
            content=(
                "This chapter reviews the history of agriculture, irrigation, crop rotation, "
                "and soil management in early societies; only later does it mention machine tools."
            ),
            file_id="f2",
            page_number=7,
        ),
        Chunk(
            id="c3",
            content="Pasta recipes rely on durum wheat, salt and patience.",
            file_id="f2",
            page_number=9,
        ),
    ]


@pytest.fixture
def store(ml_chunks) -> MemoryDocumentStore:
    """Memory store holding the machine learning chunks."""
    store = MemoryDocumentStore()
    store.add_file(FileRecord(id="f1", filename="ml-survey.pdf"), ml_chunks[:1])
    store.add_file(FileRecord(id="f2", filename="history.pdf"), ml_chunks[1:])
    return store


@pytest.fixture
def essay_text() -> str:
    """A paragraph of roughly sixty words."""
    return (
        "Coral reefs occupy less than one percent of the ocean floor yet support about a "
        "quarter of all marine species. Rising sea temperatures trigger bleaching events, "
        "in which corals expel the symbiotic algae that feed them and give them colour. "
        "Repeated bleaching leaves reefs vulnerable to disease, erosion and invasion by "
        "fast growing seaweeds that smother young coral colonies."
    )


@pytest.fixture
def corpus(essay_text) -> list[CandidateDocument]:
    """One copy of the essay and one unrelated document."""
    return [
        CandidateDocument(id="d1", title="Reef Ecology Notes", content=essay_text),
        CandidateDocument(
            id="d2",
            title="Train Timetables",
            content=(
                "Express services depart hourly from platform four. Weekend engineering "
                "works may replace some trains with buses between midnight and dawn."
            ),
        ),
    ]
