"""In-memory storage collaborator."""

import logging
from typing import Optional

from ragcheck.plagiarism.models import CandidateDocument

from .base import BaseDocumentStore
from .document import Chunk, FileRecord

logger = logging.getLogger(__name__)


class MemoryDocumentStore(BaseDocumentStore):
    """In-memory store for tests and small corpora.

    Keeps files, their chunks and full documents in insertion order.
    """

    def __init__(self) -> None:
        self._files: dict[str, FileRecord] = {}
        self._chunks: dict[str, Chunk] = {}
        self._documents: dict[str, CandidateDocument] = {}

    def add_file(self, file: FileRecord, chunks: Optional[list[Chunk]] = None) -> None:
        """Add a file and, optionally, its chunks."""
        self._files[file.id] = file
        for chunk in chunks or []:
            self.add_chunk(chunk)

    def add_chunk(self, chunk: Chunk) -> None:
        """Add a single chunk."""
        self._chunks[chunk.id] = chunk

    def add_document(self, document: CandidateDocument) -> None:
        """Add a full document for plagiarism checks."""
        self._documents[document.id] = document

    async def fetch_chunks(self, file_ids: Optional[list[str]] = None) -> list[Chunk]:
        """Fetch chunks, optionally restricted to some files."""
        if not file_ids:
            return list(self._chunks.values())

        wanted = set(file_ids)
        chunks = [chunk for chunk in self._chunks.values() if chunk.file_id in wanted]
        logger.debug(f"Fetched {len(chunks)} chunks for {len(wanted)} files")
        return chunks

    async def fetch_file_names(self, file_ids: list[str]) -> dict[str, str]:
        """Map file IDs to file names."""
        return {
            file_id: self._files[file_id].filename
            for file_id in file_ids
            if file_id in self._files
        }

    async def fetch_documents(
        self,
        exclude_id: Optional[str] = None,
    ) -> list[CandidateDocument]:
        """Fetch all documents except ``exclude_id``."""
        return [doc for doc in self._documents.values() if doc.id != exclude_id]
