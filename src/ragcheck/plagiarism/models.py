"""Plagiarism match and report data structures."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

EXACT_THRESHOLD = 0.9
PARAPHRASE_THRESHOLD = 0.7


class MatchType(str, Enum):
    """How closely a matched span follows its source."""

    EXACT = "exact"
    PARAPHRASE = "paraphrase"
    SIMILAR = "similar"

    @classmethod
    def from_similarity(cls, similarity: float) -> "MatchType":
        """Classify a window similarity score."""
        if similarity > EXACT_THRESHOLD:
            return cls.EXACT
        if similarity >= PARAPHRASE_THRESHOLD:
            return cls.PARAPHRASE
        return cls.SIMILAR


class Severity(str, Enum):
    """Risk level of a report's overall similarity."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class CandidateDocument(BaseModel):
    """A stored document checked against the analysed text."""

    model_config = ConfigDict(frozen=True, strict=True)

    id: str
    title: str
    content: str

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CandidateDocument":
        """Build a document from a storage row; NULL content becomes empty."""
        return cls.model_validate({
            "id": row["id"],
            "title": row.get("title") or "Untitled",
            "content": row.get("content") or "",
        })


class PlagiarismMatch(BaseModel):
    """A span of the analysed text that matches a source.

    Attributes:
        source_text: The span of the analysed text
        matched_text: The corresponding text in the source document
        similarity: Match similarity in [0, 1]
        start_position: Start character offset in the analysed text
        end_position: End character offset (exclusive) in the analysed text
        source_url: Where the source can be viewed
        source_title: Title of the source document
        match_type: Exact, paraphrase or similar
    """

    source_text: str
    matched_text: str
    similarity: float = Field(ge=0, le=1)
    start_position: int = Field(ge=0)
    end_position: int = Field(ge=0)
    source_url: Optional[str] = None
    source_title: Optional[str] = None
    match_type: MatchType

    @model_validator(mode="after")
    def _check_span(self) -> "PlagiarismMatch":
        if self.end_position < self.start_position:
            raise ValueError("end_position must not precede start_position")
        return self

    def overlaps(self, other: "PlagiarismMatch") -> bool:
        """Return True if the two spans share any characters."""
        return not (
            self.end_position <= other.start_position
            or other.end_position <= self.start_position
        )


class PlagiarismReport(BaseModel):
    """Result of a plagiarism check. Built once, never modified."""

    model_config = ConfigDict(frozen=True)

    overall_similarity: float = Field(ge=0, le=1)
    total_matches: int = Field(ge=0)
    matches: list[PlagiarismMatch] = Field(default_factory=list)
    analyzed_text: str
    word_count: int = Field(ge=0)
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sources: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls, text: str) -> "PlagiarismReport":
        """A report with no matches for the given text."""
        return cls(
            overall_similarity=0.0,
            total_matches=0,
            analyzed_text=text,
            word_count=len(text.split()),
        )


class ExternalScanResult(BaseModel):
    """Matches reported by a third-party scanning service."""

    matches: list[PlagiarismMatch] = Field(default_factory=list)
    aggregated_score: Optional[float] = Field(default=None, ge=0, le=1)
    scan_id: Optional[str] = None


class MatchRow(BaseModel):
    """One match as shown in a report view."""

    match_type: MatchType
    similarity_percent: int
    source_title: Optional[str] = None
    source_url: Optional[str] = None
    preview: str


class ReportView(BaseModel):
    """Presentation-ready summary of a report. Rendering is left to callers."""

    similarity_percent: float
    severity: Severity
    total_matches: int
    word_count: int
    checked_at: datetime
    sources: list[str]
    rows: list[MatchRow] = Field(default_factory=list)
