"""Plagiarism detection: passage matching, overlap merging and reports."""

from .models import (
    CandidateDocument,
    ExternalScanResult,
    MatchRow,
    MatchType,
    PlagiarismMatch,
    PlagiarismReport,
    ReportView,
    Severity,
)
from .matcher import find_exact_matches, find_similar_passages
from .merger import merge_overlapping_matches
from .report import build_report_view, classify_severity, highlight_matches
from .providers import BaseScanProvider, CopyleaksProvider
from .checker import (
    PlagiarismChecker,
    build_report,
    check_against_corpus,
    collect_corpus_matches,
    match_document,
)

__all__ = [
    "CandidateDocument",
    "ExternalScanResult",
    "MatchRow",
    "MatchType",
    "PlagiarismMatch",
    "PlagiarismReport",
    "ReportView",
    "Severity",
    "find_exact_matches",
    "find_similar_passages",
    "merge_overlapping_matches",
    "build_report_view",
    "classify_severity",
    "highlight_matches",
    "BaseScanProvider",
    "CopyleaksProvider",
    "PlagiarismChecker",
    "build_report",
    "check_against_corpus",
    "collect_corpus_matches",
    "match_document",
]
