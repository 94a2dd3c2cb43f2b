"""Severity classification and presentation data for plagiarism reports."""

from .models import (
    MatchRow,
    MatchType,
    PlagiarismMatch,
    PlagiarismReport,
    ReportView,
    Severity,
)

HIGH_SEVERITY_THRESHOLD = 0.3
MODERATE_SEVERITY_THRESHOLD = 0.15
PREVIEW_LENGTH = 200

MATCH_COLORS = {
    MatchType.EXACT: "red",
    MatchType.PARAPHRASE: "orange",
    MatchType.SIMILAR: "yellow",
}


def classify_severity(overall_similarity: float) -> Severity:
    """Map an overall similarity to a risk level."""
    if overall_similarity > HIGH_SEVERITY_THRESHOLD:
        return Severity.HIGH
    if overall_similarity > MODERATE_SEVERITY_THRESHOLD:
        return Severity.MODERATE
    return Severity.LOW


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def build_report_view(report: PlagiarismReport) -> ReportView:
    """Summarise a report for display."""
    rows = [
        MatchRow(
            match_type=match.match_type,
            similarity_percent=round(match.similarity * 100),
            source_title=match.source_title,
            source_url=match.source_url,
            preview=_preview(match.matched_text),
        )
        for match in report.matches
    ]

    return ReportView(
        similarity_percent=round(report.overall_similarity * 100, 1),
        severity=classify_severity(report.overall_similarity),
        total_matches=report.total_matches,
        word_count=report.word_count,
        checked_at=report.checked_at,
        sources=list(report.sources),
        rows=rows,
    )


def highlight_matches(text: str, matches: list[PlagiarismMatch]) -> str:
    """Wrap every matched span of ``text`` in a ``<mark>`` element.

    Matches must not overlap (run them through merge_overlapping_matches
    first). Zero-length spans are skipped.
    """
    pieces = []
    cursor = 0

    for match in sorted(matches, key=lambda m: m.start_position):
        if match.end_position <= match.start_position or match.start_position < cursor:
            continue

        color = MATCH_COLORS[match.match_type]
        percent = round(match.similarity * 100)
        pieces.append(text[cursor:match.start_position])
        pieces.append(
            f'<mark style="background-color: {color};" '
            f'data-type="{match.match_type.value}" data-similarity="{percent}%">'
        )
        pieces.append(text[match.start_position:match.end_position])
        pieces.append("</mark>")
        cursor = match.end_position

    pieces.append(text[cursor:])
    return "".join(pieces)
