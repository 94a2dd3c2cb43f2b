"""Check text for plagiarism against a document corpus."""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Optional

from ragcheck.exceptions import RetrievalUnavailableError
from ragcheck.rag.sources import SourceOutcome, run_source
from ragcheck.text.metrics import compare_texts
from ragcheck.utils.config import EngineConfig, PlagiarismConfig
from ragcheck.utils.logging import get_logger, set_log_level

from .matcher import find_exact_matches, find_similar_passages
from .merger import merge_overlapping_matches
from .models import CandidateDocument, ExternalScanResult, PlagiarismMatch, PlagiarismReport
from .providers import BaseScanProvider, CopyleaksProvider

if TYPE_CHECKING:
    from ragcheck.rag.base import BaseDocumentStore

logger = get_logger(__name__)


def match_document(
    text: str,
    document: CandidateDocument,
    config: Optional[PlagiarismConfig] = None,
) -> list[PlagiarismMatch]:
    """Exact and similar-passage matches of ``text`` against one document."""
    config = config or PlagiarismConfig()

    exact = find_exact_matches(text, document.content, config.min_match_length)
    similar = find_similar_passages(
        text,
        document.content,
        window_size=config.window_size,
        threshold=config.window_threshold,
    )

    return [
        match.model_copy(update={
            "source_url": f"/documents/{document.id}",
            "source_title": document.title,
        })
        for match in exact + similar
    ]


def collect_corpus_matches(
    text: str,
    documents: list[CandidateDocument],
    threshold: Optional[float] = None,
    config: Optional[PlagiarismConfig] = None,
    max_workers: Optional[int] = None,
) -> list[PlagiarismMatch]:
    """Raw matches of ``text`` against every document passing the pre-filter.

    Documents whose whole-text similarity is below ``threshold`` are skipped
    before the expensive matching pass. Matching fans out one document per
    task on a thread pool; results are concatenated in document order.
    """
    config = config or PlagiarismConfig()
    threshold = config.threshold if threshold is None else threshold

    if not text.strip():
        return []

    qualifying = [
        document
        for document in documents
        if document.content
        and compare_texts(text, document.content, config.prefilter_algorithm) >= threshold
    ]
    logger.debug(f"{len(qualifying)} of {len(documents)} documents passed the pre-filter")

    if not qualifying:
        return []

    workers = max_workers or config.max_workers
    if len(qualifying) == 1 or workers == 1:
        per_document = [match_document(text, document, config) for document in qualifying]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            per_document = list(pool.map(lambda d: match_document(text, d, config), qualifying))

    return [match for matches in per_document for match in matches]


def build_report(
    text: str,
    matches: list[PlagiarismMatch],
    aggregated_score: Optional[float] = None,
) -> PlagiarismReport:
    """Merge matches and summarise them into a report.

    Only matches with a non-empty span take part in the merge. Zero-length
    matches (provider results that could not be located in the text) overlap
    nothing and are kept as they are.

    ``overall_similarity`` is the mean similarity of the reported matches,
    raised to ``aggregated_score`` when a provider reported a higher one.
    ``sources`` lists the titles behind the reported matches, deduplicated.
    """
    located = [m for m in matches if m.end_position > m.start_position]
    unlocated = [m for m in matches if m.end_position <= m.start_position]

    merged = merge_overlapping_matches(located)
    reported = sorted(merged + unlocated, key=lambda m: m.start_position)

    overall = sum(m.similarity for m in reported) / len(reported) if reported else 0.0
    if aggregated_score is not None:
        overall = max(overall, aggregated_score)

    sources = list(dict.fromkeys(
        m.source_title for m in merged + unlocated if m.source_title
    ))

    return PlagiarismReport(
        overall_similarity=min(overall, 1.0),
        total_matches=len(reported),
        matches=reported,
        analyzed_text=text,
        word_count=len(text.split()),
        sources=sources,
    )


def check_against_corpus(
    text: str,
    documents: list[CandidateDocument],
    threshold: Optional[float] = None,
    config: Optional[PlagiarismConfig] = None,
    max_workers: Optional[int] = None,
) -> PlagiarismReport:
    """Check text against candidate documents and build a report.

    Args:
        text: Text to analyse
        documents: Candidate source documents
        threshold: Pre-filter similarity threshold (default: config.threshold, 0.7)
        config: Matching parameters
        max_workers: Thread pool size for per-document matching

    Returns:
        PlagiarismReport with non-overlapping matches sorted by position
    """
    matches = collect_corpus_matches(text, documents, threshold, config, max_workers)
    report = build_report(text, matches)

    logger.info(
        f"Corpus check: {report.total_matches} matches from {len(report.sources)} sources, "
        f"overall similarity {report.overall_similarity:.2f}"
    )
    return report


class PlagiarismChecker:
    """Plagiarism checks against stored documents and an optional external scanner.

    Example:
        ```python
        checker = PlagiarismChecker(store=store, provider=CopyleaksProvider())
        report = await checker.check_plagiarism(essay, exclude_document_id="doc-1")
        ```
    """

    def __init__(
        self,
        store: Optional["BaseDocumentStore"] = None,
        provider: Optional[BaseScanProvider] = None,
        config: Optional[EngineConfig] = None,
    ):
        """Initialize the checker.

        Args:
            store: Storage collaborator supplying candidate documents
            provider: Third-party scanning provider (default: Copyleaks when
                credentials are configured in ``config.providers``)
            config: Engine configuration (defaults if None); its ``log_level``
                is applied to the ragcheck loggers
        """
        if config is not None:
            set_log_level(config.log_level)

        self.store = store
        self.config = config or EngineConfig()

        providers = self.config.providers
        if provider is None and providers.copyleaks_email and providers.copyleaks_api_key:
            provider = CopyleaksProvider.from_config(providers)
        self.provider = provider

    async def check_against_corpus(
        self,
        text: str,
        documents: list[CandidateDocument],
        threshold: Optional[float] = None,
    ) -> PlagiarismReport:
        """Run check_against_corpus off the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: check_against_corpus(text, documents, threshold, self.config.plagiarism),
        )

    async def check_plagiarism(
        self,
        text: str,
        exclude_document_id: Optional[str] = None,
        use_external: Optional[bool] = None,
        threshold: Optional[float] = None,
    ) -> PlagiarismReport:
        """Check text against stored documents and, optionally, the external provider.

        The provider's failure is logged and the stored-document report is
        returned unchanged. If the documents cannot be fetched, the report is
        built from the provider alone.

        Args:
            text: Text to analyse
            exclude_document_id: Stored document to leave out
            use_external: Query the provider (default: whenever one is configured)
            threshold: Pre-filter similarity threshold

        Raises:
            RetrievalUnavailableError: If no source could be consulted
        """
        if use_external is None:
            use_external = self.provider is not None
        use_external = use_external and self.provider is not None

        timeouts = self.config.providers
        calls = [self._fetch_documents(exclude_document_id)]
        if use_external:
            calls.append(run_source(
                self.provider.name,
                self.provider.scan(text),
                timeouts.external_scan_timeout,
            ))

        outcomes: list[SourceOutcome] = list(await asyncio.gather(*calls))
        storage = outcomes[0]
        external = outcomes[1] if use_external else None

        if not storage.is_ok and not (external and external.is_ok):
            reasons = {outcome.name: outcome.reason for outcome in outcomes}
            raise RetrievalUnavailableError(reasons)

        matches: list[PlagiarismMatch] = []
        if storage.is_ok:
            loop = asyncio.get_running_loop()
            matches = await loop.run_in_executor(
                None,
                lambda: collect_corpus_matches(
                    text, storage.data, threshold, self.config.plagiarism
                ),
            )
        else:
            logger.warning(f"Stored documents unavailable ({storage.reason}), using external results only")

        aggregated = None
        if external is not None:
            if external.is_ok:
                scan: ExternalScanResult = external.data
                matches = matches + scan.matches
                aggregated = scan.aggregated_score
            else:
                logger.warning(
                    f"External scan failed ({external.reason}), using stored-document results only"
                )

        report = build_report(text, matches, aggregated)
        logger.info(
            f"Plagiarism check: {report.total_matches} matches, "
            f"overall similarity {report.overall_similarity:.2f}"
        )
        return report

    async def _fetch_documents(self, exclude_id: Optional[str]) -> SourceOutcome:
        if self.store is None:
            return SourceOutcome.ok("storage", [])

        return await run_source(
            "storage",
            self.store.fetch_documents(exclude_id),
            self.config.providers.storage_timeout,
        )
