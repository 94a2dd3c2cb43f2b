"""Find matching passages between two texts.

Both finders return raw spans that may overlap; pass them through
merge_overlapping_matches before reporting. Positions are character offsets
into the source text.
"""

import re

from ragcheck.text.metrics import cosine_similarity

from .models import MatchType, PlagiarismMatch

DEFAULT_MIN_MATCH_LENGTH = 20
DEFAULT_WINDOW_SIZE = 50
DEFAULT_WINDOW_THRESHOLD = 0.7

_WORD = re.compile(r"\S+")


def _words(text: str) -> tuple[list[str], list[tuple[int, int]]]:
    """Whitespace-separated words and their character spans."""
    words = []
    spans = []
    for match in _WORD.finditer(text):
        words.append(match.group(0))
        spans.append(match.span())
    return words, spans


def find_exact_matches(
    source: str,
    target: str,
    min_length: int = DEFAULT_MIN_MATCH_LENGTH,
) -> list[PlagiarismMatch]:
    """Find runs of at least ``min_length`` words shared by both texts.

    Greedy, leftmost scan: for each source word, the first target position
    whose case-insensitive run reaches ``min_length`` is recorded and the
    scan resumes after the run. Not guaranteed to find the globally longest
    set of runs.
    """
    source_words, source_spans = _words(source)
    target_words, target_spans = _words(target)
    source_lower = [word.lower() for word in source_words]
    target_lower = [word.lower() for word in target_words]

    matches = []
    i = 0
    while i < len(source_lower):
        advance = 1
        for j in range(len(target_lower)):
            length = 0
            while (
                i + length < len(source_lower)
                and j + length < len(target_lower)
                and source_lower[i + length] == target_lower[j + length]
            ):
                length += 1

            if length >= min_length:
                start = source_spans[i][0]
                end = source_spans[i + length - 1][1]
                matches.append(PlagiarismMatch(
                    source_text=source[start:end],
                    matched_text=target[target_spans[j][0]:target_spans[j + length - 1][1]],
                    similarity=1.0,
                    start_position=start,
                    end_position=end,
                    match_type=MatchType.EXACT,
                ))
                advance = length
                break
        i += advance

    return matches


def _window_starts(word_count: int, window_size: int) -> list[int]:
    """Window start offsets with 50% overlap; one window for short texts."""
    if word_count == 0:
        return []
    if word_count <= window_size:
        return [0]

    stride = max(window_size // 2, 1)
    return list(range(0, word_count - window_size + 1, stride))


def find_similar_passages(
    source: str,
    target: str,
    window_size: int = DEFAULT_WINDOW_SIZE,
    threshold: float = DEFAULT_WINDOW_THRESHOLD,
) -> list[PlagiarismMatch]:
    """Find paraphrased passages by comparing word windows.

    Windows of ``window_size`` words slide over both texts with a stride of
    half a window so that passages straddling a window boundary are still
    seen. Every window pair scoring at least ``threshold`` with term-frequency
    cosine similarity is reported.
    """
    source_words, source_spans = _words(source)
    target_words, target_spans = _words(target)

    target_windows = []
    for j in _window_starts(len(target_words), window_size):
        last = min(j + window_size, len(target_words)) - 1
        target_windows.append(target[target_spans[j][0]:target_spans[last][1]])

    matches = []
    for i in _window_starts(len(source_words), window_size):
        last = min(i + window_size, len(source_words)) - 1
        start = source_spans[i][0]
        end = source_spans[last][1]
        source_window = source[start:end]

        for target_window in target_windows:
            similarity = cosine_similarity(source_window, target_window)
            if similarity >= threshold:
                matches.append(PlagiarismMatch(
                    source_text=source_window,
                    matched_text=target_window,
                    similarity=similarity,
                    start_position=start,
                    end_position=end,
                    match_type=MatchType.from_similarity(similarity),
                ))

    return matches
