"""Collapse overlapping match spans."""

from .models import PlagiarismMatch


def merge_overlapping_matches(matches: list[PlagiarismMatch]) -> list[PlagiarismMatch]:
    """Keep the best match of every overlapping cluster.

    A single greedy sweep, not an interval-scheduling optimum:

    1. Stable-sort by ``start_position``.
    2. Walk left to right keeping the last accepted match. A match starting
       at or before the last one's ``end_position`` overlaps it; it replaces
       the last match only if its similarity is strictly higher, so ties keep
       the earlier match. A non-overlapping match is accepted as a new
       cluster.

    The input list is not modified. No two returned spans overlap, and the
    output is sorted by ``start_position``.
    """
    if not matches:
        return []

    ordered = sorted(matches, key=lambda m: m.start_position)
    merged = [ordered[0]]

    for current in ordered[1:]:
        last = merged[-1]
        if current.start_position <= last.end_position:
            if current.similarity > last.similarity:
                merged[-1] = current
        else:
            merged.append(current)

    return merged
