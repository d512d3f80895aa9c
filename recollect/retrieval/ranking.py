"""
Merge and rank retrieved items from all sources.

Ordering is a pure function of the inputs: similarity descending, then source
priority (memory > message > file > connector), then the order the sources
were configured. Completion order of the concurrent searches never matters
because results are collected per source after the join.
"""

from typing import Iterable, List, Sequence

from recollect.core.types import RetrievedItem, source_priority


def rank_key(item: RetrievedItem):
    return (-item.similarity, source_priority(item.type))


def merge_and_rank(
    per_source: Sequence[Iterable[RetrievedItem]],
    max_results: int,
) -> List[RetrievedItem]:
    """Flatten per-source lists in source order, stable-sort, truncate."""
    if max_results <= 0:
        return []
    combined: List[RetrievedItem] = []
    for items in per_source:
        combined.extend(items)
    combined.sort(key=rank_key)
    return combined[:max_results]
