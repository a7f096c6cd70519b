"""Aggregator/ranker for normalized Explore results.

Steps, in order:
  1. Deduplicate by (source, external_id), first occurrence wins. Results
     without an id are never deduplicated.
  2. Sort by global_score descending, absent scores last; ties by title
     (case-insensitive, then code-point order).
  3. Truncate to max_results.
"""

from typing import Iterable, List, Set, Tuple

from .config import DEFAULT_MAX_RESULTS
from .models import NormalizedResult


def deduplicate(results: Iterable[NormalizedResult]) -> List[NormalizedResult]:
    seen: Set[Tuple] = set()
    unique = []
    for result in results:
        key = result.dedup_key
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        unique.append(result)
    return unique


def rank_key(result: NormalizedResult):
    has_score = result.global_score is not None
    score = result.global_score if has_score else 0.0
    return (not has_score, -score, result.title.casefold(), result.title)


def aggregate(
    results: Iterable[NormalizedResult],
    max_results: int = DEFAULT_MAX_RESULTS
) -> List[NormalizedResult]:
    """Dedup, rank and bound a merged result list. Never fails."""
    ranked = sorted(deduplicate(results), key=rank_key)
    return ranked[:max(0, max_results)]
