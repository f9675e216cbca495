"""
Ranking of mountain records against a free-text query.

Splits candidates into best matches (strong name similarity) and other matches
(weaker name, province or description evidence), orders each bucket and applies
the explicit sort used when no query is given.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from gunung_search.models import Mountain
from gunung_search.similarity import calculate_similarity, is_best_match

logger = logging.getLogger(__name__)

PROVINCE_CONTAINS_SCORE = 0.5
PROVINCE_SIMILARITY_WEIGHT = 0.4
DESCRIPTION_CONTAINS_SCORE = 0.4
# Other matches at or below this composite score are dropped entirely
OTHER_MATCH_THRESHOLD = 0.15

MAX_BEST_MATCHES = 15
MAX_OTHER_MATCHES = 30


def province_score(query_lower, province):
    if not province:
        return 0.0
    province_lower = province.lower()
    if query_lower in province_lower:
        return PROVINCE_CONTAINS_SCORE
    return calculate_similarity(query_lower, province_lower) * PROVINCE_SIMILARITY_WEIGHT


def description_score(query_lower, description):
    if description and query_lower in description.lower():
        return DESCRIPTION_CONTAINS_SCORE
    return 0.0


def composite_score(query_lower, mountain: Mountain, name_score: Optional[float] = None) -> float:
    """Best of name, province and description evidence for a non-best candidate."""
    if name_score is None:
        name_score = calculate_similarity(query_lower, mountain.name)
    return max(
        name_score,
        province_score(query_lower, mountain.province),
        description_score(query_lower, mountain.description),
    )


def rank_mountains(query: str, mountains: Iterable[Mountain]) -> Tuple[List[Mountain], List[Mountain]]:
    """
    Classify and order mountains for a free-text query.

    A mountain is a best match when its name scores at least
    BEST_MATCH_THRESHOLD; it never appears in other matches as well. The rest
    are kept as other matches only when their composite score exceeds
    OTHER_MATCH_THRESHOLD. Each bucket is sorted by its own score, highest
    first, with store order preserved between equal scores.

    Args:
        query: Free-text query (trimmed and lowercased here)
        mountains: Candidate records after structural filtering

    Returns:
        Tuple of (best_matches, other_matches), not yet truncated
    """
    query_lower = query.strip().lower()
    best: List[Tuple[float, Mountain]] = []
    other: List[Tuple[float, Mountain]] = []
    dropped = 0

    for mountain in mountains:
        if is_best_match(mountain.name, query_lower):
            best.append((calculate_similarity(query_lower, mountain.name), mountain))
            continue

        score = composite_score(query_lower, mountain)
        if score > OTHER_MATCH_THRESHOLD:
            other.append((score, mountain))
        else:
            dropped += 1

    best.sort(key=lambda pair: pair[0], reverse=True)
    other.sort(key=lambda pair: pair[0], reverse=True)

    logger.debug(f"Ranked '{query_lower}': {len(best)} best, {len(other)} other, {dropped} dropped")
    return [m for _, m in best], [m for _, m in other]


def _sort_key(sort_by):
    if sort_by == "name":
        return lambda m: m.name.casefold()
    if sort_by == "province":
        return lambda m: (m.province or "").casefold()
    if sort_by == "elevation":
        # Missing elevation orders as 0; the record itself keeps None
        return lambda m: m.elevation or 0
    return None


def sort_mountains(mountains: List[Mountain], sort_by: str = "relevance", sort_order: str = "asc") -> List[Mountain]:
    """Apply an explicit sort. 'relevance' keeps the incoming order."""
    key = _sort_key(sort_by)
    if key is None:
        return list(mountains)
    return sorted(mountains, key=key, reverse=(sort_order == "desc"))


def paginate(best_matches: List[Mountain], other_matches: List[Mountain]) -> Tuple[List[Mountain], List[Mountain]]:
    return best_matches[:MAX_BEST_MATCHES], other_matches[:MAX_OTHER_MATCHES]
