"""
Name similarity scoring for mountain search.

Pure functions: abbreviation generation and the layered similarity score used
to rank mountain names against a free-text query. The score constants are the
ranking design and are kept as named module constants.
"""

VOWELS = frozenset("aeiou")

EXACT_MATCH_SCORE = 1.0
PREFIX_MATCH_SCORE = 0.95
ABBREVIATION_SCORE = 0.85
SUBSEQUENCE_WEIGHT = 0.7
SUBSTRING_SCORE = 0.6
CHAR_OVERLAP_WEIGHT = 0.4

# Minimum name score for the best-matches bucket
BEST_MATCH_THRESHOLD = 0.7


def _strip_vowels(text):
    return "".join(ch for ch in text if ch not in VOWELS)


def generate_abbreviations(name):
    """
    Generate plausible shorthand forms of a name.

    e.g. "semeru" -> {"se", "sem", "seme", "semer", "semeru", "sm", "smr"}

    Args:
        name: Name to abbreviate (lowercased here)

    Returns:
        set of abbreviation strings
    """
    lower = name.lower()
    abbrevs = set()

    # Progressive prefixes, starting at 2 characters to avoid single-char matches
    for i in range(2, len(lower) + 1):
        abbrevs.add(lower[:i])

    # Consonant skeleton: "smr" for "semeru"
    consonants = _strip_vowels(lower)
    if len(consonants) >= 2:
        abbrevs.add(consonants)
        for i in range(2, len(consonants) + 1):
            abbrevs.add(consonants[:i])

    if lower:
        # First letter kept even when it is a vowel: "agng" for "agung"
        first_and_consonants = lower[0] + _strip_vowels(lower[1:])
        if len(first_and_consonants) >= 2:
            abbrevs.add(first_and_consonants)

    return abbrevs


def _is_subsequence(query, name):
    """True when every character of query appears in name, in order."""
    j = 0
    for ch in name:
        if j == len(query):
            break
        if ch == query[j]:
            j += 1
    return j == len(query)


def calculate_similarity(query, name):
    """
    Score how well a query matches a candidate name, in [0, 1].

    Rules are evaluated in priority order and the first one that applies wins:
    exact match, prefix, abbreviation, in-order subsequence, substring and
    finally plain character overlap.
    """
    q = query.lower()
    n = name.lower()

    if n == q:
        return EXACT_MATCH_SCORE

    if n.startswith(q):
        return PREFIX_MATCH_SCORE

    if q in generate_abbreviations(n):
        return ABBREVIATION_SCORE

    # Shorter names score higher for the same subsequence
    if _is_subsequence(q, n):
        return SUBSEQUENCE_WEIGHT * (len(q) / len(n))

    if q in n:
        return SUBSTRING_SCORE

    match_count = sum(1 for ch in q if ch in n)
    return (match_count / max(len(q), len(n))) * CHAR_OVERLAP_WEIGHT


def is_best_match(name, query):
    """Check if a name matches the query well enough for the best-matches bucket"""
    return calculate_similarity(query, name) >= BEST_MATCH_THRESHOLD
