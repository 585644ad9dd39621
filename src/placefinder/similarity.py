"""
String similarity metrics for fuzzy location matching.

Three independent measures (Jaro, Levenshtein and longest common subsequence)
are blended into one score in ``[0, 1]``. All functions are pure and expect
already normalized input.
"""
from rapidfuzz.distance import Jaro, LCSseq, Levenshtein

from .constants import FUZZY_THRESHOLD

JARO_WEIGHT        = 0.5
LEVENSHTEIN_WEIGHT = 0.3
LCS_WEIGHT         = 0.2

def jaro(s1: str, s2: str) -> float:
    """
    Jaro similarity of two strings.

    Characters match when equal and no further apart than
    ``max(len1, len2) // 2 - 1`` positions.

    Returns:
        float: 1.0 for two empty strings, 0.0 when exactly one is empty or
        when the match window is negative (both strings at most one
        character long).
    """
    if not s1 and not s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    if max(len(s1), len(s2)) // 2 - 1 < 0:
        return 0.0
    return Jaro.similarity(s1, s2)

def levenshtein_distance(s1: str, s2: str) -> int:
    """Unit-cost edit distance (insert, delete, substitute)."""
    return Levenshtein.distance(s1, s2)

def levenshtein_similarity(s1: str, s2: str) -> float:
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein_distance(s1, s2)) / max_len

def lcs_length(s1: str, s2: str) -> int:
    """Length of the longest common subsequence."""
    return LCSseq.similarity(s1, s2)

def lcs_ratio(s1: str, s2: str) -> float:
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return lcs_length(s1, s2) / max_len

def combined_similarity(s1: str, s2: str) -> float:
    """Weighted blend: 0.5 Jaro + 0.3 Levenshtein + 0.2 LCS ratio."""
    return (JARO_WEIGHT * jaro(s1, s2)
            + LEVENSHTEIN_WEIGHT * levenshtein_similarity(s1, s2)
            + LCS_WEIGHT * lcs_ratio(s1, s2))

def is_fuzzy_match(s1: str, s2: str, threshold: float = FUZZY_THRESHOLD) -> bool:
    return combined_similarity(s1, s2) > threshold
