import logging
import time
from typing import Dict, Iterable, List, Tuple

from .constants import (
    EXACT_SCORE, PREFIX_SCORE, CONTAINS_SCORE, PHONETIC_SCORE, FUZZY_SCORE_FACTOR,
    KEYWORD_SCORE, LENGTH_PENALTY, FUZZY_THRESHOLD, FUZZY_MIN_QUERY_LENGTH,
    FUZZY_MAX_QUERY_LENGTH, FUZZY_MAX_PRIOR_RESULTS, FUZZY_LENGTH_TOLERANCE,
    MIN_QUERY_LENGTH, MAX_SEARCH_RESULTS,
)
from .index import SearchIndex
from .models import IndexedLocation, LocationKind, MatchResult, MatchType
from .normalizer import keywords, normalize, phonetic_key
from .similarity import combined_similarity
from .utils import elapsed_ms

logger = logging.getLogger(__name__)

Matches = Dict[Tuple[str, LocationKind], MatchResult]

def keep_best(matches: Matches, location: IndexedLocation, score: float, match_type: MatchType) -> None:
    """Record a hit unless the same location already has an equal or better one."""
    current = matches.get(location.key)
    if current is None or score > current.score:
        matches[location.key] = MatchResult(location, score, match_type)

def rank(matches: Iterable[MatchResult], query: str, limit: int) -> List[MatchResult]:
    """
    Order hits for display and attach highlights.

    Sorted by score (descending), then hierarchy level (localities first),
    then display name. Among equal scores a location whose whole name is the
    query goes first, ahead of locations that merely contain it as a word or
    alias. Only the first ``limit`` hits are kept.
    """
    normalized = normalize(query or '')

    def sort_key(match):
        score, priority, name = match.sort_key()
        return (score, normalize(match.name) != normalized, priority, name)

    ordered = sorted(matches, key=sort_key)[:limit]
    return [match.with_highlight(query) for match in ordered]

class QueryEngine:
    """
    Ranked multi-strategy search over a SearchIndex.

    Strategies run in priority order: exact, prefix, contains, phonetic, fuzzy
    and keyword. A location found by an earlier strategy keeps that hit; later
    strategies only contribute locations not seen yet. Within one strategy a
    location matched through several terms keeps its best score.

    Parameters:
        index (SearchIndex): Index snapshot to query
        max_results (int): Result cap. Defaults to 12.
    """

    def __init__(self, index: SearchIndex, max_results: int = MAX_SEARCH_RESULTS):
        self.index = index
        self.max_results = max_results

    def search(self, query: str) -> List[MatchResult]:
        """
        Search the index for a free-text query.

        Args:
            query (str): Raw user input

        Returns:
            List[MatchResult]: Ranked hits with highlights, empty when the
            query normalizes to nothing or nothing matches.
        """
        start = time.perf_counter()
        normalized = normalize(query or '')
        if len(normalized) < MIN_QUERY_LENGTH:
            return []

        results = rank(self.find_matches(normalized).values(), query, self.max_results)
        logger.debug("Search for %r finished in %.2fms (%d results)", query, elapsed_ms(start), len(results))
        return results

    def find_matches(self, normalized: str) -> Matches:
        """Unranked hits for an already normalized query, keyed by ``(id, kind)``."""
        results: Matches = {}
        for stage in (self._exact, self._prefix, self._contains, self._phonetic):
            self._merge(results, stage(normalized))
        if self._fuzzy_allowed(normalized, results):
            self._merge(results, self._fuzzy(normalized))
        self._merge(results, self._keyword(normalized))
        return results

    @staticmethod
    def _merge(results: Matches, stage: Matches) -> None:
        for key, match in stage.items():
            if key not in results:
                results[key] = match

    def _exact(self, query: str) -> Matches:
        stage: Matches = {}
        for location in self.index.exact_search(query):
            keep_best(stage, location, EXACT_SCORE, MatchType.EXACT)
        return stage

    def _prefix(self, query: str) -> Matches:
        stage: Matches = {}
        for term, locations in self.index.term_index.items():
            if term != query and term.startswith(query):
                score = PREFIX_SCORE - LENGTH_PENALTY * (len(term) - len(query))
                for location in locations:
                    keep_best(stage, location, score, MatchType.PREFIX)
        return stage

    def _contains(self, query: str) -> Matches:
        stage: Matches = {}
        for term, locations in self.index.term_index.items():
            position = term.find(query)
            if position > 0:
                score = CONTAINS_SCORE - LENGTH_PENALTY * position
                for location in locations:
                    keep_best(stage, location, score, MatchType.CONTAINS)
        return stage

    def _phonetic(self, query: str) -> Matches:
        stage: Matches = {}
        key = phonetic_key(query)
        if key:
            for location in self.index.phonetic_index.get(key, []):
                keep_best(stage, location, PHONETIC_SCORE, MatchType.PHONETIC)
        return stage

    @staticmethod
    def _fuzzy_allowed(query: str, results: Matches) -> bool:
        return (FUZZY_MIN_QUERY_LENGTH <= len(query) <= FUZZY_MAX_QUERY_LENGTH
                and len(results) < FUZZY_MAX_PRIOR_RESULTS)

    def _fuzzy(self, query: str) -> Matches:
        stage: Matches = {}
        for term, locations in self.index.term_index.items():
            if abs(len(term) - len(query)) > FUZZY_LENGTH_TOLERANCE:
                continue
            similarity = combined_similarity(query, term)
            if similarity > FUZZY_THRESHOLD:
                for location in locations:
                    keep_best(stage, location, similarity * FUZZY_SCORE_FACTOR, MatchType.FUZZY)
        return stage

    def _keyword(self, query: str) -> Matches:
        stage: Matches = {}
        for keyword in keywords(query):
            for location in self.index.keyword_index.get(keyword, []):
                keep_best(stage, location, KEYWORD_SCORE, MatchType.KEYWORD)
        return stage
