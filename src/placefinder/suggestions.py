import logging
from typing import Iterable, List, Optional

from .constants import (
    AUTOCOMPLETE_SCORE, AUTOCOMPLETE_SUFFIXES, CONTEXTUAL_SCORE, MAX_SUGGESTIONS,
    MIN_SUGGESTION_LENGTH, POPULAR_LOCATIONS, POPULAR_SCORE,
)
from .index import SearchIndex
from .models import IndexedLocation, LocationKind, MatchResult, MatchType
from .normalizer import normalize
from .query import Matches, QueryEngine, keep_best, rank

logger = logging.getLogger(__name__)

class SuggestionContext:
    """
    What the caller already knows about the user's choice.

    Parameters:
        previous_region (str): Id of a region the user selected earlier
    """
    def __init__(self, previous_region: Optional[str] = None):
        self.previous_region = previous_region

    @classmethod
    def from_value(cls, value) -> 'SuggestionContext':
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls(previous_region=value.get('previous_region') or value.get('region'))
        raise ValueError(f"Unsupported suggestion context: {value!r}")

    def __repr__(self):
        return f"SuggestionContext(previous_region={self.previous_region!r})"

class SuggestionEngine:
    """
    As-you-type suggestions layered on top of the query engine.

    Very short input yields a fixed list of popular locations. Longer input
    combines regular search hits with contextual hits (sub-regions of a
    region the user picked before) and autocomplete hits (the input with a
    common locality suffix appended, matched as a term prefix).

    Parameters:
        index (SearchIndex): Index snapshot to query
        max_suggestions (int): Result cap. Defaults to 10.
        popular (list): Normalized names offered for empty input
        suffixes (list): Locality suffixes tried for autocomplete
    """

    def __init__(self, index: SearchIndex, max_suggestions: int = MAX_SUGGESTIONS,
                 popular: Iterable[str] = POPULAR_LOCATIONS, suffixes: Iterable[str] = AUTOCOMPLETE_SUFFIXES):
        self.index = index
        self.max_suggestions = max_suggestions
        self.popular = list(popular)
        self.suffixes = list(suffixes)
        self.query_engine = QueryEngine(index)

    def suggest(self, query: str, context=None) -> List[MatchResult]:
        """
        Suggestions for partial input.

        Args:
            query (str): Raw user input
            context (SuggestionContext or dict): Optional user context

        Returns:
            List[MatchResult]: At most ``max_suggestions`` ranked hits
        """
        normalized = normalize(query or '')
        if len(normalized) < MIN_SUGGESTION_LENGTH:
            return self.popular_locations()

        context = SuggestionContext.from_value(context)
        merged: Matches = {}
        for match in self.query_engine.search(query):
            merged[match.key] = match

        if context.previous_region:
            sub_regions = self._sub_regions_of(context.previous_region)
            for match in self.contextual(normalized, sub_regions):
                keep_best(merged, match.location, match.score, match.match_type)

        for match in self.autocomplete(normalized):
            keep_best(merged, match.location, match.score, match.match_type)

        return rank(merged.values(), query, self.max_suggestions)

    def popular_locations(self) -> List[MatchResult]:
        """
        The fixed popular list, resolved against the index.

        Each popular name resolves to the location whose normalized display
        name equals it, or failing that to any location indexed under it as a
        search term; the lowest hierarchy level wins. Names absent from the
        catalog are skipped.
        """
        results = []
        for name in self.popular:
            indexed = self.index.exact_search(name)
            candidates = [location for location in indexed if normalize(location.name) == name] or indexed
            if not candidates:
                logger.debug("Popular location %r is not in the catalog", name)
                continue
            best = max(candidates, key=lambda location: location.kind.priority)
            results.append(MatchResult(best, POPULAR_SCORE, MatchType.POPULAR))
        return results[:self.max_suggestions]

    def contextual(self, normalized: str, sub_regions: Iterable[IndexedLocation]) -> List[MatchResult]:
        return [
            MatchResult(location, CONTEXTUAL_SCORE, MatchType.CONTEXTUAL)
            for location in sub_regions
            if normalized in normalize(location.name)
        ]

    def autocomplete(self, normalized: str) -> List[MatchResult]:
        matches: Matches = {}
        for suffix in self.suffixes:
            pattern = normalized + suffix
            for term, locations in self.index.term_index.items():
                if term.startswith(pattern):
                    for location in locations:
                        keep_best(matches, location, AUTOCOMPLETE_SCORE, MatchType.AUTOCOMPLETE)
        return list(matches.values())

    def _sub_regions_of(self, region_id: str) -> List[IndexedLocation]:
        return [location for location in self.index.locations
                if location.kind is LocationKind.SUB_REGION and location.parent_id == region_id]
