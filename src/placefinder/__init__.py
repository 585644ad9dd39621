"""
placefinder - Hierarchical location search for location pickers.

This library loads a three-level location hierarchy (region, sub-region,
locality) from static JSON shards, indexes it and answers free-text queries
with ranked, typo-tolerant matches.

Main components:
- LocationService: Listings, search and suggestions over the catalog
- CatalogLoader: Lazy, cached, single-flight shard loading
- QueryEngine: Exact, prefix, contains, phonetic, fuzzy and keyword matching
- SuggestionEngine: Popular, contextual and autocomplete suggestions
- DirectoryShardSource / HttpShardSource / MappingShardSource: Shard backends
- LocationDataConverter: pandas views of results and catalog contents
"""

from .catalog import CatalogLoader, DataUnavailable
from .converter import LocationDataConverter
from .index import IndexBuilder, SearchIndex, create_search_index
from .models import Highlight, IndexedLocation, LocationKind, LocationNode, LocationOption, MatchResult, MatchType
from .query import QueryEngine
from .service import LocationService
from .sources import DirectoryShardSource, HttpShardSource, MappingShardSource, ShardKind, ShardLoadFailed, ShardNotFound, ShardSource
from .suggestions import SuggestionContext, SuggestionEngine

__version__ = "0.1.0"
__all__ = [
    'LocationService', 'CatalogLoader', 'DataUnavailable', 'LocationDataConverter',
    'IndexBuilder', 'SearchIndex', 'create_search_index', 'QueryEngine',
    'SuggestionContext', 'SuggestionEngine', 'Highlight', 'IndexedLocation',
    'LocationKind', 'LocationNode', 'LocationOption', 'MatchResult', 'MatchType',
    'ShardKind', 'ShardSource', 'ShardLoadFailed', 'ShardNotFound',
    'DirectoryShardSource', 'HttpShardSource', 'MappingShardSource',
]
