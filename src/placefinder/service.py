import asyncio
import logging
import time
from typing import List, Mapping, Optional

from .aliases import AliasTable
from .catalog import CatalogLoader
from .constants import MAX_SEARCH_RESULTS, MAX_SUGGESTIONS
from .index import IndexBuilder, SearchIndex
from .models import IndexedLocation, LocationNode, LocationOption, MatchResult
from .normalizer import DEFAULT_ALIASES, normalize
from .query import QueryEngine
from .sources import ShardSource
from .suggestions import SuggestionEngine
from .utils import LRUCache, elapsed_ms

logger = logging.getLogger(__name__)

class LocationService:
	"""
	Location picker backend: hierarchical listings plus ranked search.

	Construct one instance at startup and share it. The catalog is loaded
	lazily from data shards; the search index is built on the first search
	(or by an explicit ``build_index()``) and then reused. A rebuilt index is
	swapped in only once it is complete, so a search always sees one
	consistent snapshot.

	Parameters:
		source (ShardSource): Where the catalog shards come from. Defaults to
			the data bundled with the package.
		aliases (AliasTable or Mapping[str, Iterable[str]]): Name aliases used
			for search terms. Defaults to the built-in table.
		filename_aliases (Mapping[str, str]): sub-region id -> shard file name
			overrides. Defaults to the built-in table.
		max_results (int): Search result cap. Defaults to 12.
		max_suggestions (int): Suggestion cap. Defaults to 10.
		load_timeout (float): Seconds to wait for a single shard. None waits
			forever.
		cache_size (int): Number of search results kept per index snapshot.
	"""

	def __init__(self, source: Optional[ShardSource] = None, aliases=None,
				 filename_aliases: Optional[Mapping[str, str]] = None,
				 max_results: int = MAX_SEARCH_RESULTS, max_suggestions: int = MAX_SUGGESTIONS,
				 load_timeout: Optional[float] = None, cache_size: int = 256):
		if aliases is None:
			aliases = DEFAULT_ALIASES
		elif not isinstance(aliases, AliasTable):
			aliases = AliasTable(aliases)
		self.aliases = aliases
		self.catalog = CatalogLoader(source, filename_aliases, load_timeout)
		self.max_results = max_results
		self.max_suggestions = max_suggestions
		self._index: Optional[SearchIndex] = None
		self._query_engine: Optional[QueryEngine] = None
		self._suggestion_engine: Optional[SuggestionEngine] = None
		self._build_task: Optional[asyncio.Future] = None
		self._build_forced = False
		self._generation = 0
		self._query_cache = LRUCache(maxsize=cache_size)

	@property
	def is_loaded(self) -> bool:
		"""Whether a search index is built and queries can be answered without loading."""
		return self._index is not None

	@staticmethod
	def _to_option(node: LocationNode) -> LocationOption:
		return LocationOption(id=node.id, name=node.name, value=node.id, parent=node.parent_id)

	async def list_regions(self) -> List[LocationOption]:
		"""
		All regions for the first picker level.

		Raises:
			DataUnavailable: If the region list cannot be loaded
		"""
		return [self._to_option(node) for node in await self.catalog.list_regions()]

	async def list_sub_regions_by_region(self, region_id: str) -> List[LocationOption]:
		await self.catalog.list_regions()
		return [self._to_option(node) for node in await self.catalog.list_sub_regions(region_id)]

	async def list_localities_by_sub_region(self, sub_region_id: str) -> List[LocationOption]:
		await self.catalog.list_regions()
		return [self._to_option(node) for node in await self.catalog.list_localities(sub_region_id)]

	async def build_index(self, force: bool = False) -> SearchIndex:
		"""
		Build the search index from the full catalog.

		Concurrent callers share one build. With ``force`` a fresh index is
		built even when one exists, picking up shards that failed before; a
		forced call arriving while an unforced build runs queues a new build
		that starts once the running one finishes.

		Args:
			force (bool): Rebuild even if an index is already published

		Returns:
			SearchIndex: The published index

		Raises:
			DataUnavailable: If the region list cannot be loaded
		"""
		if self._index is not None and not force:
			return self._index
		task = self._build_task
		if task is None or (force and not self._build_forced):
			task = asyncio.ensure_future(self._build(self._generation, task))
			self._build_task = task
			self._build_forced = force
			task.add_done_callback(self._build_finished)
		return await asyncio.shield(task)

	def _build_finished(self, task):
		if self._build_task is task:
			self._build_task = None
			self._build_forced = False
		if not task.cancelled():
			task.exception()

	async def _build(self, generation, previous=None) -> SearchIndex:
		if previous is not None:
			await asyncio.wait([previous])
		start = time.perf_counter()
		logger.info("Building search indexes...")
		builder = IndexBuilder(self.aliases)

		regions = await self.catalog.list_regions()
		sub_region_lists = await asyncio.gather(*(self.catalog.list_sub_regions(region.id) for region in regions))
		for region, sub_regions in zip(regions, sub_region_lists):
			builder.add(region)
			locality_lists = await asyncio.gather(*(self.catalog.list_localities(sub.id) for sub in sub_regions))
			for sub_region, localities in zip(sub_regions, locality_lists):
				builder.add(sub_region, region)
				for locality in localities:
					builder.add(locality, sub_region)

		index = builder.build()
		if generation == self._generation:
			self._publish(index)
		logger.info("Search indexes built in %.2fms for %d locations", elapsed_ms(start), len(index))
		return index

	def _publish(self, index: SearchIndex) -> None:
		self._query_engine = QueryEngine(index, self.max_results)
		self._suggestion_engine = SuggestionEngine(index, self.max_suggestions)
		self._query_cache.clear()
		self._index = index

	async def _engines(self):
		while self._index is None:
			await self.build_index()
		return self._query_engine, self._suggestion_engine

	async def search(self, query: str) -> List[MatchResult]:
		"""
		Ranked free-text search across all hierarchy levels.

		Args:
			query (str): Raw user input

		Returns:
			List[MatchResult]: At most ``max_results`` hits; empty for blank
			input or when nothing matches.
		"""
		if not normalize(query or ''):
			return []
		engine, _ = await self._engines()

		cache_key = (normalize(query), query.strip().lower())
		cached = self._query_cache.lookup(cache_key)
		if cached is not None:
			return list(cached)
		results = engine.search(query)
		if engine is self._query_engine:
			self._query_cache[cache_key] = results
		return list(results)

	async def get_smart_suggestions(self, query: str, context=None) -> List[MatchResult]:
		"""
		As-you-type suggestions.

		Args:
			query (str): Raw user input; under two characters yields the
				popular locations
			context (SuggestionContext or dict): Optional, e.g.
				``{'previous_region': 'koshi'}`` to favour that region's sub-regions

		Returns:
			List[MatchResult]: At most ``max_suggestions`` hits
		"""
		_, engine = await self._engines()
		return engine.suggest(query, context)

	async def get_all_locations_flat(self) -> List[IndexedLocation]:
		index = await self.build_index()
		return list(index.locations)

	def get_performance_stats(self) -> dict:
		index = self._index
		stats = index.stats() if index is not None else SearchIndex().stats()
		stats['is_loaded'] = self.is_loaded
		stats['catalog_loaded'] = self.catalog.is_loaded
		stats['shard_reads'] = self.catalog.shard_reads
		stats['cached_queries'] = len(self._query_cache)
		stats['cache_hits'] = self._query_cache.hits
		stats['cache_misses'] = self._query_cache.misses
		return stats

	def clear_cache(self) -> None:
		"""
		Drop the catalog caches and the search index.

		Intended for development and data reloads; the next call loads
		everything again.
		"""
		self._generation += 1
		self.catalog.clear_cache()
		self._index = None
		self._query_engine = None
		self._suggestion_engine = None
		self._build_task = None
		self._build_forced = False
		self._query_cache.clear()
		logger.info("Location caches cleared")

	def __repr__(self):
		return f"LocationService(source={self.catalog.source!r}, is_loaded={self.is_loaded})"
