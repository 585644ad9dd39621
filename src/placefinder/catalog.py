import asyncio
import functools
import logging
import time
from typing import Dict, List, Mapping, Optional, Tuple

from .models import LocationKind, LocationNode
from .normalizer import format_location_name
from .sources import DirectoryShardSource, ShardKind, ShardLoadFailed, ShardSource, shard_filename
from .utils import elapsed_ms

logger = logging.getLogger(__name__)

class DataUnavailable(Exception):
    """Raised when the root region list cannot be loaded; no catalog is possible without it."""
    def __init__(self, reason):
        super().__init__(
            f"Location catalog unavailable: the region list could not be loaded ({reason})"
        )

class CatalogLoader:
    """
    Lazy, cached access to the three-level location hierarchy.

    The region list is loaded on first use; sub-region and locality shards
    are loaded the first time their parent is requested and cached for the
    lifetime of the loader. Concurrent requests for a shard that is still
    loading share the one pending load.

    Only a missing region list is fatal (DataUnavailable). Any other shard
    that fails to load yields an empty list and a logged warning, and is
    retried on the next request.

    Parameters:
        source (ShardSource): Where shards are read from. Defaults to the
            data bundled with the package.
        filename_aliases (Mapping[str, str]): sub-region id -> shard file name
            for ids whose file is named differently
        load_timeout (float): Seconds a caller waits for a shard. The shared
            load itself keeps running for other waiters. None waits forever.
    """

    def __init__(self, source: Optional[ShardSource] = None,
                 filename_aliases: Optional[Mapping[str, str]] = None,
                 load_timeout: Optional[float] = None):
        self.source = source or DirectoryShardSource()
        self.filename_aliases = filename_aliases
        self.load_timeout = load_timeout
        self.shard_reads = 0
        self._regions: Optional[List[LocationNode]] = None
        self._sub_regions: Dict[str, List[LocationNode]] = {}
        self._localities: Dict[str, List[LocationNode]] = {}
        self._pending: Dict[Tuple[ShardKind, Optional[str]], asyncio.Future] = {}
        self._generation = 0

    @property
    def is_loaded(self) -> bool:
        return self._regions is not None

    async def list_regions(self) -> List[LocationNode]:
        """
        All regions, in root shard order.

        Raises:
            DataUnavailable: If the root shard cannot be read
        """
        if self._regions is not None:
            return list(self._regions)
        try:
            regions = await self._single_flight(ShardKind.ROOT, None, self._fetch_regions)
        except (ShardLoadFailed, asyncio.TimeoutError) as e:
            logger.error("Failed to load the region list: %s", e)
            raise DataUnavailable(str(e) or 'timed out') from e
        return list(regions)

    async def list_sub_regions(self, region_id: str) -> List[LocationNode]:
        """Sub-regions of a region; empty when its shard cannot be loaded."""
        if region_id in self._sub_regions:
            return list(self._sub_regions[region_id])
        try:
            sub_regions = await self._single_flight(ShardKind.REGION, region_id, self._fetch_sub_regions)
        except (ShardLoadFailed, asyncio.TimeoutError) as e:
            logger.warning("Failed to load sub-regions for region %r: %s", region_id, str(e) or 'timed out')
            return []
        return list(sub_regions)

    async def list_localities(self, sub_region_id: str) -> List[LocationNode]:
        """Localities of a sub-region; empty when its shard cannot be loaded."""
        if sub_region_id in self._localities:
            return list(self._localities[sub_region_id])
        try:
            localities = await self._single_flight(ShardKind.SUB_REGION, sub_region_id, self._fetch_localities)
        except (ShardLoadFailed, asyncio.TimeoutError) as e:
            logger.warning("Failed to load localities for sub-region %r (file: %r): %s",
                           sub_region_id, self.shard_filename(sub_region_id), str(e) or 'timed out')
            return []
        return list(localities)

    def shard_filename(self, sub_region_id: str) -> str:
        return shard_filename(sub_region_id, self.filename_aliases)

    def clear_cache(self) -> None:
        """
        Drop every cached shard, the region list included.

        Loads still in flight finish for whoever awaits them but no longer
        populate the cache.
        """
        self._generation += 1
        self._regions = None
        self._sub_regions.clear()
        self._localities.clear()
        self._pending.clear()

    async def _single_flight(self, kind, key, fetch):
        shard_key = (kind, key)
        task = self._pending.get(shard_key)
        if task is None:
            task = asyncio.ensure_future(fetch(key, self._generation))
            self._pending[shard_key] = task
            task.add_done_callback(functools.partial(self._forget, shard_key))
        waiter = asyncio.shield(task)
        if self.load_timeout is None:
            return await waiter
        return await asyncio.wait_for(waiter, self.load_timeout)

    def _forget(self, shard_key, task):
        if self._pending.get(shard_key) is task:
            del self._pending[shard_key]
        if not task.cancelled():
            # Mark the exception as retrieved; waiters that timed out never see it.
            task.exception()

    async def _read_shard(self, kind, key):
        start = time.perf_counter()
        self.shard_reads += 1
        names = await asyncio.to_thread(self.source.load_shard, kind, key)
        logger.debug("Loaded %s shard %r in %.2fms (%d entries)", kind.name.lower(), key, elapsed_ms(start), len(names))
        return names

    async def _fetch_regions(self, key, generation):
        names = await self._read_shard(ShardKind.ROOT, None)
        regions = [
            LocationNode(name, format_location_name(name), LocationKind.REGION)
            for name in self._clean_names(names, 'region')
        ]
        if generation == self._generation:
            self._regions = regions
            logger.info("Location catalog initialized with %d regions", len(regions))
        return regions

    async def _fetch_sub_regions(self, region_id, generation):
        names = await self._read_shard(ShardKind.REGION, region_id)
        sub_regions = [
            LocationNode(name, format_location_name(name), LocationKind.SUB_REGION, region_id)
            for name in self._clean_names(names, 'sub-region')
        ]
        if generation == self._generation:
            self._sub_regions[region_id] = sub_regions
        return sub_regions

    async def _fetch_localities(self, sub_region_id, generation):
        filename = self.shard_filename(sub_region_id)
        logger.debug("Loading localities for sub-region %r -> file %r", sub_region_id, filename)
        names = await self._read_shard(ShardKind.SUB_REGION, filename)
        localities = [
            LocationNode(name, format_location_name(name), LocationKind.LOCALITY, sub_region_id)
            for name in self._clean_names(names, 'locality')
        ]
        if generation == self._generation:
            self._localities[sub_region_id] = localities
        return localities

    @staticmethod
    def _clean_names(names, label):
        cleaned = []
        seen = set()
        for name in names:
            value = ' '.join(name.split())
            if value != name:
                logger.warning("Cleaned %s name: %r -> %r", label, name, value)
            if not value or value in seen:
                continue
            seen.add(value)
            cleaned.append(value)
        return cleaned
