"""
Access to the static data shards the location catalog is built from.

A shard is one JSON document listing the children of one node: the root
shard lists every region, a region shard lists its sub-regions and a
sub-region shard lists its localities. Every backend resolves
``(ShardKind, key)`` to a document through the same path templates, so the
layout is defined in exactly one place.
"""
import json
import logging
import re
import threading
from enum import Enum
from pathlib import Path
from time import sleep, time
from typing import Dict, List, Mapping, Optional

import requests

from .constants import SHARD_FILENAME_ALIASES

logger = logging.getLogger(__name__)

BUNDLED_DATA_DIR = Path(__file__).resolve().parent / 'data'

_key_pattern = re.compile(r'^[\w][\w .\-]*$')

class ShardKind(Enum):
    '''
    Shard types and where each one lives relative to the data root.
    '''
    ROOT       = ('regions.json', 'regions')
    REGION     = ('sub_regions/{key}.json', 'sub_regions')
    SUB_REGION = ('localities/{key}.json', 'localities')

    def __init__(self, template, field):
        self.template = template
        self.field = field

    def path(self, key: Optional[str] = None) -> str:
        if self is ShardKind.ROOT:
            return self.template
        if not key or not _key_pattern.match(key) or '..' in key:
            raise ShardLoadFailed(self, key, "invalid shard key")
        return self.template.format(key=key)

def shard_filename(sub_region_id: str, aliases: Optional[Mapping[str, str]] = None) -> str:
    """
    Physical shard name for a sub-region id.

    Ids are trimmed and lowercased; ids whose data file is named differently
    are looked up in an explicit alias table.
    """
    if not sub_region_id:
        return ''
    aliases = SHARD_FILENAME_ALIASES if aliases is None else aliases
    cleaned = sub_region_id.strip().lower()
    return aliases.get(cleaned, cleaned)

class ShardLoadFailed(Exception):
    """Raised when a shard is missing, unreadable or malformed."""
    def __init__(self, kind: ShardKind, key: Optional[str], reason: str):
        self.kind = kind
        self.key = key
        self.reason = reason
        super().__init__(f"Failed to load {kind.name.lower()} shard {key!r}: {reason}")

class ShardNotFound(ShardLoadFailed):
    """Raised when a shard does not exist at all."""
    def __init__(self, kind: ShardKind, key: Optional[str]):
        super().__init__(kind, key, "shard not found")

class ShardSource:
    """
    Base class for shard backends.

    Subclasses implement ``_read(kind, key, path)`` returning the parsed JSON
    document; ``load_shard`` validates it and returns the listed names.
    Implementations are synchronous and may block; the catalog loader runs
    them in a worker thread.
    """

    def load_shard(self, kind: ShardKind, key: Optional[str] = None) -> List[str]:
        """
        Load one shard.

        Args:
            kind (ShardKind): Which level of the hierarchy to read
            key (str): Region id for REGION shards, shard file name for
                SUB_REGION shards, ignored for ROOT

        Returns:
            List[str]: Raw child names, in document order

        Raises:
            ShardNotFound: If the shard does not exist
            ShardLoadFailed: If it cannot be read or is malformed
        """
        path = kind.path(key)
        document = self._read(kind, key, path)
        if not isinstance(document, dict) or not isinstance(document.get(kind.field), list):
            raise ShardLoadFailed(kind, key, f"expected an object with a '{kind.field}' list")
        names = document[kind.field]
        if not all(isinstance(name, str) for name in names):
            raise ShardLoadFailed(kind, key, f"'{kind.field}' must only contain strings")
        return list(names)

    def _read(self, kind: ShardKind, key: Optional[str], path: str):
        raise NotImplementedError

class DirectoryShardSource(ShardSource):
    """
    Shards stored as JSON files under a directory.

    Parameters:
        root (str or Path): Data directory. Defaults to the data bundled
            with the package.
    """

    def __init__(self, root=None):
        self.root = Path(root) if root is not None else BUNDLED_DATA_DIR

    def _read(self, kind, key, path):
        file_path = self.root / path
        if not file_path.is_file():
            raise ShardNotFound(kind, key)
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ShardLoadFailed(kind, key, str(e)) from e

    def __repr__(self):
        return f"DirectoryShardSource(root={str(self.root)!r})"

class MappingShardSource(ShardSource):
    """
    Shards held in memory, keyed by their relative path.

    Parameters:
        documents (Mapping[str, dict]): path (e.g. 'sub_regions/koshi.json') -> document
    """

    def __init__(self, documents: Mapping[str, dict]):
        self.documents: Dict[str, dict] = dict(documents)

    @classmethod
    def from_hierarchy(cls, regions: Mapping[str, Mapping[str, List[str]]],
                       filename_aliases: Optional[Mapping[str, str]] = None) -> 'MappingShardSource':
        """
        Build the shard documents for a nested ``{region: {sub_region: [localities]}}`` mapping.

        Sub-region documents are stored under the same file name the catalog
        loader will resolve them to.
        """
        documents = {ShardKind.ROOT.path(): {ShardKind.ROOT.field: list(regions)}}
        for region, sub_regions in regions.items():
            documents[ShardKind.REGION.path(region)] = {ShardKind.REGION.field: list(sub_regions)}
            for sub_region, localities in sub_regions.items():
                documents[ShardKind.SUB_REGION.path(shard_filename(sub_region, filename_aliases))] = {
                    ShardKind.SUB_REGION.field: list(localities)
                }
        return cls(documents)

    def _read(self, kind, key, path):
        if path not in self.documents:
            raise ShardNotFound(kind, key)
        return self.documents[path]

class HttpShardSource(ShardSource):
    """
    Shards served over HTTP below a base URL.

    Parameters:
        base_url (str): URL the shard paths are appended to
        request_delay (float): Minimum interval between requests in seconds.
            Set to 0 to disable.
        max_retries (int): Attempts per shard before giving up. Rate limits
            (429) and server errors are retried with exponential backoff.
        timeout (float): Per-request timeout in seconds
        proxy (str or dict): Proxy configuration
        session (requests.Session): Session to use, created when omitted
    """

    RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

    def __init__(self, base_url, request_delay=0., max_retries=3, timeout=10., proxy=None, session=None):
        self.base_url = base_url.rstrip('/')
        self.request_delay = request_delay
        self.max_retries = max_retries
        self.timeout = timeout
        self.session = session or requests.session()
        self.last_request_time = 0.
        self._throttle_lock = threading.Lock()
        self.set_proxy(proxy)

    def set_proxy(self, proxy=None):
        """
        Set or update proxy configuration for the session.

        Args:
            proxy (str or dict, optional): None removes the proxy, a string is
                used for all protocols, a dict maps protocol to proxy URL.
        """
        if isinstance(proxy, str):
            proxy = {
                'http': proxy,
                'https': proxy
            }
        self.session.proxies.clear()
        if proxy:
            self.session.proxies.update(proxy)

    def _throttle(self):
        # Shards are fetched from worker threads; each caller reserves its own slot.
        if not self.request_delay:
            return
        with self._throttle_lock:
            now = time()
            slot = max(now, self.last_request_time + self.request_delay)
            self.last_request_time = slot
        sleep(slot - now)

    def _get(self, url):
        retries = max(1, self.max_retries)
        last_error = None
        while retries > 0:
            self._throttle()
            try:
                response = self.session.get(url, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                last_error = e
                retries -= 1
                continue

            if response.status_code not in self.RETRY_STATUS_CODES:
                return response
            last_error = requests.exceptions.HTTPError(f"status {response.status_code}", response=response)
            retries -= 1
            if retries > 0:
                sleep(2 ** (self.max_retries - retries - 1))
        raise last_error

    def _read(self, kind, key, path):
        url = f"{self.base_url}/{path}"
        logger.debug("Fetching shard %s", url)
        try:
            response = self._get(url)
        except requests.exceptions.RequestException as e:
            raise ShardLoadFailed(kind, key, str(e)) from e

        if response.status_code == 404:
            raise ShardNotFound(kind, key)
        if response.status_code != 200:
            raise ShardLoadFailed(kind, key, f"unexpected status {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise ShardLoadFailed(kind, key, "invalid JSON") from e

    def __repr__(self):
        return f"HttpShardSource(base_url={self.base_url!r})"
