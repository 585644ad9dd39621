from collections import OrderedDict
from enum import Enum
import json
import time

class EnumEncoder(json.JSONEncoder):
    """JSON encoder for model dicts: enums as their value, sets as sorted lists."""
    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return super().default(obj)

class LRUCache(OrderedDict):
    """
    Bounded mapping that evicts the least recently used entry.

    ``lookup`` is the counting read used by the query cache; plain item
    access still refreshes recency.
    """
    def __init__(self, maxsize=128):
        super().__init__()
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0

    def __getitem__(self, key):
        value = super().__getitem__(key)
        self.move_to_end(key)
        return value

    def __setitem__(self, key, value):
        if self.maxsize <= 0:
            return
        if key in self:
            self.move_to_end(key)
        super().__setitem__(key, value)
        while len(self) > self.maxsize:
            self.popitem(last=False)

    def lookup(self, key, default=None):
        if key in self:
            self.hits += 1
            return self[key]
        self.misses += 1
        return default

def ensure_list(item):
	if item is None:
		return []
	return list(item) if hasattr(item, '__iter__') and not isinstance(item, (str, dict)) else [item]

def elapsed_ms(start):
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return (time.perf_counter() - start) * 1000

def truncate_string(s, max_length):
    if len(s) > max_length:
        return s[:max_length - 3] + '...'
    return s
