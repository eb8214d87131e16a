"""Cache subsystem — persisted events and log watermark."""

from pkghist.cache.schemas import CacheSnapshot
from pkghist.cache.schemas import Watermark
from pkghist.cache.store import CacheStore
from pkghist.cache.store import JsonFileCacheStore
from pkghist.cache.store import MemoryCacheStore

__all__ = [
    "CacheSnapshot",
    "CacheStore",
    "JsonFileCacheStore",
    "MemoryCacheStore",
    "Watermark",
]
