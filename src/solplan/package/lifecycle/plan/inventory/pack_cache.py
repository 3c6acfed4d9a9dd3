from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from operator import attrgetter

from cachetools import Cache, LRUCache, cachedmethod

from solplan.package.domain.requirements_model import ComponentRecord
from solplan.package.lifecycle.plan.inventory.inventory_base import PackInventory

_CACHE_MAX_SIZE: int = 10_000


@dataclass(kw_only=True)
class CachingPackInventory(PackInventory):
    """
    Memoizes the lookups of another pack inventory.

    Every context of a run asks for the same packs over and over; the answers
    do not change during a run, so they are kept in LRU caches. The caches are
    shared between worker threads and guarded by a lock.

    Attributes:
        delegate (PackInventory): The inventory that answers cache misses.
        maxsize (int): Maximum number of entries per cache.
    """
    delegate: PackInventory
    maxsize: int = _CACHE_MAX_SIZE

    _lookup_cache: Cache = field(init=False, repr=False)
    _components_cache: Cache = field(init=False, repr=False)
    _lock: threading.RLock = field(init=False, repr=False, default_factory=threading.RLock)

    def __post_init__(self) -> None:
        self._lookup_cache = LRUCache(maxsize=self.maxsize)
        self._components_cache = LRUCache(maxsize=self.maxsize)

    @cachedmethod(
        attrgetter("_lookup_cache"),
        key=lambda self, vendor, name, version_range="": (vendor, name, version_range),
        lock=attrgetter("_lock"))
    def lookup(self, vendor: str, name: str, version_range: str = "") -> Sequence[str]:
        return tuple(self.delegate.lookup(vendor, name, version_range))

    @cachedmethod(
        attrgetter("_components_cache"),
        key=lambda self, vendor, name, version: (vendor, name, version),
        lock=attrgetter("_lock"))
    def components(self, vendor: str, name: str, version: str) -> Sequence[ComponentRecord]:
        return tuple(self.delegate.components(vendor, name, version))

    def clear(self) -> None:
        with self._lock:
            self._lookup_cache.clear()
            self._components_cache.clear()
