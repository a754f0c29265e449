"""
Cache of objects derived from another cache's values.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Optional, Set, TypeVar

from shared.errors import ResourceUnavailableError
from shared.logging import get_logger
from shared.metrics import RuntimeMetrics
from .policies import PolicyLike, as_policy, only_if_cache_miss
from .read_through import (
    UNCHANGED, CacheEntry, Fresh, Listener, ReadThroughCache, RefreshDirective, RefreshResult
)

D = TypeVar("D")


@dataclass(frozen=True, eq=False)
class DerivedEntry(Generic[D]):
    """A derived object and the upstream value it was built from."""
    resource: Any
    derived: D


class DerivedResourceCache(Generic[D]):
    """
    Builds an object (e.g. a decision config) from the latest upstream value.

    Refreshing always waits for the upstream to refresh too, and the derived
    object is only rebuilt when the upstream hands back a different value
    object. The first build for a key subscribes to the upstream so every
    later upstream change re-derives here, and so on down a chain of
    derived caches.
    """

    def __init__(
        self,
        upstream: Any,
        build: Callable[[Any], D],
        *,
        policy: PolicyLike = only_if_cache_miss,
        name: str = "derived",
        metrics: Optional[RuntimeMetrics] = None
    ):
        self.upstream = upstream
        self.build = build
        self._policy = as_policy(policy)
        self.logger = get_logger(f"flags.derived.{name}")
        self._cache: ReadThroughCache[DerivedEntry[D]] = ReadThroughCache(self, name=name, metrics=metrics)
        self._subscribed: Set[Hashable] = set()

    async def refresh(self, key: Hashable, current: Optional[DerivedEntry[D]]) -> RefreshResult:
        """Re-derive from the upstream value, unless it has not changed."""
        resource = await self.upstream.get_async(key, RefreshDirective.REFRESH_AND_AWAIT)

        if current is not None and current.resource is resource:
            self.logger.debug("Upstream unchanged, keeping derived object", key=key)
            return UNCHANGED

        if resource is None:
            raise ResourceUnavailableError(str(key))

        derived = self.build(resource)
        self._subscribe(key)
        self.logger.info("Derived object rebuilt", key=key)
        return Fresh(DerivedEntry(resource=resource, derived=derived))

    def policy(self, key: Hashable, entry: CacheEntry) -> RefreshDirective:
        return self._policy(key, entry)

    def _subscribe(self, key: Hashable) -> None:
        if key in self._subscribed:
            return
        self._subscribed.add(key)
        self.upstream.on(key, lambda _value: self._cache.refresh_in_background(key))

    def get(self, key: Hashable) -> Optional[D]:
        """The derived object for the key, without the value it came from."""
        entry = self._cache.get(key)
        return entry.derived if entry is not None else None

    async def get_async(self, key: Hashable, directive: Optional[RefreshDirective] = None) -> Optional[D]:
        entry = await self._cache.get_async(key, directive)
        return entry.derived if entry is not None else None

    def on(self, key: Hashable, listener: Listener) -> None:
        """Subscribe to rebuilt derived objects for a key."""
        self._cache.on(key, lambda entry: listener(entry.derived))

    def entry(self, key: Hashable) -> Optional[CacheEntry[DerivedEntry[D]]]:
        return self._cache.entry(key)
