"""
Generic read-through cache with singleflight refresh.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, List, Optional, Protocol, TypeVar, Union

from shared.errors import FlagRuntimeException
from shared.logging import get_logger
from shared.metrics import RuntimeMetrics

V = TypeVar("V")


class RefreshDirective(str, Enum):
    """How a warm `get_async` treats the cached value."""
    # Return the cached value, no I/O
    ONLY_IF_CACHE_MISS = "only_if_cache_miss"
    # Return the cached value and refresh behind it (stale-while-revalidate)
    REFRESH_IN_BACKGROUND = "refresh_in_background"
    # Wait for a refresh, then return the refreshed value
    REFRESH_AND_AWAIT = "refresh_and_await"


@dataclass(frozen=True)
class Fresh(Generic[V]):
    """A refresh produced a new value."""
    value: V


@dataclass(frozen=True)
class Unchanged:
    """A refresh ran and produced no new information."""


UNCHANGED = Unchanged()

RefreshResult = Union[Fresh, Unchanged]


@dataclass
class CacheEntry(Generic[V]):
    """Per-key cache state."""
    value: Optional[V] = None
    last_refreshed_at: Optional[float] = None
    pending: Optional["asyncio.Task[RefreshResult]"] = None


class RefreshStrategy(Protocol):
    """What a concrete cache supplies to the read-through engine."""

    async def refresh(self, key: Hashable, current: Any) -> RefreshResult:
        ...

    def policy(self, key: Hashable, entry: CacheEntry) -> RefreshDirective:
        ...


Listener = Callable[[Any], None]


class ReadThroughCache(Generic[V]):
    """
    A read-through cache for values that need async work to refresh.

    - `seed` synchronously provides an initial value for a key.
    - `get` reads the current value without blocking.
    - `get_async` reads through, refreshing according to a directive.
    - At most one refresh per key is in flight at any time; concurrent
      callers share it and receive its result or its failure.

    A failed refresh leaves the stored value untouched so callers keep being
    served the last known good value.
    """

    def __init__(self, strategy: RefreshStrategy, *, name: str = "cache", metrics: Optional[RuntimeMetrics] = None):
        self.strategy = strategy
        self.name = name
        self.metrics = metrics
        self.logger = get_logger(f"flags.cache.{name}")
        self._entries: Dict[Hashable, CacheEntry[V]] = {}
        self._listeners: Dict[Hashable, List[Listener]] = {}

    def seed(self, key: Hashable, value: V) -> None:
        """
        Seed an entry with an initial value, enabling immediate use of `get`.

        No effect if the entry already has a value. A refresh pending for the
        key is left running. Never triggers I/O.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.value is not None:
            return

        if entry is not None and entry.pending is not None:
            entry.value = value
            entry.last_refreshed_at = time.time()
            return

        self._entries[key] = CacheEntry(value=value, last_refreshed_at=time.time())

    def get(self, key: Hashable) -> Optional[V]:
        """Synchronous cache access; None on a miss."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def entry(self, key: Hashable) -> Optional[CacheEntry[V]]:
        """Current entry state for a key, if the cache has seen it."""
        return self._entries.get(key)

    def is_pending(self, key: Hashable) -> bool:
        """True if a refresh is in flight for the key."""
        entry = self._entries.get(key)
        return entry is not None and entry.pending is not None

    async def get_async(self, key: Hashable, directive: Optional[RefreshDirective] = None) -> Optional[V]:
        """
        Read through the cache.

        A miss always waits for a refresh. On a hit, the given directive (or
        the strategy's policy) decides whether to refresh and whether to
        wait for it.

        Raises:
            Whatever the refresh raised, when this call waited on it.
        """
        if self.get(key) is None:
            self._record_read(hit=False)
            await self.exec_refresh(key)
            return self.get(key)

        self._record_read(hit=True)
        if directive is None:
            directive = self.strategy.policy(key, self._entries[key])

        if directive == RefreshDirective.REFRESH_IN_BACKGROUND:
            self.refresh_in_background(key)
        elif directive == RefreshDirective.REFRESH_AND_AWAIT:
            await self.exec_refresh(key)

        return self.get(key)

    def on(self, key: Hashable, listener: Listener) -> None:
        """Subscribe to value changes for a key."""
        self._listeners.setdefault(key, []).append(listener)

    def exec_refresh(self, key: Hashable) -> Awaitable[RefreshResult]:
        """
        Start a refresh for the key, or join the one already in flight.

        The returned awaitable is shielded: a caller that gets cancelled
        while waiting does not cancel the shared refresh.
        """
        return asyncio.shield(self._pending_refresh(key))

    def refresh_in_background(self, key: Hashable) -> "asyncio.Task[RefreshResult]":
        """Start (or join) a refresh without waiting for it."""
        return self._pending_refresh(key)

    def _pending_refresh(self, key: Hashable) -> "asyncio.Task[RefreshResult]":
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = CacheEntry()

        if entry.pending is not None:
            return entry.pending

        task = asyncio.ensure_future(self._run_refresh(key, entry))
        task.add_done_callback(_retrieve_outcome)
        entry.pending = task
        return task

    async def _run_refresh(self, key: Hashable, entry: CacheEntry[V]) -> RefreshResult:
        start = time.perf_counter()
        try:
            result = await self.strategy.refresh(key, entry.value)
        except Exception as exc:
            self.logger.warning("Cache refresh failed", key=key, error=_describe(exc))
            self._record_refresh("error", start)
            raise
        finally:
            entry.pending = None

        if isinstance(result, Unchanged):
            self.logger.debug("Cache entry not modified", key=key)
            self._record_refresh("unchanged", start)
            return result

        entry.value = result.value
        entry.last_refreshed_at = time.time()
        self._record_refresh("fresh", start)
        self.logger.debug("Cache entry refreshed", key=key)
        self._emit(key, result.value)
        return result

    def _emit(self, key: Hashable, value: V) -> None:
        for listener in list(self._listeners.get(key, ())):
            try:
                listener(value)
            except Exception as exc:
                self.logger.error("Cache listener failed", key=key, error=str(exc))

    def _record_read(self, hit: bool) -> None:
        if self.metrics:
            self.metrics.record_cache_read(self.name, hit)

    def _record_refresh(self, outcome: str, start: float) -> None:
        if self.metrics:
            self.metrics.record_cache_refresh(self.name, outcome, time.perf_counter() - start)


def _describe(exc: Exception) -> Dict[str, Any]:
    if isinstance(exc, FlagRuntimeException):
        return exc.to_response().model_dump(exclude_none=True)
    return {"code": type(exc).__name__, "message": str(exc)}


def _retrieve_outcome(task: "asyncio.Task") -> None:
    # Failures are logged in _run_refresh and re-raised to every waiting
    # caller; background refreshes have no waiter to retrieve them.
    if not task.cancelled():
        task.exception()
