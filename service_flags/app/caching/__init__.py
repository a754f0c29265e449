"""
Datafile caching package.

Keeps the rules document, and objects derived from it, fresh without
redundant network work. The read-through engine owns singleflight refresh
and change notification; concrete caches plug in a refresh strategy.

Modules of interest:
- read_through: Generic engine, refresh directives and results.
- policies: Named and max-age policies for warm reads.
- polling: Conditional revalidation against a fetch collaborator.
- derived: Objects built from an upstream cache, with chained invalidation.
"""

from .read_through import (
    UNCHANGED, CacheEntry, Fresh, ReadThroughCache, RefreshDirective, RefreshResult, RefreshStrategy, Unchanged
)
from .polling import FetchResponse, PolledResource, PollingResourceCache
from .derived import DerivedEntry, DerivedResourceCache

__all__ = [
    "UNCHANGED",
    "CacheEntry",
    "Fresh",
    "ReadThroughCache",
    "RefreshDirective",
    "RefreshResult",
    "RefreshStrategy",
    "Unchanged",
    "FetchResponse",
    "PolledResource",
    "PollingResourceCache",
    "DerivedEntry",
    "DerivedResourceCache",
]
