"""
Refresh policies deciding what a warm `get_async` does.
"""

import time
from typing import Callable, Hashable, Optional, Union

from shared.errors import ConfigurationError
from .read_through import CacheEntry, RefreshDirective

Policy = Callable[[Hashable, CacheEntry], RefreshDirective]
PolicyLike = Union[RefreshDirective, Policy]


def constant(directive: RefreshDirective) -> Policy:
    """A policy that always answers the same directive."""

    def policy(key: Hashable, entry: CacheEntry) -> RefreshDirective:
        return directive

    return policy


only_if_cache_miss = constant(RefreshDirective.ONLY_IF_CACHE_MISS)
stale_while_revalidate = constant(RefreshDirective.REFRESH_IN_BACKGROUND)
strongly_consistent = constant(RefreshDirective.REFRESH_AND_AWAIT)


def max_age(
    seconds: float,
    when_stale: RefreshDirective = RefreshDirective.REFRESH_IN_BACKGROUND
) -> Policy:
    """
    Serve cached values until they are older than `seconds`.

    Entries with no refresh timestamp are treated as stale.
    """

    def policy(key: Hashable, entry: CacheEntry) -> RefreshDirective:
        if entry.last_refreshed_at is None:
            return when_stale
        if time.time() - entry.last_refreshed_at >= seconds:
            return when_stale
        return RefreshDirective.ONLY_IF_CACHE_MISS

    return policy


def as_policy(policy: PolicyLike) -> Policy:
    """Accept either a directive or a policy callable."""
    if isinstance(policy, RefreshDirective):
        return constant(policy)
    return policy


_NAMED_POLICIES = {
    "only_if_cache_miss": RefreshDirective.ONLY_IF_CACHE_MISS,
    "stale_while_revalidate": RefreshDirective.REFRESH_IN_BACKGROUND,
    "strongly_consistent": RefreshDirective.REFRESH_AND_AWAIT,
}


def resolve_policy(name: str, max_age_seconds: Optional[float] = None) -> Policy:
    """
    Map a configured policy name to a policy.

    With `max_age_seconds`, the named directive only applies once an entry is
    older than that; younger entries are served from cache.
    """
    directive = _NAMED_POLICIES.get(name.lower())
    if directive is None:
        raise ConfigurationError(
            f"Unknown cache refresh policy '{name}'",
            details={"known": sorted(_NAMED_POLICIES)}
        )
    if max_age_seconds is not None and directive != RefreshDirective.ONLY_IF_CACHE_MISS:
        return max_age(max_age_seconds, directive)
    return constant(directive)
