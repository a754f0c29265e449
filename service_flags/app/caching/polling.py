"""
Datafile cache that revalidates against a remote source.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, Mapping, Optional

from shared.config import RuntimeConfig
from shared.errors import ResourceFetchError
from shared.logging import datafile_context, get_logger
from shared.metrics import RuntimeMetrics
from .policies import PolicyLike, as_policy, resolve_policy, strongly_consistent
from .read_through import (
    UNCHANGED, CacheEntry, Fresh, Listener, ReadThroughCache, RefreshDirective, RefreshResult
)

NOT_MODIFIED = 304


@dataclass
class FetchResponse:
    """What a fetch collaborator returns."""
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass(frozen=True, eq=False)
class PolledResource:
    """A fetched body plus the validators for revalidating it."""
    body: Any
    validators: Mapping[str, str] = field(default_factory=dict)


Fetch = Callable[[Hashable, Dict[str, str]], Awaitable[FetchResponse]]


def next_request_headers(response_headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Form conditional request headers from a previous response's headers."""
    lowered = {name.lower(): value for name, value in (response_headers or {}).items()}

    headers: Dict[str, str] = {}
    if lowered.get("etag"):
        headers["If-None-Match"] = lowered["etag"]
    if lowered.get("last-modified"):
        headers["If-Modified-Since"] = lowered["last-modified"]
    return headers


class PollingResourceCache:
    """
    Keeps remote resources fresh per key using conditional revalidation.

    Each refresh sends the validators from the previous response; a 304
    leaves the entry, its timestamp and its listeners untouched.
    """

    def __init__(
        self,
        fetch: Fetch,
        *,
        policy: PolicyLike = strongly_consistent,
        name: str = "datafile",
        metrics: Optional[RuntimeMetrics] = None
    ):
        self.fetch = fetch
        self._policy = as_policy(policy)
        self.logger = get_logger(f"flags.polling.{name}")
        self._cache: ReadThroughCache[PolledResource] = ReadThroughCache(self, name=name, metrics=metrics)

    @classmethod
    def from_config(cls, config: RuntimeConfig, fetch: Fetch, **kwargs) -> "PollingResourceCache":
        """Build a cache whose warm-read policy comes from runtime configuration."""
        policy = resolve_policy(config.cache_refresh_policy, config.cache_max_age_seconds)
        return cls(fetch, policy=policy, **kwargs)

    async def refresh(self, key: Hashable, current: Optional[PolledResource]) -> RefreshResult:
        """Fetch the resource, revalidating against the current copy."""
        # Fetch and retry logs carry the key as sdk_key
        with datafile_context(str(key)):
            return await self._revalidate(key, current)

    async def _revalidate(self, key: Hashable, current: Optional[PolledResource]) -> RefreshResult:
        request_headers = dict(current.validators) if current is not None else {}
        self.logger.debug("Requesting resource", key=key, headers=request_headers)

        response = await self.fetch(key, request_headers)

        if response.status == NOT_MODIFIED:
            self.logger.debug("Resource not modified", key=key)
            return UNCHANGED

        if response.status >= 400:
            raise ResourceFetchError(
                str(key),
                f"Unexpected status {response.status}",
                details={"status_code": response.status}
            )

        return Fresh(PolledResource(body=response.body, validators=next_request_headers(response.headers)))

    def policy(self, key: Hashable, entry: CacheEntry) -> RefreshDirective:
        return self._policy(key, entry)

    def seed(self, key: Hashable, body: Any, validators: Optional[Mapping[str, str]] = None) -> None:
        """Seed a key with a body obtained elsewhere (e.g. a bundled datafile)."""
        self._cache.seed(key, PolledResource(body=body, validators=dict(validators or {})))

    def get(self, key: Hashable) -> Optional[PolledResource]:
        return self._cache.get(key)

    async def get_async(self, key: Hashable, directive: Optional[RefreshDirective] = None) -> Optional[PolledResource]:
        return await self._cache.get_async(key, directive)

    def on(self, key: Hashable, listener: Listener) -> None:
        self._cache.on(key, listener)

    def entry(self, key: Hashable) -> Optional[CacheEntry[PolledResource]]:
        return self._cache.entry(key)
