"""
HTTP fetch collaborator for the polling datafile cache.
"""

from typing import Dict, Hashable, Optional

import httpx

from shared.config import RuntimeConfig
from shared.errors import ResourceFetchError
from shared.logging import get_logger
from shared.retry import retry_on_exception, RetryConfig, RetryError
from ..caching.polling import FetchResponse, NOT_MODIFIED

# Retried after a backoff; the last response is still handed to the cache
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


class DatafileClient:
    """Fetches datafiles over HTTP, passing conditional request headers through."""

    def __init__(
        self,
        url_template: str,
        *,
        timeout: float = 5.0,
        max_attempts: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url_template = url_template
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("flags.datafile_client")

        self.retry_config = RetryConfig(
            max_attempts=max_attempts,
            base_delay=0.5,
            max_delay=5.0,
            exponential_base=2.0,
            jitter=True
        )
        self._send_with_retry = retry_on_exception(
            (httpx.TransportError,),
            config=self.retry_config,
            retry_if=lambda response: response.status_code in RETRYABLE_STATUS_CODES
        )(self._send)

    @classmethod
    def from_config(cls, config: RuntimeConfig, **kwargs) -> "DatafileClient":
        """Build a client from runtime configuration."""
        return cls(
            config.datafile_url_template,
            timeout=config.fetch_timeout_seconds,
            max_attempts=config.fetch_max_attempts,
            **kwargs
        )

    def url_for(self, key: Hashable) -> str:
        """Resolve the datafile URL for a key."""
        return self.url_template.format(key=key)

    async def __call__(self, key: Hashable, headers: Dict[str, str]) -> FetchResponse:
        return await self.fetch(key, headers)

    async def fetch(self, key: Hashable, headers: Dict[str, str]) -> FetchResponse:
        """
        Issue a conditional GET for the key's datafile.

        Non-2xx statuses are returned as-is so the cache can tell a 304 from
        a failure. Transport errors and RETRYABLE_STATUS_CODES are retried;
        transport errors that outlast the retries are raised as
        ResourceFetchError.
        """
        url = self.url_for(key)
        try:
            response = await self._send_with_retry(url, headers)
        except RetryError as exc:
            self.logger.error("Datafile fetch failed", url=url, attempts=exc.attempts, error=str(exc.last_exception))
            raise ResourceFetchError(
                str(key),
                str(exc.last_exception),
                details={"url": url, "attempts": exc.attempts}
            ) from exc

        self.logger.debug("Datafile response", url=url, status_code=response.status_code)
        return FetchResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.text if response.status_code != NOT_MODIFIED else None
        )

    async def _send(self, url: str, headers: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.get(url, headers=headers)
