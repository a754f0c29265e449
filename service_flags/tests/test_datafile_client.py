"""
Unit tests for the HTTP datafile client.
"""

import httpx
import pytest

from service_flags.app.adapters.datafile_client import DatafileClient
from service_flags.app.caching.polling import PollingResourceCache
from shared.config import get_config
from shared.errors import ResourceFetchError


URL_TEMPLATE = "https://cdn.example.com/datafiles/{key}.json"
DATAFILE = '{"revision": "7"}'


def make_client(handler, **kwargs):
    return DatafileClient(URL_TEMPLATE, transport=httpx.MockTransport(handler), **kwargs)


class TestDatafileClient:
    """Test cases for DatafileClient."""

    def test_url_for(self):
        client = DatafileClient(URL_TEMPLATE)
        assert client.url_for("sdk-key") == "https://cdn.example.com/datafiles/sdk-key.json"

    def test_from_config(self):
        config = get_config(
            datafile_url_template="https://flags.internal/{key}",
            fetch_timeout_seconds=2.5,
            fetch_max_attempts=5
        )

        client = DatafileClient.from_config(config)

        assert client.url_for("abc") == "https://flags.internal/abc"
        assert client.timeout == 2.5
        assert client.retry_config.max_attempts == 5

    @pytest.mark.asyncio
    async def test_fetch_ok(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, headers={"ETag": '"r7"'}, text=DATAFILE)

        response = await make_client(handler).fetch("sdk-key", {})

        assert response.status == 200
        assert response.body == DATAFILE
        assert response.headers["etag"] == '"r7"'
        assert str(requests[0].url) == "https://cdn.example.com/datafiles/sdk-key.json"

    @pytest.mark.asyncio
    async def test_conditional_headers_forwarded(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(304)

        response = await make_client(handler).fetch("sdk-key", {"If-None-Match": '"r7"'})

        assert seen["if-none-match"] == '"r7"'
        assert response.status == 304
        assert response.body is None

    @pytest.mark.asyncio
    async def test_error_status_returned(self):
        response = await make_client(lambda request: httpx.Response(500, text="oops")).fetch("sdk-key", {})
        assert response.status == 500

    @pytest.mark.asyncio
    async def test_transport_error_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, text=DATAFILE)

        client = make_client(handler, max_attempts=2)
        client.retry_config.base_delay = 0.0

        response = await client.fetch("sdk-key", {})

        assert response.body == DATAFILE
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, max_attempts=2)
        client.retry_config.base_delay = 0.0

        with pytest.raises(ResourceFetchError) as exc_info:
            await client.fetch("sdk-key", {})

        assert exc_info.value.key == "sdk-key"
        assert exc_info.value.details["attempts"] == 2

    @pytest.mark.asyncio
    async def test_retryable_status_retried(self):
        statuses = iter([503, 200])

        def handler(request):
            return httpx.Response(next(statuses), text=DATAFILE)

        client = make_client(handler, max_attempts=3)
        client.retry_config.base_delay = 0.0

        response = await client.fetch("sdk-key", {})

        assert response.status == 200

    @pytest.mark.asyncio
    async def test_retryable_status_returned_when_exhausted(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(503)

        client = make_client(handler, max_attempts=2)
        client.retry_config.base_delay = 0.0

        response = await client.fetch("sdk-key", {})

        assert response.status == 503
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(404)

        response = await make_client(handler, max_attempts=3).fetch("sdk-key", {})

        assert response.status == 404
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_drives_polling_cache(self):
        def handler(request):
            if request.headers.get("if-none-match") == '"r7"':
                return httpx.Response(304)
            return httpx.Response(200, headers={"ETag": '"r7"'}, text=DATAFILE)

        cache = PollingResourceCache(make_client(handler))

        first = await cache.get_async("sdk-key")
        second = await cache.get_async("sdk-key")

        assert first.body == DATAFILE
        assert second is first
