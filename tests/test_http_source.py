"""
Tests for HttpRemoteSource.

Uses httpx.MockTransport so requests never leave the process.
"""

import json

import httpx
import pytest

from dataview.core.config.models import RemoteConfig
from dataview.core.dataset import DataSet
from dataview.core.exceptions import RemoteOperationError
from dataview.core.query import Query
from dataview.core.remote import (
    HttpRemoteSource,
    RetryConfig,
    get_source,
    is_source_available,
    list_sources,
)

from conftest import Contact

FAST_RETRY = RetryConfig(max_retries=2, base_delay=0.001, jitter=False)


def make_source(handler, **kwargs):
    return HttpRemoteSource(
        "https://api.example.com/",
        "contacts",
        retry=FAST_RETRY,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestHttpSourceReads:
    """Test fetch and fetch_one."""

    @pytest.mark.asyncio
    async def test_fetch_sends_params(self):
        """Query parameters become URL parameters."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=[{"id": 1, "name": "Ada"}])

        async with make_source(handler) as source:
            rows = await source.fetch({"city": "London", "limit": 2, "offset": 0})

        assert rows == [{"id": 1, "name": "Ada"}]
        assert requests[0].method == "GET"
        assert requests[0].url.path == "/contacts"
        assert dict(requests[0].url.params) == {"city": "London", "limit": "2", "offset": "0"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("wrapper", ["items", "results", "value", "data"])
    async def test_fetch_unwraps_envelopes(self, wrapper):
        """Lists wrapped in a common envelope key are unwrapped."""

        def handler(request):
            return httpx.Response(200, json={wrapper: [{"id": 1}], "total": 1})

        async with make_source(handler) as source:
            assert await source.fetch({}) == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_fetch_rejects_non_list(self):
        """A payload that is not a list of records is an error."""

        def handler(request):
            return httpx.Response(200, json={"unexpected": True})

        async with make_source(handler) as source:
            with pytest.raises(RemoteOperationError, match="expected a list"):
                await source.fetch({})

    @pytest.mark.asyncio
    async def test_fetch_one_found(self):
        """fetch_one requests the record path."""

        def handler(request):
            assert request.url.path == "/contacts/7"
            return httpx.Response(200, json={"id": 7, "name": "Grace"})

        async with make_source(handler) as source:
            assert await source.fetch_one(7) == {"id": 7, "name": "Grace"}

    @pytest.mark.asyncio
    async def test_fetch_one_missing_returns_none(self):
        """A 404 on fetch_one is not an error."""

        def handler(request):
            return httpx.Response(404)

        async with make_source(handler) as source:
            assert await source.fetch_one(99) is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """A non-JSON body is reported as a remote error."""

        def handler(request):
            return httpx.Response(200, content=b"<html>")

        async with make_source(handler) as source:
            with pytest.raises(RemoteOperationError, match="not valid JSON"):
                await source.fetch({})


class TestHttpSourceWrites:
    """Test create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_posts_json(self):
        """create() posts the record and returns the stored version."""
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": 42, **seen["body"]})

        async with make_source(handler) as source:
            stored = await source.create({"name": "Linus"})

        assert seen == {"method": "POST", "body": {"name": "Linus"}}
        assert stored == {"id": 42, "name": "Linus"}

    @pytest.mark.asyncio
    async def test_update_with_empty_body_echoes_payload(self):
        """An empty 204 reply to PUT falls back to the sent record."""

        def handler(request):
            assert request.method == "PUT"
            assert request.url.path == "/contacts/1"
            return httpx.Response(204)

        async with make_source(handler) as source:
            assert await source.update(1, {"id": 1, "name": "Ada"}) == {"id": 1, "name": "Ada"}

    @pytest.mark.asyncio
    async def test_delete(self):
        """delete() issues a DELETE on the record path."""
        methods = []

        def handler(request):
            methods.append((request.method, request.url.path))
            return httpx.Response(204)

        async with make_source(handler) as source:
            await source.delete(3)

        assert methods == [("DELETE", "/contacts/3")]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        """4xx responses fail at once with the status code attached."""
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(422)

        async with make_source(handler) as source:
            with pytest.raises(RemoteOperationError) as exc_info:
                await source.update(1, {"name": ""})

        assert len(attempts) == 1
        assert exc_info.value.status_code == 422
        assert exc_info.value.operation == "update"
        assert exc_info.value.key == 1


class TestHttpSourceRetries:
    """Test transient failure handling."""

    @pytest.mark.asyncio
    async def test_server_error_retried_then_succeeds(self):
        """A 503 followed by a 200 succeeds."""
        responses = iter([httpx.Response(503), httpx.Response(200, json=[])])

        def handler(request):
            return next(responses)

        async with make_source(handler) as source:
            assert await source.fetch({}) == []

    @pytest.mark.asyncio
    async def test_server_error_exhausts_retries(self):
        """Persistent 5xx responses end in a RemoteOperationError."""
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(500)

        async with make_source(handler) as source:
            with pytest.raises(RemoteOperationError) as exc_info:
                await source.delete(1)

        assert len(attempts) == 3
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Transport failures are wrapped as network errors."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_source(handler) as source:
            with pytest.raises(RemoteOperationError, match="network error") as exc_info:
                await source.fetch({})

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Timeouts are reported with the configured limit."""

        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with make_source(handler, timeout=5.0) as source:
            with pytest.raises(RemoteOperationError, match="timed out after 5.0s"):
                await source.fetch({})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout])
    async def test_create_not_resent_after_transport_failure(self, error):
        """A POST whose outcome is unknown is attempted once."""
        attempts = []

        def handler(request):
            attempts.append(request)
            raise error("lost", request=request)

        async with make_source(handler) as source:
            with pytest.raises(RemoteOperationError) as exc_info:
                await source.create({"name": "Linus"})

        assert len(attempts) == 1
        assert exc_info.value.operation == "create"

    @pytest.mark.asyncio
    async def test_create_resent_after_service_unavailable(self):
        """A 503 means nothing was stored, so the POST is sent again."""
        responses = iter([httpx.Response(503), httpx.Response(201, json={"id": 6})])
        attempts = []

        def handler(request):
            attempts.append(request)
            return next(responses)

        async with make_source(handler) as source:
            assert await source.create({"name": "Linus"}) == {"id": 6}

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_create_not_resent_after_server_error(self):
        """A 500 on POST may have stored the record and is not repeated."""
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(500)

        async with make_source(handler) as source:
            with pytest.raises(RemoteOperationError) as exc_info:
                await source.create({"name": "Linus"})

        assert len(attempts) == 1
        assert exc_info.value.status_code == 500


class TestHttpSourceConfig:
    """Test construction from configuration and the registry."""

    def test_registered(self):
        """Both bundled sources are registered."""
        assert {"http", "memory"} <= set(list_sources())

    def test_get_source(self):
        """get_source builds a registered source."""
        source = get_source("http", base_url="https://x.test", collection="items")
        assert isinstance(source, HttpRemoteSource)

    def test_get_unknown_source(self):
        """Unknown names raise ValueError."""
        with pytest.raises(ValueError, match="not registered"):
            get_source("ftp")

    def test_is_source_available(self):
        """Availability reflects the registry."""
        assert is_source_available("http") is True
        assert is_source_available("memory") is True
        assert is_source_available("ftp") is False

    def test_from_config(self):
        """from_config copies URL, timeout, retries and headers."""
        config = RemoteConfig(
            base_url="https://api.example.com/v1/",
            timeout=12.0,
            max_retries=5,
            headers={"Accept": "application/json"},
        )

        source = HttpRemoteSource.from_config(config, "contacts")

        assert source.base_url == "https://api.example.com/v1"
        assert source.timeout == 12.0
        assert source.retry.max_retries == 5
        assert source.headers == {"Accept": "application/json"}

    def test_from_config_auth_header(self, monkeypatch):
        """The API key is read from the configured env var."""
        monkeypatch.setenv("CONTACTS_API_KEY", "secret")
        config = RemoteConfig(auth_header="X-Api-Key", auth_env_var="CONTACTS_API_KEY")

        source = HttpRemoteSource.from_config(config, "contacts")

        assert source.headers["X-Api-Key"] == "secret"

    def test_from_config_missing_key(self, monkeypatch):
        """A configured but unset key env var is reported."""
        monkeypatch.delenv("CONTACTS_API_KEY", raising=False)
        config = RemoteConfig(auth_header="X-Api-Key", auth_env_var="CONTACTS_API_KEY")

        with pytest.raises(RuntimeError, match="CONTACTS_API_KEY is not set"):
            HttpRemoteSource.from_config(config, "contacts")

    @pytest.mark.asyncio
    async def test_headers_sent(self):
        """Static headers reach the server."""
        seen = []

        def handler(request):
            seen.append(request.headers.get("X-Api-Key"))
            return httpx.Response(200, json=[])

        async with make_source(handler, headers={"X-Api-Key": "k"}) as source:
            await source.fetch({})

        assert seen == ["k"]


class TestHttpBackedDataSet:
    """Test a DataSet end to end over HTTP."""

    @pytest.mark.asyncio
    async def test_refresh_and_save(self):
        """A data set reads and writes through the HTTP source."""
        store = {1: {"id": 1, "name": "Ada", "city": "London", "age": 36}}

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json={"items": list(store.values())})
            if request.method == "PUT":
                key = int(request.url.path.rsplit("/", 1)[1])
                store[key] = json.loads(request.content)
                return httpx.Response(200, json=store[key])
            return httpx.Response(405)

        async with make_source(handler) as source:
            data_set = DataSet(Contact, source)
            await data_set.refresh(query=Query(where={"city": "London"}))
            ada = data_set.find_by_key(1)
            ada.age = 37
            await data_set.update(ada)
            await data_set.save_entity(ada)

        assert store[1]["age"] == 37
