"""
HTTP remote source with retry logic and exponential backoff.

Talks to a JSON/REST collection endpoint:

    GET    {base_url}/{collection}?{params}   -> list of records
    GET    {base_url}/{collection}/{key}      -> record (404 = missing)
    POST   {base_url}/{collection}            -> created record
    PUT    {base_url}/{collection}/{key}      -> updated record
    DELETE {base_url}/{collection}/{key}

List responses may be a bare JSON array or an object wrapping the array
under ``items``, ``results``, ``value`` or ``data``.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from dataview.core.config.models import RemoteConfig
from dataview.core.exceptions import RemoteOperationError

from .retry import RetryConfig, retry_async
from .source import register_source

logger = logging.getLogger(__name__)

_LIST_KEYS = ("items", "results", "value", "data")


@register_source("http")
class HttpRemoteSource:
    """
    Remote source for a REST collection, built on httpx.AsyncClient.

    Transient failures (5xx, timeouts, connection errors) are retried with
    exponential backoff, except that a POST is only resent on a 503.
    Everything else surfaces as RemoteOperationError.

    Example:
        >>> async with HttpRemoteSource("https://api.example.com", "contacts") as source:
        ...     rows = await source.fetch({"limit": 20})
    """

    def __init__(
        self,
        base_url: str,
        collection: str,
        *,
        timeout: float = 30.0,
        retry: RetryConfig | None = None,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the HTTP source.

        Args:
            base_url: Root URL of the API
            collection: Collection path segment (e.g., "contacts")
            timeout: Request timeout in seconds
            retry: Retry behaviour (defaults to RetryConfig())
            headers: Static headers sent with every request
            client: Externally managed client; not closed by this source
            transport: Transport for the internally created client (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.collection = collection.strip("/")
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self.headers = dict(headers or {})
        self._client = client
        self._owns_client = client is None
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        config: RemoteConfig,
        collection: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HttpRemoteSource:
        """
        Create a source from the ``remote`` configuration section.

        Raises:
            RuntimeError: If auth is configured but its env var is not set
        """
        headers = dict(config.headers)
        if config.auth_header and config.auth_env_var:
            api_key = os.environ.get(config.auth_env_var)
            if not api_key:
                raise RuntimeError(
                    f"{config.auth_env_var} is not set. Set it in the environment, e.g.\n\n"
                    f"  export {config.auth_env_var}=...\n\n"
                    f"Then re-run the command."
                )
            headers[config.auth_header] = api_key

        return cls(
            config.base_url,
            collection,
            timeout=config.timeout,
            retry=RetryConfig(max_retries=config.max_retries, base_delay=config.base_delay),
            headers=headers,
            transport=transport,
        )

    @property
    def source_name(self) -> str:
        return "http"

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpRemoteSource:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _path(self, key: Any = None) -> str:
        if key is None:
            return f"/{self.collection}"
        return f"/{self.collection}/{key}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        key: Any = None,
        params: dict[str, Any] | None = None,
        json: Any = None,
        allow_missing: bool = False,
        idempotent: bool = True,
    ) -> httpx.Response:
        """
        Send a request with retries and translate failures.

        A 404 is handed back as a response when ``allow_missing`` is set.
        Non-idempotent requests are not resent after a timeout or a
        connection failure.

        Raises:
            RemoteOperationError: On a non-2xx response or transport failure
        """

        async def send() -> httpx.Response:
            response = await self.client.request(method, path, params=params, json=json)
            if allow_missing and response.status_code == 404:
                return response
            response.raise_for_status()
            return response

        logger.debug("%s %s params=%s", method, path, params)

        try:
            return await retry_async(
                send, self.retry, description=f"{method} {path}", idempotent=idempotent
            )
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise RemoteOperationError(
                f"{operation} failed: HTTP {status_code} for {method} {path}",
                operation=operation,
                key=key,
                status_code=status_code,
            ) from e
        except httpx.TimeoutException as e:
            raise RemoteOperationError(
                f"{operation} failed: request timed out after {self.timeout}s",
                operation=operation,
                key=key,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteOperationError(
                f"{operation} failed: network error: {e}", operation=operation, key=key
            ) from e

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteOperationError(
                f"{operation} failed: response is not valid JSON",
                operation=operation,
                status_code=response.status_code,
            ) from e

    async def fetch(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        response = await self._request("GET", self._path(), operation="fetch", params=params)
        payload = self._json(response, "fetch")

        if payload is None:
            return []
        if isinstance(payload, dict):
            for name in _LIST_KEYS:
                if isinstance(payload.get(name), list):
                    payload = payload[name]
                    break
        if not isinstance(payload, list):
            raise RemoteOperationError(
                "fetch failed: expected a list of records",
                operation="fetch",
                status_code=response.status_code,
            )
        return payload

    async def fetch_one(self, key: Any) -> dict[str, Any] | None:
        response = await self._request(
            "GET", self._path(key), operation="fetch_one", key=key, allow_missing=True
        )
        if response.status_code == 404:
            return None
        record = self._json(response, "fetch_one")
        return record if isinstance(record, dict) else None

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST", self._path(), operation="create", json=data, idempotent=False
        )
        record = self._json(response, "create")
        return record if isinstance(record, dict) else dict(data)

    async def update(self, key: Any, data: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "PUT", self._path(key), operation="update", key=key, json=data
        )
        record = self._json(response, "update")
        return record if isinstance(record, dict) else dict(data)

    async def delete(self, key: Any) -> None:
        await self._request("DELETE", self._path(key), operation="delete", key=key)
