"""Asynchronous REST client that never raises for transport failures.

:class:`RestAPI` wraps :class:`httpx.AsyncClient` and is designed to be the
network thunk behind :class:`~bifrost.repository.Repository` calls::

    api = RestAPI("https://api.asgard.example", headers={"Authorization": token})
    user = await repo.fetch(
        api_request=lambda: api.get("/users/1"),
        from_json=User.model_validate,
        cache_key="user_1",
    )

Every HTTP status -- including 4xx and 5xx -- comes back as a
:class:`~bifrost.client.response.TransportResponse` so that the repository's
classifier can decide what it means. Only failures where no response exists
(connect errors, timeouts, protocol errors) are turned into ``None``.

The client performs no retries and enforces no policy beyond the configured
timeout.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from bifrost.client.response import TransportResponse
from bifrost.models import Profile

logger = logging.getLogger(__name__)


class RestAPI:
    """Base-URL-scoped asynchronous HTTP client.

    Each request opens a short-lived :class:`httpx.AsyncClient` unless a
    shared one is entered with ``async with``.

    Args:
        base_url: Scheme and host (optionally a path prefix) every endpoint
            is appended to, e.g. ``https://api.example.com/v1``.
        headers: Headers sent with every request.
        shortname: Label used in log lines. Defaults to the base URL host.
        timeout: Request timeout in seconds.
        verify_ssl: Verify TLS certificates.
        transport: Optional :class:`httpx.AsyncBaseTransport`, e.g. an
            :class:`httpx.MockTransport` in tests.

    Example::

        async with RestAPI("https://api.example.com") as api:
            response = await api.post("/users", body={"name": "Odin"})
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[dict[str, str]] = None,
        shortname: Optional[str] = None,
        timeout: float = 30,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})
        self._shortname = shortname or httpx.URL(self._base_url).host or self._base_url
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_profile(
        cls,
        profile: Profile,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> RestAPI:
        """Create a client from a stored :class:`~bifrost.models.Profile`."""
        return cls(
            base_url=profile.base_url,
            headers=profile.headers,
            shortname=profile.shortname or profile.name,
            timeout=profile.request.timeout,
            verify_ssl=profile.request.verify_ssl,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def headers(self) -> dict[str, str]:
        """Default headers sent with every request (a copy)."""
        return dict(self._headers)

    @property
    def shortname(self) -> str:
        return self._shortname

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> RestAPI:
        self._client = self._new_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def get(
        self,
        endpoint: str,
        query_params: Optional[dict[str, Any]] = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> Optional[TransportResponse]:
        """Send a GET request to *endpoint*."""
        return await self.request("GET", endpoint, query_params=query_params, extra_headers=extra_headers)

    async def post(
        self,
        endpoint: str,
        body: Any = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> Optional[TransportResponse]:
        """Send a POST request. Dicts and lists are JSON-encoded; strings go as-is."""
        return await self.request("POST", endpoint, body=body, extra_headers=extra_headers)

    async def put(
        self,
        endpoint: str,
        body: Any = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> Optional[TransportResponse]:
        """Send a PUT request. Dicts and lists are JSON-encoded; strings go as-is."""
        return await self.request("PUT", endpoint, body=body, extra_headers=extra_headers)

    async def patch(
        self,
        endpoint: str,
        body: Any = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> Optional[TransportResponse]:
        """Send a PATCH request. Dicts and lists are JSON-encoded; strings go as-is."""
        return await self.request("PATCH", endpoint, body=body, extra_headers=extra_headers)

    async def delete(
        self,
        endpoint: str,
        body: Any = None,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> Optional[TransportResponse]:
        """Send a DELETE request, optionally with a body."""
        return await self.request("DELETE", endpoint, body=body, extra_headers=extra_headers)

    async def send_raw(
        self,
        url: str,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> Optional[TransportResponse]:
        """Send a GET request to an absolute *url*, bypassing the base URL."""
        return await self.request("GET", url, extra_headers=extra_headers, absolute=True)

    async def request(
        self,
        method: str,
        endpoint: str,
        query_params: Optional[dict[str, Any]] = None,
        body: Any = None,
        extra_headers: Optional[dict[str, str]] = None,
        absolute: bool = False,
    ) -> Optional[TransportResponse]:
        """Send a request and return its descriptor, or ``None`` if no response arrived.

        Args:
            method: HTTP method.
            endpoint: Path appended to :attr:`base_url`, or a full URL when
                *absolute* is ``True``.
            query_params: Query string parameters. Empty dicts are dropped.
            body: Request body. ``dict``/``list`` values are JSON-encoded
                and ``Content-Type: application/json`` is set unless already
                present; strings and bytes are sent unchanged.
            extra_headers: Per-call headers, overriding the defaults.
            absolute: Treat *endpoint* as a complete URL.

        Returns:
            A :class:`TransportResponse` for every HTTP status, or ``None``
            when :mod:`httpx` raised a transport-level error.
        """
        url = endpoint if absolute else self._build_url(endpoint)
        headers = {**self._headers, **(extra_headers or {})}
        content = self._encode_body(body, headers)

        logger.info("%s request: %s %s", self._shortname, method, url)
        try:
            if self._client is not None:
                response = await self._send(self._client, method, url, query_params, headers, content)
            else:
                async with self._new_client() as client:
                    response = await self._send(client, method, url, query_params, headers, content)
        except httpx.HTTPError as exc:
            logger.error("%s client error: %s %s", self._shortname, method, url, exc_info=exc)
            return None

        return self._log_response(TransportResponse.from_httpx(response))

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            verify=self._verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )

    def _build_url(self, endpoint: str) -> str:
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{self._base_url}{endpoint}"

    @staticmethod
    def _encode_body(body: Any, headers: dict[str, str]) -> Optional[str | bytes]:
        """Encode *body* for sending, setting a JSON content type when needed."""
        if body is None:
            return None
        if isinstance(body, (str, bytes)):
            return body
        if not any(k.lower() == "content-type" for k in headers):
            headers["Content-Type"] = "application/json"
        return json.dumps(body)

    @staticmethod
    async def _send(
        client: httpx.AsyncClient,
        method: str,
        url: str,
        query_params: Optional[dict[str, Any]],
        headers: dict[str, str],
        content: Optional[str | bytes],
    ) -> httpx.Response:
        return await client.request(
            method,
            url,
            params=query_params or None,
            headers=headers,
            content=content,
        )

    def _log_response(self, response: TransportResponse) -> TransportResponse:
        if response.is_success:
            logger.info("%s %d", self._shortname, response.status_code)
            logger.debug("%s body: %s", self._shortname, response.body)
        else:
            logger.warning("%s %d | %s", self._shortname, response.status_code, response.body)
        return response
