"""Asynchronous HTTP client for the authentication backend.

This module provides :class:`ApiClient`, a thin wrapper around
:class:`httpx.AsyncClient` that

* injects Basic credentials (the bootstrapped key/secret pair) into every
  call unless the caller supplies its own ``Authorization`` header,
* keeps the session cookie returned by the login exchange in its cookie
  jar, so later calls are made "with credentials",
* unwraps the ``{"data": ...}`` envelope of API responses, and
* maps transport failures and error statuses onto the
  :mod:`loginflow.exceptions` hierarchy.

The client performs no retries of its own. Callers that want retry (the
login-mode resolver) implement it themselves; callers that must not retry
(the login exchange) simply let the error propagate.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx

from loginflow.exceptions import (
    ConnectionError_,
    NotFoundError,
    ServerError,
    UnauthorizedError,
)
from loginflow.models import Credentials, RequestConfig

logger = logging.getLogger(__name__)


class ApiClient:
    """Asynchronous client for API calls. Must be used as an async context manager.

    Args:
        base_url: Root URL of the API (e.g. ``https://api.example.com``).
        request_config: Timeout and SSL settings.
        credentials: Credentials for the Basic header of internal calls.
            Usually set later by the credential bootstrapper.
        on_unauthorized: Called with the HTTP status before an
            :class:`~loginflow.exceptions.UnauthorizedError` is raised.
        transport: Optional custom transport (``httpx.MockTransport`` in
            tests).

    Example::

        async with ApiClient("https://api.example.com") as client:
            data = await client.call("users.get_current_user")
    """

    def __init__(
        self,
        base_url: str,
        request_config: Optional[RequestConfig] = None,
        credentials: Optional[Credentials] = None,
        on_unauthorized: Optional[Callable[[int], None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._config = request_config or RequestConfig()
        self.credentials = credentials
        self.on_unauthorized = on_unauthorized
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> ApiClient:
        kwargs: dict[str, Any] = {
            "base_url": self._base_url,
            "timeout": self._config.timeout,
            "verify": self._config.verify_ssl,
            "follow_redirects": True,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        self._client = httpx.AsyncClient(**kwargs)
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def cookies(self) -> dict[str, str]:
        """Session cookies currently held by the client."""
        if self._client is None:
            return {}
        return dict(self._client.cookies.items())

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        params: Optional[dict[str, Any]] = None,
        auth: bool = True,
    ) -> httpx.Response:
        """Make an HTTP request with auth injection and error mapping.

        Args:
            method: HTTP method.
            path: Path relative to the base URL, or an absolute URL.
            headers: Extra request headers. An ``Authorization`` header here
                replaces the injected credentials.
            json_body: JSON-serialisable request body.
            params: Query parameters.
            auth: Inject the client credentials. Disable for calls made
                before credentials exist.

        Returns:
            The :class:`httpx.Response` from the server (status < 400).

        Raises:
            UnauthorizedError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On any other status >= 400.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        merged_headers = dict(headers or {})
        if auth:
            merged_headers = self._inject_auth(merged_headers)
        kwargs: dict[str, Any] = {"headers": merged_headers}
        if json_body is not None:
            kwargs["json"] = json_body
        if params:
            kwargs["params"] = params

        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Request to {path} failed: {exc}") from exc

        self._map_response_error(response)
        return response

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request. See :meth:`request`."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Send a POST request. See :meth:`request`."""
        return await self.request("POST", path, **kwargs)

    async def call(
        self,
        endpoint: str,
        payload: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """POST to an RPC-style *endpoint* and return the unwrapped ``data`` member.

        Responses without a ``data`` envelope are returned as-is. Empty
        bodies yield ``None``.

        Raises:
            ServerError: If the body is not valid JSON.
        """
        response = await self.post(f"/{endpoint.lstrip('/')}", json_body=payload, headers=headers)
        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError as exc:
            raise ServerError(f"Invalid JSON from {endpoint}: {exc}") from exc
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _inject_auth(self, headers: dict[str, str]) -> dict[str, str]:
        if self.credentials is None or not self.credentials.key:
            return headers
        if any(k.lower() == "authorization" for k in headers):
            return headers
        return {"Authorization": self.credentials.basic_header(), **headers}

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                meta = detail.get("meta")
                msg = (
                    (meta.get("result_msg") if isinstance(meta, dict) else None)
                    or detail.get("message")
                    or detail.get("error")
                    or detail.get("detail")
                    or ""
                )
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            if self.on_unauthorized is not None:
                self.on_unauthorized(status)
            raise UnauthorizedError(full_msg, status_code=status)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg, status_code=status)
