"""Synchronous HTTP client with bearer-token injection and error mapping.

This module provides :class:`ApiClient`, the blocking HTTP client used by
every edpear command. It wraps :class:`httpx.Client` and layers on:

- **Auth injection** -- ``Authorization: Bearer <token>`` is attached when
  the current :class:`~edpear.models.Credential` holds a token. The
  credential is read at request time, so a token written by ``login`` is
  picked up by later calls on the same client.
- **Error mapping** -- HTTP 401 becomes
  :class:`~edpear.exceptions.UnauthorizedError`, other HTTP errors become
  :class:`~edpear.exceptions.ServerError`, and transport failures become
  :class:`~edpear.exceptions.ConnectionError_`.
- **JSON decoding** -- successful responses are returned as parsed JSON.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from edpear.config import resolve_api_url
from edpear.exceptions import ConnectionError_, ServerError, UnauthorizedError
from edpear.models import Credential
from edpear.output import get_output


class ApiClient:
    """Synchronous client for the EdPear API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        credential: The credential whose token is attached to
            authenticated requests. ``None`` sends every request
            unauthenticated.
        base_url: API origin. Defaults to
            :func:`~edpear.config.resolve_api_url`.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass an
            :class:`httpx.MockTransport`).

    Example::

        with ApiClient(credential) as client:
            me = client.get("/api/auth/me")
    """

    def __init__(
        self,
        credential: Optional[Credential] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._credential = credential
        self._base_url = (base_url or resolve_api_url()).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def base_url(self) -> str:
        """The API origin requests are sent to."""
        return self._base_url

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ApiClient:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        endpoint: str,
        json_body: Optional[Any] = None,
        params: Optional[dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method (GET, POST, ...).
            endpoint: Path appended to the base URL, e.g. ``/api/auth/me``.
            json_body: JSON-serialisable request body.
            params: Query parameters.
            authenticated: Attach the stored bearer token when one exists.
                The login handshake passes ``False``.

        Returns:
            The parsed JSON response (``None`` for an empty body).

        Raises:
            UnauthorizedError: On HTTP 401.
            ServerError: On any other HTTP error status, or a body that is
                not valid JSON.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        headers = self._build_headers(authenticated)
        output = get_output()
        output.debug(f"{method.upper()} {self._base_url}{endpoint}")

        kwargs: dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = params
        if json_body is not None:
            kwargs["json"] = json_body

        try:
            response = self._client.request(method.upper(), endpoint, **kwargs)
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Connection failed: {exc}") from exc

        output.debug(f"-> HTTP {response.status_code}")
        self._map_response_error(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServerError(
                f"Invalid JSON in response from {endpoint} (HTTP {response.status_code})"
            ) from exc

    def get(self, endpoint: str, **kwargs: Any) -> Any:
        """Send a GET request. See :meth:`request`."""
        return self.request("GET", endpoint, **kwargs)

    def post(self, endpoint: str, **kwargs: Any) -> Any:
        """Send a POST request. See :meth:`request`."""
        return self.request("POST", endpoint, **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _build_headers(self, authenticated: bool) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if authenticated and self._credential is not None and self._credential.token:
            headers["Authorization"] = f"Bearer {self._credential.token}"
        return headers

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return
        if status == 401:
            raise UnauthorizedError()

        # Try to extract an error message from the response body.
        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("error") or detail.get("message") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        raise ServerError(f"{prefix}: {msg}" if msg else prefix)
