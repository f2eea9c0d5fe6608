"""API client for ADAX Cloud heaters.

This module provides the rate limited transport used for every backend call,
plus functions to interact with the ADAX client API: token grants, fetching
the content of the home, and sending batched control requests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import httpx
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import (
    AUTH_TOKEN_PATH,
    BASE_URL,
    CONTENT_PATH,
    CONTROL_PATH,
    READ_RETRY_DELAY,
    WRITE_RETRY_DELAY,
)
from .models import Home, Room, RoomOverride, TokenState

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_TOO_MANY_REQUESTS = 429


class AdaxApiClientError(Exception):
    """Base exception for ADAX API client errors."""


class AdaxApiAuthError(AdaxApiClientError):
    """Exception raised when a token grant is rejected."""


class AdaxRateLimitExceeded(AdaxApiClientError):
    """Exception raised when a read is still rate limited after its retry."""


class AdaxFetchError(AdaxApiClientError):
    """Exception raised when the content of the home cannot be read."""


class AdaxTransportError(AdaxApiClientError):
    """Exception raised for network level failures."""


def create_headers(token: str | None = None) -> dict[str, str]:
    """Create HTTP headers for ADAX API requests.

    Args:
        token: Optional bearer token to include in headers.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {"accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def create_headers_grant() -> dict[str, str]:
    """Create HTTP headers for the password grant request."""
    headers = create_headers()
    headers["content-type"] = "application/x-www-form-urlencoded"
    return headers


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error.

    Args:
        status: HTTP status code to check.

    Returns:
        True if status code is 400 or higher, False otherwise.

    """
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates an authentication error."""
    return status == HTTP_UNAUTHORIZED


def is_rate_limited(status: int) -> bool:
    """Check if HTTP status code indicates the client is being throttled."""
    return status == HTTP_TOO_MANY_REQUESTS


class RateLimitedTransport:
    """HTTP helper that retries a throttled request exactly once.

    A response with status 429 is retried after a fixed delay: reads wait
    READ_RETRY_DELAY and writes wait WRITE_RETRY_DELAY. A read that is still
    throttled raises AdaxRateLimitExceeded, a write hands the raw response back
    to the caller. Response bodies are never parsed here.
    """

    def __init__(self, session: httpx.AsyncClient, base_url: str = BASE_URL) -> None:
        """Initialize the transport.

        Args:
            session: HTTP client session.
            base_url: Prefix joined with every request path.

        """
        self._session = session
        self._base_url = base_url

    @property
    def session(self) -> httpx.AsyncClient:
        """Return the underlying HTTP client session."""
        return self._session

    async def async_get(self, path: str, headers: dict[str, str]) -> httpx.Response:
        """Perform a read request.

        Raises:
            AdaxRateLimitExceeded: If the retry is also rate limited.
            AdaxTransportError: If the request fails at the network level.

        """
        response = await self._async_request(
            "GET", path, READ_RETRY_DELAY, headers=headers
        )
        if is_rate_limited(response.status_code):
            error_msg = f"Rate limit exceeded for GET {path}"
            raise AdaxRateLimitExceeded(error_msg)
        return response

    async def async_post(
        self,
        path: str,
        headers: dict[str, str],
        *,
        data: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Perform a write request and return the last response received.

        Raises:
            AdaxTransportError: If the request fails at the network level.

        """
        return await self._async_request(
            "POST", path, WRITE_RETRY_DELAY, headers=headers, data=data, json=json
        )

    async def _async_request(
        self,
        method: str,
        path: str,
        retry_delay: float,
        **kwargs: Any,  # noqa: ANN401
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        response = await self._async_send(method, url, **kwargs)
        if not is_rate_limited(response.status_code):
            return response

        _LOGGER.warning(
            "Rate limited on %s %s, retrying once in %.1fs", method, path, retry_delay
        )
        await asyncio.sleep(retry_delay)
        return await self._async_send(method, url, **kwargs)

    async def _async_send(
        self,
        method: str,
        url: str,
        **kwargs: Any,  # noqa: ANN401
    ) -> httpx.Response:
        try:
            return await self._session.request(method, url, **kwargs)
        except httpx.RequestError as err:
            error_msg = f"Request {method} {url} failed: {err}"
            raise AdaxTransportError(error_msg) from err


def extract_token_state(data: dict[str, Any], issued_at: int) -> TokenState:
    """Build a TokenState from a password grant response.

    Args:
        data: Parsed grant response.
        issued_at: Epoch seconds at which the grant was requested.

    Returns:
        TokenState expiring expires_in seconds after issued_at.

    Raises:
        AdaxApiAuthError: If the response is not a valid grant.

    """
    try:
        access_token = str(data["access_token"])
        expires_in = int(data["expires_in"])
    except (KeyError, TypeError, ValueError) as err:
        error_msg = f"Malformed token response: {err}"
        raise AdaxApiAuthError(error_msg) from err

    return TokenState(
        access_token=access_token,
        refresh_token=data.get("refresh_token"),
        expires_in=expires_in,
        expire_at=issued_at + expires_in,
    )


def _optional_int(value: Any) -> int | None:  # noqa: ANN401
    return None if value is None else int(value)


def extract_room(data: dict[str, Any]) -> Room:
    """Build a Room from one entry of the content response.

    Raises:
        KeyError: If the room has no id.
        TypeError, ValueError: If a numeric field is not a number.

    """
    return Room(
        id=int(data["id"]),
        name=str(data.get("name") or data["id"]),
        heating_enabled=bool(data.get("heatingEnabled", False)),
        temperature=_optional_int(data.get("temperature")),
        target_temperature=_optional_int(data.get("targetTemperature")),
    )


def extract_home(data: Any) -> Home:  # noqa: ANN401
    """Build a Home from the content response.

    Args:
        data: Parsed content response.

    Returns:
        Home holding every listed room in order.

    Raises:
        AdaxFetchError: If the response does not have the expected shape.

    """
    try:
        rooms = tuple(extract_room(room) for room in data["rooms"])
    except (KeyError, TypeError, ValueError) as err:
        error_msg = f"Malformed content response: {err}"
        raise AdaxFetchError(error_msg) from err

    ids = [room.id for room in rooms]
    if len(ids) != len(set(ids)):
        error_msg = "Malformed content response: duplicate room ids"
        raise AdaxFetchError(error_msg)

    return Home(rooms=rooms)


def create_control_payload(overrides: Iterable[RoomOverride]) -> dict[str, Any]:
    """Create the JSON body of a batched control request."""
    return {"rooms": [override.as_payload() for override in overrides]}


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the ADAX API.

    Rate limiting is left to RateLimitedTransport, so 429 is not part of the
    statuses the transport retries.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=10.0)
    retry = Retry(total=3, backoff_factor=0.5, status_forcelist=[502, 503, 504])
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


async def async_request_token(
    transport: RateLimitedTransport,
    client_id: str,
    secret: str,
    issued_at: int,
) -> TokenState:
    """Obtain a bearer token with the password grant.

    Args:
        transport: Rate limited transport.
        client_id: ADAX account id used as username.
        secret: API credential used as password.
        issued_at: Epoch seconds used to compute the token expiry.

    Returns:
        New TokenState.

    Raises:
        AdaxApiAuthError: If the grant is rejected or malformed.
        AdaxTransportError: If the request fails at the network level.

    """
    payload = {"grant_type": "password", "username": client_id, "password": secret}

    _LOGGER.debug("Requesting token from ADAX API")
    response = await transport.async_post(
        AUTH_TOKEN_PATH, create_headers_grant(), data=payload
    )
    if not response.is_success:
        raise AdaxApiAuthError(response.text)

    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Malformed token response: {err}"
        raise AdaxApiAuthError(error_msg) from err

    token_state = extract_token_state(data, issued_at)
    _LOGGER.debug("Obtained token expiring in %d seconds", token_state.expires_in)
    return token_state


async def async_get_home(transport: RateLimitedTransport, token: str) -> Home:
    """Fetch the content of the home.

    Args:
        transport: Rate limited transport.
        token: Bearer token.

    Returns:
        Home snapshot.

    Raises:
        AdaxFetchError: If the response is an error or cannot be parsed.
        AdaxRateLimitExceeded: If the request stays rate limited.
        AdaxTransportError: If the request fails at the network level.

    """
    _LOGGER.debug("Fetching home content from ADAX API")
    response = await transport.async_get(CONTENT_PATH, create_headers(token))
    if is_http_error(response.status_code):
        error_msg = f"Request failed: {response.status_code}"
        raise AdaxFetchError(error_msg)

    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Malformed content response: {err}"
        raise AdaxFetchError(error_msg) from err

    home = extract_home(data)
    _LOGGER.debug("Retrieved %d rooms from ADAX API", len(home.rooms))
    return home


async def async_send_control(
    transport: RateLimitedTransport,
    token: str,
    overrides: Iterable[RoomOverride],
) -> httpx.Response:
    """Send every override in a single control request.

    The response body is opaque; callers judge the outcome by status only.

    Raises:
        AdaxTransportError: If the request fails at the network level.

    """
    payload = create_control_payload(overrides)

    _LOGGER.debug("Sending control request: %s", payload)
    response = await transport.async_post(
        CONTROL_PATH, create_headers(token), json=payload
    )
    _LOGGER.debug(
        "Control request answered with %s: %s", response.status_code, response.text
    )
    return response
