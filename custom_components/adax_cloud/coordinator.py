"""Coordinator for ADAX Cloud integration."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import api
from .const import DEFAULT_MAX_POLLING_INTERVAL, DOMAIN, TICK_INTERVAL
from .models import Home
from .state import DesiredStateQueue, StateCache, project_ideal_state

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .models import Room, RoomOverride, TokenState

_LOGGER = logging.getLogger(__name__)


class AdaxTokenManager:
    """Hold the bearer token and grant a new one once it has expired."""

    def __init__(
        self,
        transport: api.RateLimitedTransport,
        client_id: str,
        secret: str,
    ) -> None:
        """Initialize the token manager."""
        self._transport = transport
        self._client_id = client_id
        self._secret = secret
        self._token: TokenState | None = None

    @property
    def token_state(self) -> TokenState | None:
        """Return the current token, if one was granted."""
        return self._token

    def invalidate(self) -> None:
        """Forget the current token so the next call performs a new grant."""
        self._token = None

    async def async_get_token(self) -> str:
        """Return a valid access token, requesting a new one when needed.

        Raises:
            AdaxApiAuthError: If the grant is rejected.
            AdaxTransportError: If the grant request fails at the network level.

        """
        now = int(datetime.now(UTC).timestamp())
        if self._token is not None and self._token.is_valid(now):
            return self._token.access_token

        _LOGGER.debug("No valid token, requesting a new one")
        self._token = await api.async_request_token(
            self._transport,
            self._client_id,
            self._secret,
            issued_at=now,
        )
        _LOGGER.info("Obtained new ADAX access token")
        return self._token.access_token


class AdaxCoordinator(DataUpdateCoordinator[Home]):
    """Coordinator that reconciles requested room changes with the backend.

    Every tick either flushes pending overrides in one batched write followed
    by a forced refresh, or refreshes the snapshot once it is older than the
    polling interval. A rejected write does not hold back that polling.
    Entities read through get_home, which overlays pending overrides on the
    cached snapshot.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry | None,
        transport: api.RateLimitedTransport,
        token_manager: AdaxTokenManager,
        max_polling_interval: int = DEFAULT_MAX_POLLING_INTERVAL,
    ) -> None:
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=TICK_INTERVAL),
            always_update=False,
        )
        self._transport = transport
        self._token_manager = token_manager
        self._max_polling_interval = timedelta(seconds=max_polling_interval)
        self._cache = StateCache(transport, token_manager)
        self._queue = DesiredStateQueue()
        self._tick_lock = asyncio.Lock()

    @property
    def cache(self) -> StateCache:
        """Return the snapshot cache."""
        return self._cache

    @property
    def queue(self) -> DesiredStateQueue:
        """Return the queue of requested changes."""
        return self._queue

    def discover(self) -> list[Room]:
        """Return the rooms of the last fetched snapshot."""
        return list(self._cache.home.rooms)

    def get_home(self) -> Home:
        """Return the snapshot with all requested changes applied."""
        return project_ideal_state(self._cache.home, self._queue.overrides)

    def get_room(self, room_id: int) -> Room | None:
        """Return one room of the ideal state."""
        return self.get_home().get(room_id)

    def set_room(
        self,
        room_id: int,
        *,
        heating_enabled: bool | None = None,
        target_temperature: int | None = None,
    ) -> RoomOverride:
        """Request a change for a room; it is written on the next tick."""
        override = self._queue.set_room(
            room_id,
            heating_enabled=heating_enabled,
            target_temperature=target_temperature,
        )
        self.async_update_listeners()
        return override

    def _poll_due(self) -> bool:
        """Return True once the snapshot is older than the polling interval."""
        age = self._cache.age
        return age is None or age > self._max_polling_interval

    async def _async_update_data(self) -> Home:
        if self._tick_lock.locked():
            _LOGGER.debug("Previous tick still running, skipping this one")
            return self._cache.home

        async with self._tick_lock:
            try:
                if self._queue.pending:
                    written = await self._async_flush()
                    if not written and self._poll_due():
                        await self._async_poll()
                elif self._poll_due():
                    await self._async_poll()
            except api.AdaxApiAuthError as err:
                error_msg = f"Authentication error: {err}"
                raise UpdateFailed(error_msg) from err
            except api.AdaxTransportError as err:
                error_msg = f"Connection error during token request: {err}"
                raise UpdateFailed(error_msg) from err

        if self._cache.fetched_at is None:
            error_msg = "No room data received from ADAX API yet"
            raise UpdateFailed(error_msg)

        return self._cache.home

    async def _async_poll(self) -> None:
        """Refresh the snapshot and prune the queue against it."""
        home = await self._cache.async_refresh(force=True)
        self._queue.reconcile(home)

    async def _async_flush(self) -> bool:
        """Write all pending overrides, then refresh and prune the queue.

        Returns:
            False if the write was not accepted and the queue is untouched.

        """
        token = await self._token_manager.async_get_token()
        overrides = self._queue.pending_overrides()

        _LOGGER.debug("Flushing %d pending room changes", len(overrides))
        try:
            response = await api.async_send_control(self._transport, token, overrides)
        except api.AdaxTransportError as err:
            _LOGGER.warning("Connection error while sending room changes: %s", err)
            return False

        if api.is_auth_error(response.status_code):
            _LOGGER.warning("Control request unauthorized, dropping cached token")
            self._token_manager.invalidate()
            return False
        if api.is_rate_limited(response.status_code):
            _LOGGER.warning("Control request still rate limited, retrying next tick")
            return False
        if api.is_http_error(response.status_code):
            _LOGGER.warning(
                "Control request failed with status %s, retrying next tick",
                response.status_code,
            )
            return False

        await self._async_poll()
        return True
