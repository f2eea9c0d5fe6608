"""Local state stores for ADAX Cloud integration.

StateCache holds the last Home fetched from the backend, DesiredStateQueue
holds the changes requested by the user, and project_ideal_state combines the
two into the view served to entities.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from types import MappingProxyType
from typing import TYPE_CHECKING

from . import api
from .const import CACHE_TTL, JITTER_SLOTS
from .models import Home, RoomOverride

if TYPE_CHECKING:
    from .coordinator import AdaxTokenManager

_LOGGER = logging.getLogger(__name__)


def jitter_delay(now: datetime) -> float:
    """Return the delay in seconds applied before a snapshot fetch.

    Clients polling on the same cadence are spread over JITTER_SLOTS seconds
    based on the current second within the minute.
    """
    return float(now.second % JITTER_SLOTS)


class StateCache:
    """TTL bounded cache of the Home snapshot."""

    def __init__(
        self,
        transport: api.RateLimitedTransport,
        token_manager: AdaxTokenManager,
        ttl: timedelta = timedelta(seconds=CACHE_TTL),
    ) -> None:
        self._transport = transport
        self._token_manager = token_manager
        self._ttl = ttl
        self._home = Home()
        self._fetched_at: datetime | None = None

    @property
    def home(self) -> Home:
        """Return the last fetched Home, possibly stale."""
        return self._home

    @property
    def fetched_at(self) -> datetime | None:
        """Return when the Home was last replaced, None before the first fetch."""
        return self._fetched_at

    @property
    def age(self) -> timedelta | None:
        """Return the age of the cached Home."""
        if self._fetched_at is None:
            return None
        return datetime.now(UTC) - self._fetched_at

    def is_stale(self, max_age: timedelta) -> bool:
        """Return True if the cache never fetched or is at least max_age old."""
        age = self.age
        return age is None or age >= max_age

    async def async_refresh(self, *, force: bool = False) -> Home:
        """Refresh the snapshot unless it is younger than the TTL.

        A failed fetch keeps the stale snapshot and returns it.

        Raises:
            AdaxApiAuthError: If no token can be obtained.

        """
        if not force and not self.is_stale(self._ttl):
            _LOGGER.debug("Home cache still fresh, skipping fetch")
            return self._home

        delay = jitter_delay(datetime.now(UTC))
        if delay:
            await asyncio.sleep(delay)

        token = await self._token_manager.async_get_token()
        try:
            home = await api.async_get_home(self._transport, token)
        except api.AdaxRateLimitExceeded as err:
            _LOGGER.warning("Rate limited while fetching home, keeping cache: %s", err)
            return self._home
        except api.AdaxFetchError as err:
            _LOGGER.warning("Failed to read home content, keeping cache: %s", err)
            return self._home
        except api.AdaxTransportError as err:
            _LOGGER.warning("Connection error while fetching home: %s", err)
            return self._home

        self._home = home
        self._fetched_at = datetime.now(UTC)
        return home


class DesiredStateQueue:
    """Overrides requested by the user and the subset still awaiting a write.

    An override stays applied after the backend confirms it; the pending set
    only tracks which overrides still need to be sent.
    """

    def __init__(self) -> None:
        self._overrides: dict[int, RoomOverride] = {}
        self._pending: dict[int, None] = {}

    @property
    def overrides(self) -> Mapping[int, RoomOverride]:
        """Return a read-only view of all overrides keyed by room id."""
        return MappingProxyType(self._overrides)

    @property
    def pending(self) -> bool:
        """Return True if any override still has to be written."""
        return bool(self._pending)

    @property
    def pending_ids(self) -> tuple[int, ...]:
        """Return ids awaiting a write, oldest first."""
        return tuple(self._pending)

    def pending_overrides(self) -> tuple[RoomOverride, ...]:
        """Return the overrides awaiting a write, oldest first."""
        return tuple(self._overrides[room_id] for room_id in self._pending)

    def set_room(
        self,
        room_id: int,
        *,
        heating_enabled: bool | None = None,
        target_temperature: int | None = None,
    ) -> RoomOverride:
        """Replace the override for a room and mark it pending.

        Raises:
            ValueError: If neither field is given.

        """
        if heating_enabled is None and target_temperature is None:
            error_msg = f"Override for room {room_id} changes nothing"
            raise ValueError(error_msg)

        override = RoomOverride(
            id=room_id,
            heating_enabled=heating_enabled,
            target_temperature=target_temperature,
        )
        self._overrides[room_id] = override
        self._pending.pop(room_id, None)
        self._pending[room_id] = None
        _LOGGER.debug("Queued %s", override)
        return override

    def reconcile(self, latest_home: Home) -> None:
        """Drop pending entries the backend now reflects.

        An entry is confirmed when the room's target temperature equals the
        requested one, or its heating state when only that was requested.
        Entries for rooms missing from latest_home are dropped for good.
        """
        for room_id in list(self._pending):
            override = self._overrides[room_id]
            room = latest_home.get(room_id)
            if room is None:
                _LOGGER.debug("Room %s no longer reported, dropping override", room_id)
                del self._pending[room_id]
                del self._overrides[room_id]
            elif override.target_temperature is not None:
                if room.target_temperature == override.target_temperature:
                    del self._pending[room_id]
            elif room.heating_enabled == override.heating_enabled:
                del self._pending[room_id]

        if self._pending:
            _LOGGER.debug("Rooms still awaiting confirmation: %s", list(self._pending))


def project_ideal_state(home: Home, overrides: Mapping[int, RoomOverride]) -> Home:
    """Return the Home with every override applied.

    The inputs are never modified. Without overrides the same Home is
    returned.
    """
    if not overrides:
        return home
    return Home(
        rooms=tuple(
            room.with_override(overrides[room.id]) if room.id in overrides else room
            for room in home.rooms
        )
    )
