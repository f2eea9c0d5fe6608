"""Data models for ADAX Cloud integration."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class TokenState:
    """Represents a bearer token with its absolute expiry in epoch seconds."""

    access_token: str
    refresh_token: str | None
    expires_in: int
    expire_at: int

    def is_valid(self, now: int) -> bool:
        """Return True while the token has not reached its expiry."""
        return now < self.expire_at


@dataclass(frozen=True, slots=True)
class RoomOverride:
    """A requested partial state for one room.

    Only the writable fields of a room can be overridden; a field left as
    None is not part of the request.
    """

    id: int
    heating_enabled: bool | None = None
    target_temperature: int | None = None

    def as_payload(self) -> dict[str, Any]:
        """Render the override in the shape the control endpoint expects."""
        payload: dict[str, Any] = {"id": self.id}
        if self.heating_enabled is not None:
            payload["heatingEnabled"] = self.heating_enabled
        if self.target_temperature is not None:
            payload["targetTemperature"] = self.target_temperature
        return payload


@dataclass(frozen=True, slots=True)
class Room:
    """Represents one heater as reported by the ADAX API.

    Temperatures are in hundredths of a degree Celsius.
    """

    id: int
    name: str
    heating_enabled: bool
    temperature: int | None
    target_temperature: int | None

    def with_override(self, override: RoomOverride) -> Room:
        """Return a copy of the room with the override's fields applied."""
        changes: dict[str, Any] = {}
        if override.heating_enabled is not None:
            changes["heating_enabled"] = override.heating_enabled
        if override.target_temperature is not None:
            changes["target_temperature"] = override.target_temperature
        return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class Home:
    """Snapshot of every room, in the order the backend listed them."""

    rooms: tuple[Room, ...] = field(default_factory=tuple)

    @property
    def room_ids(self) -> set[int]:
        """Return the ids of all rooms in the snapshot."""
        return {room.id for room in self.rooms}

    def get(self, room_id: int) -> Room | None:
        """Return the room with the given id, if present."""
        for room in self.rooms:
            if room.id == room_id:
                return room
        return None
