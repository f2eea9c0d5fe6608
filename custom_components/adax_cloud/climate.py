"""Climate entities for ADAX Cloud heaters.

This module exposes each ADAX room as a Home Assistant climate entity. All
reads go through the coordinator's ideal state, so a requested change is
visible immediately, before the backend confirms it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.climate import (
    ClimateEntity,
    ClimateEntityFeature,
    HVACAction,
    HVACMode,
)
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature
from homeassistant.helpers.device_registry import DeviceInfo

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import AdaxCoordinator
    from .models import Room

from .const import DOMAIN, MANUFACTURER, TEMP_MAX, TEMP_MIN, TEMP_SCALE, TEMP_STEP

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up climate entities for ADAX rooms."""
    entry_data = hass.data[DOMAIN][entry.entry_id]
    coordinator = entry_data["coordinator"]

    entities = [AdaxClimateEntity(coordinator, room) for room in entry_data["rooms"]]
    async_add_entities(entities)


def to_celsius(value: int) -> float:
    """Convert hundredths of a degree to degrees Celsius."""
    return value / TEMP_SCALE


def to_hundredths(value: float) -> int:
    """Convert degrees Celsius to hundredths of a degree."""
    return round(value * TEMP_SCALE)


def round_to_step(value: float, step: float = TEMP_STEP) -> float:
    """Round a temperature to the nearest step."""
    return round(round(value / step) * step, 1)


class AdaxClimateEntity(ClimateEntity):
    """Climate entity for one ADAX room."""

    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_target_temperature_step = TEMP_STEP
    _attr_min_temp = TEMP_MIN
    _attr_max_temp = TEMP_MAX
    _attr_hvac_modes = [HVACMode.HEAT, HVACMode.OFF]
    _attr_supported_features = (
        ClimateEntityFeature.TARGET_TEMPERATURE
        | ClimateEntityFeature.TURN_OFF
        | ClimateEntityFeature.TURN_ON
    )
    _attr_has_entity_name = True
    _attr_name = None
    _attr_should_poll = False

    def __init__(self, coordinator: AdaxCoordinator, room: Room) -> None:
        """Initialize the ADAX climate entity.

        Args:
            coordinator: Coordinator owning the room state.
            room: Room as discovered at setup.

        """
        self._coordinator = coordinator
        self._room_id = room.id
        self._last_room = room
        self._coordinator_listener_unsub = None
        self._attr_unique_id = f"{DOMAIN}_{room.id}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, str(room.id))},
            manufacturer=MANUFACTURER,
            name=room.name,
        )

    @property
    def room(self) -> Room:
        """Return the ideal state of the room, or the last one seen."""
        room = self._coordinator.get_room(self._room_id)
        if room is not None:
            self._last_room = room
        return self._last_room

    @property
    def available(self) -> bool:
        """Return True while the room is part of the cached home."""
        return self._coordinator.get_room(self._room_id) is not None

    @property
    def hvac_mode(self) -> HVACMode:
        """Return HEAT when heating is enabled, OFF otherwise."""
        return HVACMode.HEAT if self.room.heating_enabled else HVACMode.OFF

    @property
    def hvac_action(self) -> HVACAction:
        """Return HEATING while the room is below its target."""
        room = self.room
        if not room.heating_enabled:
            return HVACAction.OFF
        if (
            room.target_temperature is not None
            and room.temperature is not None
            and room.target_temperature > room.temperature
        ):
            return HVACAction.HEATING
        return HVACAction.IDLE

    @property
    def current_temperature(self) -> float:
        """Return the measured temperature, rounded to 0.1 degree."""
        temperature = self.room.temperature
        if not temperature:
            return TEMP_MIN
        return round(to_celsius(temperature), 1)

    @property
    def target_temperature(self) -> float:
        """Return the target temperature, rounded to the step."""
        target = self.room.target_temperature
        if target is None:
            return TEMP_MIN
        return round_to_step(to_celsius(target))

    async def async_added_to_hass(self) -> None:
        """Subscribe to coordinator updates."""
        await super().async_added_to_hass()
        self._coordinator_listener_unsub = self._coordinator.async_add_listener(
            self._handle_coordinator_update
        )

    async def async_will_remove_from_hass(self) -> None:
        """Handle entity being removed from Home Assistant."""
        await super().async_will_remove_from_hass()

        if self._coordinator_listener_unsub is not None:
            self._coordinator_listener_unsub()
            self._coordinator_listener_unsub = None

    def _handle_coordinator_update(self) -> None:
        """Handle updated data from the coordinator."""
        self.async_write_ha_state()

    async def async_set_temperature(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Set the target temperature and enable heating.

        Args:
            **kwargs: Keyword arguments containing temperature data.

        """
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return

        _LOGGER.debug("Setting %s target temperature to %s", self._room_id, temperature)
        self._coordinator.set_room(
            self._room_id,
            heating_enabled=True,
            target_temperature=to_hundredths(temperature),
        )

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Set the HVAC mode.

        Turning heating on targets the measured temperature, never below the
        minimum.

        Args:
            hvac_mode: The HVAC mode to set.

        """
        if hvac_mode == HVACMode.OFF:
            self._coordinator.set_room(self._room_id, heating_enabled=False)
            return

        if hvac_mode != HVACMode.HEAT:
            _LOGGER.warning("Unsupported HVAC mode for %s: %s", self._room_id, hvac_mode)
            return

        minimum = to_hundredths(TEMP_MIN)
        measured = self.room.temperature or minimum
        self._coordinator.set_room(
            self._room_id,
            heating_enabled=True,
            target_temperature=max(measured, minimum),
        )

    async def async_turn_on(self) -> None:
        """Turn heating on."""
        await self.async_set_hvac_mode(HVACMode.HEAT)

    async def async_turn_off(self) -> None:
        """Turn heating off."""
        await self.async_set_hvac_mode(HVACMode.OFF)
