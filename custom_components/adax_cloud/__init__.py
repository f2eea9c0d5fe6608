from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_CLIENT_ID, CONF_CLIENT_SECRET, Platform
from homeassistant.core import HomeAssistant

from . import api
from .api import create_session_client
from .const import CONF_MAX_POLLING_INTERVAL, DEFAULT_MAX_POLLING_INTERVAL, DOMAIN
from .coordinator import AdaxCoordinator, AdaxTokenManager

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.CLIMATE]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up ADAX Cloud integration for entry %s", entry.entry_id)

    if CONF_CLIENT_ID not in entry.data or CONF_CLIENT_SECRET not in entry.data:
        _LOGGER.error("Missing credentials in configuration for entry %s", entry.entry_id)
        return False

    session = create_session_client(hass)
    transport = api.RateLimitedTransport(session)
    token_manager = AdaxTokenManager(
        transport,
        entry.data[CONF_CLIENT_ID],
        entry.data[CONF_CLIENT_SECRET],
    )
    coordinator = AdaxCoordinator(
        hass,
        entry,
        transport,
        token_manager,
        entry.data.get(CONF_MAX_POLLING_INTERVAL, DEFAULT_MAX_POLLING_INTERVAL),
    )

    await coordinator.async_config_entry_first_refresh()
    rooms = coordinator.discover()
    _LOGGER.info("Discovered %d ADAX rooms", len(rooms))

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "session": session,
        "coordinator": coordinator,
        "rooms": rooms,
    }

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    _LOGGER.info("Successfully setup ADAX Cloud integration for entry %s", entry.entry_id)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading ADAX Cloud integration for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        if DOMAIN in hass.data and entry.entry_id in hass.data[DOMAIN]:
            hass.data[DOMAIN].pop(entry.entry_id)
            _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
        _LOGGER.info(
            "Successfully unloaded ADAX Cloud integration for entry %s",
            entry.entry_id,
        )
    else:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)

    return unload_ok
