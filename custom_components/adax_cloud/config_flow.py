"""
Configuration flow for ADAX Cloud integration.

This module handles the setup and configuration of the ADAX Cloud
integration through Home Assistant's config flow system.
"""

import logging
from datetime import UTC, datetime
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import ConfigFlow, ConfigFlowResult
from homeassistant.const import CONF_CLIENT_ID, CONF_CLIENT_SECRET
from homeassistant.helpers.httpx_client import get_async_client

from . import api
from .const import (
    CONF_MAX_POLLING_INTERVAL,
    DEFAULT_MAX_POLLING_INTERVAL,
    DOMAIN,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_UNKNOWN,
    MIN_POLLING_INTERVAL,
)

_LOGGER = logging.getLogger(__name__)

DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_CLIENT_ID): str,
        vol.Required(CONF_CLIENT_SECRET): str,
        vol.Optional(
            CONF_MAX_POLLING_INTERVAL, default=DEFAULT_MAX_POLLING_INTERVAL
        ): vol.All(vol.Coerce(int), vol.Range(min=MIN_POLLING_INTERVAL)),
    }
)


class AdaxConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for ADAX Cloud integration."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing the API credentials.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            client_id = str(user_input[CONF_CLIENT_ID]).strip()
            secret = user_input[CONF_CLIENT_SECRET]

            try:
                transport = api.RateLimitedTransport(get_async_client(self.hass))
                await api.async_request_token(
                    transport,
                    client_id,
                    secret,
                    issued_at=int(datetime.now(UTC).timestamp()),
                )
                _LOGGER.info("Successfully authenticated with ADAX API")

            except api.AdaxApiAuthError as err:
                _LOGGER.warning(
                    "Authentication failed (%s): %s", ERROR_INVALID_AUTH, err
                )
                errors["base"] = ERROR_INVALID_AUTH
            except api.AdaxTransportError:
                _LOGGER.exception("Connection error (%s)", ERROR_CANNOT_CONNECT)
                errors["base"] = ERROR_CANNOT_CONNECT
            except Exception:
                _LOGGER.exception(
                    "Unexpected error during authentication (%s)",
                    ERROR_UNKNOWN,
                )
                errors["base"] = ERROR_UNKNOWN

            else:
                await self.async_set_unique_id(client_id)
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title=f"ADAX ({client_id})",
                    data={
                        CONF_CLIENT_ID: client_id,
                        CONF_CLIENT_SECRET: secret,
                        CONF_MAX_POLLING_INTERVAL: user_input.get(
                            CONF_MAX_POLLING_INTERVAL, DEFAULT_MAX_POLLING_INTERVAL
                        ),
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=DATA_SCHEMA,
            errors=errors,
        )
