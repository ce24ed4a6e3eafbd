"""
Configuration flow for MELCloud Home integration.

This module handles the setup and configuration of the MELCloud Home
integration through Home Assistant's config flow system.
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx
import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_EMAIL, CONF_PASSWORD
from homeassistant.core import HomeAssistant, callback

from .api import MelCloudClient
from .const import (
    CONF_ENABLE_DHW,
    CONF_ENABLE_FAN,
    CONF_ENABLE_STANDBY,
    CONF_ENABLE_SWING,
    CONF_MIN_REQUEST_INTERVAL,
    CONF_POLL_INTERVAL,
    DOMAIN,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN,
    MIN_POLL_INTERVAL,
)
from .exceptions import MelCloudHomeError, UnauthorizedError
from .pacer import RequestPacer
from .settings import settings_from_entry
from .transport import PacedHttpClient, create_session_client

_LOGGER = logging.getLogger(__name__)


async def async_validate_credentials(
    hass: HomeAssistant, email: str, password: str
) -> None:
    """
    Run the full login once with a throwaway session.

    Raises:
        UnauthorizedError: If the credentials are rejected.
        MelCloudHomeError: If any login stage fails.
        httpx.HTTPError: If the cloud cannot be reached.

    """
    session = create_session_client(hass)
    pacer = RequestPacer()
    try:
        client = MelCloudClient(PacedHttpClient(session, pacer))
        await client.async_login(email, password)
    finally:
        await pacer.async_close()
        await session.aclose()


def build_options_schema(options: dict[str, Any]) -> vol.Schema:
    """
    Build the options schema, defaulting to the current settings.

    Args:
        options: Current options of the config entry.

    Returns:
        Schema for the options form.

    """
    settings = settings_from_entry({CONF_EMAIL: "", CONF_PASSWORD: ""}, options)
    return vol.Schema(
        {
            vol.Optional(
                CONF_POLL_INTERVAL, default=int(settings.poll_interval)
            ): vol.All(vol.Coerce(int), vol.Range(min=MIN_POLL_INTERVAL)),
            vol.Optional(
                CONF_MIN_REQUEST_INTERVAL, default=settings.min_request_interval
            ): vol.All(vol.Coerce(float), vol.Range(min=0)),
            vol.Optional(CONF_ENABLE_FAN, default=settings.enable_fan): bool,
            vol.Optional(CONF_ENABLE_SWING, default=settings.enable_swing): bool,
            vol.Optional(CONF_ENABLE_STANDBY, default=settings.enable_standby): bool,
            vol.Optional(CONF_ENABLE_DHW, default=settings.enable_dhw): bool,
        }
    )


class MelCloudHomeConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for MELCloud Home integration."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Return the options flow handler."""
        return MelCloudHomeOptionsFlow()

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing email and password.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            email = user_input[CONF_EMAIL]
            password = user_input[CONF_PASSWORD]

            error = await self._async_try_login(email, password)
            if error is not None:
                errors["base"] = error
            else:
                await self.async_set_unique_id(email.lower())
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title=f"MELCloud Home ({email})",
                    data={
                        CONF_EMAIL: email,
                        CONF_PASSWORD: password,
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_EMAIL): str,
                    vol.Required(CONF_PASSWORD): str,
                }
            ),
            errors=errors,
        )

    async def async_step_reauth(
        self, entry_data: Mapping[str, Any]
    ) -> ConfigFlowResult:
        """Start re-authentication after the stored credentials were rejected."""
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Ask for a new password and reload the entry with it."""
        errors: dict[str, str] = {}
        reauth_entry = self._get_reauth_entry()
        email = reauth_entry.data[CONF_EMAIL]

        if user_input is not None:
            password = user_input[CONF_PASSWORD]
            error = await self._async_try_login(email, password)
            if error is not None:
                errors["base"] = error
            else:
                return self.async_update_reload_and_abort(
                    reauth_entry, data_updates={CONF_PASSWORD: password}
                )

        return self.async_show_form(
            step_id="reauth_confirm",
            data_schema=vol.Schema({vol.Required(CONF_PASSWORD): str}),
            description_placeholders={"email": email},
            errors=errors,
        )

    async def _async_try_login(self, email: str, password: str) -> str | None:
        """
        Validate credentials and map failures to form errors.

        Returns:
            None on success, otherwise the error key for the form.

        """
        try:
            await async_validate_credentials(self.hass, email, password)
        except UnauthorizedError as err:
            _LOGGER.warning("Authentication failed (%s): %s", ERROR_INVALID_AUTH, err)
            return ERROR_INVALID_AUTH
        except httpx.ConnectError:
            _LOGGER.exception("Connection error (%s)", ERROR_CANNOT_CONNECT)
            return ERROR_CANNOT_CONNECT
        except httpx.TimeoutException:
            _LOGGER.exception("Timeout error (%s)", ERROR_TIMEOUT)
            return ERROR_TIMEOUT
        except MelCloudHomeError:
            _LOGGER.exception("API client error (%s)", ERROR_API_ERROR)
            return ERROR_API_ERROR
        except Exception:
            _LOGGER.exception(
                "Unexpected error during authentication (%s)",
                ERROR_UNKNOWN,
            )
            return ERROR_UNKNOWN

        _LOGGER.info("Successfully authenticated with MELCloud Home")
        return None


class MelCloudHomeOptionsFlow(OptionsFlow):
    """Handle polling and exposure options."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show or store the options."""
        if user_input is not None:
            return self.async_create_entry(data=user_input)

        return self.async_show_form(
            step_id="init",
            data_schema=build_options_schema(dict(self.config_entry.options)),
        )
