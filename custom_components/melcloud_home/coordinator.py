"""Coordinator for the MELCloud Home integration."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

import httpx
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .const import DOMAIN
from .exceptions import MelCloudHomeError, UnauthorizedError
from .models import MelCloudUnit

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .api import MelCloudClient
    from .settings import MelCloudHomeSettings

_LOGGER = logging.getLogger(__name__)


class MelCloudHomeCoordinator(DataUpdateCoordinator[list[MelCloudUnit]]):
    """Coordinator that polls the units of one MELCloud Home account."""

    def __init__(
        self,
        hass: HomeAssistant,
        client: MelCloudClient,
        config_entry: ConfigEntry,
        settings: MelCloudHomeSettings,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=settings.poll_interval),
        )
        self.client = client
        self.settings = settings

    async def _async_update_data(self) -> list[MelCloudUnit]:
        """Fetch every unit, re-authenticating once on session expiry."""
        try:
            units = await self._async_fetch_units()
        except UnauthorizedError as err:
            error_msg = f"Authentication error while polling units: {err}"
            raise UpdateFailed(error_msg) from err
        except MelCloudHomeError as err:
            error_msg = f"API error while polling units: {err}"
            raise UpdateFailed(error_msg) from err
        except httpx.HTTPError as err:
            error_msg = f"Connection error while polling units: {err}"
            raise UpdateFailed(error_msg) from err

        _LOGGER.debug("Polled %d units", len(units))
        return units

    async def _async_fetch_units(self) -> list[MelCloudUnit]:
        try:
            return await self.client.async_fetch_units()
        except UnauthorizedError:
            _LOGGER.warning("Session expired; re-authenticating")

        await self._async_reauth()
        return await self.client.async_fetch_units()

    async def _async_reauth(self) -> None:
        """Log in again with the configured credentials.

        Raises:
            ConfigEntryAuthFailed: If the credentials are rejected.
            MelCloudHomeError: If any other login stage fails.

        """
        _LOGGER.info(
            "Performing automatic re-authentication for %s", self.settings.email
        )
        try:
            await self.client.async_login(self.settings.email, self.settings.password)
        except UnauthorizedError as err:
            error_msg = f"Credentials rejected for {self.settings.email}: {err}"
            raise ConfigEntryAuthFailed(error_msg) from err
        _LOGGER.info("Successfully re-authenticated with MELCloud Home")
