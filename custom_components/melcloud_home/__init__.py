"""The MELCloud Home integration."""

from __future__ import annotations

import logging

import httpx
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady

from .api import MelCloudClient
from .const import DOMAIN
from .coordinator import MelCloudHomeCoordinator
from .exceptions import MelCloudHomeError, UnauthorizedError
from .pacer import RequestPacer
from .settings import settings_from_entry
from .transport import PacedHttpClient, create_session_client

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.CLIMATE, Platform.WATER_HEATER]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up MELCloud Home integration for entry %s", entry.entry_id)

    settings = settings_from_entry(entry.data, entry.options)
    session = create_session_client(hass)
    pacer = RequestPacer(settings.min_request_interval)
    client = MelCloudClient(PacedHttpClient(session, pacer))

    try:
        await client.async_login(settings.email, settings.password)
    except UnauthorizedError as err:
        await pacer.async_close()
        error_msg = f"Authentication failed for entry {entry.entry_id}: {err}"
        raise ConfigEntryAuthFailed(error_msg) from err
    except (MelCloudHomeError, httpx.HTTPError) as err:
        await pacer.async_close()
        error_msg = f"Unable to log in for entry {entry.entry_id}: {err}"
        raise ConfigEntryNotReady(error_msg) from err

    coordinator = MelCloudHomeCoordinator(hass, client, entry, settings)
    try:
        await coordinator.async_config_entry_first_refresh()
    except (ConfigEntryAuthFailed, ConfigEntryNotReady):
        await pacer.async_close()
        raise

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "session": session,
        "pacer": pacer,
        "client": client,
        "coordinator": coordinator,
        "settings": settings,
    }
    _LOGGER.debug(
        "Stored data for entry %s: %d units", entry.entry_id, len(coordinator.data)
    )

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    _LOGGER.info(
        "Successfully setup MELCloud Home integration for entry %s", entry.entry_id
    )
    return True


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options changed."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading MELCloud Home integration for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)
        return False

    entry_data = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if entry_data is not None:
        await entry_data["pacer"].async_close()
        _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)

    _LOGGER.info(
        "Successfully unloaded MELCloud Home integration for entry %s", entry.entry_id
    )
    return True
