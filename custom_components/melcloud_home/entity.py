"""Entity plumbing shared by the MELCloud Home platforms.

Every platform keeps its own :class:`UnitReconciler`. The coordinator hands
each successful poll to all of them; a platform only sees the units it can
render, so a unit that stops qualifying loses its entity like a unit that
disappeared from the cloud.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import httpx
from homeassistant.core import callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import entity_registry as er
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity import Entity

from .const import DOMAIN
from .exceptions import MelCloudHomeError
from .models import MelCloudUnit, UnitType
from .reconcile import UnitReconciler

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .api import MelCloudClient
    from .settings import MelCloudHomeSettings

_LOGGER = logging.getLogger(__name__)

MANUFACTURER = "Mitsubishi Electric"

EntityFactory = Callable[
    ["MelCloudClient", "MelCloudHomeSettings", str, MelCloudUnit],
    "MelCloudHomeEntity",
]
UnitFilter = Callable[["MelCloudHomeSettings", MelCloudUnit], bool]


class MelCloudHomeAccessoryLayer:
    """Create, bind and remove the entities of one platform."""

    def __init__(
        self,
        hass: HomeAssistant,
        entity_domain: str,
        factory: EntityFactory,
        client: MelCloudClient,
        settings: MelCloudHomeSettings,
        async_add_entities: AddEntitiesCallback,
    ) -> None:
        """Initialize the layer.

        Args:
            hass: Home Assistant instance.
            entity_domain: Platform the entities belong to.
            factory: Builds the entity for a unit.
            client: Cloud client handed to every entity.
            settings: Feature toggles handed to every entity.
            async_add_entities: Platform callback adding new entities.

        """
        self._hass = hass
        self._entity_domain = entity_domain
        self._factory = factory
        self._client = client
        self._settings = settings
        self._async_add_entities = async_add_entities

    def create_accessory(self, identity: str, unit: MelCloudUnit) -> MelCloudHomeEntity:
        """Add an entity for a newly discovered unit."""
        entity = self._factory(self._client, self._settings, identity, unit)
        self._async_add_entities([entity])
        return entity

    def bind_accessory(self, identity: str, unit: MelCloudUnit) -> MelCloudHomeEntity:
        """Re-attach an entity restored from the entity registry."""
        _LOGGER.debug(
            "Binding restored %s entity %s to unit %s",
            self._entity_domain,
            identity,
            unit.name,
        )
        entity = self._factory(self._client, self._settings, identity, unit)
        self._async_add_entities([entity])
        return entity

    def remove_accessory(self, identity: str) -> None:
        """Remove the registry entry of a unit that disappeared."""
        registry = er.async_get(self._hass)
        entity_id = registry.async_get_entity_id(self._entity_domain, DOMAIN, identity)
        if entity_id is None:
            _LOGGER.debug(
                "No registered %s entity for %s", self._entity_domain, identity
            )
            return
        registry.async_remove(entity_id)


async def async_setup_unit_platform(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
    entity_domain: str,
    factory: EntityFactory,
    unit_filter: UnitFilter | None = None,
) -> UnitReconciler:
    """Reconcile the entities of one platform with every successful poll.

    Identities already in the entity registry for this entry and platform
    are handed to the reconciler as known, so they are bound rather than
    created again, and removed if the cloud no longer reports them.

    Returns:
        The reconciler, also stored under ``reconcilers`` in the entry data.

    """
    entry_data = hass.data[DOMAIN][entry.entry_id]
    coordinator = entry_data["coordinator"]
    settings = entry_data["settings"]

    registry = er.async_get(hass)
    known = [
        registry_entry.unique_id
        for registry_entry in er.async_entries_for_config_entry(
            registry, entry.entry_id
        )
        if registry_entry.domain == entity_domain
    ]
    _LOGGER.debug("Restoring %d known %s entities", len(known), entity_domain)

    layer = MelCloudHomeAccessoryLayer(
        hass,
        entity_domain,
        factory,
        entry_data["client"],
        settings,
        async_add_entities,
    )
    reconciler = UnitReconciler(layer, known)
    entry_data.setdefault("reconcilers", {})[entity_domain] = reconciler

    def _units(units: Iterable[MelCloudUnit]) -> list[MelCloudUnit]:
        if unit_filter is None:
            return list(units)
        return [unit for unit in units if unit_filter(settings, unit)]

    @callback
    def _handle_coordinator_update() -> None:
        if not coordinator.last_update_success or coordinator.data is None:
            return
        result = reconciler.reconcile(_units(coordinator.data))
        _LOGGER.debug(
            "Reconciled %s entities: %d created, %d updated, %d removed",
            entity_domain,
            len(result.created),
            len(result.updated),
            len(result.removed),
        )

    _handle_coordinator_update()
    entry.async_on_unload(coordinator.async_add_listener(_handle_coordinator_update))
    return reconciler


class MelCloudHomeEntity(Entity):
    """Entity bound to one unit snapshot, updated by the reconciler."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    _unit_type: UnitType
    _model: str

    def __init__(
        self,
        client: MelCloudClient,
        settings: MelCloudHomeSettings,
        identity: str,
        unit: MelCloudUnit,
    ) -> None:
        """Initialize the entity.

        Args:
            client: Cloud client used to send commands.
            settings: Feature toggles for the entity.
            identity: Stable identity used as unique id.
            unit: Initial snapshot of the unit.

        """
        self._client = client
        self._settings = settings
        self._unit = unit
        self._attr_unique_id = identity
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, unit.id)},
            manufacturer=MANUFACTURER,
            model=self._model,
            name=unit.name,
        )
        self._apply_unit()

    @property
    def unit_type(self) -> UnitType:
        """Return the unit type this entity renders."""
        return self._unit_type

    @property
    def unit(self) -> MelCloudUnit:
        """Return the current unit snapshot."""
        return self._unit

    def update_unit(self, unit: MelCloudUnit) -> None:
        """Replace the snapshot with the one from the latest poll."""
        self._unit = unit
        self._apply_unit()
        self._async_write_state()

    def _apply_unit(self) -> None:
        raise NotImplementedError

    def _async_write_state(self) -> None:
        if self.hass is not None:
            self.async_write_ha_state()

    async def _async_command(self, command: Awaitable[Any], **changes: Any) -> None:
        """Send a command and apply ``changes`` to the snapshot on success.

        Raises:
            HomeAssistantError: If the cloud rejects the command.

        """
        try:
            await command
        except (MelCloudHomeError, httpx.HTTPError) as err:
            _LOGGER.warning("Command for %s failed: %s", self._unit.name, err)
            msg = f"Failed to send command to {self._unit.name}: {err}"
            raise HomeAssistantError(msg) from err

        self._unit = replace(self._unit, **changes)
        self._apply_unit()
        self._async_write_state()
