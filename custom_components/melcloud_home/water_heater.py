"""Hot water tank of MELCloud Home air-to-water units."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components.water_heater import (
    DOMAIN as WATER_HEATER_DOMAIN,
    STATE_HEAT_PUMP,
    STATE_HIGH_DEMAND,
    WaterHeaterEntity,
    WaterHeaterEntityFeature,
)
from homeassistant.const import ATTR_TEMPERATURE, STATE_OFF, UnitOfTemperature
from homeassistant.exceptions import HomeAssistantError

from .entity import MelCloudHomeEntity, async_setup_unit_platform
from .mapping import ATW_TANK_TEMPERATURE_RANGE, clamp
from .models import AtwUnit, MelCloudUnit

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .api import MelCloudClient
    from .settings import MelCloudHomeSettings

OPERATION_LIST = [STATE_HEAT_PUMP, STATE_HIGH_DEMAND]


def has_water_heater(settings: MelCloudHomeSettings, unit: MelCloudUnit) -> bool:
    """Return True for air-to-water units with an exposed hot water tank."""
    return (
        isinstance(unit, AtwUnit)
        and settings.enable_dhw
        and unit.capabilities.has_hot_water
    )


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up hot water entities and keep them reconciled with each poll."""
    await async_setup_unit_platform(
        hass,
        entry,
        async_add_entities,
        WATER_HEATER_DOMAIN,
        create_water_heater_entity,
        has_water_heater,
    )


def create_water_heater_entity(
    client: MelCloudClient,
    settings: MelCloudHomeSettings,
    identity: str,
    unit: MelCloudUnit,
) -> MelCloudHomeWaterHeaterEntity:
    """Return the hot water entity of an air-to-water unit."""
    return MelCloudHomeWaterHeaterEntity(client, settings, identity, unit)


class MelCloudHomeWaterHeaterEntity(MelCloudHomeEntity, WaterHeaterEntity):
    """Domestic hot water tank of an air-to-water heat pump.

    The ``high_demand`` operation forces a hot water cycle, the same switch
    the climate entity exposes as its ``boost`` preset.
    """

    _attr_name = "Hot water"
    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_min_temp, _attr_max_temp = ATW_TANK_TEMPERATURE_RANGE
    _attr_operation_list = OPERATION_LIST
    _attr_supported_features = (
        WaterHeaterEntityFeature.TARGET_TEMPERATURE
        | WaterHeaterEntityFeature.OPERATION_MODE
    )

    _unit_type = "atw"
    _model = "Air-to-water heat pump"
    _unit: AtwUnit

    def _apply_unit(self) -> None:
        unit = self._unit
        self._attr_current_temperature = unit.tank_water_temperature
        self._attr_target_temperature = unit.set_tank_water_temperature
        if not unit.power:
            self._attr_current_operation = STATE_OFF
        elif unit.forced_hot_water_mode:
            self._attr_current_operation = STATE_HIGH_DEMAND
        else:
            self._attr_current_operation = STATE_HEAT_PUMP

    async def async_set_temperature(self, **kwargs: Any) -> None:
        """Set the tank target temperature, clamped to 40-60 degrees."""
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return

        value = clamp(float(temperature), *ATW_TANK_TEMPERATURE_RANGE)
        await self._async_command(
            self._client.async_set_atw_tank_temperature(self._unit.id, value),
            set_tank_water_temperature=value,
        )

    async def async_set_operation_mode(self, operation_mode: str) -> None:
        """Switch forced hot water on for high demand, off otherwise."""
        if operation_mode not in OPERATION_LIST:
            msg = f"Unsupported operation mode for {self._unit.name}: {operation_mode}"
            raise HomeAssistantError(msg)

        forced_hot_water = operation_mode == STATE_HIGH_DEMAND
        if self._unit.forced_hot_water_mode == forced_hot_water:
            return
        await self._async_command(
            self._client.async_set_atw_forced_hot_water(
                self._unit.id, forced_hot_water
            ),
            forced_hot_water_mode=forced_hot_water,
        )
