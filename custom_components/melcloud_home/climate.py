"""Climate entities for MELCloud Home units.

Entities are created and removed by :class:`UnitReconciler` on every
successful poll. Each entity keeps the latest unit snapshot and renders it
into Home Assistant climate attributes; commands go straight to the cloud
and are applied optimistically until the next poll replaces the snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components.climate import (
    DOMAIN as CLIMATE_DOMAIN,
    ClimateEntity,
    ClimateEntityFeature,
    HVACAction,
    HVACMode,
)
from homeassistant.components.climate.const import (
    ATTR_HVAC_MODE,
    FAN_AUTO,
    PRESET_BOOST,
    PRESET_NONE,
    SWING_OFF,
    SWING_ON,
)
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature
from homeassistant.exceptions import HomeAssistantError

from .const import (
    ATA_FAN_MODE_MAP,
    ATA_FAN_MODE_REVERSE_MAP,
    ATA_HVAC_MODE_MAP,
    ATA_HVAC_MODE_REVERSE_MAP,
    ATA_SWING_MODE_MAP,
    ATW_COOL_MODE,
    ATW_HEAT_MODE,
    PRESET_STANDBY,
)
from .entity import MelCloudHomeEntity, async_setup_unit_platform
from .mapping import (
    ATA_FAN_SPEEDS,
    ATA_OPERATION_MODES,
    ATW_COOL_MODES,
    ATW_HEAT_MODES,
    ATW_ZONE_TEMPERATURE_RANGE,
    clamp,
    get_ata_temperature_range,
)
from .models import AtaUnit, AtwUnit, MelCloudUnit

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .api import MelCloudClient
    from .settings import MelCloudHomeSettings

ATA_HVAC_ACTION_MAP = {
    "Heat": HVACAction.HEATING,
    "Cool": HVACAction.COOLING,
    "Dry": HVACAction.DRYING,
    "Fan": HVACAction.FAN,
}

ATW_IDLE_STATUSES = ("Stop", "HotWater")

# Speeds above the named ones have no word form on the wire.
MAX_FAN_SPEEDS = len(ATA_FAN_SPEEDS) - 1


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up climate entities and keep them reconciled with each poll."""
    await async_setup_unit_platform(
        hass, entry, async_add_entities, CLIMATE_DOMAIN, create_climate_entity
    )


def create_climate_entity(
    client: MelCloudClient,
    settings: MelCloudHomeSettings,
    identity: str,
    unit: MelCloudUnit,
) -> MelCloudHomeClimateEntity:
    """Return the climate entity matching the unit type."""
    if isinstance(unit, AtwUnit):
        return MelCloudHomeAtwClimateEntity(client, settings, identity, unit)
    return MelCloudHomeAtaClimateEntity(client, settings, identity, unit)


class MelCloudHomeClimateEntity(MelCloudHomeEntity, ClimateEntity):
    """Shared attributes of MELCloud Home climate entities."""

    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_name = None


class MelCloudHomeAtaClimateEntity(MelCloudHomeClimateEntity):
    """Air-to-air unit rendered as a climate entity."""

    _unit_type = "ata"
    _model = "Air-to-air unit"
    _unit: AtaUnit

    def _apply_unit(self) -> None:
        unit = self._unit
        caps = unit.capabilities
        settings = self._settings

        hvac_modes = [HVACMode.OFF]
        availability = (
            caps.has_heat_operation_mode,
            caps.has_cool_operation_mode,
            caps.has_auto_operation_mode,
            caps.has_dry_operation_mode,
            True,
        )
        for mode, available in zip(ATA_OPERATION_MODES, availability, strict=True):
            if available:
                hvac_modes.append(ATA_HVAC_MODE_MAP[mode])
        self._attr_hvac_modes = hvac_modes

        if not unit.power:
            self._attr_hvac_mode = HVACMode.OFF
            self._attr_hvac_action = HVACAction.OFF
        else:
            self._attr_hvac_mode = ATA_HVAC_MODE_MAP.get(unit.operation_mode)
            self._attr_hvac_action = ATA_HVAC_ACTION_MAP.get(
                unit.operation_mode, HVACAction.IDLE
            )

        self._attr_current_temperature = unit.room_temperature
        self._attr_target_temperature = unit.set_temperature
        self._attr_min_temp, self._attr_max_temp = get_ata_temperature_range(
            unit.operation_mode, caps
        )
        self._attr_target_temperature_step = (
            0.5 if caps.has_half_degree_increments else 1.0
        )

        features = (
            ClimateEntityFeature.TARGET_TEMPERATURE
            | ClimateEntityFeature.TURN_ON
            | ClimateEntityFeature.TURN_OFF
        )

        fan_speeds = min(caps.number_of_fan_speeds, MAX_FAN_SPEEDS)
        if settings.enable_fan and fan_speeds > 0:
            fan_modes = [FAN_AUTO] if caps.has_automatic_fan_speed else []
            fan_modes.extend(str(speed) for speed in range(1, fan_speeds + 1))
            self._attr_fan_modes = fan_modes
            self._attr_fan_mode = ATA_FAN_MODE_REVERSE_MAP.get(unit.set_fan_speed)
            features |= ClimateEntityFeature.FAN_MODE
        else:
            self._attr_fan_modes = None
            self._attr_fan_mode = None

        if settings.enable_swing and caps.has_swing:
            self._attr_swing_modes = [SWING_OFF, SWING_ON]
            self._attr_swing_mode = (
                SWING_ON if unit.vane_vertical_direction == "Swing" else SWING_OFF
            )
            features |= ClimateEntityFeature.SWING_MODE
        else:
            self._attr_swing_modes = None
            self._attr_swing_mode = None

        if settings.enable_standby and caps.has_standby:
            self._attr_preset_modes = [PRESET_NONE, PRESET_STANDBY]
            self._attr_preset_mode = (
                PRESET_STANDBY if unit.in_standby_mode else PRESET_NONE
            )
            features |= ClimateEntityFeature.PRESET_MODE
        else:
            self._attr_preset_modes = None
            self._attr_preset_mode = None

        self._attr_supported_features = features
        self._attr_extra_state_attributes = {
            "vane_vertical_direction": unit.vane_vertical_direction,
            "vane_horizontal_direction": unit.vane_horizontal_direction,
        }

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Set the HVAC mode, switching the unit on when needed."""
        if hvac_mode == HVACMode.OFF:
            await self.async_turn_off()
            return

        mode = ATA_HVAC_MODE_REVERSE_MAP.get(hvac_mode)
        if mode is None:
            msg = f"Unsupported HVAC mode for {self._unit.name}: {hvac_mode}"
            raise HomeAssistantError(msg)

        if not self._unit.power:
            await self.async_turn_on()
        if self._unit.operation_mode != mode:
            await self._async_command(
                self._client.async_set_ata_mode(self._unit.id, mode),
                operation_mode=mode,
            )

    async def async_set_temperature(self, **kwargs: Any) -> None:
        """Set the target temperature, clamped to the current mode's range."""
        if (hvac_mode := kwargs.get(ATTR_HVAC_MODE)) is not None:
            await self.async_set_hvac_mode(hvac_mode)

        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return

        minimum, maximum = get_ata_temperature_range(
            self._unit.operation_mode, self._unit.capabilities
        )
        value = clamp(float(temperature), minimum, maximum)
        await self._async_command(
            self._client.async_set_ata_temperature(self._unit.id, value),
            set_temperature=value,
        )

    async def async_set_fan_mode(self, fan_mode: str) -> None:
        """Set the fan speed."""
        fan_speed = ATA_FAN_MODE_MAP.get(fan_mode)
        if fan_speed is None:
            msg = f"Unsupported fan mode for {self._unit.name}: {fan_mode}"
            raise HomeAssistantError(msg)
        await self._async_command(
            self._client.async_set_ata_fan_speed(self._unit.id, fan_speed),
            set_fan_speed=fan_speed,
        )

    async def async_set_swing_mode(self, swing_mode: str) -> None:
        """Switch the vertical vane between swinging and automatic."""
        direction = ATA_SWING_MODE_MAP.get(swing_mode)
        if direction is None:
            msg = f"Unsupported swing mode for {self._unit.name}: {swing_mode}"
            raise HomeAssistantError(msg)
        await self._async_command(
            self._client.async_set_ata_vane_vertical(self._unit.id, direction),
            vane_vertical_direction=direction,
        )

    async def async_set_preset_mode(self, preset_mode: str) -> None:
        """Enter or leave standby."""
        standby = preset_mode == PRESET_STANDBY
        await self._async_command(
            self._client.async_set_ata_standby(self._unit.id, standby),
            in_standby_mode=standby,
        )

    async def async_turn_on(self) -> None:
        """Turn the unit on."""
        await self._async_command(
            self._client.async_set_ata_power(self._unit.id, True),
            power=True,
        )

    async def async_turn_off(self) -> None:
        """Turn the unit off."""
        await self._async_command(
            self._client.async_set_ata_power(self._unit.id, False),
            power=False,
        )


class MelCloudHomeAtwClimateEntity(MelCloudHomeClimateEntity):
    """Air-to-water heat pump zone 1 rendered as a climate entity.

    The hot water tank is exposed through state attributes and the
    ``boost`` preset, which forces a hot water cycle.
    """

    _unit_type = "atw"
    _model = "Air-to-water heat pump"
    _unit: AtwUnit

    def _apply_unit(self) -> None:
        unit = self._unit
        caps = unit.capabilities
        settings = self._settings

        hvac_modes = [HVACMode.OFF, HVACMode.HEAT]
        if caps.has_cooling_mode:
            hvac_modes.append(HVACMode.COOL)
        self._attr_hvac_modes = hvac_modes

        if not unit.power:
            self._attr_hvac_mode = HVACMode.OFF
        elif unit.operation_mode_zone1 in ATW_COOL_MODES:
            self._attr_hvac_mode = HVACMode.COOL
        else:
            self._attr_hvac_mode = HVACMode.HEAT
        self._attr_hvac_action = self._hvac_action_from_status(unit)

        self._attr_current_temperature = unit.room_temperature_zone1
        self._attr_target_temperature = unit.set_temperature_zone1
        self._attr_min_temp, self._attr_max_temp = ATW_ZONE_TEMPERATURE_RANGE
        self._attr_target_temperature_step = 0.5 if caps.has_half_degrees else 1.0

        features = (
            ClimateEntityFeature.TARGET_TEMPERATURE
            | ClimateEntityFeature.TURN_ON
            | ClimateEntityFeature.TURN_OFF
        )

        preset_modes = [PRESET_NONE]
        if settings.enable_standby and caps.has_standby:
            preset_modes.append(PRESET_STANDBY)
        if settings.enable_dhw and caps.has_hot_water:
            preset_modes.append(PRESET_BOOST)
        if len(preset_modes) > 1:
            self._attr_preset_modes = preset_modes
            if unit.in_standby_mode and PRESET_STANDBY in preset_modes:
                self._attr_preset_mode = PRESET_STANDBY
            elif unit.forced_hot_water_mode and PRESET_BOOST in preset_modes:
                self._attr_preset_mode = PRESET_BOOST
            else:
                self._attr_preset_mode = PRESET_NONE
            features |= ClimateEntityFeature.PRESET_MODE
        else:
            self._attr_preset_modes = None
            self._attr_preset_mode = None

        self._attr_supported_features = features
        self._attr_extra_state_attributes = {
            "operation_status": unit.operation_status,
            "operation_mode_zone1": unit.operation_mode_zone1,
            "tank_water_temperature": unit.tank_water_temperature,
            "set_tank_water_temperature": unit.set_tank_water_temperature,
            "forced_hot_water_mode": unit.forced_hot_water_mode,
        }

    @staticmethod
    def _hvac_action_from_status(unit: AtwUnit) -> HVACAction:
        if not unit.power:
            return HVACAction.OFF
        status = unit.operation_status
        if status is None or status in ATW_IDLE_STATUSES:
            return HVACAction.IDLE
        if status in ATW_COOL_MODES:
            return HVACAction.COOLING
        return HVACAction.HEATING

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Set the zone 1 HVAC mode, switching the unit on when needed."""
        if hvac_mode == HVACMode.OFF:
            await self.async_turn_off()
            return

        if hvac_mode == HVACMode.COOL:
            if not self._unit.capabilities.has_cooling_mode:
                msg = f"{self._unit.name} does not support cooling"
                raise HomeAssistantError(msg)
            mode, family = ATW_COOL_MODE, ATW_COOL_MODES
        elif hvac_mode == HVACMode.HEAT:
            mode, family = ATW_HEAT_MODE, ATW_HEAT_MODES
        else:
            msg = f"Unsupported HVAC mode for {self._unit.name}: {hvac_mode}"
            raise HomeAssistantError(msg)

        if not self._unit.power:
            await self.async_turn_on()
        # Keep flow or curve control when it already matches the family.
        if self._unit.operation_mode_zone1 not in family:
            await self._async_command(
                self._client.async_set_atw_mode(self._unit.id, mode),
                operation_mode_zone1=mode,
            )

    async def async_set_temperature(self, **kwargs: Any) -> None:
        """Set the zone 1 target temperature."""
        if (hvac_mode := kwargs.get(ATTR_HVAC_MODE)) is not None:
            await self.async_set_hvac_mode(hvac_mode)

        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return

        value = clamp(float(temperature), *ATW_ZONE_TEMPERATURE_RANGE)
        await self._async_command(
            self._client.async_set_atw_zone_temperature(self._unit.id, value),
            set_temperature_zone1=value,
        )

    async def async_set_preset_mode(self, preset_mode: str) -> None:
        """Switch between normal operation, standby and forced hot water."""
        unit = self._unit
        standby = preset_mode == PRESET_STANDBY
        forced_hot_water = preset_mode == PRESET_BOOST

        if unit.in_standby_mode != standby:
            await self._async_command(
                self._client.async_set_atw_standby(unit.id, standby),
                in_standby_mode=standby,
            )
        if unit.forced_hot_water_mode != forced_hot_water:
            await self._async_command(
                self._client.async_set_atw_forced_hot_water(unit.id, forced_hot_water),
                forced_hot_water_mode=forced_hot_water,
            )

    async def async_turn_on(self) -> None:
        """Turn the heat pump on."""
        await self._async_command(
            self._client.async_set_atw_power(self._unit.id, True),
            power=True,
        )

    async def async_turn_off(self) -> None:
        """Turn the heat pump off."""
        await self._async_command(
            self._client.async_set_atw_power(self._unit.id, False),
            power=False,
        )
