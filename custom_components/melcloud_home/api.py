"""API client for the MELCloud Home cloud.

This module turns the loosely typed account context into typed units and
serializes the full-envelope update commands the cloud expects.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import fields
from typing import TYPE_CHECKING, Any, TypeVar

from .auth import MelCloudAuth
from .const import (
    API_HEADERS,
    ATA_UNIT_PATH_FMT,
    ATW_UNIT_PATH_FMT,
    BASE_URL,
    USER_CONTEXT_URL,
)
from .exceptions import HTTP_UNAUTHORIZED, ApiError, UnauthorizedError
from .mapping import (
    ATA_DEFAULT_CAPABILITIES,
    ATW_DEFAULT_CAPABILITIES,
    ATW_TANK_TEMPERATURE_RANGE,
    clamp,
    normalize_fan_speed,
    normalize_vane_horizontal,
    normalize_vane_vertical,
)
from .models import AtaCapabilities, AtaUnit, AtwCapabilities, AtwUnit, MelCloudUnit

if TYPE_CHECKING:
    from .transport import PacedHttpClient

_LOGGER = logging.getLogger(__name__)

HTTP_BAD_REQUEST = 400

CapabilitiesT = TypeVar("CapabilitiesT", AtaCapabilities, AtwCapabilities)

ATA_UPDATE_FIELDS = (
    "power",
    "operationMode",
    "setTemperature",
    "setFanSpeed",
    "vaneVerticalDirection",
    "vaneHorizontalDirection",
    "inStandbyMode",
    "temperatureIncrementOverride",
)

ATW_UPDATE_FIELDS = (
    "power",
    "setTankWaterTemperature",
    "forcedHotWaterMode",
    "setTemperatureZone1",
    "setTemperatureZone2",
    "operationModeZone1",
    "operationModeZone2",
    "inStandbyMode",
    "setHeatFlowTemperatureZone1",
    "setCoolFlowTemperatureZone1",
    "setHeatFlowTemperatureZone2",
    "setCoolFlowTemperatureZone2",
)

# Cloud capability keys per dataclass field.
ATA_CAPABILITY_KEYS = {
    "min_temp_heat": "minTempHeat",
    "max_temp_heat": "maxTempHeat",
    "min_temp_cool_dry": "minTempCoolDry",
    "max_temp_cool_dry": "maxTempCoolDry",
    "min_temp_automatic": "minTempAutomatic",
    "max_temp_automatic": "maxTempAutomatic",
    "has_half_degree_increments": "hasHalfDegreeIncrements",
    "has_automatic_fan_speed": "hasAutomaticFanSpeed",
    "number_of_fan_speeds": "numberOfFanSpeeds",
    "has_swing": "hasSwing",
    "has_standby": "hasStandby",
    "has_cool_operation_mode": "hasCoolOperationMode",
    "has_heat_operation_mode": "hasHeatOperationMode",
    "has_auto_operation_mode": "hasAutoOperationMode",
    "has_dry_operation_mode": "hasDryOperationMode",
}

ATW_CAPABILITY_KEYS = {
    "has_hot_water": "hasHotWater",
    "has_cooling_mode": "hasCoolingMode",
    "has_half_degrees": "hasHalfDegrees",
    "has_zone2": "hasZone2",
    "has_standby": "hasStandby",
}


def parse_bool(value: Any) -> bool:
    """Return True for ``True`` or the string ``"true"`` in any case."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).lower() == "true"


def parse_float(value: Any) -> float | None:
    """Parse a numeric setting.

    Returns:
        The parsed number, or None for empty, unparsable or non-finite input.

    """
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def parse_settings(settings: Any) -> dict[str, str]:
    """Convert a ``[{"name": ..., "value": ...}]`` array into a mapping.

    Entries that are not objects with both keys are skipped. Null values
    become empty strings.
    """
    if not isinstance(settings, list):
        return {}

    parsed: dict[str, str] = {}
    for entry in settings:
        if not isinstance(entry, dict) or "name" not in entry or "value" not in entry:
            continue
        value = entry["value"]
        parsed[str(entry["name"])] = "" if value is None else _setting_text(value)
    return parsed


def _setting_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _merge_capabilities(
    raw: Any,
    defaults: CapabilitiesT,
    keys: dict[str, str],
) -> CapabilitiesT:
    """Overlay present, type-coerced cloud capabilities over ``defaults``."""
    if not isinstance(raw, dict):
        return defaults

    merged: dict[str, Any] = {}
    for item in fields(defaults):
        default = getattr(defaults, item.name)
        key = keys[item.name]
        if key not in raw or raw[key] is None:
            merged[item.name] = default
        elif isinstance(default, bool):
            merged[item.name] = parse_bool(raw[key])
        else:
            number = parse_float(raw[key])
            if number is None:
                merged[item.name] = default
            elif isinstance(default, int):
                merged[item.name] = int(number)
            else:
                merged[item.name] = number
    return type(defaults)(**merged)


def extract_ata_capabilities(raw: Any) -> AtaCapabilities:
    """Return air-to-air capabilities merged over the built-in defaults."""
    return _merge_capabilities(raw, ATA_DEFAULT_CAPABILITIES, ATA_CAPABILITY_KEYS)


def extract_atw_capabilities(
    raw: Any,
    settings: dict[str, str] | None = None,
) -> AtwCapabilities:
    """Return air-to-water capabilities merged over the built-in defaults.

    A ``HasCoolingMode`` setting of ``"true"`` enables cooling even when the
    capability block says otherwise.
    """
    merged = _merge_capabilities(raw, ATW_DEFAULT_CAPABILITIES, ATW_CAPABILITY_KEYS)
    if parse_bool((settings or {}).get("HasCoolingMode")):
        return AtwCapabilities(
            has_hot_water=merged.has_hot_water,
            has_cooling_mode=True,
            has_half_degrees=merged.has_half_degrees,
            has_zone2=merged.has_zone2,
            has_standby=merged.has_standby,
        )
    return merged


def _display_name(unit: dict[str, Any], fallback: str) -> str:
    name = unit.get("givenDisplayName")
    return name if isinstance(name, str) else fallback


def map_ata_unit(unit: dict[str, Any]) -> AtaUnit:
    """Map a raw ``airToAirUnits`` entry to an :class:`AtaUnit`."""
    settings = parse_settings(unit.get("settings"))
    return AtaUnit(
        id=str(unit.get("id")),
        name=_display_name(unit, "ATA"),
        power=parse_bool(settings.get("Power")),
        operation_mode=settings.get("OperationMode") or None,
        set_temperature=parse_float(settings.get("SetTemperature")),
        room_temperature=parse_float(settings.get("RoomTemperature")),
        set_fan_speed=normalize_fan_speed(settings.get("SetFanSpeed")),
        vane_vertical_direction=normalize_vane_vertical(
            settings.get("VaneVerticalDirection")
        ),
        vane_horizontal_direction=normalize_vane_horizontal(
            settings.get("VaneHorizontalDirection")
        ),
        in_standby_mode=parse_bool(settings.get("InStandbyMode")),
        capabilities=extract_ata_capabilities(unit.get("capabilities")),
    )


def map_atw_unit(unit: dict[str, Any]) -> AtwUnit:
    """Map a raw ``airToWaterUnits`` entry to an :class:`AtwUnit`."""
    settings = parse_settings(unit.get("settings"))
    return AtwUnit(
        id=str(unit.get("id")),
        name=_display_name(unit, "ATW"),
        power=parse_bool(settings.get("Power")),
        operation_mode_zone1=settings.get("OperationModeZone1") or None,
        operation_status=settings.get("OperationMode") or None,
        set_temperature_zone1=parse_float(settings.get("SetTemperatureZone1")),
        room_temperature_zone1=parse_float(settings.get("RoomTemperatureZone1")),
        set_tank_water_temperature=parse_float(
            settings.get("SetTankWaterTemperature")
        ),
        tank_water_temperature=parse_float(settings.get("TankWaterTemperature")),
        forced_hot_water_mode=parse_bool(settings.get("ForcedHotWaterMode")),
        in_standby_mode=parse_bool(settings.get("InStandbyMode")),
        capabilities=extract_atw_capabilities(unit.get("capabilities"), settings),
    )


def _unit_list(building: dict[str, Any], key: str) -> list[dict[str, Any]]:
    units = building.get(key)
    if not isinstance(units, list):
        return []
    return [unit for unit in units if isinstance(unit, dict)]


def extract_units(context: dict[str, Any]) -> list[MelCloudUnit]:
    """Extract every unit of owned and guest buildings.

    Args:
        context: Parsed account context.

    Returns:
        Air-to-air units followed by air-to-water units, building by building.

    """
    buildings = [
        *(context.get("buildings") or []),
        *(context.get("guestBuildings") or []),
    ]

    units: list[MelCloudUnit] = []
    for building in buildings:
        if not isinstance(building, dict):
            continue
        units.extend(
            map_ata_unit(unit) for unit in _unit_list(building, "airToAirUnits")
        )
        units.extend(
            map_atw_unit(unit) for unit in _unit_list(building, "airToWaterUnits")
        )
    return units


def build_update_envelope(
    field_names: tuple[str, ...], updates: dict[str, Any]
) -> dict[str, Any]:
    """Return a full update body, every field not in ``updates`` set to None."""
    unknown = set(updates) - set(field_names)
    if unknown:
        msg = f"Unknown update fields: {sorted(unknown)}"
        raise ValueError(msg)
    return {name: updates.get(name) for name in field_names}


class MelCloudClient:
    """Client for the MELCloud Home account context and unit commands."""

    def __init__(self, http: PacedHttpClient, auth: MelCloudAuth | None = None) -> None:
        """Initialize the client.

        Args:
            http: Paced transport shared with the authentication flow.
            auth: Login state machine, built on ``http`` when omitted.

        """
        self._http = http
        self._auth = auth if auth is not None else MelCloudAuth(http)

    async def async_login(self, email: str, password: str) -> None:
        """Start a fresh web session."""
        await self._auth.async_login(email, password)

    async def async_get_user_context(self) -> dict[str, Any]:
        """Fetch the raw account context.

        Raises:
            UnauthorizedError: If the session has expired.
            ApiError: If the cloud fails or the body is not a JSON object.

        """
        data = await self._async_api_request("GET", USER_CONTEXT_URL)
        if not isinstance(data, dict):
            msg = "Unexpected account context payload"
            raise ApiError(None, msg)
        return data

    async def async_fetch_units(self) -> list[MelCloudUnit]:
        """Fetch and normalize every unit the account can see."""
        context = await self.async_get_user_context()
        units = extract_units(context)
        _LOGGER.debug("Discovered %d MELCloud Home units", len(units))
        return units

    async def async_set_ata_power(self, unit_id: str, power: bool) -> Any:
        """Switch an air-to-air unit on or off."""
        return await self._async_update_ata(unit_id, power=power)

    async def async_set_ata_mode(self, unit_id: str, mode: str) -> Any:
        """Set the operation mode of an air-to-air unit."""
        return await self._async_update_ata(unit_id, operationMode=mode)

    async def async_set_ata_temperature(self, unit_id: str, temperature: float) -> Any:
        """Set the target temperature of an air-to-air unit."""
        return await self._async_update_ata(unit_id, setTemperature=temperature)

    async def async_set_ata_fan_speed(self, unit_id: str, fan_speed: str) -> Any:
        """Set the fan speed (word form) of an air-to-air unit."""
        return await self._async_update_ata(unit_id, setFanSpeed=fan_speed)

    async def async_set_ata_vane_vertical(self, unit_id: str, direction: str) -> Any:
        """Set the vertical vane direction of an air-to-air unit."""
        return await self._async_update_ata(unit_id, vaneVerticalDirection=direction)

    async def async_set_ata_vane_horizontal(self, unit_id: str, direction: str) -> Any:
        """Set the horizontal vane direction of an air-to-air unit."""
        return await self._async_update_ata(unit_id, vaneHorizontalDirection=direction)

    async def async_set_ata_standby(self, unit_id: str, standby: bool) -> Any:
        """Put an air-to-air unit in or out of standby."""
        return await self._async_update_ata(unit_id, inStandbyMode=standby)

    async def async_set_atw_power(self, unit_id: str, power: bool) -> Any:
        """Switch an air-to-water unit on or off."""
        return await self._async_update_atw(unit_id, power=power)

    async def async_set_atw_mode(self, unit_id: str, mode: str) -> Any:
        """Set the zone 1 operation mode of an air-to-water unit."""
        return await self._async_update_atw(unit_id, operationModeZone1=mode)

    async def async_set_atw_zone_temperature(
        self, unit_id: str, temperature: float
    ) -> Any:
        """Set the zone 1 target temperature of an air-to-water unit."""
        return await self._async_update_atw(unit_id, setTemperatureZone1=temperature)

    async def async_set_atw_tank_temperature(
        self, unit_id: str, temperature: float
    ) -> Any:
        """Set the hot water tank target temperature, clamped to 40-60 °C."""
        value = clamp(temperature, *ATW_TANK_TEMPERATURE_RANGE)
        return await self._async_update_atw(unit_id, setTankWaterTemperature=value)

    async def async_set_atw_forced_hot_water(self, unit_id: str, enabled: bool) -> Any:
        """Enable or disable forced hot water (DHW priority)."""
        return await self._async_update_atw(unit_id, forcedHotWaterMode=enabled)

    async def async_set_atw_standby(self, unit_id: str, standby: bool) -> Any:
        """Put an air-to-water unit in or out of standby."""
        return await self._async_update_atw(unit_id, inStandbyMode=standby)

    async def _async_update_ata(self, unit_id: str, **updates: Any) -> Any:
        payload = build_update_envelope(ATA_UPDATE_FIELDS, updates)
        _LOGGER.debug("Updating ATA unit %s: %s", unit_id, updates)
        return await self._async_api_request(
            "PUT", f"{BASE_URL}{ATA_UNIT_PATH_FMT.format(unit_id=unit_id)}", payload
        )

    async def _async_update_atw(self, unit_id: str, **updates: Any) -> Any:
        payload = build_update_envelope(ATW_UPDATE_FIELDS, updates)
        _LOGGER.debug("Updating ATW unit %s: %s", unit_id, updates)
        return await self._async_api_request(
            "PUT", f"{BASE_URL}{ATW_UNIT_PATH_FMT.format(unit_id=unit_id)}", payload
        )

    async def _async_api_request(
        self,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Perform a JSON call.

        Returns:
            Parsed JSON, the raw text when the body is not JSON, or None for
            an empty body.

        Raises:
            UnauthorizedError: On HTTP 401.
            ApiError: On any other status of 400 or above.

        """
        headers = dict(API_HEADERS)
        content = None
        if payload is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(payload)

        response = await self._http.async_request(
            method, url, headers=headers, content=content
        )

        if response.status == HTTP_UNAUTHORIZED:
            raise UnauthorizedError
        if response.status >= HTTP_BAD_REQUEST:
            raise ApiError(response.status)

        if not response.text:
            return None
        try:
            return json.loads(response.text)
        except ValueError:
            return response.text
