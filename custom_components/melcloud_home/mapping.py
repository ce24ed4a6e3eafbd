"""Shared vocabularies and mapping tables for MELCloud Home units.

The cloud sometimes reports enumerations with legacy numeric codes and
sometimes with their word form. Everything here normalizes towards the word
form and leaves unknown values untouched so newer firmware keeps working.
"""

from __future__ import annotations

from .models import AtaCapabilities, AtwCapabilities

ATA_OPERATION_MODES = ("Heat", "Cool", "Automatic", "Dry", "Fan")

ATA_FAN_SPEEDS = ("Auto", "One", "Two", "Three", "Four", "Five")

VANE_VERTICAL_DIRECTIONS = ("Auto", "Swing", "One", "Two", "Three", "Four", "Five")

VANE_HORIZONTAL_DIRECTIONS = (
    "Auto",
    "Swing",
    "Left",
    "LeftCentre",
    "Centre",
    "RightCentre",
    "Right",
)

ATW_HEAT_MODES = ("HeatRoomTemperature", "HeatFlowTemperature", "HeatCurve")
ATW_COOL_MODES = ("CoolRoomTemperature", "CoolFlowTemperature")

ATW_ZONE_TEMPERATURE_RANGE = (10.0, 30.0)
ATW_TANK_TEMPERATURE_RANGE = (40.0, 60.0)

FAN_SPEED_CODE_MAP = {
    "0": "Auto",
    "1": "One",
    "2": "Two",
    "3": "Three",
    "4": "Four",
    "5": "Five",
}

VANE_VERTICAL_CODE_MAP = {
    **FAN_SPEED_CODE_MAP,
    "7": "Swing",
}

VANE_HORIZONTAL_AMERICAN_MAP = {
    "CenterLeft": "LeftCentre",
    "Center": "Centre",
    "CenterRight": "RightCentre",
}

ATA_DEFAULT_CAPABILITIES = AtaCapabilities(
    min_temp_heat=10.0,
    max_temp_heat=31.0,
    min_temp_cool_dry=16.0,
    max_temp_cool_dry=31.0,
    min_temp_automatic=16.0,
    max_temp_automatic=31.0,
    has_half_degree_increments=True,
    has_automatic_fan_speed=True,
    number_of_fan_speeds=5,
    has_swing=True,
    has_standby=False,
    has_cool_operation_mode=True,
    has_heat_operation_mode=True,
    has_auto_operation_mode=True,
    has_dry_operation_mode=True,
)

ATW_DEFAULT_CAPABILITIES = AtwCapabilities(
    has_hot_water=True,
    has_cooling_mode=False,
    has_half_degrees=False,
    has_zone2=False,
    has_standby=False,
)


def _normalize(
    value: str | None, canonical: tuple[str, ...], aliases: dict[str, str]
) -> str | None:
    if not value:
        return None
    if value in canonical:
        return value
    return aliases.get(value, value)


def normalize_fan_speed(value: str | None) -> str | None:
    """Return the word form of a fan speed (``"2"`` becomes ``"Two"``)."""
    return _normalize(value, ATA_FAN_SPEEDS, FAN_SPEED_CODE_MAP)


def normalize_vane_vertical(value: str | None) -> str | None:
    """Return the word form of a vertical vane position (``"7"`` is Swing)."""
    return _normalize(value, VANE_VERTICAL_DIRECTIONS, VANE_VERTICAL_CODE_MAP)


def normalize_vane_horizontal(value: str | None) -> str | None:
    """Return the canonical horizontal vane position.

    Accepts the American spelling reported by some units
    (``CenterLeft``/``Center``/``CenterRight``).
    """
    return _normalize(value, VANE_HORIZONTAL_DIRECTIONS, VANE_HORIZONTAL_AMERICAN_MAP)


def get_ata_temperature_range(
    mode: str | None, capabilities: AtaCapabilities
) -> tuple[float, float]:
    """Return the ``(min, max)`` setpoint range for an air-to-air mode.

    Args:
        mode: Operation mode in word form.
        capabilities: Merged capabilities of the unit.

    Returns:
        Heat range for Heat, cool/dry range for Cool and Dry, and the
        automatic range for Automatic or any unrecognized mode.

    """
    if mode == "Heat":
        return capabilities.min_temp_heat, capabilities.max_temp_heat
    if mode in ("Cool", "Dry"):
        return capabilities.min_temp_cool_dry, capabilities.max_temp_cool_dry
    return capabilities.min_temp_automatic, capabilities.max_temp_automatic


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp ``value`` into ``[minimum, maximum]``."""
    return min(maximum, max(minimum, value))
