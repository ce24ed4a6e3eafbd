"""Data models for the MELCloud Home integration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

UnitType = Literal["ata", "atw"]


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Represents one HTTP response as seen by the integration.

    Attributes:
        status: HTTP status code.
        headers: Response headers with lower-cased names.
        text: Full response body.
        resolved_url: Final URL of a followed redirect chain, if any.

    """

    status: int
    headers: dict[str, str]
    text: str
    resolved_url: str | None = None


@dataclass(frozen=True, slots=True)
class AtaCapabilities:
    """Capabilities reported for an air-to-air unit, merged over defaults."""

    min_temp_heat: float
    max_temp_heat: float
    min_temp_cool_dry: float
    max_temp_cool_dry: float
    min_temp_automatic: float
    max_temp_automatic: float
    has_half_degree_increments: bool
    has_automatic_fan_speed: bool
    number_of_fan_speeds: int
    has_swing: bool
    has_standby: bool
    has_cool_operation_mode: bool
    has_heat_operation_mode: bool
    has_auto_operation_mode: bool
    has_dry_operation_mode: bool


@dataclass(frozen=True, slots=True)
class AtwCapabilities:
    """Capabilities reported for an air-to-water unit, merged over defaults."""

    has_hot_water: bool
    has_cooling_mode: bool
    has_half_degrees: bool
    has_zone2: bool
    has_standby: bool


@dataclass(frozen=True, slots=True)
class AtaUnit:
    """Snapshot of an air-to-air unit."""

    id: str
    name: str
    power: bool
    operation_mode: str | None
    set_temperature: float | None
    room_temperature: float | None
    set_fan_speed: str | None
    vane_vertical_direction: str | None
    vane_horizontal_direction: str | None
    in_standby_mode: bool
    capabilities: AtaCapabilities
    type: Literal["ata"] = field(default="ata", init=False)


@dataclass(frozen=True, slots=True)
class AtwUnit:
    """Snapshot of an air-to-water unit (heat pump with hot water tank)."""

    id: str
    name: str
    power: bool
    operation_mode_zone1: str | None
    operation_status: str | None
    set_temperature_zone1: float | None
    room_temperature_zone1: float | None
    set_tank_water_temperature: float | None
    tank_water_temperature: float | None
    forced_hot_water_mode: bool
    in_standby_mode: bool
    capabilities: AtwCapabilities
    type: Literal["atw"] = field(default="atw", init=False)


MelCloudUnit = AtaUnit | AtwUnit
