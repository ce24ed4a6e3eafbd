"""Runtime settings resolved from a config entry."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from homeassistant.const import CONF_EMAIL, CONF_PASSWORD

from .const import (
    CONF_ENABLE_DHW,
    CONF_ENABLE_FAN,
    CONF_ENABLE_STANDBY,
    CONF_ENABLE_SWING,
    CONF_MIN_REQUEST_INTERVAL,
    CONF_POLL_INTERVAL,
    DEFAULT_MIN_REQUEST_INTERVAL,
    DEFAULT_POLL_INTERVAL,
    MIN_POLL_INTERVAL,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MelCloudHomeSettings:
    """Validated settings handed to the client stack and the entities."""

    email: str
    password: str
    poll_interval: float = DEFAULT_POLL_INTERVAL
    min_request_interval: float = DEFAULT_MIN_REQUEST_INTERVAL
    enable_fan: bool = True
    enable_swing: bool = True
    enable_standby: bool = False
    enable_dhw: bool = True


def _number(value: Any, default: float) -> float:  # noqa: ANN401
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def settings_from_entry(
    data: Mapping[str, Any], options: Mapping[str, Any] | None = None
) -> MelCloudHomeSettings:
    """Build settings from entry data, letting options override defaults.

    Args:
        data: Config entry data holding the credentials.
        options: Config entry options.

    Returns:
        Settings with the poll interval raised to its floor and negative
        request intervals reset to the default.

    """
    options = options or {}
    poll_interval = max(
        MIN_POLL_INTERVAL,
        _number(options.get(CONF_POLL_INTERVAL), DEFAULT_POLL_INTERVAL),
    )
    min_request_interval = _number(
        options.get(CONF_MIN_REQUEST_INTERVAL), DEFAULT_MIN_REQUEST_INTERVAL
    )
    if min_request_interval < 0:
        min_request_interval = DEFAULT_MIN_REQUEST_INTERVAL

    settings = MelCloudHomeSettings(
        email=data[CONF_EMAIL],
        password=data[CONF_PASSWORD],
        poll_interval=poll_interval,
        min_request_interval=min_request_interval,
        enable_fan=options.get(CONF_ENABLE_FAN, True) is not False,
        enable_swing=options.get(CONF_ENABLE_SWING, True) is not False,
        enable_standby=options.get(CONF_ENABLE_STANDBY, False) is True,
        enable_dhw=options.get(CONF_ENABLE_DHW, True) is not False,
    )
    _LOGGER.debug(
        "Settings resolved: poll=%ss, pacing=%ss, fan=%s, swing=%s, standby=%s, dhw=%s",
        settings.poll_interval,
        settings.min_request_interval,
        settings.enable_fan,
        settings.enable_swing,
        settings.enable_standby,
        settings.enable_dhw,
    )
    return settings
