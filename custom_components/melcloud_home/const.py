"""Constants for the MELCloud Home integration.

This module contains the constants used throughout the integration,
including endpoints, request headers, configuration keys and defaults.
"""

from homeassistant.components.climate import (
    HVACMode,
)
from homeassistant.components.climate.const import (
    FAN_AUTO,
    SWING_OFF,
    SWING_ON,
)

DOMAIN = "melcloud_home"

BASE_URL = "https://melcloudhome.com"
LOGIN_PATH = "/bff/login?returnUrl=/dashboard"
LOGIN_URL = f"{BASE_URL}{LOGIN_PATH}"
DASHBOARD_URL = f"{BASE_URL}/dashboard"
USER_CONTEXT_URL = f"{BASE_URL}/api/user/context"
ATA_UNIT_PATH_FMT = "/api/ataunit/{unit_id}"
ATW_UNIT_PATH_FMT = "/api/atwunit/{unit_id}"

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)

HTML_HEADERS = {"Accept": "text/html"}
API_HEADERS = {
    "Accept": "application/json",
    "x-csrf": "1",
    "Referer": DASHBOARD_URL,
}

DEFAULT_MIN_REQUEST_INTERVAL = 0.5
DEFAULT_POLL_INTERVAL = 60
MIN_POLL_INTERVAL = 30
DEFAULT_MAX_REDIRECTS = 10
LOGIN_SNIPPET_LENGTH = 500

CONF_POLL_INTERVAL = "poll_interval"
CONF_MIN_REQUEST_INTERVAL = "min_request_interval"
CONF_ENABLE_FAN = "enable_fan"
CONF_ENABLE_SWING = "enable_swing"
CONF_ENABLE_STANDBY = "enable_standby"
CONF_ENABLE_DHW = "enable_dhw"

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_TIMEOUT = "timeout_error"
ERROR_API_ERROR = "api_error"
ERROR_UNKNOWN = "unknown_error"

PRESET_STANDBY = "standby"

ATA_FAN_MODE_MAP = {
    FAN_AUTO: "Auto",
    "1": "One",
    "2": "Two",
    "3": "Three",
    "4": "Four",
    "5": "Five",
}
ATA_FAN_MODE_REVERSE_MAP = {value: key for key, value in ATA_FAN_MODE_MAP.items()}
ATA_SWING_MODE_MAP = {
    SWING_ON: "Swing",
    SWING_OFF: "Auto",
}

ATA_HVAC_MODE_MAP = {
    "Heat": HVACMode.HEAT,
    "Cool": HVACMode.COOL,
    "Automatic": HVACMode.HEAT_COOL,
    "Dry": HVACMode.DRY,
    "Fan": HVACMode.FAN_ONLY,
}
ATA_HVAC_MODE_REVERSE_MAP = {value: key for key, value in ATA_HVAC_MODE_MAP.items()}

ATW_HEAT_MODE = "HeatRoomTemperature"
ATW_COOL_MODE = "CoolRoomTemperature"
