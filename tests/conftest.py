"""Pytest configuration and fixtures for MELCloud Home tests."""

from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from custom_components.melcloud_home.pacer import RequestPacer
from custom_components.melcloud_home.transport import PacedHttpClient


@pytest.fixture
def login_page_html() -> str:
    """Fixture providing a server-rendered login page."""
    return (
        "<html><body>"
        '<form method="post" action="/bff/submit">'
        '<input type="hidden" name="_csrf" value="tok123">'
        '<input name="username"><input name="password" type="password">'
        "</form></body></html>"
    )


@pytest.fixture
def sample_user_context() -> dict[str, Any]:
    """Fixture providing an account context with one unit of each type.

    Returns:
        A dictionary shaped like the ``/api/user/context`` response.

    """
    return {
        "buildings": [
            {
                "id": "building1",
                "airToAirUnits": [
                    {
                        "id": "ata-1",
                        "givenDisplayName": "Living Room",
                        "settings": [
                            {"name": "Power", "value": "True"},
                            {"name": "OperationMode", "value": "Heat"},
                            {"name": "SetTemperature", "value": "21.5"},
                            {"name": "RoomTemperature", "value": "19"},
                            {"name": "SetFanSpeed", "value": "2"},
                            {"name": "VaneVerticalDirection", "value": "Swing"},
                            {"name": "VaneHorizontalDirection", "value": "Center"},
                            {"name": "InStandbyMode", "value": "False"},
                        ],
                        "capabilities": {
                            "minTempHeat": 10,
                            "maxTempHeat": 31,
                            "numberOfFanSpeeds": 5,
                            "hasSwing": True,
                        },
                    },
                ],
                "airToWaterUnits": [],
            },
        ],
        "guestBuildings": [
            {
                "id": "building2",
                "airToAirUnits": [],
                "airToWaterUnits": [
                    {
                        "id": "atw-1",
                        "givenDisplayName": "Heat Pump",
                        "settings": [
                            {"name": "Power", "value": "True"},
                            {"name": "OperationMode", "value": "HotWater"},
                            {
                                "name": "OperationModeZone1",
                                "value": "HeatRoomTemperature",
                            },
                            {"name": "SetTemperatureZone1", "value": "20"},
                            {"name": "RoomTemperatureZone1", "value": "19.5"},
                            {"name": "SetTankWaterTemperature", "value": "50"},
                            {"name": "TankWaterTemperature", "value": "47.5"},
                            {"name": "ForcedHotWaterMode", "value": "False"},
                            {"name": "InStandbyMode", "value": "False"},
                            {"name": "HasCoolingMode", "value": "True"},
                        ],
                        "capabilities": {"hasHotWater": True},
                    },
                ],
            },
        ],
    }


@pytest_asyncio.fixture
async def pacer() -> AsyncIterator[RequestPacer]:
    """Fixture providing an unthrottled pacer, closed after the test."""
    request_pacer = RequestPacer(0)
    yield request_pacer
    await request_pacer.async_close()


@pytest_asyncio.fixture
async def http_client(pacer: RequestPacer) -> AsyncIterator[PacedHttpClient]:
    """Fixture providing a paced client over a plain httpx session."""
    async with httpx.AsyncClient() as session:
        yield PacedHttpClient(session, pacer)
