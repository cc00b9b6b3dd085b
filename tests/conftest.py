import copy

import pytest
from pytest_socket import disable_socket

from sources.base import Resource

BATTERY_PAYLOAD = {"intervals": [{
    "soc": {"percent": 55},
    "charge": {"energy_delivered_watt_hours": 120},
    "discharge": {"energy_delivered_watt_hours": 0},
}]}
SUMMARY_PAYLOAD = {"status": "normal"}
STORM_PAYLOAD = {"storm_guard_status": "enabled", "storm_alert": "true"}


def pytest_runtest_setup():
    """
    Runs before every test.
    We disable network access. Every attempt to connect
    (HTTP, DNS, etc) will immediately raise a SocketBlockedError.
    """
    disable_socket(allow_unix_socket=True)


@pytest.fixture
def payloads():
    """Default upstream response per resource (copy, so tests may edit it)"""
    return {
        Resource.BATTERY: copy.deepcopy(BATTERY_PAYLOAD),
        Resource.GRID: dict(SUMMARY_PAYLOAD),
        Resource.STORM: dict(STORM_PAYLOAD),
    }


@pytest.fixture
def source(mocker, payloads):
    """Telemetry source double whose fetch() answers from `payloads`"""
    mock_source = mocker.AsyncMock()

    async def fetch(resource):
        return payloads[resource]

    mock_source.fetch.side_effect = fetch
    return mock_source
