"""Tests for platform startup, accessory registration and update fan-out"""

import pytest

from core.battery_platform import (
    DEFAULT_DISPLAY_NAME,
    PLATFORM_NAME,
    PLUGIN_NAME,
    EnphaseBatteryPlatform,
)
from core.registry import accessory_identifier
from sinks.base import Characteristic
from sinks.console import ConsoleAccessory, ConsoleHost
from sources.base import Resource, TransportError

LONG = {resource: 3600 for resource in Resource}
CONFIG = {
    "system_id": "12345",
    "api_key": "key-abc",
    "access_token": "tok-xyz",
    "poll_intervals": LONG,
}


@pytest.fixture
def client_factory(mocker, source):
    return mocker.Mock(return_value=source)


@pytest.mark.parametrize("missing", ["system_id", "api_key", "access_token"])
def test_missing_credential_starts_nothing(mocker, client_factory, missing):
    """Test that a missing credential logs, stays inert, and never fetches"""
    host = mocker.Mock()
    mock_logger = mocker.patch('core.battery_platform.logger')
    config = {**CONFIG, missing: ""}

    platform = EnphaseBatteryPlatform(config, host, client_factory=client_factory)

    assert platform.configured is False
    assert platform.poller is None
    client_factory.assert_not_called()
    host.on_launched.assert_not_called()
    mock_logger.error.assert_called_once()
    assert missing in mock_logger.error.call_args.args[0]


@pytest.mark.asyncio
async def test_missing_credential_launch_does_not_fetch(client_factory, source):
    host = ConsoleHost()
    platform = EnphaseBatteryPlatform({"system_id": "12345"}, host, client_factory=client_factory)

    await host.launch()
    await platform.discover_devices()

    source.fetch.assert_not_awaited()
    assert host.accessories == {}


@pytest.mark.asyncio
async def test_launch_registers_accessory_and_polls(client_factory, source):
    """Test launch -> register -> eager poll -> values pushed to the accessory"""
    host = ConsoleHost()
    platform = EnphaseBatteryPlatform(CONFIG, host, client_factory=client_factory)

    await host.launch()
    for resource in Resource:
        await platform.poller.tick(resource)

    identifier = accessory_identifier("12345")
    accessory = host.accessories[identifier]
    assert accessory.display_name == DEFAULT_DISPLAY_NAME
    assert accessory.values[Characteristic.BATTERY_LEVEL] == 55
    assert accessory.values[Characteristic.CHARGING_STATE] is True
    assert accessory.values[Characteristic.STATUS_LOW_BATTERY] is False
    assert accessory.values[Characteristic.GRID_CONNECTED] is True
    assert accessory.values[Characteristic.STORM_WATCH] is True

    await platform.shutdown()
    source.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_new_accessory_registered_once(mocker, client_factory):
    host = ConsoleHost()
    register = mocker.spy(host, "register_accessories")
    platform = EnphaseBatteryPlatform({**CONFIG, "name": "Garage Battery"}, host, client_factory=client_factory)

    await platform.discover_devices()
    await platform.discover_devices()

    register.assert_called_once()
    plugin, platform_name, accessories = register.call_args.args
    assert (plugin, platform_name) == (PLUGIN_NAME, PLATFORM_NAME)
    assert accessories[0].display_name == "Garage Battery"
    assert len(platform.registry) == 1

    await platform.shutdown()


@pytest.mark.asyncio
async def test_restored_accessory_is_reused(mocker, client_factory):
    """Test that an accessory restored from the host cache is not recreated"""
    restored = ConsoleAccessory("Enphase Battery", accessory_identifier("12345"))
    host = ConsoleHost(restored=[restored])
    register = mocker.spy(host, "register_accessories")
    platform = EnphaseBatteryPlatform(CONFIG, host, client_factory=client_factory)

    platform.configure_accessory(restored)
    await host.launch()
    await platform.poller.tick(Resource.GRID)

    register.assert_not_called()
    assert platform.registry.get(restored.identifier) is restored
    assert restored.values[Characteristic.GRID_CONNECTED] is True

    await platform.shutdown()


@pytest.mark.asyncio
async def test_updates_skip_other_systems_accessories(client_factory):
    other = ConsoleAccessory("Neighbour Battery", accessory_identifier("99999"))
    host = ConsoleHost(restored=[other])
    platform = EnphaseBatteryPlatform(CONFIG, host, client_factory=client_factory)

    platform.configure_accessory(other)
    await host.launch()
    await platform.poller.tick(Resource.BATTERY)

    assert other.values == {}
    assert len(platform.registry) == 2

    await platform.shutdown()


@pytest.mark.asyncio
async def test_failed_read_reported_unavailable(client_factory, source):
    """Test that the host sees 'unavailable' instead of a raw transport error"""
    host = ConsoleHost()
    platform = EnphaseBatteryPlatform(CONFIG, host, client_factory=client_factory)
    await host.launch()
    await platform.poller.stop()
    source.fetch.side_effect = TransportError("offline")

    accessory = host.accessories[platform.identifier]
    value = await host.read(accessory, Characteristic.BATTERY_LEVEL)

    assert value == "unavailable"
    await platform.shutdown()


def test_poll_intervals_passed_to_poller(client_factory):
    platform = EnphaseBatteryPlatform(
        {**CONFIG, "poll_intervals": {Resource.GRID: 30}}, ConsoleHost(), client_factory=client_factory
    )

    assert platform.poller.intervals[Resource.GRID] == 30
    assert platform.poller.intervals[Resource.BATTERY] == 300
