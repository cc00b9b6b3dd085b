"""Battery accessory egress module - answers host reads and pushes state updates"""
import logging

from core.poller import Poller
from core.state import CachedState, StateStore
from sinks.base import AccessoryHandle, AccessoryHost, Characteristic, CommunicationFailure
from sources.base import Resource

logger = logging.getLogger(__name__)

# Characteristics refreshed by each resource's poll
RESOURCE_CHARACTERISTICS = {
    Resource.BATTERY: (
        Characteristic.BATTERY_LEVEL,
        Characteristic.CHARGING_STATE,
        Characteristic.STATUS_LOW_BATTERY,
        Characteristic.CHARGING_CONTACT,
    ),
    Resource.GRID: (Characteristic.GRID_CONNECTED,),
    Resource.STORM: (Characteristic.STORM_WATCH,),
}


def characteristic_value(state: CachedState, characteristic: Characteristic):
    """Raw cached value behind a characteristic; None while unknown."""
    if characteristic is Characteristic.BATTERY_LEVEL:
        return state.battery_percent
    if characteristic in (Characteristic.CHARGING_STATE, Characteristic.CHARGING_CONTACT):
        return state.charging
    if characteristic is Characteristic.STATUS_LOW_BATTERY:
        return state.low_battery
    if characteristic is Characteristic.GRID_CONNECTED:
        return state.grid_connected
    if characteristic is Characteristic.STORM_WATCH:
        return state.storm_watch
    raise ValueError(f"Unknown characteristic: {characteristic}")


class BatteryAccessoryAdapter:
    """
    Getters the host invokes at arbitrary times, plus the update push.

    Battery level and charging state force a fresh battery fetch before
    answering. Everything else is served from the cache the poller keeps
    current.
    """

    def __init__(self, poller: Poller, store: StateStore):
        self.poller = poller
        self.store = store

    async def _refresh_battery(self, characteristic: Characteristic) -> CachedState:
        try:
            return await self.poller.refresh(Resource.BATTERY)
        except Exception as e:
            logger.error(f"Accessory: Error getting {characteristic.value}: {e}")
            raise CommunicationFailure(characteristic, str(e)) from e

    async def get_battery_level(self) -> float:
        state = await self._refresh_battery(Characteristic.BATTERY_LEVEL)
        if state.battery_percent is None:
            raise CommunicationFailure(Characteristic.BATTERY_LEVEL, "no state of charge reported yet")
        return state.battery_percent

    async def get_charging_state(self) -> bool:
        state = await self._refresh_battery(Characteristic.CHARGING_STATE)
        return bool(state.charging)

    async def get_low_battery(self) -> bool:
        # Recomputed from cache on every read; unknown percent reads as normal
        return bool(self.store.state.low_battery)

    async def get_charging_contact(self) -> bool:
        return bool(self.store.state.charging)

    async def get_grid_connected(self) -> bool:
        connected = self.store.state.grid_connected
        if connected is None:
            # Reporting "disconnected" before the first poll would look like an outage
            raise CommunicationFailure(Characteristic.GRID_CONNECTED, "grid status not polled yet")
        return connected

    async def get_storm_watch(self) -> bool:
        return bool(self.store.state.storm_watch)

    def getters(self) -> dict:
        return {
            Characteristic.BATTERY_LEVEL: self.get_battery_level,
            Characteristic.CHARGING_STATE: self.get_charging_state,
            Characteristic.STATUS_LOW_BATTERY: self.get_low_battery,
            Characteristic.CHARGING_CONTACT: self.get_charging_contact,
            Characteristic.GRID_CONNECTED: self.get_grid_connected,
            Characteristic.STORM_WATCH: self.get_storm_watch,
        }

    def bind(self, host: AccessoryHost, accessory: AccessoryHandle) -> None:
        for characteristic, getter in self.getters().items():
            host.bind_getter(accessory, characteristic, getter)

    def publish(self, accessory: AccessoryHandle, resource: Resource, state: CachedState) -> None:
        """Push every known value a resource's poll produced; unknown values are skipped."""
        for characteristic in RESOURCE_CHARACTERISTICS[resource]:
            value = characteristic_value(state, characteristic)
            if value is None:
                continue
            accessory.update_characteristic(characteristic, value)
