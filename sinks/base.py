"""Base definitions for accessory hosts - characteristics, protocols and errors"""
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

Getter = Callable[[], Awaitable[Any]]


class Characteristic(Enum):
    """Values the bridge publishes on its battery accessory."""
    BATTERY_LEVEL = "battery_level"
    CHARGING_STATE = "charging_state"
    STATUS_LOW_BATTERY = "status_low_battery"
    CHARGING_CONTACT = "charging_contact"
    GRID_CONNECTED = "grid_connected"
    STORM_WATCH = "storm_watch"


class CommunicationFailure(Exception):
    """
    Raised to the host when a read cannot be answered.

    The host should mark the characteristic as unavailable
    ("service communication failure") rather than show a value.
    """

    def __init__(self, characteristic: Characteristic, reason: str = ""):
        self.characteristic = characteristic
        message = f"{characteristic.value} unavailable"
        super().__init__(f"{message}: {reason}" if reason else message)


class AccessoryHandle(Protocol):
    """
    One accessory as seen by the bridge.

    Only the operations the bridge needs: identity and pushing a value.
    """
    identifier: str
    display_name: str

    def update_characteristic(self, characteristic: Characteristic, value: Any) -> None:
        ...


class AccessoryHost(Protocol):
    """
    Capability interface of the home-automation host.

    Implementations wrap the real framework (or, like ConsoleHost,
    stand in for one).
    """

    def on_launched(self, callback: Callable[[], Awaitable[None]]) -> None:
        """Register a coroutine to run once the host has finished launching."""
        ...

    def create_accessory(self, display_name: str, identifier: str) -> AccessoryHandle:
        ...

    def register_accessories(
        self,
        plugin_name: str,
        platform_name: str,
        accessories: list[AccessoryHandle]
    ) -> None:
        ...

    def bind_getter(
        self,
        accessory: AccessoryHandle,
        characteristic: Characteristic,
        getter: Getter
    ) -> None:
        """Let the host call `getter` whenever it reads `characteristic`."""
        ...
