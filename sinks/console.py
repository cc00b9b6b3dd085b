"""Console host - a minimal in-process accessory host that logs what a home hub would see"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from sinks.base import AccessoryHandle, Characteristic, CommunicationFailure, Getter

logger = logging.getLogger(__name__)

UNAVAILABLE = "unavailable"


@dataclass
class ConsoleAccessory:
    """Accessory handle that remembers the last pushed value per characteristic."""
    display_name: str
    identifier: str
    values: dict = field(default_factory=dict)

    def update_characteristic(self, characteristic: Characteristic, value: Any) -> None:
        previous = self.values.get(characteristic)
        self.values[characteristic] = value
        if previous != value:
            logger.info(f"{self.display_name}: {characteristic.value} = {value}")
        else:
            logger.debug(f"{self.display_name}: {characteristic.value} = {value} (unchanged)")


class ConsoleHost:
    """
    Stand-in for a home-automation host when running from the command line.

    Implements the AccessoryHost protocol: keeps registered accessories and
    bound getters, runs launch callbacks, and can read characteristics the way
    a hub does when a user opens the accessory.
    """

    def __init__(self, restored: list[ConsoleAccessory] | None = None):
        self.restored = list(restored or [])
        self.accessories: dict[str, AccessoryHandle] = {a.identifier: a for a in self.restored}
        self._launch_callbacks: list[Callable[[], Awaitable[None]]] = []
        self._getters: dict[tuple[str, Characteristic], Getter] = {}

    def on_launched(self, callback: Callable[[], Awaitable[None]]) -> None:
        self._launch_callbacks.append(callback)

    def create_accessory(self, display_name: str, identifier: str) -> ConsoleAccessory:
        return ConsoleAccessory(display_name=display_name, identifier=identifier)

    def register_accessories(
        self,
        plugin_name: str,
        platform_name: str,
        accessories: list[AccessoryHandle]
    ) -> None:
        for accessory in accessories:
            logger.info(f"Host: Registering {accessory.display_name} for {plugin_name}/{platform_name}")
            self.accessories[accessory.identifier] = accessory

    def bind_getter(
        self,
        accessory: AccessoryHandle,
        characteristic: Characteristic,
        getter: Getter
    ) -> None:
        self._getters[(accessory.identifier, characteristic)] = getter

    async def launch(self) -> None:
        """Signal 'finished launching' to every subscribed platform."""
        logger.info("Host: Finished launching")
        for callback in self._launch_callbacks:
            await callback()

    async def read(self, accessory: AccessoryHandle, characteristic: Characteristic) -> Any:
        """Invoke the bound getter; a CommunicationFailure reads as 'unavailable'."""
        getter = self._getters.get((accessory.identifier, characteristic))
        if getter is None:
            raise KeyError(f"No getter bound for {characteristic.value} on {accessory.display_name}")
        try:
            return await getter()
        except CommunicationFailure as e:
            logger.warning(f"Host: {e}")
            return UNAVAILABLE

    async def read_all(self) -> dict[str, dict[str, Any]]:
        """Read every bound characteristic of every accessory."""
        results: dict[str, dict[str, Any]] = {}
        for (identifier, characteristic) in list(self._getters):
            accessory = self.accessories[identifier]
            value = await self.read(accessory, characteristic)
            results.setdefault(accessory.display_name, {})[characteristic.value] = value
        return results
