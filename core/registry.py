"""Accessory identity and the identifier -> handle registry"""
import logging
import uuid

from sinks.base import AccessoryHandle

logger = logging.getLogger(__name__)

ACCESSORY_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_DNS, "api.enphaseenergy.com")


def accessory_identifier(system_id: str) -> str:
    """Stable identifier for the battery accessory of one Enphase system."""
    return str(uuid.uuid5(ACCESSORY_NAMESPACE, f"enphase-battery-{system_id}"))


class AccessoryRegistry:
    """
    Typed registry of accessory handles, keyed by identifier.

    Holds both accessories restored by the host and the ones created at
    discovery; a restored handle is reused, never duplicated.
    """

    def __init__(self):
        self._handles: dict[str, AccessoryHandle] = {}

    def add(self, handle: AccessoryHandle) -> None:
        self._handles[handle.identifier] = handle

    def restore(self, handle: AccessoryHandle) -> None:
        logger.info(f"Platform: Loading accessory from cache: {handle.display_name}")
        self.add(handle)

    def get(self, identifier: str) -> AccessoryHandle | None:
        return self._handles.get(identifier)

    def matching(self, identifier: str) -> list[AccessoryHandle]:
        handle = self._handles.get(identifier)
        return [handle] if handle is not None else []

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._handles

    def __len__(self) -> int:
        return len(self._handles)
