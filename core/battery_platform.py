"""Enphase battery platform - wires credentials, poller, registry and host together"""
import logging
from collections.abc import Mapping
from typing import Any, Callable

from core.derivation import changed_fields
from core.poller import Poller
from core.registry import AccessoryRegistry, accessory_identifier
from core.state import CachedState, StateStore
from sinks.accessory import BatteryAccessoryAdapter
from sinks.base import AccessoryHandle, AccessoryHost
from sources.base import ConfigurationError, Credentials, Resource, TelemetrySource
from sources.enphase import EnphaseClient

logger = logging.getLogger(__name__)

PLUGIN_NAME = "enphase-battery-bridge"
PLATFORM_NAME = "EnphaseBattery"
DEFAULT_DISPLAY_NAME = "Enphase Battery"


class EnphaseBatteryPlatform:
    """
    Host-facing platform for one Enphase system.

    On construction it validates the credentials and subscribes to the host's
    launch event. A missing credential is logged and leaves the platform inert:
    no client, no poller, nothing raised into the host.
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        host: AccessoryHost,
        client_factory: Callable[[Credentials], TelemetrySource] = EnphaseClient
    ):
        """
        Initialize platform.

        Args:
            config: Mapping with system_id, api_key, access_token and optional
                name / poll_intervals ({Resource: seconds})
            host: Accessory host the battery accessory is published to
            client_factory: Builds the telemetry client from the credentials
        """
        self.config = config
        self.host = host
        self.display_name = config.get("name") or DEFAULT_DISPLAY_NAME
        self.registry = AccessoryRegistry()
        self.store = StateStore()
        self.client: TelemetrySource | None = None
        self.poller: Poller | None = None
        self.adapter: BatteryAccessoryAdapter | None = None

        try:
            self.credentials = Credentials(
                system_id=config.get("system_id"),
                api_key=config.get("api_key"),
                access_token=config.get("access_token"),
            )
        except ConfigurationError as e:
            logger.error(f"Platform: {e}. Please check enphase-battery-bridge.env")
            self.credentials = None
            return

        self.identifier = accessory_identifier(self.credentials.system_id)
        self.client = client_factory(self.credentials)
        self.poller = Poller(
            self.client,
            self.store,
            on_update=self._publish,
            intervals=config.get("poll_intervals"),
        )
        self.adapter = BatteryAccessoryAdapter(self.poller, self.store)

        host.on_launched(self.discover_devices)

    @property
    def configured(self) -> bool:
        return self.credentials is not None

    def configure_accessory(self, accessory: AccessoryHandle) -> None:
        """Called by the host for every accessory restored from its cache."""
        self.registry.restore(accessory)

    async def discover_devices(self) -> None:
        """Register (or reuse) the battery accessory, bind getters and start polling."""
        if not self.configured:
            return

        accessory = self.registry.get(self.identifier)
        if accessory is None:
            logger.info("Platform: Adding new battery accessory")
            accessory = self.host.create_accessory(self.display_name, self.identifier)
            self.host.register_accessories(PLUGIN_NAME, PLATFORM_NAME, [accessory])
            self.registry.add(accessory)

        self.adapter.bind(self.host, accessory)
        self.poller.start()

    def _publish(self, resource: Resource, before: CachedState, after: CachedState) -> None:
        changes = changed_fields(before, after)
        if changes:
            described = ", ".join(f"{name}={getattr(after, name)}" for name in changes)
            logger.info(f"Platform: {resource.value} update: {described}")
        logger.debug(f"Platform: State after {resource.value} poll: {after.as_dict()}")

        for accessory in self.registry.matching(self.identifier):
            self.adapter.publish(accessory, resource, after)

    async def shutdown(self) -> None:
        if self.poller is not None:
            await self.poller.stop()
        if self.client is not None:
            await self.client.aclose()
