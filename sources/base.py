"""Base definitions for telemetry sources - data contracts, errors and protocols"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class ConfigurationError(Exception):
    """A required credential is missing or blank."""


class FetchError(Exception):
    """Base class for any failed fetch of an upstream resource."""


class TransportError(FetchError):
    """The upstream API could not be reached (DNS, connect, timeout, ...)."""


class UpstreamStatusError(FetchError):
    """The upstream API answered with a non-2xx status."""

    def __init__(self, status: int, resource: "Resource | None" = None):
        self.status = status
        self.resource = resource
        where = f" for {resource.value}" if resource else ""
        super().__init__(f"API response: {status}{where}")


class PayloadError(FetchError):
    """A 2xx response whose body is not valid JSON."""


class Resource(Enum):
    """
    Upstream resources polled by the bridge.

    The value doubles as a short name for logs; `path` holds the
    URL template relative to the API base.
    """
    BATTERY = "battery"
    GRID = "grid"
    STORM = "storm"

    @property
    def path(self) -> str:
        return _PATHS[self]

    def url_path(self, system_id: str) -> str:
        return self.path.format(system_id=system_id)


_PATHS = {
    Resource.BATTERY: "/systems/{system_id}/telemetry/battery",
    Resource.GRID: "/systems/{system_id}/summary",
    Resource.STORM: "/systems/config/{system_id}/storm_guard",
}


@dataclass(frozen=True)
class Credentials:
    """
    Immutable credentials for the Enphase v4 API.

    Attributes:
        system_id: Enphase system identifier.
        api_key: Application API key, sent in the `key` header.
        access_token: OAuth access token, sent as a Bearer token.

    Raises ConfigurationError on construction when any field is missing or blank.
    """
    system_id: str
    api_key: str = field(repr=False)
    access_token: str = field(repr=False)

    def __post_init__(self):
        missing = [
            name for name in ("system_id", "api_key", "access_token")
            if not str(getattr(self, name) or "").strip()
        ]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


class TelemetrySource(Protocol):
    """
    Protocol for the remote telemetry client used by the poller.

    Uses Protocol for duck typing - test doubles don't need to inherit,
    just implement the methods with matching signatures.
    """

    async def fetch(self, resource: Resource) -> Any:
        """
        Fetch one resource and return its parsed JSON body.

        Should raise a FetchError subclass on any failure.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
