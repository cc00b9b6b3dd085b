"""Enphase v4 API ingress module - fetches battery, grid and storm guard data via HTTP"""
import logging
from typing import Any

import httpx

from sources.base import (
    Credentials,
    PayloadError,
    Resource,
    TransportError,
    UpstreamStatusError,
)

logger = logging.getLogger(__name__)

API_BASE = "https://api.enphaseenergy.com/api/v4"


class EnphaseClient:
    """
    Enphase Enlighten v4 API client.

    Issues authenticated GET requests against the system endpoints and
    returns the parsed JSON body. No retry and no caching happen here:
    every call goes to the network and every failure is raised to the caller.
    """

    def __init__(
        self,
        credentials: Credentials,
        base_url: str = API_BASE,
        client: httpx.AsyncClient | None = None
    ):
        """
        Initialize Enphase client.

        Args:
            credentials: Validated system id, API key and access token
            base_url: API base URL (default: Enphase v4 production API)
            client: Optional pre-built httpx.AsyncClient (mainly for tests)
        """
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {credentials.access_token}",
                "key": credentials.api_key,
            }
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def url_for(self, resource: Resource) -> str:
        return f"{self.base_url}{resource.url_path(self.credentials.system_id)}"

    async def fetch(self, resource: Resource) -> Any:
        """
        GET one resource and return its JSON body.

        Raises:
            TransportError: network-level failure (connect, DNS, timeout)
            UpstreamStatusError: any non-2xx response
            PayloadError: 2xx response whose body is not JSON
        """
        url = self.url_for(resource)
        logger.debug(f"Enphase API: GET {url}")

        try:
            response = await self.client.get(url)
        except httpx.TransportError as e:
            raise TransportError(f"Cannot reach Enphase API ({resource.value}): {e}") from e

        if not response.is_success:
            raise UpstreamStatusError(response.status_code, resource)

        try:
            return response.json()
        except ValueError as e:
            raise PayloadError(f"Invalid JSON in {resource.value} response: {e}") from e

    async def aclose(self) -> None:
        await self.client.aclose()
        logger.info("Enphase API: Client closed")
