"""Scheduled and on-demand polling of the Enphase API into the state store"""
import asyncio
import logging
from typing import Callable

from core.derivation import DERIVATIONS
from core.state import CachedState, StateStore
from sources.base import Resource, TelemetrySource

logger = logging.getLogger(__name__)

# Seconds between scheduled polls
DEFAULT_INTERVALS = {
    Resource.BATTERY: 5 * 60,
    Resource.GRID: 60,
    Resource.STORM: 15 * 60,
}

UpdateCallback = Callable[[Resource, CachedState, CachedState], None]


class Poller:
    """
    Keeps the state store current.

    Runs one independent asyncio task per resource: an eager poll at start,
    then one poll per interval. A failed tick is logged and the cache keeps
    its last known values; the next tick simply tries again.

    refresh() is also the entry point for on-demand reads. Concurrent
    refreshes of the same resource share a single in-flight request, so a
    host read racing a scheduled tick cannot write an older payload over a
    newer one.
    """

    def __init__(
        self,
        source: TelemetrySource,
        store: StateStore,
        on_update: UpdateCallback | None = None,
        intervals: dict[Resource, float] | None = None
    ):
        """
        Initialize poller.

        Args:
            source: Telemetry client providing fetch(resource)
            store: Shared state store the derived snapshots are written to
            on_update: Called with (resource, before, after) after each successful refresh
            intervals: Per-resource poll period in seconds (default: 5 min / 1 min / 15 min)
        """
        self.source = source
        self.store = store
        self.on_update = on_update
        self.intervals = {**DEFAULT_INTERVALS, **(intervals or {})}
        self._tasks: dict[Resource, asyncio.Task] = {}
        self._in_flight: dict[Resource, asyncio.Task] = {}

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        """Create the poll tasks. Calling it again while running does nothing."""
        if self._tasks:
            logger.debug("Poller: Already running")
            return

        for resource in Resource:
            interval = self.intervals[resource]
            logger.info(f"Poller: Starting {resource.value} polling (interval: {interval}s)")
            self._tasks[resource] = asyncio.create_task(
                self._poll_forever(resource, interval),
                name=f"poll-{resource.value}"
            )

    async def _poll_forever(self, resource: Resource, interval: float) -> None:
        # Eager first run so the host shows current data before the first interval elapses
        await self.tick(resource)
        while True:
            await asyncio.sleep(interval)
            await self.tick(resource)

    async def tick(self, resource: Resource) -> bool:
        """
        One scheduled poll. Never raises; returns True when the cache was updated.
        """
        try:
            await self.refresh(resource)
            return True
        except Exception as e:
            logger.error(f"Poller: Error fetching {resource.value} status: {e}")
            return False

    async def refresh(self, resource: Resource) -> CachedState:
        """
        Fetch one resource, derive and store the new state.

        Joins an already running fetch of the same resource instead of
        starting a second one. Raises whatever the fetch raised.
        """
        task = self._in_flight.get(resource)
        if task is None or task.done():
            task = asyncio.create_task(self._fetch_and_apply(resource))
            self._in_flight[resource] = task
            task.add_done_callback(lambda t: self._forget(resource, t))
        else:
            logger.debug(f"Poller: Joining in-flight {resource.value} request")

        # Shielded so a cancelled caller doesn't cancel the fetch for the others
        return await asyncio.shield(task)

    def _forget(self, resource: Resource, task: asyncio.Task) -> None:
        if self._in_flight.get(resource) is task:
            del self._in_flight[resource]

    async def _fetch_and_apply(self, resource: Resource) -> CachedState:
        payload = await self.source.fetch(resource)

        # No await from here on: derive, swap and notify run as one step
        derive = DERIVATIONS[resource]
        before = self.store.state
        after = derive(before, payload)
        self.store.replace(after)

        if self.on_update is not None:
            try:
                self.on_update(resource, before, after)
            except Exception as e:
                logger.error(f"Poller: Failed to publish {resource.value} update: {e}")
        return after

    async def stop(self) -> None:
        """
        Cancel the poll tasks and wait for them to unwind (shutdown only).

        Fetches already in flight are not cancelled; they are awaited so the
        client can be closed afterwards and their errors are retrieved.
        """
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        in_flight = list(self._in_flight.values())
        if in_flight:
            logger.debug(f"Poller: Waiting for {len(in_flight)} in-flight request(s)")
            await asyncio.gather(*in_flight, return_exceptions=True)
            for resource, task in list(self._in_flight.items()):
                if task.done():
                    self._forget(resource, task)
        logger.info("Poller: Stopped")

    async def wait(self) -> None:
        """Block until every poll task has finished (normally: until stop())."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
