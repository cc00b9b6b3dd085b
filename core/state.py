"""Cached device state shared by the poller and the accessory adapter"""
from dataclasses import dataclass, fields

LOW_BATTERY_THRESHOLD = 20


@dataclass(frozen=True)
class CachedState:
    """
    Last known state derived from the Enphase API.

    Every field starts as None, meaning "unknown: no successful fetch yet".
    A failed fetch never resets a field back to None; stale data wins over
    no data.

    Attributes:
        battery_percent: State of charge, 0-100.
        charging: True when the last interval delivered energy into the battery.
        grid_connected: True when the system summary reports status "normal".
        storm_watch: True when storm guard is enabled and a storm alert is active.
    """
    battery_percent: float | None = None
    charging: bool | None = None
    grid_connected: bool | None = None
    storm_watch: bool | None = None

    @property
    def low_battery(self) -> bool | None:
        """Derived from the cached percent; None while the percent is unknown."""
        if self.battery_percent is None:
            return None
        return self.battery_percent < LOW_BATTERY_THRESHOLD

    def as_dict(self) -> dict:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["low_battery"] = self.low_battery
        return values


class StateStore:
    """
    Owner of the current CachedState snapshot.

    Updates swap in a whole new snapshot; a snapshot is never mutated in place,
    so a reader holding one always sees a consistent set of fields.
    """

    def __init__(self, initial: CachedState | None = None):
        self._state = initial or CachedState()

    @property
    def state(self) -> CachedState:
        return self._state

    def replace(self, new_state: CachedState) -> CachedState:
        """Install a new snapshot and return the previous one."""
        previous, self._state = self._state, new_state
        return previous
