"""
Pure mappings from raw Enphase payloads to CachedState.

Each function takes the current snapshot and a payload and returns a new
snapshot. Fields the payload cannot speak for are carried over untouched, so
a partial or malformed payload never clears unrelated cached values.
"""
from dataclasses import fields, replace
from typing import Any, Callable

from core.state import CachedState
from sources.base import Resource

GRID_STATUS_NORMAL = "normal"
STORM_GUARD_ENABLED = "enabled"
# The API sends the alert flag as a string, not a JSON boolean.
STORM_ALERT_ACTIVE = "true"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _energy_delivered(flow: dict) -> Any:
    # Older responses use the abbreviated "enwh" key.
    value = flow.get("energy_delivered_watt_hours")
    if value is None:
        value = flow.get("enwh")
    return value


def derive_battery(state: CachedState, payload: Any) -> CachedState:
    """
    Map a battery telemetry payload onto the cached state.

    Only the most recent interval is considered. Percent comes from
    `soc.percent`; charging is evaluated only when both `charge` and
    `discharge` are present and the delivered energy is a number.
    """
    if not isinstance(payload, dict):
        return state
    intervals = payload.get("intervals")
    if not isinstance(intervals, list) or not intervals:
        return state
    last = intervals[-1]
    if not isinstance(last, dict):
        return state

    changes = {}

    soc = last.get("soc")
    if isinstance(soc, dict) and _is_number(soc.get("percent")):
        changes["battery_percent"] = soc["percent"]

    charge = last.get("charge")
    discharge = last.get("discharge")
    if isinstance(charge, dict) and isinstance(discharge, dict):
        delivered = _energy_delivered(charge)
        if _is_number(delivered):
            changes["charging"] = delivered > 0

    return replace(state, **changes) if changes else state


def derive_grid(state: CachedState, payload: Any) -> CachedState:
    """Grid is connected only for status "normal"; any other or missing status is an outage."""
    if not isinstance(payload, dict):
        return state
    return replace(state, grid_connected=payload.get("status") == GRID_STATUS_NORMAL)


def derive_storm_watch(state: CachedState, payload: Any) -> CachedState:
    if not isinstance(payload, dict):
        return state
    active = (
        payload.get("storm_guard_status") == STORM_GUARD_ENABLED
        and payload.get("storm_alert") == STORM_ALERT_ACTIVE
    )
    return replace(state, storm_watch=active)


DERIVATIONS: dict[Resource, Callable[[CachedState, Any], CachedState]] = {
    Resource.BATTERY: derive_battery,
    Resource.GRID: derive_grid,
    Resource.STORM: derive_storm_watch,
}


def changed_fields(before: CachedState, after: CachedState) -> list[str]:
    """Names of the fields (including low_battery) that differ between two snapshots."""
    names = [f.name for f in fields(CachedState)] + ["low_battery"]
    return [name for name in names if getattr(before, name) != getattr(after, name)]
