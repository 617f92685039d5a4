"""Car status assembly: live MQTT snapshot first, latest DB rows as fallback."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Callable

from cyberui.schemas.cars import CarStatusOut


def as_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        # TeslaMate publishes some integer metrics as "87.0"
        f = as_float(value)
        return int(f) if f is not None else None


def as_float(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        f = float(value)
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def as_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    text = value.strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    return None


def as_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def as_text(value: str | None) -> str | None:
    return value if value else None


def _first(*values: Any) -> Any:
    for v in values:
        if v is not None:
            return v
    return None


# output field → (MQTT metric, positions column, parser)
POSITION_FIELDS: dict[str, tuple[str, str, Callable[[str | None], Any]]] = {
    "battery_level": ("battery_level", "battery_level", as_int),
    "usable_battery_level": ("usable_battery_level", "usable_battery_level", as_int),
    "ideal_range": ("ideal_battery_range_km", "ideal_battery_range_km", as_float),
    "est_range": ("est_battery_range_km", "est_battery_range_km", as_float),
    "rated_range": ("rated_battery_range_km", "rated_battery_range_km", as_float),
    "odometer": ("odometer", "odometer", as_float),
    "inside_temp": ("inside_temp", "inside_temp", as_float),
    "outside_temp": ("outside_temp", "outside_temp", as_float),
    "is_climate_on": ("is_climate_on", "is_climate_on", as_bool),
    "latitude": ("latitude", "latitude", as_float),
    "longitude": ("longitude", "longitude", as_float),
}


def live_state(live: dict[str, str]) -> str | None:
    return as_text(live.get("state"))


def live_version(live: dict[str, str]) -> str | None:
    return as_text(live.get("version"))


def needs_state(live: dict[str, str]) -> bool:
    return live_state(live) is None or as_datetime(live.get("since")) is None


def needs_version(live: dict[str, str]) -> bool:
    return live_version(live) is None


def needs_position(live: dict[str, str]) -> bool:
    """True if any position-backed field is unknown in the live snapshot."""
    return any(
        parse(live.get(metric)) is None
        for metric, _, parse in POSITION_FIELDS.values()
    )


def _car_model(car: dict[str, Any]) -> str | None:
    model = car.get("model")
    trim = car.get("trim_badging")
    if model and trim:
        return f"{model} {trim}"
    return model or None


def build_car_status(
    car_id: int,
    car: dict[str, Any],
    live: dict[str, str],
    state: dict[str, Any] | None = None,
    position: dict[str, Any] | None = None,
    version: str | None = None,
) -> CarStatusOut:
    """Merge the cached metrics of one car with its latest database rows.

    A metric that parses to a value in ``live`` always wins; anything the cache
    has never seen (or holds as unparseable) falls back to the database, and
    stays ``None`` if neither knows it.
    """
    state = state or {}
    position = position or {}

    from_position = {
        field: _first(parse(live.get(metric)), position.get(column))
        for field, (metric, column, parse) in POSITION_FIELDS.items()
    }

    return CarStatusOut(
        car_id=car_id,
        name=_first(as_text(live.get("display_name")), car.get("name")),
        model=_car_model(car),
        state=_first(live_state(live), state.get("state")),
        since=_first(as_datetime(live.get("since")), state.get("start_date")),
        healthy=as_bool(live.get("healthy")),
        is_preconditioning=as_bool(live.get("is_preconditioning")),
        locked=as_bool(live.get("locked")),
        sentry_mode=as_bool(live.get("sentry_mode")),
        plugged_in=as_bool(live.get("plugged_in")),
        scheduled_charging_start_time=as_datetime(live.get("scheduled_charging_start_time")),
        heading=as_int(live.get("heading")),
        geofence=as_text(live.get("geofence")),
        software_version=_first(live_version(live), version),
        live=bool(live),
        **from_position,
    )
