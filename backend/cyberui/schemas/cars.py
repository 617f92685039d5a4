from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CarOut(_CamelModel):
    id: int
    name: Optional[str] = None
    model: Optional[str] = None
    vin: Optional[str] = None
    trim_badging: Optional[str] = None
    exterior_color: Optional[str] = None
    wheel_type: Optional[str] = None
    marketing_name: Optional[str] = None
    display_priority: int = 0
    inserted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CarStatusOut(_CamelModel):
    car_id: int
    name: Optional[str] = None
    model: Optional[str] = None
    state: Optional[str] = None
    since: Optional[datetime] = None
    healthy: Optional[bool] = None
    battery_level: Optional[int] = None
    usable_battery_level: Optional[int] = None
    ideal_range: Optional[float] = None
    est_range: Optional[float] = None
    rated_range: Optional[float] = None
    odometer: Optional[float] = None
    inside_temp: Optional[float] = None
    outside_temp: Optional[float] = None
    is_climate_on: Optional[bool] = None
    is_preconditioning: Optional[bool] = None
    locked: Optional[bool] = None
    sentry_mode: Optional[bool] = None
    plugged_in: Optional[bool] = None
    scheduled_charging_start_time: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    heading: Optional[int] = None
    geofence: Optional[str] = None
    software_version: Optional[str] = None
    live: bool = False


class LiveSnapshotOut(_CamelModel):
    car_id: int
    metrics: dict[str, str] = {}


class LiveMetricOut(_CamelModel):
    car_id: int
    metric: str
    value: Optional[str] = None
