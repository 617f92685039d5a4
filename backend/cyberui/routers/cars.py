from __future__ import annotations

import logging
from typing import Annotated

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Path

from cyberui.auth import verify_api_key
from cyberui.db.queries.cars import (
    fetch_all_cars,
    fetch_car_by_id,
    fetch_latest_position,
    fetch_latest_state,
    fetch_latest_version,
)
from cyberui.deps import get_cache, get_pool
from cyberui.mqtt.cache import StatusCache
from cyberui.mqtt.ingress import CAR_ID_MAX, CAR_ID_MIN
from cyberui.schemas.cars import CarOut, CarStatusOut, LiveMetricOut, LiveSnapshotOut
from cyberui.schemas.common import ApiResponse
from cyberui.services.status import (
    build_car_status,
    needs_position,
    needs_state,
    needs_version,
)

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/cars",
    tags=["cars"],
    dependencies=[Depends(verify_api_key)],
)

CarId = Annotated[int, Path(ge=CAR_ID_MIN, le=CAR_ID_MAX)]


@router.get("", response_model=ApiResponse[list[CarOut]])
async def list_cars(pool: asyncpg.Pool = Depends(get_pool)):
    try:
        rows = await fetch_all_cars(pool)
    except (asyncpg.PostgresError, OSError) as exc:
        logger.error("Failed to get cars: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to get cars")
    return ApiResponse(data=[CarOut(**r) for r in rows])


@router.get("/{car_id}/status", response_model=ApiResponse[CarStatusOut])
async def get_car_status(
    car_id: CarId,
    pool: asyncpg.Pool = Depends(get_pool),
    cache: StatusCache = Depends(get_cache),
):
    try:
        car = await fetch_car_by_id(pool, car_id)
        if car is None:
            raise HTTPException(status_code=404, detail="Car not found")

        live = cache.get_all(car_id)
        # Only hit the history tables for what MQTT has not delivered yet
        state = None
        if needs_state(live):
            state = await fetch_latest_state(pool, car_id)
        position = None
        if needs_position(live):
            position = await fetch_latest_position(pool, car_id)
        version = None
        if needs_version(live):
            version = await fetch_latest_version(pool, car_id)
    except (asyncpg.PostgresError, OSError) as exc:
        logger.error("Failed to get car status for car %d: %s", car_id, exc)
        raise HTTPException(status_code=500, detail="Failed to get car status")

    return ApiResponse(data=build_car_status(car_id, car, live, state, position, version))


@router.get("/{car_id}/live", response_model=ApiResponse[LiveSnapshotOut])
async def get_live_snapshot(
    car_id: CarId,
    cache: StatusCache = Depends(get_cache),
):
    return ApiResponse(data=LiveSnapshotOut(car_id=car_id, metrics=cache.get_all(car_id)))


@router.get("/{car_id}/live/{metric}", response_model=ApiResponse[LiveMetricOut])
async def get_live_metric(
    car_id: CarId,
    metric: str,
    cache: StatusCache = Depends(get_cache),
):
    return ApiResponse(
        data=LiveMetricOut(car_id=car_id, metric=metric, value=cache.get(car_id, metric)),
    )
