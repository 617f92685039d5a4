from __future__ import annotations

from typing import Any

import asyncpg

_CAR_COLUMNS = """
    id, eid, vid, vin, model, efficiency, inserted_at, updated_at,
    name, trim_badging, exterior_color, spoiler_type, wheel_type,
    display_priority, marketing_name
"""


async def fetch_all_cars(pool: asyncpg.Pool) -> list[dict[str, Any]]:
    async with pool.acquire() as conn:
        rows = await conn.fetch(f"""
            SELECT {_CAR_COLUMNS}
            FROM cars
            ORDER BY display_priority ASC, id ASC
        """)
    return [dict(r) for r in rows]


async def fetch_car_ids(pool: asyncpg.Pool) -> list[int]:
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT id FROM cars ORDER BY id")
    return [r["id"] for r in rows]


async def fetch_car_by_id(pool: asyncpg.Pool, car_id: int) -> dict[str, Any] | None:
    async with pool.acquire() as conn:
        row = await conn.fetchrow(f"""
            SELECT {_CAR_COLUMNS}
            FROM cars
            WHERE id = $1
        """, car_id)
    return dict(row) if row else None


async def fetch_latest_state(pool: asyncpg.Pool, car_id: int) -> dict[str, Any] | None:
    async with pool.acquire() as conn:
        row = await conn.fetchrow("""
            SELECT state, start_date
            FROM states
            WHERE car_id = $1
            ORDER BY start_date DESC
            LIMIT 1
        """, car_id)
    return dict(row) if row else None


async def fetch_latest_position(pool: asyncpg.Pool, car_id: int) -> dict[str, Any] | None:
    async with pool.acquire() as conn:
        row = await conn.fetchrow("""
            SELECT latitude, longitude, odometer, battery_level,
                   usable_battery_level, ideal_battery_range_km,
                   est_battery_range_km, rated_battery_range_km,
                   inside_temp, outside_temp, is_climate_on, date
            FROM positions
            WHERE car_id = $1
            ORDER BY date DESC
            LIMIT 1
        """, car_id)
    return dict(row) if row else None


async def fetch_latest_version(pool: asyncpg.Pool, car_id: int) -> str | None:
    async with pool.acquire() as conn:
        return await conn.fetchval("""
            SELECT version
            FROM updates
            WHERE car_id = $1
            ORDER BY start_date DESC
            LIMIT 1
        """, car_id)
