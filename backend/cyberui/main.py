"""TeslaMate CyberUI — backend."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from cyberui.auth import API_KEY_HEADER
from cyberui.config import Settings, get_settings
from cyberui.db.pool import close_pool, create_pool
from cyberui.db.queries.cars import fetch_car_ids
from cyberui.mqtt.cache import StatusCache
from cyberui.mqtt.ingress import IngressConnectError, TelemetryIngress
from cyberui.routers import cars
from cyberui.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.app.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


async def _load_car_ids(pool: asyncpg.Pool | None, settings: Settings) -> list[int]:
    if pool is not None:
        try:
            ids = await fetch_car_ids(pool)
            if ids:
                return ids
        except (asyncpg.PostgresError, OSError) as exc:
            logger.error("Failed to load car list: %s", exc)
    return list(settings.mqtt.car_ids)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings)
    logger.info("Starting %s v%s", settings.app.name, settings.app.version)

    # 1. asyncpg pool
    try:
        app.state.db_pool = await create_pool(settings.database)
        logger.info("Database connected successfully")
    except Exception as exc:
        logger.error("Database connection failed: %s", exc)
        app.state.db_pool = None

    # 2. Live status cache, shared by the ingress and the HTTP handlers
    cache = StatusCache()
    app.state.cache = cache

    # 3. MQTT ingress
    ingress = None
    mqtt_task = None
    if settings.mqtt.enabled:
        car_ids = await _load_car_ids(app.state.db_pool, settings)
        if not car_ids:
            logger.warning("No cars known, MQTT ingress will not subscribe to anything")
        ingress = TelemetryIngress(settings.mqtt, cache, car_ids)
        try:
            await ingress.connect()
        except IngressConnectError as exc:
            # run() keeps retrying in the background
            logger.error("%s", exc)
        mqtt_task = asyncio.create_task(ingress.run())
    else:
        logger.info("MQTT ingress disabled, live status comes from the database only")
    app.state.ingress = ingress

    logger.info("Server starting on %s:%s", settings.server.host, settings.server.port)
    yield

    # Cleanup
    if mqtt_task is not None:
        mqtt_task.cancel()
        await asyncio.gather(mqtt_task, return_exceptions=True)
    if ingress is not None:
        await ingress.disconnect()
    if app.state.db_pool is not None:
        await close_pool(app.state.db_pool)
    logger.info("Shutdown complete")


def _cors_kwargs(origins: list[str]) -> dict:
    # Wildcard origin and credentials are mutually exclusive
    if not origins or origins == ["*"]:
        return {"allow_origins": ["*"], "allow_credentials": False}
    return {"allow_origins": origins, "allow_credentials": True}


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(code=exc.status_code, message=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content=ErrorResponse(code=400, message=message).model_dump())


app = FastAPI(
    title="TeslaMate CyberUI",
    version=get_settings().app.version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Authorization", API_KEY_HEADER],
    expose_headers=["Content-Length"],
    **_cors_kwargs(get_settings().server.cors_origins),
)

app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

app.include_router(cars.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
