"""MQTT subscriber: TeslaMate per-car topics → StatusCache.

Topic layout: <namespace>/<car_id>/<metric>, e.g. teslamate/cars/1/battery_level.
One wildcard subscription per car; every (re)connect re-issues all of them so a
broker restart or network blip never leaves a car silently unsubscribed.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import ssl
from typing import Any, Callable, Iterable

import aiomqtt

from cyberui.config import MqttConfig
from cyberui.mqtt.cache import StatusCache

logger = logging.getLogger(__name__)

CAR_ID_MIN = -32768
CAR_ID_MAX = 32767

_INT_RE = re.compile(r"[+-]?[0-9]+")


class IngressConnectError(Exception):
    """The initial connect handshake with the broker did not succeed."""


def parse_topic(topic: str, namespace: str) -> tuple[int, str] | None:
    """Extract (car_id, metric) from a topic, or None if it is malformed."""
    ns_len = len(namespace.strip("/").split("/"))
    parts = topic.split("/")
    if len(parts) < ns_len + 2:
        return None

    car_id_str = parts[ns_len]
    metric = parts[ns_len + 1]
    if not metric or not _INT_RE.fullmatch(car_id_str):
        return None

    car_id = int(car_id_str)
    if not CAR_ID_MIN <= car_id <= CAR_ID_MAX:
        return None
    return car_id, metric


def decode_payload(payload: Any) -> str:
    """Raw MQTT payload as text, with no type coercion.

    Bytes that are not valid UTF-8 are replaced with U+FFFD, so such payloads
    are not kept byte for byte.
    """
    if payload is None:
        return ""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload).decode("utf-8", errors="replace")
    return str(payload)


def _tls_context(cfg: MqttConfig) -> ssl.SSLContext | None:
    if not cfg.tls:
        return None
    context = ssl.create_default_context()
    if cfg.tls_insecure:
        # Local brokers commonly run with self-signed certificates
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class TelemetryIngress:
    def __init__(
        self,
        cfg: MqttConfig,
        cache: StatusCache,
        car_ids: Iterable[int],
        client_factory: Callable[..., Any] = aiomqtt.Client,
    ) -> None:
        self._cfg = cfg
        self._cache = cache
        self._car_ids = list(dict.fromkeys(car_ids))
        self._client_factory = client_factory
        self._client: Any = None
        self._stack: contextlib.AsyncExitStack | None = None
        self.subscriptions: set[str] = set()

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def topic_for(self, car_id: int) -> str:
        return f"{self._cfg.namespace.strip('/')}/{car_id}/#"

    def _new_client(self) -> Any:
        cfg = self._cfg
        return self._client_factory(
            hostname=cfg.host,
            port=cfg.port,
            username=cfg.username or None,
            password=cfg.password or None,
            identifier=cfg.client_id,
            keepalive=cfg.keepalive,
            timeout=cfg.connect_timeout,
            tls_context=_tls_context(cfg),
        )

    async def connect(self) -> None:
        if self._client is not None:
            return

        client = self._new_client()
        stack = contextlib.AsyncExitStack()
        try:
            await asyncio.wait_for(
                stack.enter_async_context(client),
                timeout=self._cfg.connect_timeout,
            )
        except (aiomqtt.MqttError, OSError, asyncio.TimeoutError) as exc:
            raise IngressConnectError(
                f"MQTT connect to {self._cfg.host}:{self._cfg.port} failed: {exc}"
            ) from exc

        self._client = client
        self._stack = stack
        logger.info("Connected to MQTT broker %s:%s", self._cfg.host, self._cfg.port)
        await self._subscribe_all()

    async def _subscribe_all(self) -> None:
        self.subscriptions.clear()
        for car_id in self._car_ids:
            topic = self.topic_for(car_id)
            try:
                await self._client.subscribe(topic, qos=1)
            except aiomqtt.MqttError as exc:
                logger.error("Failed to subscribe to MQTT topic %s: %s", topic, exc)
                continue
            self.subscriptions.add(topic)
            logger.info("Subscribed to MQTT topic: %s", topic)

    def handle_message(self, topic: str, payload: Any) -> bool:
        parsed = parse_topic(topic, self._cfg.namespace)
        if parsed is None:
            logger.debug("Ignoring MQTT message on unexpected topic %s", topic)
            return False
        car_id, metric = parsed
        self._cache.set(car_id, metric, decode_payload(payload))
        return True

    async def run(self) -> None:
        """Consume messages until cancelled, reconnecting with backoff."""
        reconnect_interval = self._cfg.reconnect_interval

        while True:
            try:
                if self._client is None:
                    await self.connect()
                reconnect_interval = self._cfg.reconnect_interval

                async for message in self._client.messages:
                    self.handle_message(str(message.topic), message.payload)

                raise aiomqtt.MqttError("message stream ended")

            except (aiomqtt.MqttError, IngressConnectError) as exc:
                logger.error(
                    "Lost connection to MQTT broker: %s, reconnecting in %.1fs",
                    exc, reconnect_interval,
                )
                await self._teardown()
                await asyncio.sleep(reconnect_interval)
                reconnect_interval = min(
                    reconnect_interval * 2, self._cfg.max_reconnect_interval
                )
            except asyncio.CancelledError:
                logger.info("MQTT ingress cancelled")
                break

    async def _teardown(self) -> None:
        stack, self._stack = self._stack, None
        self._client = None
        self.subscriptions.clear()
        if stack is None:
            return
        try:
            await asyncio.wait_for(stack.aclose(), timeout=self._cfg.disconnect_timeout)
        except (aiomqtt.MqttError, OSError, asyncio.TimeoutError) as exc:
            logger.debug("MQTT client close: %s", exc)

    async def disconnect(self) -> None:
        if self._client is None:
            return
        await self._teardown()
        logger.info("Disconnected from MQTT broker")
