"""
MQTT bus transport backed by paho-mqtt.

Manifesto:
    The broker is the hub's window onto the plant floor. Connections drop,
    so reconnecting is paho's job: its network loop retries with a bounded
    back-off and this transport re-establishes every subscription each time
    a connection comes up.

paho runs its network loop in a background thread. Inbound messages are
handed to the asyncio loop that called ``connect()`` with
``asyncio.run_coroutine_threadsafe``; blocking waits (CONNACK, PUBACK)
happen off the event loop.

Broker URLs::

    tcp://host:1883    mqtt://host        plain TCP (default port 1883)
    ssl://host:8883    mqtts://host       TLS (default port 8883)
    tls://host

Requires: ``paho-mqtt>=2.0``

Tags:
    gator, bus, mqtt, paho, tls, reconnect
"""

from __future__ import annotations

import asyncio
import ssl
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import paho.mqtt.client as mqtt

from gator.bus import BusMessage, MessageHandler
from gator.core.config import MqttConfig
from gator.core.errors import TransportError
from gator.core.logging import get_logger

__all__ = ["MqttBusTransport", "parse_broker_url"]

logger = get_logger(__name__)

KEEPALIVE_SECONDS = 60
RECONNECT_MIN_DELAY = 1
RECONNECT_MAX_DELAY = 5

_PLAIN_SCHEMES = {"tcp": 1883, "mqtt": 1883}
_TLS_SCHEMES = {"ssl": 8883, "mqtts": 8883, "tls": 8883}


def parse_broker_url(url: str) -> tuple[str, int, bool]:
    """Split a broker URL into ``(host, port, tls)``.

    Raises:
        TransportError: unknown scheme or missing host
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme in _PLAIN_SCHEMES:
        default_port, tls = _PLAIN_SCHEMES[scheme], False
    elif scheme in _TLS_SCHEMES:
        default_port, tls = _TLS_SCHEMES[scheme], True
    else:
        raise TransportError(f"unsupported broker URL scheme in '{url}'")
    if not parts.hostname:
        raise TransportError(f"broker URL '{url}' has no host")
    return parts.hostname, parts.port or default_port, tls


@dataclass
class Subscription:
    """Internal subscription record, replayed on every (re)connect.

    One broker subscription per topic filter; every handler registered for
    the filter receives each matching message.
    """

    topic: str
    qos: int
    handlers: list[MessageHandler] = field(default_factory=list)


class MqttBusTransport:
    """``BusTransport`` over a paho-mqtt client.

    Example::

        transport = MqttBusTransport("tcp://localhost:1883")
        await transport.connect()
        await transport.publish("factory/sales", b'{"north": 1}', qos=1)
        await transport.close()
    """

    def __init__(
        self,
        broker: str,
        *,
        username: str | None = None,
        password: str | None = None,
        secure: bool = False,
        ca_cert: str | None = None,
        client_cert: str | None = None,
        client_key: str | None = None,
        ca_server_hostname: str | None = None,
        connect_timeout: float = 10.0,
        client_id: str | None = None,
    ) -> None:
        self.broker = broker
        self.host, self.port, url_tls = parse_broker_url(broker)
        self.secure = secure or url_tls
        self.connect_timeout = connect_timeout
        self.client_id = client_id or f"gator-{int(time.time())}"
        self._subscriptions: dict[str, Subscription] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connected_event: asyncio.Event | None = None
        self._connected = False
        self._last_failure: str | None = None

        self._client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
        )
        if username or password:
            self._client.username_pw_set(username, password)
        if self.secure:
            self._configure_tls(ca_cert, client_cert, client_key, ca_server_hostname)
        self._client.reconnect_delay_set(min_delay=RECONNECT_MIN_DELAY, max_delay=RECONNECT_MAX_DELAY)
        self._client.on_connect = self._on_connect
        self._client.on_connect_fail = self._on_connect_fail
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

    @classmethod
    def from_config(cls, config: MqttConfig, *, connect_timeout: float = 10.0) -> MqttBusTransport:
        return cls(
            config.broker,
            username=config.username,
            password=config.password,
            secure=config.secure,
            ca_cert=config.ca_cert,
            client_cert=config.client_cert,
            client_key=config.client_key,
            ca_server_hostname=config.ca_server_hostname,
            connect_timeout=connect_timeout,
        )

    def _configure_tls(
        self,
        ca_cert: str | None,
        client_cert: str | None,
        client_key: str | None,
        ca_server_hostname: str | None,
    ) -> None:
        # Without an expected server name the peer certificate is not verified.
        verify = bool(ca_server_hostname)
        try:
            self._client.tls_set(
                ca_certs=ca_cert or None,
                certfile=client_cert or None,
                keyfile=client_key or None,
                cert_reqs=ssl.CERT_REQUIRED if verify else ssl.CERT_NONE,
            )
        except (OSError, ValueError, ssl.SSLError) as exc:
            raise TransportError(f"failed to load TLS material: {exc}", cause=exc) from exc
        if not verify:
            self._client.tls_insecure_set(True)

    @property
    def connected(self) -> bool:
        return self._connected

    # ── paho callbacks (network thread) ──────────────────────────────────

    def _on_connect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if reason_code.is_failure:
            self._last_failure = str(reason_code)
            logger.error("mqtt_connect_refused", broker=self.broker, reason=str(reason_code))
            return

        self._connected = True
        logger.info("mqtt_connected", broker=self.broker, client_id=self.client_id)
        for sub in self._subscriptions.values():
            client.subscribe(sub.topic, sub.qos)
            logger.debug("mqtt_subscribed", topic=sub.topic, qos=sub.qos)
        if self._loop is not None and self._connected_event is not None:
            self._loop.call_soon_threadsafe(self._connected_event.set)

    def _on_connect_fail(self, client: mqtt.Client, userdata: Any) -> None:
        self._last_failure = "connection attempt failed"
        logger.warning("mqtt_connect_failed", broker=self.broker)

    def _on_disconnect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        self._connected = False
        logger.warning("mqtt_connection_lost", broker=self.broker, reason=str(reason_code))

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage) -> None:
        if self._loop is None:
            return
        message = BusMessage(topic=msg.topic, payload=bytes(msg.payload), qos=msg.qos, retain=bool(msg.retain))
        for sub in list(self._subscriptions.values()):
            if not mqtt.topic_matches_sub(sub.topic, msg.topic):
                continue
            for handler in list(sub.handlers):
                future = asyncio.run_coroutine_threadsafe(handler(message), self._loop)
                future.add_done_callback(self._report_handler_failure(message.topic))

    @staticmethod
    def _report_handler_failure(topic: str) -> Any:
        def callback(future: Future) -> None:
            if future.cancelled():
                return
            exc = future.exception()
            if exc is not None:
                logger.warning("bus_handler_error", topic=topic, error=str(exc))

        return callback

    # ── BusTransport ─────────────────────────────────────────────────────

    async def connect(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._connected_event = asyncio.Event()
        logger.info("mqtt_connecting", broker=self.broker, client_id=self.client_id)
        try:
            self._client.connect_async(self.host, self.port, keepalive=KEEPALIVE_SECONDS)
        except (OSError, ValueError) as exc:
            raise TransportError(f"failed to connect to {self.broker}: {exc}", cause=exc) from exc
        self._client.loop_start()

        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout=self.connect_timeout)
        except asyncio.TimeoutError as exc:
            self._client.loop_stop()
            reason = self._last_failure or "timed out"
            raise TransportError(
                f"failed to connect to {self.broker} within {self.connect_timeout}s: {reason}",
                cause=exc,
            ) from exc

    async def publish(
        self,
        topic: str,
        payload: bytes,
        *,
        qos: int = 0,
        retain: bool = False,
        timeout: float | None = None,
    ) -> None:
        info = self._client.publish(topic, payload, qos=qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(
                f"publish to '{topic}' failed: {mqtt.error_string(info.rc)}"
            ).with_context(topic=topic)

        wait = None if timeout is None else timeout * (1 + qos)
        try:
            await asyncio.to_thread(info.wait_for_publish, wait)
        except (RuntimeError, ValueError) as exc:
            raise TransportError(f"publish to '{topic}' failed: {exc}", cause=exc).with_context(topic=topic) from exc
        if not info.is_published():
            raise TransportError(
                f"publish to '{topic}' was not acknowledged within {wait}s"
            ).with_context(topic=topic)

    async def subscribe(self, topic: str, qos: int, handler: MessageHandler) -> None:
        sub = self._subscriptions.get(topic)
        if sub is None:
            sub = self._subscriptions[topic] = Subscription(topic=topic, qos=qos)
        elif qos <= sub.qos:
            # The broker already delivers this filter at an adequate QoS.
            sub.handlers.append(handler)
            return
        sub.qos = qos
        sub.handlers.append(handler)
        if not self._connected:
            return
        result, _mid = self._client.subscribe(topic, qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(
                f"subscribe to '{topic}' failed: {mqtt.error_string(result)}"
            ).with_context(topic=topic)
        logger.info("mqtt_subscribed", topic=topic, qos=qos)

    async def close(self) -> None:
        self._client.disconnect()
        self._client.loop_stop()
        self._connected = False
        logger.info("mqtt_disconnected", broker=self.broker)
