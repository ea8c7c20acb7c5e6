"""Message-bus bridge between the document and an MQTT broker.

Why This Package Exists
-----------------------
The hub is populated and observed over a publish/subscribe bus as well as
over HTTP. Mapped path prefixes publish their resolved subtree after every
write underneath them, and subscribed topics turn inbound messages into
writes. The ``BusTransport`` protocol keeps the bridge independent of the
broker client so tests (and broker-less runs) use an in-memory loopback.

Usage::

    from gator.bus import create_transport, mappings_from_config
    from gator.bus.bridge import BusBridge

    transport = create_transport(config.mqtt, settings)
    bridge = BusBridge(model, transport, mappings_from_config(config.mqtt))
    await bridge.start()
    report = await bridge.write(("sales", "north"), 10)

Modules
-------
memory      InMemoryBusTransport -- loopback broker, single process
mqtt        MqttBusTransport -- paho-mqtt client
bridge      BusBridge -- outbound publish and inbound write flows
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from gator.core.config import MqttConfig, PublishType
from gator.core.paths import PathTokens, join_path, split_path

if TYPE_CHECKING:
    from gator.core.settings import GatorSettings

__all__ = [
    "BusMessage",
    "BusMapping",
    "BusTransport",
    "MessageHandler",
    "PublishType",
    "MEMORY_SCHEME",
    "create_transport",
    "mappings_from_config",
]

MEMORY_SCHEME = "memory://"


# ── Message Model ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BusMessage:
    """A message received from (or delivered by) the bus.

    Attributes:
        topic: Concrete topic the message was published on
        payload: Raw payload bytes (UTF-8 JSON by convention)
        qos: Delivery QoS
        retain: Whether the broker flagged the message as retained
    """

    topic: str
    payload: bytes
    qos: int = 0
    retain: bool = False


MessageHandler = Callable[[BusMessage], Awaitable[None]]


# ── Mappings ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BusMapping:
    """One (prefix, topic) entry of the bus mapping table."""

    prefix: PathTokens
    topic: str
    qos: int = 0
    retain: bool = False
    publish_type: PublishType = PublishType.PUBLISH

    @property
    def publishes(self) -> bool:
        return self.publish_type in (PublishType.PUBLISH, PublishType.BOTH)

    @property
    def subscribes(self) -> bool:
        return self.publish_type in (PublishType.SUBSCRIBE, PublishType.BOTH)

    @property
    def key(self) -> str:
        return join_path(self.prefix)


def mappings_from_config(config: MqttConfig | None) -> list[BusMapping]:
    """Flatten the ``paths`` table, keeping per-prefix entry order."""
    if config is None:
        return []
    return [
        BusMapping(
            prefix=split_path(prefix),
            topic=entry.topic,
            qos=entry.qos,
            retain=entry.retain,
            publish_type=entry.publish_type,
        )
        for prefix, entries in config.paths.items()
        for entry in entries
    ]


# ── BusTransport Protocol ────────────────────────────────────────────────


@runtime_checkable
class BusTransport(Protocol):
    """Protocol for broker clients used by the bridge.

    All methods are coroutine functions. Failures raise ``TransportError``.
    """

    @property
    def connected(self) -> bool:
        ...

    async def connect(self) -> None:
        """Connect to the broker; returns once the connection is established."""
        ...

    async def publish(
        self,
        topic: str,
        payload: bytes,
        *,
        qos: int = 0,
        retain: bool = False,
        timeout: float | None = None,
    ) -> None:
        """Publish and wait for the acknowledgement QoS requires."""
        ...

    async def subscribe(self, topic: str, qos: int, handler: MessageHandler) -> None:
        """Register ``handler`` for messages matching ``topic``.

        Subscriptions survive reconnects.
        """
        ...

    async def close(self) -> None:
        """Disconnect and release resources."""
        ...


def create_transport(config: MqttConfig, settings: GatorSettings | None = None) -> BusTransport:
    """Build the transport for ``config.broker``.

    ``memory://`` selects the in-process loopback; any other URL is an MQTT
    broker.
    """
    if config.broker.startswith(MEMORY_SCHEME):
        from gator.bus.memory import InMemoryBusTransport

        return InMemoryBusTransport()

    from gator.bus.mqtt import MqttBusTransport

    connect_timeout = settings.connect_timeout_seconds if settings is not None else 10.0
    return MqttBusTransport.from_config(config, connect_timeout=connect_timeout)
