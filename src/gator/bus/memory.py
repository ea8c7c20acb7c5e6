"""
In-memory bus transport.

Manifesto:
    Tests and broker-less single-process runs need a transport that behaves
    like a broker without one: topic filters, retained messages, and
    failures on demand.

Every publish is recorded in ``published`` (successful ones only) and
delivered to the handlers whose topic filter matches, using MQTT filter
semantics (``+`` and ``#``). Retained messages are replayed to new
subscriptions.

Tags:
    gator, bus, in-memory, asyncio, testing, single-node
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from paho.mqtt.client import topic_matches_sub

from gator.bus import BusMessage, MessageHandler
from gator.core.errors import TransportError
from gator.core.logging import get_logger

__all__ = ["InMemoryBusTransport"]

logger = get_logger(__name__)


@dataclass
class Subscription:
    """Internal subscription record."""

    topic: str
    qos: int
    handler: MessageHandler


class InMemoryBusTransport:
    """Loopback broker living in the current event loop.

    Example::

        transport = InMemoryBusTransport()
        await transport.connect()
        await transport.subscribe("factory/#", 0, handler)
        await transport.publish("factory/line1", b"42")
        transport.published[-1].payload   # b"42"
    """

    def __init__(self, *, fail_connect: bool = False) -> None:
        self.published: list[BusMessage] = []
        self.retained: dict[str, BusMessage] = {}
        self.fail_topics: set[str] = set()
        self.fail_connect = fail_connect
        self._subscriptions: list[Subscription] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def subscriptions(self) -> list[str]:
        return [sub.topic for sub in self._subscriptions]

    async def connect(self) -> None:
        if self.fail_connect:
            raise TransportError("in-memory transport refused the connection")
        self._connected = True

    async def publish(
        self,
        topic: str,
        payload: bytes,
        *,
        qos: int = 0,
        retain: bool = False,
        timeout: float | None = None,
    ) -> None:
        if not self._connected:
            raise TransportError("not connected").with_context(topic=topic)
        if topic in self.fail_topics:
            raise TransportError(f"publish to '{topic}' failed").with_context(topic=topic)

        message = BusMessage(topic=topic, payload=payload, qos=qos, retain=retain)
        self.published.append(message)
        if retain:
            self.retained[topic] = message

        # Delivery happens in a separate task, like a broker round trip.
        # Awaiting it inline would re-enter the caller's write.
        for sub in list(self._subscriptions):
            if topic_matches_sub(sub.topic, topic):
                task = asyncio.get_running_loop().create_task(self._deliver(sub, message))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

    async def subscribe(self, topic: str, qos: int, handler: MessageHandler) -> None:
        if not self._connected:
            raise TransportError("not connected").with_context(topic=topic)
        sub = Subscription(topic=topic, qos=qos, handler=handler)
        self._subscriptions.append(sub)
        for retained_topic, message in list(self.retained.items()):
            if topic_matches_sub(topic, retained_topic):
                await self._deliver(sub, message)

    async def inject(self, topic: str, payload: bytes, *, qos: int = 0, retain: bool = False) -> None:
        """Deliver a message from an external publisher and wait for the handlers."""
        message = BusMessage(topic=topic, payload=payload, qos=qos, retain=retain)
        if retain:
            self.retained[topic] = message
        await asyncio.gather(
            *[
                self._deliver(sub, message)
                for sub in list(self._subscriptions)
                if topic_matches_sub(sub.topic, topic)
            ]
        )

    async def _deliver(self, sub: Subscription, message: BusMessage) -> None:
        try:
            await sub.handler(message)
        except Exception as exc:
            logger.warning(
                "bus_handler_error",
                topic=message.topic,
                subscription=sub.topic,
                error=str(exc),
            )

    async def drain(self) -> None:
        """Wait until every in-flight delivery (and any delivery it triggers) is done."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def published_to(self, topic: str) -> list[BusMessage]:
        return [message for message in self.published if message.topic == topic]

    async def close(self) -> None:
        self._connected = False
        self._subscriptions.clear()
