"""
Bus bridge: publish resolved subtrees after writes, write inbound messages.

Outbound flow (after every write)::

    write(tokens, value)
      ├── Model.write            invalidate → store raw → transform attempt
      └── publish_for(tokens)
            for each mapping prefix P that is a token prefix of tokens:
                payload = json(Model.read_resolved(P))        once per prefix
                publish payload to every publish-capable topic of P
            all publishes run concurrently and are awaited together

Inbound flow (subscribe-capable mappings)::

    message on topic T mapped at prefix P
      → decode JSON (fall back to the UTF-8 text)
      → write(P, value, origin_topic=T)

Mappings whose topic is a wildcard filter only subscribe; the outbound flow
skips them. Publish failures never undo the write; they are logged and returned in a
``PublishReport``.

Tags:
    gator, bus, mqtt, bridge, publish, subscribe
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gator.bus import BusMapping, BusMessage, BusTransport, MessageHandler
from gator.core.errors import GatorError, TransportError
from gator.core.logging import get_logger
from gator.core.model import Model, WriteOutcome
from gator.core.paths import PathTokens, is_prefix, join_path

__all__ = ["BridgeState", "BusBridge", "PublishFailure", "PublishReport", "decode_payload", "is_topic_filter"]

logger = get_logger(__name__)


class BridgeState(str, Enum):
    STOPPED = "stopped"
    CONNECTED = "connected"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class PublishFailure:
    topic: str
    prefix: str
    error: str
    error_type: str

    def to_dict(self) -> dict[str, str]:
        return {
            "topic": self.topic,
            "prefix": self.prefix,
            "error": self.error,
            "error_type": self.error_type,
        }


@dataclass
class PublishReport:
    """What a write triggered on the bus.

    Attributes:
        path: Written path
        published: Topics that were published successfully
        failures: Topics whose publish (or payload resolution) failed
        skipped: Topics not attempted (bridge unavailable, or self-echo)
        outcome: The model write that triggered the publishes
    """

    path: PathTokens
    published: list[str] = field(default_factory=list)
    failures: list[PublishFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    outcome: WriteOutcome | None = None

    @property
    def ok(self) -> bool:
        return not self.failures

    def warnings(self) -> list[dict[str, str]]:
        return [failure.to_dict() for failure in self.failures]


class BusBridge:
    """Connects a ``Model`` to a ``BusTransport`` through static mappings."""

    def __init__(
        self,
        model: Model,
        transport: BusTransport,
        mappings: Iterable[BusMapping],
        *,
        suppress_echo: bool = True,
        publish_timeout: float = 5.0,
    ) -> None:
        self.model = model
        self.transport = transport
        self.mappings = list(mappings)
        self.suppress_echo = suppress_echo
        self.publish_timeout = publish_timeout
        self._state = BridgeState.STOPPED

    @property
    def state(self) -> BridgeState:
        return self._state

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Connect, then subscribe every subscribe-capable mapping.

        A connect failure leaves the bridge ``UNAVAILABLE``; writes keep
        working and report their publishes as skipped.
        """
        try:
            await self.transport.connect()
        except TransportError as exc:
            self._state = BridgeState.UNAVAILABLE
            logger.critical("bus_unavailable", error=str(exc))
            return

        self._state = BridgeState.CONNECTED
        for mapping in self.mappings:
            if not mapping.subscribes:
                continue
            try:
                await self.transport.subscribe(mapping.topic, mapping.qos, self._inbound_handler(mapping))
            except TransportError as exc:
                logger.error("bus_subscribe_failed", topic=mapping.topic, error=str(exc))
        logger.info(
            "bus_bridge_started",
            mappings=len(self.mappings),
            suppress_echo=self.suppress_echo,
        )

    async def stop(self) -> None:
        if self._state is BridgeState.CONNECTED:
            await self.transport.close()
        self._state = BridgeState.STOPPED
        logger.info("bus_bridge_stopped")

    # ── Writes ───────────────────────────────────────────────────────────

    async def write(
        self,
        tokens: PathTokens,
        value: Any,
        *,
        origin_topic: str | None = None,
    ) -> PublishReport:
        """``Model.write`` followed by the outbound publish flow.

        Structural write errors propagate; publish failures are reported.
        """
        tokens = tuple(tokens)
        outcome = await asyncio.to_thread(self.model.write, tokens, value)
        report = await self.publish_for(tokens, origin_topic=origin_topic)
        report.outcome = outcome
        return report

    async def publish_for(self, tokens: PathTokens, *, origin_topic: str | None = None) -> PublishReport:
        """Publish the resolved subtree of every mapping prefix covering ``tokens``."""
        tokens = tuple(tokens)
        report = PublishReport(path=tokens)

        by_prefix: dict[PathTokens, list[BusMapping]] = {}
        for mapping in self.mappings:
            if mapping.publishes and is_prefix(mapping.prefix, tokens):
                by_prefix.setdefault(mapping.prefix, []).append(mapping)
        if not by_prefix:
            return report

        if self._state is not BridgeState.CONNECTED:
            report.skipped.extend(m.topic for group in by_prefix.values() for m in group)
            logger.debug("bus_publish_skipped", path=join_path(tokens), state=self._state.value)
            return report

        jobs: list[tuple[BusMapping, Any]] = []
        for prefix, group in by_prefix.items():
            try:
                resolved = await asyncio.to_thread(self.model.read_resolved, prefix)
                payload = json.dumps(resolved).encode("utf-8")
            except (GatorError, TypeError, ValueError) as exc:
                for mapping in group:
                    self._record_failure(report, mapping, exc)
                continue

            for mapping in group:
                if is_topic_filter(mapping.topic):
                    # Subscription filters cannot be published to.
                    report.skipped.append(mapping.topic)
                    continue
                if self.suppress_echo and origin_topic is not None and mapping.topic == origin_topic:
                    report.skipped.append(mapping.topic)
                    continue
                jobs.append((mapping, self._publish(mapping, payload)))

        results = await asyncio.gather(*(job for _, job in jobs), return_exceptions=True)
        for (mapping, _), result in zip(jobs, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self._record_failure(report, mapping, result)
            else:
                report.published.append(mapping.topic)

        logger.debug(
            "bus_published",
            path=join_path(tokens),
            published=report.published,
            failed=len(report.failures),
        )
        return report

    async def _publish(self, mapping: BusMapping, payload: bytes) -> None:
        await self.transport.publish(
            mapping.topic,
            payload,
            qos=mapping.qos,
            retain=mapping.retain,
            timeout=self.publish_timeout,
        )

    def _record_failure(self, report: PublishReport, mapping: BusMapping, exc: Exception) -> None:
        logger.warning(
            "bus_publish_failed",
            topic=mapping.topic,
            prefix=mapping.key,
            path=join_path(report.path),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        report.failures.append(
            PublishFailure(
                topic=mapping.topic,
                prefix=mapping.key,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        )

    # ── Inbound ──────────────────────────────────────────────────────────

    def _inbound_handler(self, mapping: BusMapping) -> MessageHandler:
        async def handle(message: BusMessage) -> None:
            value = decode_payload(message.payload)
            logger.debug("bus_message_received", topic=message.topic, prefix=mapping.key)
            try:
                await self.write(mapping.prefix, value, origin_topic=message.topic)
            except GatorError as exc:
                logger.error(
                    "bus_inbound_write_failed",
                    topic=message.topic,
                    prefix=mapping.key,
                    error=str(exc),
                )

        return handle


def is_topic_filter(topic: str) -> bool:
    """True when ``topic`` contains an MQTT wildcard (``+`` or ``#``)."""
    return "+" in topic or "#" in topic


def decode_payload(payload: bytes) -> Any:
    """JSON when the payload parses, otherwise the UTF-8 text."""
    text = payload.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text
