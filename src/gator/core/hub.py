"""
Hub: the composition root shared by the HTTP app and the CLI.

A ``Hub`` owns the model, the node registry and (when the configuration has
an ``mqtt`` section) the bus bridge. Everything that writes goes through
``Hub.write`` so the publish flow runs after every write, whichever surface
the write came from.

Bus mappings are static for the process lifetime: ``replace_config`` swaps
the model, transformations and nodes, and keeps the running bridge. A new
``mqtt`` section takes effect on the next start.

Tags:
    gator, hub, composition-root, lifecycle
"""

from __future__ import annotations

import asyncio
from typing import Any

from gator.bus import BusTransport, create_transport, mappings_from_config
from gator.bus.bridge import BridgeState, BusBridge, PublishReport
from gator.core.config import HubConfig, MqttConfig, TransformationConfig, build_definitions
from gator.core.logging import LogContext, get_logger
from gator.core.model import Model
from gator.core.nodes import NodeRegistry
from gator.core.paths import PathTokens
from gator.core.scripting import Evaluator, JavaScriptEvaluator
from gator.core.settings import GatorSettings
from gator.core.tree import JsonValue

logger = get_logger(__name__)


class Hub:
    """Model + node registry + optional bus bridge."""

    def __init__(
        self,
        model: Model,
        nodes: NodeRegistry | None = None,
        bridge: BusBridge | None = None,
        *,
        mqtt: MqttConfig | None = None,
    ) -> None:
        self.model = model
        self.nodes = nodes or NodeRegistry()
        self.bridge = bridge
        self._mqtt = mqtt

    @classmethod
    def from_config(
        cls,
        config: HubConfig,
        *,
        settings: GatorSettings | None = None,
        evaluator: Evaluator | None = None,
        transport: BusTransport | None = None,
    ) -> Hub:
        """Build a hub from a validated configuration.

        Raises:
            InvalidTransformationDefinitionError: a transformation is malformed
        """
        settings = settings or GatorSettings()
        if evaluator is None:
            evaluator = JavaScriptEvaluator(timeout_ms=settings.script_timeout_ms)

        model = Model(config.model, build_definitions(config), evaluator=evaluator)
        nodes = NodeRegistry(config.nodes)

        bridge = None
        if config.mqtt is not None:
            suppress_echo = config.mqtt.suppress_echo
            if suppress_echo is None:
                suppress_echo = settings.suppress_bus_echo
            bridge = BusBridge(
                model,
                transport or create_transport(config.mqtt, settings),
                mappings_from_config(config.mqtt),
                suppress_echo=suppress_echo,
                publish_timeout=settings.publish_timeout_seconds,
            )

        logger.info(
            "hub_created",
            transformations=len(config.transformations),
            nodes=len(config.nodes),
            bus=bridge is not None,
        )
        return cls(model, nodes, bridge, mqtt=config.mqtt)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def start(self) -> None:
        if self.bridge is not None:
            await self.bridge.start()

    async def stop(self) -> None:
        if self.bridge is not None:
            await self.bridge.stop()

    @property
    def bus_state(self) -> str:
        if self.bridge is None:
            return "disabled"
        return self.bridge.state.value

    @property
    def bus_available(self) -> bool:
        return self.bridge is None or self.bridge.state is BridgeState.CONNECTED

    # ── Operations ───────────────────────────────────────────────────────

    def read(self, tokens: PathTokens) -> JsonValue:
        return self.model.read_resolved(tokens)

    async def write(
        self,
        tokens: PathTokens,
        value: Any,
        *,
        origin_topic: str | None = None,
    ) -> PublishReport:
        tokens = tuple(tokens)
        if self.bridge is not None:
            return await self.bridge.write(tokens, value, origin_topic=origin_topic)
        outcome = await asyncio.to_thread(self.model.write, tokens, value)
        return PublishReport(path=tokens, outcome=outcome)

    async def fan_out(self, alias: str, value: Any) -> list[PublishReport]:
        async with LogContext(alias=alias):
            return await self.nodes.fan_out(alias, value, self.write)

    # ── Configuration ────────────────────────────────────────────────────

    def export_config(self) -> HubConfig:
        transformations = {
            definition.key: TransformationConfig(
                implementation=definition.implementation,
                parameters=dict(definition.parameters),
            )
            for definition in self.model.transformations.values()
        }
        return HubConfig(
            model=self.model.export(),
            transformations=transformations,
            nodes=self.nodes.as_dict(),
            mqtt=self._mqtt,
        )

    async def replace_config(self, config: HubConfig) -> None:
        """Swap model, transformations and nodes.

        Definitions are validated before anything is replaced.
        """
        definitions = build_definitions(config)
        await asyncio.to_thread(self.model.reset, config.model, definitions)
        self.nodes.replace(config.nodes)
        if config.mqtt != self._mqtt:
            logger.warning("bus_config_changed_requires_restart")
        self._mqtt = config.mqtt
        logger.info("hub_config_replaced", transformations=len(definitions), nodes=len(config.nodes))


__all__ = ["Hub"]
