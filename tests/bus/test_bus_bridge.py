"""Tests for the bus bridge: outbound publishes, inbound writes, failures."""

import json

import pytest
import pytest_asyncio

from gator.bus import BusMapping, PublishType, create_transport, mappings_from_config
from gator.bus.bridge import BridgeState, decode_payload, is_topic_filter
from gator.bus.memory import InMemoryBusTransport
from gator.core.config import parse_config
from gator.core.hub import Hub

from conftest import sales_config_data


def both_config(*, suppress_echo=None):
    data = sales_config_data(broker="memory://")
    data["mqtt"]["paths"]["sales"][0]["publishType"] = 2
    if suppress_echo is not None:
        data["mqtt"]["suppressEcho"] = suppress_echo
    return parse_config(data)


@pytest_asyncio.fixture
async def started_hub(bus_hub):
    await bus_hub.start()
    yield bus_hub
    await bus_hub.stop()


class TestMappings:
    def test_flattened_in_order(self, bus_config):
        mappings = mappings_from_config(bus_config.mqtt)
        assert mappings == [
            BusMapping(("sales",), "factory/sales", qos=1, retain=False, publish_type=PublishType.PUBLISH),
            BusMapping(
                ("line1", "temperature"),
                "factory/line1/temperature",
                qos=0,
                retain=False,
                publish_type=PublishType.SUBSCRIBE,
            ),
        ]
        assert mappings[0].publishes and not mappings[0].subscribes
        assert mappings[1].subscribes and not mappings[1].publishes

    def test_no_mqtt_section(self):
        assert mappings_from_config(None) == []

    def test_memory_scheme_selects_loopback(self, bus_config):
        assert isinstance(create_transport(bus_config.mqtt), InMemoryBusTransport)


class TestDecodePayload:
    def test_topic_filters(self):
        assert is_topic_filter("sensors/+")
        assert is_topic_filter("factory/#")
        assert not is_topic_filter("factory/sales")

    def test_json(self):
        assert decode_payload(b'{"a": 1}') == {"a": 1}

    def test_text_fallback(self):
        assert decode_payload(b"hot") == "hot"


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_subscribes_subscribe_mappings(self, started_hub, transport):
        assert started_hub.bus_state == "connected"
        assert transport.subscriptions == ["factory/line1/temperature"]

    @pytest.mark.asyncio
    async def test_stop_closes_transport(self, bus_hub, transport):
        await bus_hub.start()
        await bus_hub.stop()
        assert bus_hub.bridge.state is BridgeState.STOPPED
        assert transport.connected is False

    @pytest.mark.asyncio
    async def test_connect_failure_leaves_bridge_unavailable(self, bus_config, fake_evaluator):
        transport = InMemoryBusTransport(fail_connect=True)
        hub = Hub.from_config(bus_config, evaluator=fake_evaluator, transport=transport)
        await hub.start()
        assert hub.bus_state == "unavailable"
        assert hub.bus_available is False

        report = await hub.write(("sales", "north"), 1)
        assert report.skipped == ["factory/sales"]
        assert report.ok
        assert hub.model.read_raw(("sales", "north")) == 1


class TestOutbound:
    @pytest.mark.asyncio
    async def test_write_publishes_resolved_subtree(self, started_hub, transport):
        report = await started_hub.write(("sales", "north"), 1)
        assert report.published == ["factory/sales"]

        messages = transport.published_to("factory/sales")
        assert len(messages) == 1
        assert messages[0].qos == 1
        assert json.loads(messages[0].payload) == {
            "north": 1,
            "south": 85000,
            "east": 95000,
            "west": 110000,
            "total": 290001,
        }

    @pytest.mark.asyncio
    async def test_write_at_prefix_itself_publishes(self, started_hub, transport):
        await started_hub.write(("sales",), {"north": 2, "south": 0, "east": 0, "west": 0})
        assert json.loads(transport.published[-1].payload)["total"] == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tokens", [("salesforce", "x"), ("employees", "avgSalary"), ("line1", "temperature")])
    async def test_unmapped_paths_do_not_publish(self, started_hub, transport, tokens):
        report = await started_hub.write(tokens, 1)
        assert report.published == []
        assert transport.published == []

    @pytest.mark.asyncio
    async def test_fan_out_publishes_per_write(self, started_hub, transport):
        await started_hub.fan_out("allSalesMetrics", 10)
        messages = transport.published_to("factory/sales")
        assert len(messages) == 4
        assert json.loads(messages[-1].payload)["west"] == 10

    @pytest.mark.asyncio
    async def test_publish_failure_is_reported_not_raised(self, started_hub, transport):
        transport.fail_topics.add("factory/sales")
        report = await started_hub.write(("sales", "north"), 7)
        assert not report.ok
        assert report.warnings()[0]["topic"] == "factory/sales"
        assert report.warnings()[0]["error_type"] == "TransportError"
        assert started_hub.model.read_raw(("sales", "north")) == 7

    @pytest.mark.asyncio
    async def test_retained_mapping(self, fake_evaluator):
        data = sales_config_data(broker="memory://")
        data["mqtt"]["paths"]["sales"][0]["retain"] = True
        transport = InMemoryBusTransport()
        hub = Hub.from_config(parse_config(data), evaluator=fake_evaluator, transport=transport)
        await hub.start()
        await hub.write(("sales", "east"), 3)
        assert json.loads(transport.retained["factory/sales"].payload)["east"] == 3
        await hub.stop()


class TestInbound:
    @pytest.mark.asyncio
    async def test_message_writes_mapped_prefix(self, started_hub, transport):
        await transport.inject("factory/line1/temperature", b"21.5")
        assert started_hub.read(("line1", "temperature")) == 21.5

    @pytest.mark.asyncio
    async def test_non_json_payload_is_stored_as_text(self, started_hub, transport):
        await transport.inject("factory/line1/temperature", b"hot")
        assert started_hub.read(("line1", "temperature")) == "hot"

    @pytest.mark.asyncio
    async def test_echo_is_suppressed_by_default(self, fake_evaluator):
        transport = InMemoryBusTransport()
        hub = Hub.from_config(both_config(), evaluator=fake_evaluator, transport=transport)
        await hub.start()
        await transport.inject("factory/sales", b'{"north": 5, "south": 0, "east": 0, "west": 0}')
        await transport.drain()
        assert hub.read(("sales", "total")) == 5
        assert transport.published == []
        await hub.stop()

    @pytest.mark.asyncio
    async def test_local_write_on_both_mapping_echoes_once(self, fake_evaluator):
        transport = InMemoryBusTransport()
        hub = Hub.from_config(both_config(), evaluator=fake_evaluator, transport=transport)
        await hub.start()
        await hub.write(("sales", "north"), 1)
        await transport.drain()
        assert len(transport.published_to("factory/sales")) == 1
        await hub.stop()

    def test_config_overrides_settings(self, fake_evaluator, settings):
        hub = Hub.from_config(
            both_config(suppress_echo=False),
            settings=settings,
            evaluator=fake_evaluator,
            transport=InMemoryBusTransport(),
        )
        assert settings.suppress_bus_echo is True
        assert hub.bridge.suppress_echo is False


class TestWriteTransformFailures:
    @pytest.mark.asyncio
    async def test_missing_parameter_source_does_not_abort_write(self, fake_evaluator):
        data = sales_config_data(broker="memory://")
        data["transformations"]["sales/north"] = {"implementation": "bindings", "parameters": {"m": "missing/source"}}
        transport = InMemoryBusTransport()
        hub = Hub.from_config(parse_config(data), evaluator=fake_evaluator, transport=transport)
        await hub.start()

        report = await hub.write(("sales", "north"), 5)

        assert report.outcome.transformed is False
        assert hub.model.read_raw(("sales", "north")) == 5
        # The publish flow still runs; the subtree read hits the same missing source.
        assert report.warnings()[0]["topic"] == "factory/sales"
        assert report.warnings()[0]["error_type"] == "PathNotFoundError"
        await hub.stop()

    @pytest.mark.asyncio
    async def test_fan_out_continues_past_failing_transform(self, fake_evaluator):
        data = sales_config_data()
        data["transformations"]["sales/south"] = {"implementation": "bindings", "parameters": {"m": "sales/north/q1"}}
        hub = Hub.from_config(parse_config(data), evaluator=fake_evaluator)

        reports = await hub.fan_out("allSalesMetrics", 10)

        assert len(reports) == 4
        assert reports[1].outcome.transformed is False
        assert hub.model.read_raw(("sales", "south")) == 10
        assert hub.model.read_raw(("sales", "west")) == 10


class TestEchoSettings:
    @pytest.mark.asyncio
    async def test_unsuppressed_echo_republishes_to_origin(self, fake_evaluator):
        transport = InMemoryBusTransport()
        hub = Hub.from_config(both_config(suppress_echo=False), evaluator=fake_evaluator, transport=transport)
        await hub.start()

        await transport.inject("factory/sales", b'{"north": 5, "south": 0, "east": 0, "west": 0}')
        # Stop the loop after the first echo: pending deliveries write but cannot publish again.
        await transport.close()
        await transport.drain()

        messages = transport.published_to("factory/sales")
        assert len(messages) == 1
        assert json.loads(messages[0].payload)["total"] == 5
        await hub.stop()

    @pytest.mark.asyncio
    async def test_publish_for_with_origin_and_suppression_off(self, fake_evaluator):
        transport = InMemoryBusTransport()
        hub = Hub.from_config(both_config(suppress_echo=False), evaluator=fake_evaluator, transport=transport)
        await hub.start()
        await transport.close()
        await transport.connect()

        report = await hub.bridge.publish_for(("sales", "north"), origin_topic="factory/sales")

        assert report.published == ["factory/sales"]
        assert report.skipped == []
        await hub.stop()

    @pytest.mark.asyncio
    async def test_wildcard_mapping_is_never_published(self, fake_evaluator):
        data = sales_config_data(broker="memory://")
        data["mqtt"]["paths"] = {"sensors": [{"topic": "sensors/+", "qos": 0, "publishType": 2}]}
        data["mqtt"]["suppressEcho"] = False
        transport = InMemoryBusTransport()
        hub = Hub.from_config(parse_config(data), evaluator=fake_evaluator, transport=transport)
        await hub.start()

        await transport.inject("sensors/t1", b"21")
        await transport.drain()
        report = await hub.write(("sensors", "t2"), 22)

        assert hub.read(("sensors", "t2")) == 22
        assert report.ok
        assert report.skipped == ["sensors/+"]
        assert transport.published == []
        await hub.stop()
