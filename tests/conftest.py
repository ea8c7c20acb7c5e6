"""
Shared pytest fixtures for the gator test suite.

This module provides:
- ``FakeEvaluator``: a deterministic stand-in for the JavaScript engine that
  maps expression strings to Python callables and counts invocations
- Sample configurations (sales / employees) used across unit, API and CLI tests
- Hub and app fixtures wired to the in-memory bus transport

Usage:
    def test_something(fake_evaluator, sales_config):
        hub = Hub.from_config(sales_config, evaluator=fake_evaluator)
"""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

from gator.bus.memory import InMemoryBusTransport
from gator.core.config import HubConfig, parse_config
from gator.core.errors import ScriptEvaluationError
from gator.core.hub import Hub
from gator.core.settings import GatorSettings

SUM_EXPRESSION = "north + south + east + west"
SALARY_EXPRESSION = '"$" + self + ".00"'


# =============================================================================
# Fake evaluator
# =============================================================================


class FakeEvaluator:
    """Evaluator keyed by expression string.

    Unknown expressions fail with ``ScriptEvaluationError`` like a script
    error would. ``calls`` counts evaluations per expression.
    """

    def __init__(self, functions: Mapping[str, Callable[[dict[str, Any]], Any]] | None = None):
        self.functions: dict[str, Callable[[dict[str, Any]], Any]] = {
            SUM_EXPRESSION: lambda b: b["north"] + b["south"] + b["east"] + b["west"],
            SALARY_EXPRESSION: lambda b: f"${b['self']}.00",
            "self": lambda b: b["self"],
            "self * 2": lambda b: b["self"] * 2,
            "bindings": lambda b: dict(b),
        }
        self.functions.update(functions or {})
        self.calls: Counter[str] = Counter()
        self.last_bindings: dict[str, Any] | None = None

    def register(self, expression: str, function: Callable[[dict[str, Any]], Any]) -> None:
        self.functions[expression] = function

    def evaluate(self, expression: str, bindings: Mapping[str, Any]) -> Any:
        self.calls[expression] += 1
        self.last_bindings = dict(bindings)
        try:
            function = self.functions[expression]
        except KeyError:
            raise ScriptEvaluationError(f"unknown expression {expression!r}") from None
        return function(dict(bindings))


@pytest.fixture
def fake_evaluator() -> FakeEvaluator:
    return FakeEvaluator()


# =============================================================================
# Configurations
# =============================================================================


def sales_config_data(*, broker: str | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "model": {
            "sales": {"north": 120000, "south": 85000, "east": 95000, "west": 110000},
            "employees": {"avgSalary": 65000},
        },
        "transformations": {
            "sales/total": {
                "implementation": SUM_EXPRESSION,
                "parameters": {
                    "north": "sales/north",
                    "south": "sales/south",
                    "east": "sales/east",
                    "west": "sales/west",
                },
            },
            "employees/avgSalary": {"implementation": SALARY_EXPRESSION},
        },
        "nodes": {
            "allSalesMetrics": ["sales/north", "sales/south", "sales/east", "sales/west"],
        },
    }
    if broker is not None:
        data["mqtt"] = {
            "broker": broker,
            "paths": {
                "sales": [{"topic": "factory/sales", "qos": 1, "retain": False, "publishType": 0}],
                "line1/temperature": [
                    {"topic": "factory/line1/temperature", "qos": 0, "retain": False, "publishType": 1}
                ],
            },
        }
    return data


@pytest.fixture
def sales_config() -> HubConfig:
    return parse_config(sales_config_data())


@pytest.fixture
def bus_config() -> HubConfig:
    return parse_config(sales_config_data(broker="memory://"))


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(sales_config_data()), encoding="utf-8")
    return path


# =============================================================================
# Hubs
# =============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> GatorSettings:
    return GatorSettings(config_file_path=str(tmp_path / "config.json"), _env_file=None)


@pytest.fixture
def transport() -> InMemoryBusTransport:
    return InMemoryBusTransport()


@pytest.fixture
def bus_hub(bus_config, settings, fake_evaluator, transport) -> Hub:
    return Hub.from_config(bus_config, settings=settings, evaluator=fake_evaluator, transport=transport)
