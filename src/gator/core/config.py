"""
Persisted hub configuration.

The configuration is one JSON document with four top-level keys::

    {
      "model":           { ...initial document... },
      "transformations": { "sales/total": {"implementation": "north + south",
                                           "parameters": {"north": "sales/north",
                                                          "south": "sales/south"}} },
      "nodes":           { "allSales": ["sales/north", "sales/south"] },
      "mqtt":            { "broker": "tcp://localhost:1883",
                           "paths": { "sales": [{"topic": "factory/sales",
                                                 "qos": 1, "retain": false,
                                                 "publishType": 0}] } }
    }

Field names on the wire are camelCase; the pydantic models accept both the
wire names and the Python attribute names. A transformation given as a
plain string is read as an implementation without parameters.

Loading order mirrors deployment practice: an explicit URL wins, then an
explicit file path, then ``config.json`` in the working directory. Only the
default file may be missing (an empty configuration is used).

Tags:
    configuration, persistence, pydantic, httpx, gator
"""

from __future__ import annotations

import json
import os
import tempfile
from enum import IntEnum
from pathlib import Path
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from gator.core.errors import InvalidConfigError
from gator.core.logging import get_logger
from gator.core.settings import DEFAULT_CONFIG_FILE
from gator.core.transformations import TransformationDefinition

logger = get_logger(__name__)


class PublishType(IntEnum):
    """Direction of a bus mapping entry (wire values of ``publishType``)."""

    PUBLISH = 0
    SUBSCRIBE = 1
    BOTH = 2


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TransformationConfig(_WireModel):
    implementation: str
    parameters: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_implementation(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"implementation": data}
        return data


class MqttPathConfig(_WireModel):
    topic: str = Field(min_length=1)
    qos: Literal[0, 1, 2] = 0
    retain: bool = False
    publish_type: PublishType = Field(default=PublishType.PUBLISH, alias="publishType")


class MqttConfig(_WireModel):
    broker: str
    username: str | None = None
    password: str | None = None
    secure: bool = False
    ca_cert: str | None = Field(default=None, alias="caCert")
    client_cert: str | None = Field(default=None, alias="clientCert")
    client_key: str | None = Field(default=None, alias="clientKey")
    ca_server_hostname: str | None = Field(default=None, alias="caServerHostname")
    suppress_echo: bool | None = Field(default=None, alias="suppressEcho")
    paths: dict[str, list[MqttPathConfig]] = Field(default_factory=dict)


class HubConfig(_WireModel):
    model: dict[str, Any] = Field(default_factory=dict)
    transformations: dict[str, TransformationConfig] = Field(default_factory=dict)
    nodes: dict[str, list[str]] = Field(default_factory=dict)
    mqtt: MqttConfig | None = None

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ── Loading ──────────────────────────────────────────────────────────────


def parse_config(data: Any, source: str = "<payload>") -> HubConfig:
    """Validate an already-decoded JSON document."""
    if not isinstance(data, dict):
        raise InvalidConfigError(source, "top-level value must be a JSON object")
    try:
        return HubConfig.model_validate(data)
    except ValidationError as exc:
        raise InvalidConfigError(source, str(exc), cause=exc) from exc


def _decode(text: str | bytes, source: str) -> HubConfig:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise InvalidConfigError(source, f"invalid JSON: {exc}", cause=exc) from exc
    return parse_config(data, source)


def load_config_from_url(url: str, *, timeout: float = 10.0) -> HubConfig:
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise InvalidConfigError(url, f"failed to fetch: {exc}", cause=exc) from exc
    logger.info("config_fetched", url=url, bytes=len(response.content))
    return _decode(response.content, url)


def load_config_from_file(path: str | Path, *, missing_ok: bool = False) -> HubConfig:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        if missing_ok:
            logger.warning("config_file_missing", path=str(path))
            return HubConfig()
        raise InvalidConfigError(str(path), "file not found", cause=exc) from exc
    except OSError as exc:
        raise InvalidConfigError(str(path), str(exc), cause=exc) from exc
    logger.info("config_loaded", path=str(path))
    return _decode(text, str(path))


def load_config(path: str | Path | None = None, url: str | None = None) -> HubConfig:
    """Load the hub configuration.

    Args:
        path: Explicit configuration file. Must exist when given.
        url: Configuration URL. Takes precedence over ``path``.

    Raises:
        InvalidConfigError: unreadable, not JSON, or fails validation
    """
    if url:
        return load_config_from_url(url)
    if path:
        return load_config_from_file(path)
    return load_config_from_file(DEFAULT_CONFIG_FILE, missing_ok=True)


def save_config(config: HubConfig, path: str | Path) -> None:
    """Write ``config`` as JSON, replacing ``path`` atomically."""
    path = Path(path)
    directory = path.parent if str(path.parent) else Path(".")
    payload = json.dumps(config.to_wire(), indent=2)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("config_saved", path=str(path))


def build_definitions(config: HubConfig) -> list[TransformationDefinition]:
    """Validated transformation definitions.

    Raises:
        InvalidTransformationDefinitionError: a definition is malformed
    """
    return [
        TransformationDefinition.build(path, entry.implementation, entry.parameters)
        for path, entry in config.transformations.items()
    ]


__all__ = [
    "PublishType",
    "TransformationConfig",
    "MqttPathConfig",
    "MqttConfig",
    "HubConfig",
    "parse_config",
    "load_config",
    "load_config_from_file",
    "load_config_from_url",
    "save_config",
    "build_definitions",
]
