"""Process settings for the gator hub.

``GatorSettings`` holds everything that is a property of the running
process rather than of the persisted hub configuration: bind address,
logging, where the configuration lives, and the timeouts applied to the
scripting bridge and the bus.

Order of precedence (highest → lowest):
    1. Environment variables (``GATOR_PORT``, ``GATOR_LOG_LEVEL``, ...)
    2. ``.env`` file
    3. Defaults below

The configuration location also honours the unprefixed ``CONFIG_FILE_PATH``
and ``CONFIG_FILE_URL`` variables used by existing deployments.

Examples:
    >>> settings = GatorSettings(port=9090)
    >>> settings.max_body_bytes
    1048576

Tags:
    settings, configuration, pydantic, environment, gator
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_FILE = "config.json"


class GatorSettings(BaseSettings):
    """Settings for the gator process.

    Fields
    ──────
    host / port          : HTTP bind address
    debug / log_level    : Observability knobs
    json_logs            : Force JSON (True) or console (False) logs; auto when unset
    config_file_path     : Persisted hub configuration (read and written)
    config_file_url      : Read-only configuration source fetched at startup
    max_body_bytes       : Upper bound for POST bodies
    script_timeout_ms    : Per-evaluation limit for transformation scripts
    publish_timeout_seconds / connect_timeout_seconds : Bus timeouts
    suppress_bus_echo    : Skip republishing to the topic a write arrived on
    """

    model_config = SettingsConfigDict(
        env_prefix="GATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, description="Bind port")
    api_title: str = Field(default="gator", description="OpenAPI title")

    # ── Observability ────────────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Configuration source ─────────────────────────────────────────────
    config_file_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GATOR_CONFIG_FILE_PATH", "CONFIG_FILE_PATH"),
        description="Path of the persisted hub configuration",
    )
    config_file_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GATOR_CONFIG_FILE_URL", "CONFIG_FILE_URL"),
        description="URL the hub configuration is fetched from at startup",
    )

    # ── Limits ───────────────────────────────────────────────────────────
    max_body_bytes: int = Field(default=1 << 20, gt=0)
    script_timeout_ms: int | None = Field(default=1000, gt=0)
    publish_timeout_seconds: float = Field(default=5.0, gt=0)
    connect_timeout_seconds: float = Field(default=10.0, gt=0)

    # ── Bus ──────────────────────────────────────────────────────────────
    suppress_bus_echo: bool = True

    @property
    def config_path(self) -> str:
        """Where the configuration is persisted (explicit path or the default file)."""
        return self.config_file_path or DEFAULT_CONFIG_FILE


__all__ = ["DEFAULT_CONFIG_FILE", "GatorSettings"]
