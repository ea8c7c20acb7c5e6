"""Tests for gator.core.settings: defaults, environment and aliases."""

import pytest
from pydantic import ValidationError

from gator.core.settings import DEFAULT_CONFIG_FILE, GatorSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CONFIG_FILE_PATH", "CONFIG_FILE_URL", "GATOR_CONFIG_FILE_PATH", "GATOR_PORT"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self):
        settings = GatorSettings(_env_file=None)
        assert settings.port == 8080
        assert settings.max_body_bytes == 1 << 20
        assert settings.script_timeout_ms == 1000
        assert settings.suppress_bus_echo is True
        assert settings.config_file_url is None

    def test_config_path_falls_back_to_default_file(self):
        assert GatorSettings(_env_file=None).config_path == DEFAULT_CONFIG_FILE


class TestEnvironment:
    def test_prefixed_variable(self, monkeypatch):
        monkeypatch.setenv("GATOR_PORT", "9090")
        assert GatorSettings(_env_file=None).port == 9090

    def test_unprefixed_config_variables(self, monkeypatch):
        monkeypatch.setenv("CONFIG_FILE_PATH", "/etc/gator/hub.json")
        monkeypatch.setenv("CONFIG_FILE_URL", "http://config.local/hub.json")
        settings = GatorSettings(_env_file=None)
        assert settings.config_path == "/etc/gator/hub.json"
        assert settings.config_file_url == "http://config.local/hub.json"

    def test_prefixed_config_path(self, monkeypatch):
        monkeypatch.setenv("GATOR_CONFIG_FILE_PATH", "/srv/config.json")
        assert GatorSettings(_env_file=None).config_file_path == "/srv/config.json"

    def test_field_name_init(self):
        assert GatorSettings(config_file_path="x.json", _env_file=None).config_path == "x.json"

    def test_rejects_non_positive_limits(self):
        with pytest.raises(ValidationError):
            GatorSettings(max_body_bytes=0, _env_file=None)
