"""Tests for settings snapshot types and stores."""

import json

import pytest

from ..errors import ErrorKind, PluginError
from .lib import (
    GenerationDefaults,
    GenerationSettings,
    JsonFileSettingsStore,
    PluginSettings,
    Pricing,
    ResolvedProviderConfig,
    SettingsStore,
    StaticSettingsStore,
)


@pytest.fixture
def settings_file(tmp_path):
    """Settings document written with the UI's camelCase keys."""
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "providerConfigs": [
                    {
                        "id": "main",
                        "capabilityId": "openai-gpt4o-mini",
                        "apiKey": "sk-test",
                        "customPricing": {"input": 1.0, "output": 2.0},
                    },
                    {
                        "id": "yc",
                        "capabilityId": "yandex-gpt-lite",
                        "apiKey": "yc-key",
                        "folderId": "b1g",
                        "enabled": False,
                    },
                ],
                "generation": {"temperature": 0.2, "maxTokens": 300},
            }
        ),
        encoding="utf-8",
    )
    return path


class TestPluginSettings:
    """Tests for PluginSettings lookups."""

    @pytest.mark.unit
    def test_find_provider_skips_disabled(self):
        settings = PluginSettings(
            provider_configs=[
                ResolvedProviderConfig(id="a", capability_id="openai-gpt4o"),
                ResolvedProviderConfig(
                    id="b", capability_id="claude-haiku", enabled=False
                ),
            ]
        )
        assert settings.find_provider("a").capability_id == "openai-gpt4o"
        assert settings.find_provider("b") is None
        assert settings.find_provider("zzz") is None
        assert [c.id for c in settings.enabled_providers()] == ["a"]

    @pytest.mark.unit
    def test_generation_defaults(self):
        assert PluginSettings().generation.to_generation_settings() == (
            GenerationSettings(temperature=0.7, max_tokens=2000, system_prompt=None)
        )

    @pytest.mark.unit
    def test_empty_system_prompt_becomes_none(self):
        defaults = GenerationDefaults(system_prompt="")
        assert defaults.to_generation_settings().system_prompt is None

    @pytest.mark.unit
    def test_defaults_are_validated(self):
        with pytest.raises(ValueError):
            GenerationDefaults(temperature=3.0)
        with pytest.raises(ValueError):
            GenerationDefaults(max_tokens=0)

    @pytest.mark.unit
    def test_repr_hides_api_key(self):
        config = ResolvedProviderConfig(
            id="a", capability_id="openai-gpt4o", api_key="sk-secret"
        )
        assert "sk-secret" not in repr(config)


class TestStores:
    """Tests for the SettingsStore implementations."""

    @pytest.mark.unit
    def test_static_store(self):
        settings = PluginSettings()
        store = StaticSettingsStore(settings)
        assert isinstance(store, SettingsStore)
        assert store.load_settings() is settings

    @pytest.mark.unit
    def test_json_store_reads_camel_case(self, settings_file):
        store = JsonFileSettingsStore(settings_file)
        assert isinstance(store, SettingsStore)

        settings = store.load_settings()

        main = settings.find_provider("main")
        assert main.api_key == "sk-test"
        assert main.custom_pricing == Pricing(input=1.0, output=2.0)
        disabled = settings.provider_configs[1]
        assert disabled.folder_id == "b1g"
        assert not disabled.enabled
        assert settings.generation.max_tokens == 300

    @pytest.mark.unit
    def test_json_store_rereads_file(self, settings_file):
        """Edits to the file are visible on the next call."""
        store = JsonFileSettingsStore(settings_file)
        assert store.load_settings().generation.temperature == 0.2

        data = json.loads(settings_file.read_text(encoding="utf-8"))
        data["generation"]["temperature"] = 1.1
        settings_file.write_text(json.dumps(data), encoding="utf-8")

        assert store.load_settings().generation.temperature == 1.1

    @pytest.mark.unit
    def test_json_store_missing_file(self, tmp_path):
        store = JsonFileSettingsStore(tmp_path / "absent.json")
        with pytest.raises(PluginError) as exc_info:
            store.load_settings()
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert "not found" in exc_info.value.message

    @pytest.mark.unit
    def test_json_store_directory_path(self, tmp_path):
        with pytest.raises(PluginError) as exc_info:
            JsonFileSettingsStore(tmp_path).load_settings()
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert "Cannot read settings file" in exc_info.value.message

    @pytest.mark.unit
    def test_json_store_non_utf8_file(self, tmp_path):
        path = tmp_path / "latin.json"
        path.write_bytes(b"\xff\xfe{}")
        with pytest.raises(PluginError) as exc_info:
            JsonFileSettingsStore(path).load_settings()
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    @pytest.mark.unit
    def test_json_store_invalid_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(
            json.dumps({"providerConfigs": [{"id": "x"}]}), encoding="utf-8"
        )
        with pytest.raises(PluginError) as exc_info:
            JsonFileSettingsStore(path).load_settings()
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert exc_info.value.details["errors"]
