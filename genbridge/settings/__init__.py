"""Settings snapshot types and read-only settings stores."""

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

__all__ = [
    "Pricing",
    "GenerationSettings",
    "ResolvedProviderConfig",
    "GenerationDefaults",
    "PluginSettings",
    "SettingsStore",
    "StaticSettingsStore",
    "JsonFileSettingsStore",
]
