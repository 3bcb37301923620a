"""genbridge: one interface over many text-generation providers."""

from genbridge.cache import ResponseCache
from genbridge.cancellation import CancellationSignal
from genbridge.errors import ErrorKind, PluginError
from genbridge.llm import (
    BatchItem,
    BatchProcessor,
    GenerationRequest,
    PerLayerApplier,
    TextGenerator,
)
from genbridge.settings import (
    GenerationSettings,
    JsonFileSettingsStore,
    PluginSettings,
    ResolvedProviderConfig,
    StaticSettingsStore,
)

__all__ = [
    # Generation
    "TextGenerator",
    "GenerationRequest",
    "BatchProcessor",
    "BatchItem",
    "PerLayerApplier",
    # Settings
    "GenerationSettings",
    "PluginSettings",
    "ResolvedProviderConfig",
    "StaticSettingsStore",
    "JsonFileSettingsStore",
    # Support
    "ResponseCache",
    "CancellationSignal",
    "ErrorKind",
    "PluginError",
]
