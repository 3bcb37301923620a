"""LLM integration layer for multi-provider text generation.

Main components:
- TextGenerator: Cached, retried single-shot generation
- BatchProcessor / PerLayerApplier: Sequential multi-item runs
- ProviderAdapter: Abstract interface for provider wire protocols
- create_adapter: Factory function for creating adapters

Supported providers:
- OpenAI (GPT-4o, GPT-4o mini, GPT-3.5)
- Anthropic (Claude 3.5 Sonnet, Haiku)
- Google Gemini
- Cohere (Command R)
- Mistral
- Groq
- LM Studio (local server)
- Yandex Cloud (YandexGPT, through a relay)

Example:
    >>> from genbridge.llm import TextGenerator, GenerationRequest
    >>> from genbridge.settings import JsonFileSettingsStore
    >>> generator = TextGenerator(JsonFileSettingsStore("settings.json"))
    >>> response = generator.generate(
    ...     GenerationRequest(provider_id="main", prompt="Write a tagline")
    ... )
    >>> print(response.text)
"""

from .backend import (
    DEFAULT_SYSTEM_PROMPT,
    FewShotMessage,
    ProviderAdapter,
    ProviderCapability,
    ProviderModel,
    ProviderResponse,
    TokenUsage,
    WireFamily,
    create_adapter,
    get_capability,
)
from .generator import (
    BatchItem,
    BatchProcessor,
    BatchProgress,
    BatchResult,
    BatchState,
    GenerationRequest,
    ItemOutcome,
    PerLayerApplier,
    PerLayerResult,
    RetryConfig,
    RetryStrategy,
    TextGenerator,
    UsageRecord,
    classify_error,
    clean_response,
)

__all__ = [
    # Main API
    "TextGenerator",
    "GenerationRequest",
    "BatchProcessor",
    "PerLayerApplier",
    "create_adapter",
    # Generator types
    "UsageRecord",
    "BatchItem",
    "BatchState",
    "BatchProgress",
    "BatchResult",
    "ItemOutcome",
    "PerLayerResult",
    "RetryConfig",
    "RetryStrategy",
    "classify_error",
    "clean_response",
    # Backend types
    "ProviderAdapter",
    "ProviderResponse",
    "TokenUsage",
    "FewShotMessage",
    "DEFAULT_SYSTEM_PROMPT",
    # Capability table
    "WireFamily",
    "ProviderCapability",
    "ProviderModel",
    "get_capability",
]
