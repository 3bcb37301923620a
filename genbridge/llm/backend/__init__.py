"""Provider adapter implementations.

Provides the abstract base class, the capability table, and one adapter
per wire protocol (OpenAI, Anthropic, Gemini, Cohere, Mistral, Groq,
LM Studio, Yandex).
"""

from .base import (
    DEFAULT_SYSTEM_PROMPT,
    FewShotMessage,
    ProviderAdapter,
    ProviderResponse,
    TokenUsage,
    calculate_cost,
    estimate_tokens,
)
from .factory import create_adapter
from .model_spec import (
    ProviderCapability,
    ProviderModel,
    WireFamily,
    get_capability,
)

__all__ = [
    # Base classes and types
    "ProviderAdapter",
    "ProviderResponse",
    "TokenUsage",
    "FewShotMessage",
    "DEFAULT_SYSTEM_PROMPT",
    "estimate_tokens",
    "calculate_cost",
    # Capability table
    "WireFamily",
    "ProviderCapability",
    "ProviderModel",
    "get_capability",
    # Factory
    "create_adapter",
]
