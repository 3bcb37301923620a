"""Adapter factory for creating provider adapters from configurations.

Provides a unified entry point for creating any supported provider adapter.
"""

import httpx

from ...errors import invalid_config
from ...settings import ResolvedProviderConfig
from .base import ProviderAdapter
from .model_spec import (
    ProviderCapability,
    ProviderModel,
    WireFamily,
    get_capability,
)


def create_adapter(
    config: ResolvedProviderConfig,
    capability: str | ProviderModel | ProviderCapability | None = None,
    *,
    http_client: httpx.Client | None = None,
    relay_url: str | None = None,
    timeout: float = 60.0,
) -> ProviderAdapter:
    """Create a provider adapter for a resolved configuration.

    Routes to the adapter class matching the capability's wire family.
    Adapters are stateless and cheap; build one per request.

    Args:
        config: User provider configuration.
        capability: Capability to use. Defaults to config.capability_id.
        http_client: Shared httpx client for the adapter.
        relay_url: Relay overriding the capability's default relay.
        timeout: Transport timeout when no client is shared.

    Returns:
        Configured ProviderAdapter instance.

    Raises:
        PluginError: With kind INVALID_CONFIG for an unknown capability id
            or an unsupported wire family.

    Example:
        >>> config = ResolvedProviderConfig(
        ...     id="main", capability_id="openai-gpt4o-mini", api_key="sk-..."
        ... )
        >>> adapter = create_adapter(config)
        >>> adapter.name
        'OpenAI:gpt-4o-mini'
    """
    spec = get_capability(capability or config.capability_id)
    kwargs = {"http_client": http_client, "relay_url": relay_url, "timeout": timeout}

    if spec.wire_family == WireFamily.OPENAI:
        from .openai import OpenAIAdapter

        return OpenAIAdapter(config, spec, **kwargs)

    if spec.wire_family == WireFamily.ANTHROPIC:
        from .anthropic import AnthropicAdapter

        return AnthropicAdapter(config, spec, **kwargs)

    if spec.wire_family == WireFamily.GEMINI:
        from .gemini import GeminiAdapter

        return GeminiAdapter(config, spec, **kwargs)

    if spec.wire_family == WireFamily.MISTRAL:
        from .mistral import MistralAdapter

        return MistralAdapter(config, spec, **kwargs)

    if spec.wire_family == WireFamily.GROQ:
        from .groq import GroqAdapter

        return GroqAdapter(config, spec, **kwargs)

    if spec.wire_family == WireFamily.COHERE:
        from .cohere import CohereAdapter

        return CohereAdapter(config, spec, **kwargs)

    if spec.wire_family == WireFamily.LMSTUDIO:
        from .lmstudio import LMStudioAdapter

        return LMStudioAdapter(config, spec, **kwargs)

    if spec.wire_family == WireFamily.YANDEX:
        from .yandex import YandexAdapter

        return YandexAdapter(config, spec, **kwargs)

    raise invalid_config(
        f"Unknown provider type: {spec.wire_family}", capability_id=spec.id
    )


__all__ = ["create_adapter"]
