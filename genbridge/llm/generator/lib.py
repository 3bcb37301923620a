"""TextGenerator orchestrator for single-shot generation.

Resolves the provider configuration, consults the response cache, calls
the provider adapter through the retry strategy and keeps per-provider
usage records.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable

import httpx

from ...cache import ResponseCache, make_cache_key
from ...cancellation import CancellationSignal
from ...config import EnvVar, get_cache_settings, get_environment, get_relay_url
from ...errors import invalid_config
from ...settings import GenerationSettings, ResolvedProviderConfig, SettingsStore
from ..backend import (
    FewShotMessage,
    ProviderCapability,
    ProviderResponse,
    create_adapter,
    estimate_tokens,
    get_capability,
)
from .retry import RetryConfig, RetryStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    """One generation call.

    Attributes:
        provider_id: Id of the configured provider to use.
        prompt: User prompt text.
        settings: Sampling settings. Store defaults are used when None.
        system_prompt: Overrides settings.system_prompt when set.
        few_shot_pairs: Example turns placed before the prompt.
        signal: Cooperative cancellation signal.
        on_chunk: Called once with (text, estimated_tokens) on success.
        image_base64: Image for vision-capable providers.
    """

    provider_id: str
    prompt: str
    settings: GenerationSettings | None = None
    system_prompt: str | None = None
    few_shot_pairs: tuple[FewShotMessage, ...] = ()
    signal: CancellationSignal | None = None
    on_chunk: Callable[[str, int], None] | None = None
    image_base64: str | None = None


@dataclass
class UsageRecord:
    """Accumulated usage for one provider id."""

    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    cache_hits: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class TextGenerator:
    """Orchestrates cached, retried generation calls.

    Pipeline:
        1. Re-read settings and resolve the provider
        2. Return a cached response when one is live
        3. Call the adapter through the retry strategy
        4. Store the response and record usage
        5. Deliver the text to on_chunk

    Example:
        >>> store = JsonFileSettingsStore("settings.json")
        >>> with TextGenerator(store) as generator:
        ...     response = generator.generate(
        ...         GenerationRequest(provider_id="main", prompt="Say hi")
        ...     )
        >>> print(response.text)
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        *,
        cache: ResponseCache | None = None,
        retry_config: RetryConfig | None = None,
        http_client: httpx.Client | None = None,
        relay_url: str | None = None,
        timeout: float | None = None,
        cache_enabled: bool | None = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        """Initialize TextGenerator.

        Args:
            settings_store: Source of provider configs and defaults.
            cache: Response cache. Built from the environment if None.
            retry_config: Retry options. Read from the environment if None.
            http_client: Shared httpx client. Created and owned if None.
            relay_url: Relay overriding capability defaults.
            timeout: Transport timeout for an owned client (seconds).
            cache_enabled: Disable to bypass the cache entirely.
            sleep: Backoff sleep function, replaceable in tests.
        """
        self._store = settings_store

        if cache_enabled is None:
            cache_enabled = get_environment(EnvVar.CACHE_ENABLED)
        if cache is None and cache_enabled:
            cache = ResponseCache(**get_cache_settings())
        self._cache = cache if cache_enabled else None

        self._retry = RetryStrategy(
            retry_config or RetryConfig.from_environment(), sleep=sleep
        )

        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=get_environment(EnvVar.HTTP_TIMEOUT, override=timeout)
        )
        self._relay_url = get_relay_url(relay_url)

        self._usage: dict[str, UsageRecord] = {}
        self._usage_lock = threading.Lock()

    @property
    def cache(self) -> ResponseCache | None:
        return self._cache

    @property
    def retry_strategy(self) -> RetryStrategy:
        return self._retry

    def resolve(
        self, provider_id: str
    ) -> tuple[ResolvedProviderConfig, ProviderCapability]:
        """Resolve a provider id against the current settings.

        Args:
            provider_id: Configured provider id.

        Returns:
            Tuple of (config, capability).

        Raises:
            PluginError: With kind INVALID_CONFIG if the provider is
                unknown or disabled, or its capability id is unknown.
        """
        settings = self._store.load_settings()
        config = next(
            (c for c in settings.provider_configs if c.id == provider_id), None
        )
        if config is None:
            raise invalid_config(
                f"Provider not found: {provider_id}", provider_id=provider_id
            )
        if not config.enabled:
            raise invalid_config(
                f"Provider is disabled: {provider_id}", provider_id=provider_id
            )
        return config, get_capability(config.capability_id)

    def default_settings(self) -> GenerationSettings:
        """Generation defaults from the current settings."""
        return self._store.load_settings().generation.to_generation_settings()

    def generate(self, request: GenerationRequest) -> ProviderResponse:
        """Generate text for one request.

        Args:
            request: Generation request.

        Returns:
            ProviderResponse. Cached responses have cached=True and no cost.

        Raises:
            PluginError: On configuration errors, cancellation, or when the
                provider call fails after retries.
        """
        config, capability = self.resolve(request.provider_id)

        settings = request.settings or self.default_settings()
        if request.system_prompt is not None:
            settings = replace(settings, system_prompt=request.system_prompt)

        if request.signal is not None:
            request.signal.throw_if_cancelled()

        cache_key = None
        if self._cache is not None and not request.image_base64:
            cache_key = make_cache_key(
                config.id,
                request.prompt,
                settings.system_prompt,
                settings.temperature,
                settings.max_tokens,
            )
            entry = self._cache.get(cache_key)
            if entry is not None:
                logger.debug(f"Cache hit for {config.id} ({cache_key})")
                response = ProviderResponse(
                    text=entry.text,
                    tokens=entry.tokens,
                    cost_usd=0.0,
                    model=config.model_name or capability.model,
                    cached=True,
                )
                self._record_usage(config.id, response)
                self._deliver(request, response)
                return response

        adapter = create_adapter(
            config,
            capability,
            http_client=self._client,
            relay_url=self._relay_url,
        )
        logger.info(f"Generating with {adapter.name} ({config.id})")

        response = self._retry.run(
            lambda: adapter.generate_text(
                request.prompt,
                settings,
                few_shot=request.few_shot_pairs,
                image_base64=request.image_base64,
                signal=request.signal,
            )
        )

        if cache_key is not None:
            self._cache.set(cache_key, response.text, response.tokens)
        self._record_usage(config.id, response)
        self._deliver(request, response)

        logger.info(
            f"Generated {response.tokens.output} tokens with {adapter.name} "
            f"(${response.cost_usd:.6f})"
        )
        return response

    @staticmethod
    def _deliver(request: GenerationRequest, response: ProviderResponse) -> None:
        if request.on_chunk is not None:
            request.on_chunk(response.text, estimate_tokens(response.text))

    def _record_usage(self, provider_id: str, response: ProviderResponse) -> None:
        with self._usage_lock:
            record = self._usage.setdefault(provider_id, UsageRecord())
            if response.cached:
                record.cache_hits += 1
                return
            record.requests += 1
            record.input_tokens += response.tokens.input
            record.output_tokens += response.tokens.output
            record.cost_usd += response.cost_usd

    def cancel(self, signal: CancellationSignal) -> None:
        """Cancel the run that owns `signal`."""
        signal.cancel()

    @property
    def usage(self) -> dict[str, UsageRecord]:
        """Snapshot of usage records keyed by provider id."""
        with self._usage_lock:
            return {key: replace(record) for key, record in self._usage.items()}

    def reset_usage(self) -> None:
        with self._usage_lock:
            self._usage.clear()

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    def purge_cache(self) -> int:
        """Remove expired cache entries.

        Returns:
            Number of entries removed.
        """
        if self._cache is None:
            return 0
        return self._cache.purge_expired()

    def close(self) -> None:
        """Close the HTTP client if this generator created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "TextGenerator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = [
    "GenerationRequest",
    "UsageRecord",
    "TextGenerator",
]
