"""Abstract base class for provider adapters.

A provider adapter turns one generation call into one HTTP request for a
specific wire protocol and turns the reply back into a ProviderResponse.
Subclasses only supply the protocol-specific hooks; transport, error
classification, token estimation and cost accounting live here.
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

import httpx

from ...errors import ErrorKind, PluginError, classify_http_error, invalid_config
from ...settings import GenerationSettings, Pricing
from .model_spec import ProviderCapability

if TYPE_CHECKING:
    from ...cancellation import CancellationSignal
    from ...settings import ResolvedProviderConfig

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


@dataclass(frozen=True)
class FewShotMessage:
    """One example turn placed between the system and user messages.

    Attributes:
        role: Either "user" or "assistant".
        text: Message text.
    """

    role: str
    text: str


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for one call."""

    input: int = 0
    output: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output


@dataclass
class ProviderResponse:
    """Normalized result of one generation call.

    Attributes:
        text: Generated text, stripped of surrounding whitespace.
        tokens: Provider-reported or estimated token usage.
        cost_usd: Cost computed from the effective pricing.
        model: Model identifier that was used.
        cached: True when served from the response cache.
        raw_response: Provider JSON for debugging.
    """

    text: str
    tokens: TokenUsage
    cost_usd: float
    model: str = ""
    cached: bool = False
    raw_response: Any = None


def estimate_tokens(text: str) -> int:
    """Rough token count used when a provider reports none."""
    return math.ceil(len(text) / 4)


def calculate_cost(tokens: TokenUsage, pricing: Pricing) -> float:
    """Cost in USD for the given usage at per-million pricing."""
    return (tokens.input * pricing.input + tokens.output * pricing.output) / 1_000_000


def chat_messages(
    prompt: str,
    settings: GenerationSettings,
    few_shot: Sequence[FewShotMessage] = (),
    *,
    text_key: str = "content",
) -> list[dict[str, Any]]:
    """Build a system, few-shot, user message list.

    Args:
        prompt: User message.
        settings: Source of the system prompt.
        few_shot: Example turns in order.
        text_key: Field carrying message text ("content" or "text").

    Returns:
        List of role/text dicts.
    """
    messages: list[dict[str, Any]] = [
        {"role": "system", text_key: settings.system_prompt or DEFAULT_SYSTEM_PROMPT}
    ]
    messages.extend({"role": m.role, text_key: m.text} for m in few_shot)
    messages.append({"role": "user", text_key: prompt})
    return messages


def json_path(data: Any, *path: str | int) -> Any:
    """Follow keys and indexes through nested JSON, None on any miss."""
    current = data
    for key in path:
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError):
            return None
    return current


def to_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


_SECRET_QUERY = re.compile(r"(key=)[^&]+")


class ProviderAdapter(ABC):
    """Abstract interface for provider wire protocols.

    Example:
        >>> adapter = create_adapter(config)
        >>> response = adapter.generate_text("Hello", GenerationSettings())
        >>> print(response.text, response.cost_usd)
    """

    def __init__(
        self,
        config: ResolvedProviderConfig,
        capability: ProviderCapability,
        *,
        http_client: httpx.Client | None = None,
        relay_url: str | None = None,
        timeout: float = 60.0,
    ):
        """Initialize adapter.

        Args:
            config: User provider configuration.
            capability: Capability table row for the config.
            http_client: Shared client. A private one is created when omitted.
            relay_url: Relay overriding the capability's default relay.
            timeout: Transport timeout for a private client, in seconds.
        """
        self._config = config
        self._capability = capability
        self._relay_url = relay_url
        self._timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def config(self) -> ResolvedProviderConfig:
        return self._config

    @property
    def capability(self) -> ProviderCapability:
        return self._capability

    @property
    def provider(self) -> str:
        """Display name used in messages (e.g., 'OpenAI')."""
        return self._capability.display_name

    @property
    def model_name(self) -> str:
        """Model identifier sent to the API."""
        return self._capability.model

    @property
    def name(self) -> str:
        """Backend identifier for logging, 'provider:model'."""
        return f"{self.provider}:{self.model_name}"

    @property
    def pricing(self) -> Pricing:
        """Config override if present, else the capability default."""
        return self._config.custom_pricing or self._capability.pricing

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def resolve_base_url(self) -> str:
        """Pick the API root: custom URL, then relay, then default."""
        if self._config.custom_url:
            url = self._config.custom_url
        elif self._capability.requires_relay:
            url = (
                self._relay_url
                or self._capability.relay_url
                or self._capability.api_base_url
            )
        else:
            url = self._capability.api_base_url
        return url.rstrip("/")

    def auth_headers(self) -> dict[str, str]:
        """Bearer authentication; variants override."""
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", **self.auth_headers()}

    @abstractmethod
    def endpoint_url(self, base_url: str) -> str:
        """Full request URL for a resolved base URL."""

    @abstractmethod
    def build_request_body(
        self,
        prompt: str,
        settings: GenerationSettings,
        few_shot: Sequence[FewShotMessage] = (),
        image_base64: str | None = None,
    ) -> dict[str, Any]:
        """Build the JSON body for one call.

        Args:
            prompt: User message.
            settings: Sampling settings, system prompt included.
            few_shot: Example turns placed before the user message.
            image_base64: Optional PNG image for vision requests.

        Returns:
            JSON-serializable request body.
        """

    @abstractmethod
    def extract_text(self, data: Any) -> str | None:
        """Pull generated text out of a successful response body."""

    @abstractmethod
    def extract_usage(self, data: Any) -> tuple[int | None, int | None]:
        """Pull (input, output) token counts out of a response body."""

    # -------------------------------------------------------------------------
    # Template method
    # -------------------------------------------------------------------------

    def generate_text(
        self,
        prompt: str,
        settings: GenerationSettings,
        *,
        few_shot: Sequence[FewShotMessage] = (),
        image_base64: str | None = None,
        signal: CancellationSignal | None = None,
    ) -> ProviderResponse:
        """Generate text with one HTTP call.

        Args:
            prompt: User prompt text.
            settings: Sampling settings and system prompt.
            few_shot: Example turns to include.
            image_base64: Optional image for vision-capable models.
            signal: Checked right before the call and right after the reply.

        Returns:
            ProviderResponse with text, usage and cost.

        Raises:
            PluginError: On cancellation, transport failure, non-2xx
                status or an empty reply.
        """
        if image_base64 and not self._capability.supports_vision:
            raise invalid_config(
                f"{self.name} does not accept image input",
                capability_id=self._capability.id,
            )

        body = self.build_request_body(prompt, settings, few_shot, image_base64)
        url = self.endpoint_url(self.resolve_base_url())

        if signal is not None:
            signal.throw_if_cancelled()

        safe_url = _SECRET_QUERY.sub(r"\1***", url)
        logger.debug(f"POST {safe_url} ({self.name})")
        response = self._post(url, body)

        if signal is not None:
            signal.throw_if_cancelled()

        data = self._read_body(response)
        if not response.is_success:
            logger.warning(f"{self.name} returned HTTP {response.status_code}")
            raise classify_http_error(
                response.status_code,
                data,
                provider_name=self.provider,
                api_key_url=self._capability.api_key_url,
            )

        return self.parse_response(data, prompt)

    def parse_response(self, data: Any, prompt: str) -> ProviderResponse:
        """Normalize a successful body, estimating missing token counts."""
        text = self.extract_text(data)
        if not isinstance(text, str) or not text.strip():
            raise PluginError(
                ErrorKind.API_ERROR,
                f"No content in response from {self.provider}",
                details={"provider": self.provider, "reason": "empty_response"},
            )
        text = text.strip()

        input_tokens, output_tokens = self.extract_usage(data)
        tokens = TokenUsage(
            input=input_tokens or estimate_tokens(prompt),
            output=output_tokens or estimate_tokens(text),
        )
        return ProviderResponse(
            text=text,
            tokens=tokens,
            cost_usd=calculate_cost(tokens, self.pricing),
            model=self.model_name,
            raw_response=data,
        )

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def _post(self, url: str, body: dict[str, Any]) -> httpx.Response:
        try:
            return self._get_client().post(url, headers=self.headers(), json=body)
        except httpx.InvalidURL as e:
            raise invalid_config(
                f"Invalid API URL for {self.provider}: {e}",
                provider=self.provider,
            ) from e
        except httpx.TimeoutException as e:
            raise PluginError(
                ErrorKind.NETWORK,
                f"{self.provider} request timed out: {e}",
                retryable=True,
                details={"provider": self.provider, "reason": "transport_timeout"},
            ) from e
        except httpx.RequestError as e:
            raise PluginError(
                ErrorKind.NETWORK,
                f"Cannot connect to {self.provider}: {e}",
                retryable=True,
                details={"provider": self.provider, "reason": "connection"},
            ) from e

    @staticmethod
    def _read_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text or None

    def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> ProviderAdapter:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "FewShotMessage",
    "TokenUsage",
    "ProviderResponse",
    "ProviderAdapter",
    "estimate_tokens",
    "calculate_cost",
    "chat_messages",
    "json_path",
    "to_int",
]
