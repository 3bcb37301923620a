"""OpenAI chat-completions adapter.

Also the request/response core reused by the other OpenAI-compatible
providers: Mistral subclasses it, Groq and LM Studio delegate to it.
"""

import logging
from typing import Any, Sequence

from ...settings import GenerationSettings
from .base import (
    FewShotMessage,
    ProviderAdapter,
    chat_messages,
    json_path,
    to_int,
)

logger = logging.getLogger(__name__)


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat-completions protocol.

    POSTs to {base_url}/chat/completions with bearer authentication.

    Example:
        >>> adapter = OpenAIAdapter(config, get_capability("openai-gpt4o"))
        >>> adapter.generate_text("Say hi", GenerationSettings()).text
        'Hi!'
    """

    INCLUDE_STREAM_FIELD = True

    def __init__(
        self,
        config,
        capability,
        *,
        base_url: str | None = None,
        model: str | None = None,
        send_api_key: bool = True,
        **kwargs,
    ):
        """Initialize adapter.

        Args:
            config: User provider configuration.
            capability: Capability table row.
            base_url: Fixed API root replacing normal URL resolution.
            model: Model identifier replacing the capability's.
            send_api_key: Send the bearer header (off for local servers).
            **kwargs: Transport options forwarded to ProviderAdapter.
        """
        super().__init__(config, capability, **kwargs)
        self._base_url_override = base_url
        self._model_override = model
        self._send_api_key = send_api_key

    @property
    def model_name(self) -> str:
        return self._model_override or self._capability.model

    def resolve_base_url(self) -> str:
        if self._base_url_override:
            return self._base_url_override.rstrip("/")
        return super().resolve_base_url()

    def auth_headers(self) -> dict[str, str]:
        if not self._send_api_key:
            return {}
        return super().auth_headers()

    def endpoint_url(self, base_url: str) -> str:
        return f"{base_url}/chat/completions"

    def build_request_body(
        self,
        prompt: str,
        settings: GenerationSettings,
        few_shot: Sequence[FewShotMessage] = (),
        image_base64: str | None = None,
    ) -> dict[str, Any]:
        messages = chat_messages(prompt, settings, few_shot)
        if image_base64:
            messages[-1]["content"] = [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/png;base64,{image_base64}"},
                },
            ]

        body: dict[str, Any] = {
            "model": self.model_name,
            "messages": messages,
            "temperature": settings.temperature,
            "max_tokens": settings.max_tokens,
        }
        if self.INCLUDE_STREAM_FIELD:
            body["stream"] = False
        return body

    def extract_text(self, data: Any) -> str | None:
        return json_path(data, "choices", 0, "message", "content")

    def extract_usage(self, data: Any) -> tuple[int | None, int | None]:
        return (
            to_int(json_path(data, "usage", "prompt_tokens")),
            to_int(json_path(data, "usage", "completion_tokens")),
        )


class OpenAICompatibleVariant(ProviderAdapter):
    """Adapter that forwards every call to a configured OpenAIAdapter.

    Subclasses override `chat_overrides()` to change only the key header,
    base URL or model; the request and response logic stays in one place.
    """

    def __init__(self, config, capability, **kwargs):
        super().__init__(config, capability, **kwargs)
        self._chat = OpenAIAdapter(
            config, capability, **self.chat_overrides(), **kwargs
        )

    def chat_overrides(self) -> dict[str, Any]:
        """Keyword overrides passed to the wrapped OpenAIAdapter."""
        return {}

    @property
    def model_name(self) -> str:
        return self._chat.model_name

    def resolve_base_url(self) -> str:
        return self._chat.resolve_base_url()

    def auth_headers(self) -> dict[str, str]:
        return self._chat.auth_headers()

    def endpoint_url(self, base_url: str) -> str:
        return self._chat.endpoint_url(base_url)

    def build_request_body(
        self,
        prompt: str,
        settings: GenerationSettings,
        few_shot: Sequence[FewShotMessage] = (),
        image_base64: str | None = None,
    ) -> dict[str, Any]:
        return self._chat.build_request_body(prompt, settings, few_shot, image_base64)

    def extract_text(self, data: Any) -> str | None:
        return self._chat.extract_text(data)

    def extract_usage(self, data: Any) -> tuple[int | None, int | None]:
        return self._chat.extract_usage(data)

    def generate_text(self, prompt, settings, **kwargs):
        return self._chat.generate_text(prompt, settings, **kwargs)

    def close(self) -> None:
        self._chat.close()


__all__ = ["OpenAIAdapter", "OpenAICompatibleVariant"]
