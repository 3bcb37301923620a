"""Anthropic Claude Messages API adapter."""

from typing import Any, Sequence

from ...settings import GenerationSettings
from .base import (
    DEFAULT_SYSTEM_PROMPT,
    FewShotMessage,
    ProviderAdapter,
    json_path,
    to_int,
)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    """Claude models via POST {base_url}/messages.

    The system prompt travels in a top-level `system` field rather than as
    a message.
    """

    def auth_headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def endpoint_url(self, base_url: str) -> str:
        return f"{base_url}/messages"

    def build_request_body(
        self,
        prompt: str,
        settings: GenerationSettings,
        few_shot: Sequence[FewShotMessage] = (),
        image_base64: str | None = None,
    ) -> dict[str, Any]:
        messages: list[dict[str, Any]] = [
            {"role": m.role, "content": m.text} for m in few_shot
        ]
        if image_base64:
            content: Any = [
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": "image/png",
                        "data": image_base64,
                    },
                },
                {"type": "text", "text": prompt},
            ]
        else:
            content = prompt
        messages.append({"role": "user", "content": content})

        body: dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": settings.max_tokens,
            "temperature": settings.temperature,
            "system": settings.system_prompt or DEFAULT_SYSTEM_PROMPT,
            "messages": messages,
        }
        return body

    def extract_text(self, data: Any) -> str | None:
        blocks = json_path(data, "content")
        if not isinstance(blocks, list):
            return None
        # Skip non-text blocks such as tool use
        for block in blocks:
            if isinstance(block, dict) and block.get("type", "text") == "text":
                return block.get("text")
        return None

    def extract_usage(self, data: Any) -> tuple[int | None, int | None]:
        return (
            to_int(json_path(data, "usage", "input_tokens")),
            to_int(json_path(data, "usage", "output_tokens")),
        )


__all__ = ["AnthropicAdapter", "ANTHROPIC_VERSION"]
