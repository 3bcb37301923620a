"""Cohere v1 chat adapter."""

from typing import Any, Sequence

from ...settings import GenerationSettings
from .base import (
    DEFAULT_SYSTEM_PROMPT,
    FewShotMessage,
    ProviderAdapter,
    json_path,
    to_int,
)

_COHERE_ROLES = {"user": "USER", "assistant": "CHATBOT"}


class CohereAdapter(ProviderAdapter):
    """Cohere Command models via POST {base_url}/chat.

    The user message is a plain `message` string; the system prompt is the
    `preamble` and examples go into `chat_history`.
    """

    def endpoint_url(self, base_url: str) -> str:
        return f"{base_url}/chat"

    def build_request_body(
        self,
        prompt: str,
        settings: GenerationSettings,
        few_shot: Sequence[FewShotMessage] = (),
        image_base64: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model_name,
            "message": prompt,
            "temperature": settings.temperature,
            "max_tokens": settings.max_tokens,
            "preamble": settings.system_prompt or DEFAULT_SYSTEM_PROMPT,
        }
        if few_shot:
            body["chat_history"] = [
                {"role": _COHERE_ROLES.get(m.role, "USER"), "message": m.text}
                for m in few_shot
            ]
        return body

    def extract_text(self, data: Any) -> str | None:
        return json_path(data, "text")

    def extract_usage(self, data: Any) -> tuple[int | None, int | None]:
        tokens = json_path(data, "meta", "tokens") or json_path(
            data, "meta", "billed_units"
        )
        return (
            to_int(json_path(tokens, "input_tokens")),
            to_int(json_path(tokens, "output_tokens")),
        )


__all__ = ["CohereAdapter"]
