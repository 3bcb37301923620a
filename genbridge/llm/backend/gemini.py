"""Google Gemini generateContent adapter."""

from typing import Any, Sequence
from urllib.parse import quote

from ...settings import GenerationSettings
from .base import FewShotMessage, ProviderAdapter, json_path, to_int


class GeminiAdapter(ProviderAdapter):
    """Gemini models via POST {base_url}/models/{model}:generateContent.

    The API key goes into the `key` query parameter; no auth header is sent.
    Assistant turns use the role name "model".
    """

    def auth_headers(self) -> dict[str, str]:
        return {}

    def endpoint_url(self, base_url: str) -> str:
        key = quote(self._config.api_key, safe="")
        return f"{base_url}/models/{self.model_name}:generateContent?key={key}"

    def build_request_body(
        self,
        prompt: str,
        settings: GenerationSettings,
        few_shot: Sequence[FewShotMessage] = (),
        image_base64: str | None = None,
    ) -> dict[str, Any]:
        contents: list[dict[str, Any]] = [
            {
                "role": "user" if m.role == "user" else "model",
                "parts": [{"text": m.text}],
            }
            for m in few_shot
        ]
        parts: list[dict[str, Any]] = [{"text": prompt}]
        if image_base64:
            parts.append({"inlineData": {"mimeType": "image/png", "data": image_base64}})
        contents.append({"role": "user", "parts": parts})

        body: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": settings.temperature,
                "maxOutputTokens": settings.max_tokens,
            },
        }
        if settings.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": settings.system_prompt}]}
        return body

    def extract_text(self, data: Any) -> str | None:
        parts = json_path(data, "candidates", 0, "content", "parts")
        if not isinstance(parts, list):
            return None
        texts = [p["text"] for p in parts if isinstance(p, dict) and p.get("text")]
        return "".join(texts) if texts else None

    def extract_usage(self, data: Any) -> tuple[int | None, int | None]:
        return (
            to_int(json_path(data, "usageMetadata", "promptTokenCount")),
            to_int(json_path(data, "usageMetadata", "candidatesTokenCount")),
        )


__all__ = ["GeminiAdapter"]
