"""Yandex Cloud Foundation Models adapter.

Direct calls from most clients are refused, so requests normally go
through a forwarding relay that exposes the same completion endpoint.
"""

from typing import Any, Sequence

from ...errors import invalid_config
from ...settings import GenerationSettings
from .base import FewShotMessage, ProviderAdapter, chat_messages, json_path, to_int


class YandexAdapter(ProviderAdapter):
    """YandexGPT completion API.

    The resolved base URL is the full endpoint. Models are addressed as
    gpt://{folder_id}/{model}, so a folder id is mandatory.
    """

    def auth_headers(self) -> dict[str, str]:
        headers = {"Authorization": f"Api-Key {self._config.api_key}"}
        if self._config.folder_id:
            headers["x-folder-id"] = self._config.folder_id
        return headers

    def endpoint_url(self, base_url: str) -> str:
        return base_url

    @property
    def model_uri(self) -> str:
        """Fully qualified model URI.

        Raises:
            PluginError: With kind INVALID_CONFIG if folder_id is missing.
        """
        if not self._config.folder_id:
            raise invalid_config(
                "Yandex Cloud folder ID is required. Add it to the provider "
                "settings.",
                provider_id=self._config.id,
            )
        return f"gpt://{self._config.folder_id}/{self.model_name}"

    def build_request_body(
        self,
        prompt: str,
        settings: GenerationSettings,
        few_shot: Sequence[FewShotMessage] = (),
        image_base64: str | None = None,
    ) -> dict[str, Any]:
        return {
            "modelUri": self.model_uri,
            "completionOptions": {
                "stream": False,
                "temperature": settings.temperature,
                "maxTokens": str(settings.max_tokens),
                "reasoningOptions": {"mode": "DISABLED"},
            },
            "messages": chat_messages(prompt, settings, few_shot, text_key="text"),
        }

    def extract_text(self, data: Any) -> str | None:
        return json_path(data, "result", "alternatives", 0, "message", "text")

    def extract_usage(self, data: Any) -> tuple[int | None, int | None]:
        # Counts arrive as strings
        return (
            to_int(json_path(data, "result", "usage", "inputTextTokens")),
            to_int(json_path(data, "result", "usage", "completionTokens")),
        )


__all__ = ["YandexAdapter"]
