"""LM Studio adapter for a local OpenAI-compatible server."""

from typing import Any

from .openai import OpenAICompatibleVariant

API_SUFFIX = "/v1"


def normalize_local_url(url: str) -> str:
    """Strip trailing slashes and make sure the URL ends in /v1.

    Example:
        >>> normalize_local_url("http://127.0.0.1:1234/")
        'http://127.0.0.1:1234/v1'
    """
    url = url.rstrip("/")
    if not url.endswith(API_SUFFIX):
        url = f"{url}{API_SUFFIX}"
    return url


class LMStudioAdapter(OpenAICompatibleVariant):
    """Local server: no key header, user-chosen URL and model."""

    def chat_overrides(self) -> dict[str, Any]:
        return {
            "base_url": normalize_local_url(
                self._config.custom_url or self._capability.api_base_url
            ),
            "model": self._config.model_name or self._capability.model,
            "send_api_key": False,
        }


__all__ = ["LMStudioAdapter", "normalize_local_url"]
