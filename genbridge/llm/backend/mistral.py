"""Mistral adapter.

Mistral speaks the OpenAI chat-completions shape but rejects unknown
fields, so the `stream` flag is left out.
"""

from .openai import OpenAIAdapter


class MistralAdapter(OpenAIAdapter):
    """Mistral La Plateforme chat completions."""

    INCLUDE_STREAM_FIELD = False


__all__ = ["MistralAdapter"]
