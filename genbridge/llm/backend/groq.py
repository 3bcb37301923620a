"""Groq adapter.

Groq serves open models behind an OpenAI-compatible endpoint; nothing but
the capability row differs from OpenAI.
"""

from .openai import OpenAICompatibleVariant


class GroqAdapter(OpenAICompatibleVariant):
    """High-throughput OpenAI-compatible inference."""


__all__ = ["GroqAdapter"]
