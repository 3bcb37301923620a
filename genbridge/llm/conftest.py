"""LLM module test fixtures."""

from __future__ import annotations

import json
from typing import Any, Callable, Generator

import httpx
import pytest

from genbridge.settings import (
    GenerationDefaults,
    PluginSettings,
    ResolvedProviderConfig,
    StaticSettingsStore,
)

# =============================================================================
# Mock HTTP transport
# =============================================================================


class RequestRecorder:
    """Serves queued responses through httpx.MockTransport.

    Every request is recorded so tests can assert on URL, headers and
    body. Queue entries are responses, or exception classes raised with
    the outgoing request attached.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._queue: list[Any] = []

    def reply(self, status: int = 200, json: Any = None, text: str | None = None):
        """Queue one response."""
        if text is not None:
            self._queue.append(httpx.Response(status, text=text))
        else:
            self._queue.append(httpx.Response(status, json=json))
        return self

    def fail(self, error_type: type[httpx.RequestError], message: str = "boom"):
        """Queue one transport failure."""
        self._queue.append(error_type)
        self._queue.append(message)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._queue:
            raise AssertionError(f"Unexpected request to {request.url}")
        item = self._queue.pop(0)
        if isinstance(item, type):
            raise item(self._queue.pop(0), request=request)
        return item

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def openai_reply(
    text: str = "Hello there", prompt_tokens: int = 10, completion_tokens: int = 5
) -> dict[str, Any]:
    """Chat-completions body with usage."""
    return {
        "choices": [{"message": {"role": "assistant", "content": text}}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
        },
    }


@pytest.fixture
def recorder() -> RequestRecorder:
    """Fresh request recorder."""
    return RequestRecorder()


@pytest.fixture
def http_client(recorder: RequestRecorder) -> Generator[httpx.Client, None, None]:
    """httpx client backed by the recorder."""
    client = recorder.client()
    yield client
    client.close()


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def make_config() -> Callable[..., ResolvedProviderConfig]:
    """Factory for provider configs with a test key."""

    def _make(
        capability_id: str = "openai-gpt4o-mini", id: str = "main", **kwargs: Any
    ) -> ResolvedProviderConfig:
        kwargs.setdefault("api_key", "test-key")
        return ResolvedProviderConfig(id=id, capability_id=capability_id, **kwargs)

    return _make


@pytest.fixture
def settings_store(make_config) -> StaticSettingsStore:
    """Store with one enabled OpenAI provider and one disabled one."""
    return StaticSettingsStore(
        PluginSettings(
            provider_configs=[
                make_config("openai-gpt4o", id="main"),
                make_config("claude-haiku", id="off", enabled=False),
            ],
            generation=GenerationDefaults(temperature=0.5, max_tokens=500),
        )
    )


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    """Sleep replacement that records requested delays."""
    delays: list[float] = []

    def _sleep(seconds: float) -> None:
        delays.append(seconds)

    _sleep.delays = delays  # type: ignore[attr-defined]
    return _sleep
