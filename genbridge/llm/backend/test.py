"""Tests for provider adapter implementations."""

import httpx
import pytest

from ...cancellation import CancellationSignal
from ...errors import ErrorKind, PluginError
from ...settings import GenerationSettings, Pricing
from ..conftest import openai_reply
from .anthropic import ANTHROPIC_VERSION, AnthropicAdapter
from .base import (
    DEFAULT_SYSTEM_PROMPT,
    FewShotMessage,
    TokenUsage,
    calculate_cost,
    estimate_tokens,
)
from .cohere import CohereAdapter
from .factory import create_adapter
from .gemini import GeminiAdapter
from .groq import GroqAdapter
from .lmstudio import LMStudioAdapter, normalize_local_url
from .mistral import MistralAdapter
from .model_spec import (
    ProviderCapability,
    ProviderModel,
    WireFamily,
    get_capability,
)
from .openai import OpenAIAdapter
from .yandex import YandexAdapter

SETTINGS = GenerationSettings(temperature=0.3, max_tokens=256)
FEW_SHOT = (
    FewShotMessage("user", "Hello"),
    FewShotMessage("assistant", "Hola"),
)


# =============================================================================
# Capability table
# =============================================================================


class TestProviderModel:
    """Tests for the ProviderModel registry."""

    @pytest.mark.unit
    def test_ids_are_unique(self):
        ids = [m.capability.id for m in ProviderModel]
        assert len(ids) == len(set(ids))

    @pytest.mark.unit
    def test_every_family_has_a_model(self):
        """Each wire family is reachable from at least one row."""
        for family in WireFamily:
            assert ProviderModel.list_by_family(family)

    @pytest.mark.unit
    def test_by_id_lookup(self):
        assert ProviderModel.by_id("openai-gpt4o") == ProviderModel.OPENAI_GPT4O
        assert ProviderModel.by_id("nonexistent") is None

    @pytest.mark.unit
    def test_relay_rows(self):
        """Only the regional cloud rows require a relay."""
        relayed = [m for m in ProviderModel if m.capability.requires_relay]
        assert relayed
        assert all(m.capability.wire_family == WireFamily.YANDEX for m in relayed)
        assert all(m.capability.relay_url for m in relayed)

    @pytest.mark.unit
    def test_local_model_is_free(self):
        spec = ProviderModel.LMSTUDIO_LOCAL.capability
        assert spec.is_local
        assert spec.is_free

    @pytest.mark.unit
    def test_get_capability_accepts_all_references(self):
        spec = ProviderModel.CLAUDE_HAIKU.capability
        assert get_capability("claude-haiku") is spec
        assert get_capability(ProviderModel.CLAUDE_HAIKU) is spec
        assert get_capability(spec) is spec

    @pytest.mark.unit
    def test_get_capability_unknown(self):
        with pytest.raises(PluginError) as exc_info:
            get_capability("gpt-9000")
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert "gpt-9000" in exc_info.value.message


# =============================================================================
# Token and cost helpers
# =============================================================================


class TestAccounting:
    """Tests for token estimation and cost."""

    @pytest.mark.unit
    def test_estimate_tokens(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    @pytest.mark.unit
    def test_cost_per_million(self):
        """1000 input and 1000 output tokens at 5/15 per million."""
        cost = calculate_cost(TokenUsage(1000, 1000), Pricing(input=5, output=15))
        assert cost == pytest.approx(0.02)

    @pytest.mark.unit
    def test_zero_pricing(self):
        assert calculate_cost(TokenUsage(1000, 1000), Pricing()) == 0


# =============================================================================
# Factory
# =============================================================================


class TestFactory:
    """Tests for create_adapter routing."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "capability_id,adapter_type",
        [
            ("openai-gpt4o", OpenAIAdapter),
            ("claude-sonnet", AnthropicAdapter),
            ("gemini-flash", GeminiAdapter),
            ("cohere-command-r", CohereAdapter),
            ("mistral-small", MistralAdapter),
            ("groq-llama", GroqAdapter),
            ("lmstudio-local", LMStudioAdapter),
            ("yandex-gpt-lite", YandexAdapter),
        ],
    )
    def test_routes_by_family(self, make_config, capability_id, adapter_type):
        adapter = create_adapter(make_config(capability_id))
        assert type(adapter) is adapter_type
        adapter.close()

    @pytest.mark.unit
    def test_explicit_capability_overrides_config(self, make_config):
        adapter = create_adapter(make_config("openai-gpt4o"), "claude-haiku")
        assert isinstance(adapter, AnthropicAdapter)
        assert adapter.name == "Claude:claude-3-5-haiku-20241022"

    @pytest.mark.unit
    def test_unknown_capability(self, make_config):
        with pytest.raises(PluginError) as exc_info:
            create_adapter(make_config("nope"))
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG


# =============================================================================
# OpenAI family
# =============================================================================


class TestOpenAIAdapter:
    """Tests for the chat-completions protocol."""

    @pytest.mark.unit
    def test_request_shape(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply("Bonjour"))
        adapter = create_adapter(make_config("openai-gpt4o"), http_client=http_client)

        response = adapter.generate_text("Hello", SETTINGS, few_shot=FEW_SHOT)

        request = recorder.last
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert request.headers["Content-Type"] == "application/json"
        assert recorder.last_json == {
            "model": "gpt-4o",
            "messages": [
                {"role": "system", "content": DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": "Hello"},
                {"role": "assistant", "content": "Hola"},
                {"role": "user", "content": "Hello"},
            ],
            "temperature": 0.3,
            "max_tokens": 256,
            "stream": False,
        }
        assert response.text == "Bonjour"
        assert response.tokens == TokenUsage(10, 5)
        assert response.model == "gpt-4o"
        assert not response.cached

    @pytest.mark.unit
    def test_system_prompt_used(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply())
        adapter = create_adapter(make_config(), http_client=http_client)
        adapter.generate_text("Hi", GenerationSettings(system_prompt="Be terse"))
        assert recorder.last_json["messages"][0] == {
            "role": "system",
            "content": "Be terse",
        }

    @pytest.mark.unit
    def test_custom_url_wins(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply())
        config = make_config(custom_url="https://proxy.example.com/v1/")
        create_adapter(config, http_client=http_client).generate_text("Hi", SETTINGS)
        assert str(recorder.last.url) == "https://proxy.example.com/v1/chat/completions"

    @pytest.mark.unit
    def test_vision_body(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply("A cat"))
        adapter = create_adapter(make_config("openai-gpt4o"), http_client=http_client)
        adapter.generate_text("Describe", SETTINGS, image_base64="AAAA")
        content = recorder.last_json["messages"][-1]["content"]
        assert content[0] == {"type": "text", "text": "Describe"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,AAAA"

    @pytest.mark.unit
    def test_vision_rejected_without_support(self, make_config, recorder, http_client):
        adapter = create_adapter(make_config("openai-gpt35"), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Describe", SETTINGS, image_base64="AAAA")
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert recorder.calls == 0

    @pytest.mark.unit
    def test_usage_estimated_independently(self, make_config, recorder, http_client):
        """Missing counts fall back to ceil(len / 4) one side at a time."""
        recorder.reply(
            json={
                "choices": [{"message": {"content": "12345678"}}],
                "usage": {"prompt_tokens": 42},
            }
        )
        adapter = create_adapter(make_config(), http_client=http_client)
        response = adapter.generate_text("Hello", SETTINGS)
        assert response.tokens == TokenUsage(42, 2)

    @pytest.mark.unit
    def test_zero_usage_is_estimated(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply("abcd", 0, 0))
        adapter = create_adapter(make_config(), http_client=http_client)
        response = adapter.generate_text("abcdefgh", SETTINGS)
        assert response.tokens == TokenUsage(2, 1)

    @pytest.mark.unit
    def test_custom_pricing(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply("ok", 1000, 1000))
        config = make_config(custom_pricing=Pricing(input=5, output=15))
        response = create_adapter(config, http_client=http_client).generate_text(
            "Hi", SETTINGS
        )
        assert response.cost_usd == pytest.approx(0.02)

    @pytest.mark.unit
    def test_text_is_stripped(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply("  padded \n"))
        adapter = create_adapter(make_config(), http_client=http_client)
        assert adapter.generate_text("Hi", SETTINGS).text == "padded"

    @pytest.mark.unit
    def test_empty_content(self, make_config, recorder, http_client):
        recorder.reply(json={"choices": [{"message": {"content": ""}}]})
        adapter = create_adapter(make_config(), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS)
        assert exc_info.value.kind == ErrorKind.API_ERROR
        assert exc_info.value.reason == "empty_response"


class TestOpenAIVariants:
    """Tests for Mistral, Groq and LM Studio."""

    @pytest.mark.unit
    def test_mistral_omits_stream(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply())
        adapter = create_adapter(make_config("mistral-small"), http_client=http_client)
        adapter.generate_text("Hi", SETTINGS)
        assert str(recorder.last.url) == "https://api.mistral.ai/v1/chat/completions"
        assert "stream" not in recorder.last_json
        assert recorder.last_json["model"] == "mistral-small-latest"

    @pytest.mark.unit
    def test_groq_uses_openai_shape(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply("fast"))
        adapter = create_adapter(make_config("groq-llama"), http_client=http_client)
        response = adapter.generate_text("Hi", SETTINGS)
        assert str(recorder.last.url) == (
            "https://api.groq.com/openai/v1/chat/completions"
        )
        assert recorder.last.headers["Authorization"] == "Bearer test-key"
        assert recorder.last_json["stream"] is False
        assert response.text == "fast"
        assert adapter.name == "Groq:llama-3.1-70b-versatile"

    @pytest.mark.unit
    def test_lmstudio_without_key(self, make_config, recorder, http_client):
        recorder.reply(json=openai_reply("local"))
        config = make_config(
            "lmstudio-local", custom_url="http://192.168.1.5:1234/", model_name="qwen"
        )
        adapter = create_adapter(config, http_client=http_client)
        response = adapter.generate_text("Hi", SETTINGS)
        assert str(recorder.last.url) == "http://192.168.1.5:1234/v1/chat/completions"
        assert "Authorization" not in recorder.last.headers
        assert recorder.last_json["model"] == "qwen"
        assert response.cost_usd == 0

    @pytest.mark.unit
    def test_normalize_local_url(self):
        assert normalize_local_url("http://localhost:1234") == "http://localhost:1234/v1"
        assert normalize_local_url("http://localhost:1234/v1/") == (
            "http://localhost:1234/v1"
        )


# =============================================================================
# Other wire families
# =============================================================================


class TestAnthropicAdapter:
    """Tests for the Messages API."""

    @pytest.mark.unit
    def test_request_shape(self, make_config, recorder, http_client):
        recorder.reply(
            json={
                "content": [{"type": "text", "text": "Hola"}],
                "usage": {"input_tokens": 12, "output_tokens": 3},
            }
        )
        adapter = create_adapter(make_config("claude-haiku"), http_client=http_client)
        settings = GenerationSettings(0.2, 100, "Translate")

        response = adapter.generate_text("Hello", settings, few_shot=FEW_SHOT)

        request = recorder.last
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "test-key"
        assert request.headers["anthropic-version"] == ANTHROPIC_VERSION
        assert "Authorization" not in request.headers
        assert recorder.last_json == {
            "model": "claude-3-5-haiku-20241022",
            "max_tokens": 100,
            "temperature": 0.2,
            "system": "Translate",
            "messages": [
                {"role": "user", "content": "Hello"},
                {"role": "assistant", "content": "Hola"},
                {"role": "user", "content": "Hello"},
            ],
        }
        assert response.text == "Hola"
        assert response.tokens == TokenUsage(12, 3)

    @pytest.mark.unit
    def test_default_system_prompt(self, make_config, recorder, http_client):
        recorder.reply(json={"content": [{"type": "text", "text": "ok"}]})
        adapter = create_adapter(make_config("claude-haiku"), http_client=http_client)
        adapter.generate_text("Hi", SETTINGS)
        assert recorder.last_json["system"] == DEFAULT_SYSTEM_PROMPT

    @pytest.mark.unit
    def test_vision_block(self, make_config, recorder, http_client):
        recorder.reply(json={"content": [{"type": "text", "text": "A dog"}]})
        adapter = create_adapter(make_config("claude-sonnet"), http_client=http_client)
        adapter.generate_text("Describe", SETTINGS, image_base64="BBBB")
        content = recorder.last_json["messages"][-1]["content"]
        assert content[0]["source"] == {
            "type": "base64",
            "media_type": "image/png",
            "data": "BBBB",
        }
        assert content[1] == {"type": "text", "text": "Describe"}


class TestGeminiAdapter:
    """Tests for generateContent."""

    @pytest.mark.unit
    def test_request_shape(self, make_config, recorder, http_client):
        recorder.reply(
            json={
                "candidates": [{"content": {"parts": [{"text": "Hallo"}]}}],
                "usageMetadata": {"promptTokenCount": 7, "candidatesTokenCount": 2},
            }
        )
        config = make_config("gemini-flash", api_key="g-key")
        adapter = create_adapter(config, http_client=http_client)
        settings = GenerationSettings(0.1, 64, "Translate to German")

        response = adapter.generate_text("Hello", settings, few_shot=FEW_SHOT)

        request = recorder.last
        assert request.url.path == "/v1beta/models/gemini-1.5-flash:generateContent"
        assert request.url.params["key"] == "g-key"
        assert "Authorization" not in request.headers
        assert recorder.last_json == {
            "contents": [
                {"role": "user", "parts": [{"text": "Hello"}]},
                {"role": "model", "parts": [{"text": "Hola"}]},
                {"role": "user", "parts": [{"text": "Hello"}]},
            ],
            "generationConfig": {"temperature": 0.1, "maxOutputTokens": 64},
            "systemInstruction": {"parts": [{"text": "Translate to German"}]},
        }
        assert response.text == "Hallo"
        assert response.tokens == TokenUsage(7, 2)

    @pytest.mark.unit
    def test_no_system_instruction(self, make_config, recorder, http_client):
        recorder.reply(json={"candidates": [{"content": {"parts": [{"text": "x"}]}}]})
        adapter = create_adapter(make_config("gemini-pro"), http_client=http_client)
        adapter.generate_text("Hi", SETTINGS)
        assert "systemInstruction" not in recorder.last_json

    @pytest.mark.unit
    def test_vision_part(self, make_config, recorder, http_client):
        recorder.reply(json={"candidates": [{"content": {"parts": [{"text": "x"}]}}]})
        adapter = create_adapter(make_config("gemini-flash"), http_client=http_client)
        adapter.generate_text("Describe", SETTINGS, image_base64="CCCC")
        parts = recorder.last_json["contents"][-1]["parts"]
        assert parts[1] == {"inlineData": {"mimeType": "image/png", "data": "CCCC"}}


class TestCohereAdapter:
    """Tests for Cohere chat."""

    @pytest.mark.unit
    def test_request_shape(self, make_config, recorder, http_client):
        recorder.reply(
            json={
                "text": "Salut",
                "meta": {"tokens": {"input_tokens": 9, "output_tokens": 4}},
            }
        )
        adapter = create_adapter(
            make_config("cohere-command-r"), http_client=http_client
        )
        settings = GenerationSettings(0.4, 80, "Be formal")

        response = adapter.generate_text("Hello", settings, few_shot=FEW_SHOT)

        assert str(recorder.last.url) == "https://api.cohere.ai/v1/chat"
        assert recorder.last.headers["Authorization"] == "Bearer test-key"
        assert recorder.last_json == {
            "model": "command-r",
            "message": "Hello",
            "temperature": 0.4,
            "max_tokens": 80,
            "preamble": "Be formal",
            "chat_history": [
                {"role": "USER", "message": "Hello"},
                {"role": "CHATBOT", "message": "Hola"},
            ],
        }
        assert response.tokens == TokenUsage(9, 4)

    @pytest.mark.unit
    def test_billed_units_fallback(self, make_config, recorder, http_client):
        recorder.reply(
            json={
                "text": "ok",
                "meta": {"billed_units": {"input_tokens": 3, "output_tokens": 1}},
            }
        )
        adapter = create_adapter(
            make_config("cohere-command-r"), http_client=http_client
        )
        response = adapter.generate_text("Hi", SETTINGS)
        assert "chat_history" not in recorder.last_json
        assert recorder.last_json["preamble"] == DEFAULT_SYSTEM_PROMPT
        assert response.tokens == TokenUsage(3, 1)


class TestYandexAdapter:
    """Tests for the YandexGPT completion API."""

    @pytest.mark.unit
    def test_request_shape_via_relay(self, make_config, recorder, http_client):
        recorder.reply(
            json={
                "result": {
                    "alternatives": [{"message": {"role": "assistant", "text": "Привет"}}],
                    "usage": {"inputTextTokens": "15", "completionTokens": "3"},
                }
            }
        )
        config = make_config("yandex-gpt-lite", folder_id="b1gfolder")
        adapter = create_adapter(config, http_client=http_client)

        response = adapter.generate_text("Hello", SETTINGS)

        request = recorder.last
        assert str(request.url) == "https://proxy.uixray.tech/api/yandex"
        assert request.headers["Authorization"] == "Api-Key test-key"
        assert request.headers["x-folder-id"] == "b1gfolder"
        assert recorder.last_json == {
            "modelUri": "gpt://b1gfolder/yandexgpt-lite/latest",
            "completionOptions": {
                "stream": False,
                "temperature": 0.3,
                "maxTokens": "256",
                "reasoningOptions": {"mode": "DISABLED"},
            },
            "messages": [
                {"role": "system", "text": DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "text": "Hello"},
            ],
        }
        assert response.text == "Привет"
        assert response.tokens == TokenUsage(15, 3)

    @pytest.mark.unit
    def test_relay_override(self, make_config, recorder, http_client):
        recorder.reply(
            json={"result": {"alternatives": [{"message": {"text": "ok"}}]}}
        )
        config = make_config("yandex-gpt-pro", folder_id="f")
        adapter = create_adapter(
            config, http_client=http_client, relay_url="https://relay.local/yc/"
        )
        adapter.generate_text("Hi", SETTINGS)
        assert str(recorder.last.url) == "https://relay.local/yc"

    @pytest.mark.unit
    def test_missing_folder(self, make_config, recorder, http_client):
        adapter = create_adapter(make_config("yandex-gpt-lite"), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS)
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert recorder.calls == 0


# =============================================================================
# Failures
# =============================================================================


class TestAdapterErrors:
    """Tests for HTTP and transport failure classification."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "status,kind,retryable",
        [
            (401, ErrorKind.AUTH, False),
            (403, ErrorKind.AUTH, False),
            (429, ErrorKind.RATE_LIMIT, True),
            (400, ErrorKind.API_ERROR, False),
            (404, ErrorKind.API_ERROR, False),
            (500, ErrorKind.API_ERROR, True),
            (503, ErrorKind.API_ERROR, True),
        ],
    )
    def test_status_classification(
        self, make_config, recorder, http_client, status, kind, retryable
    ):
        recorder.reply(status, json={"error": {"message": "nope"}})
        adapter = create_adapter(make_config(), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS)
        assert exc_info.value.kind == kind
        assert exc_info.value.retryable is retryable
        assert exc_info.value.status_code == status

    @pytest.mark.unit
    def test_auth_hint_names_key_page(self, make_config, recorder, http_client):
        recorder.reply(401, json={"error": {"message": "bad key"}})
        adapter = create_adapter(make_config("claude-haiku"), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS)
        assert "console.anthropic.com" in exc_info.value.message

    @pytest.mark.unit
    def test_region_block(self, make_config, recorder, http_client):
        recorder.reply(
            400, json={"error": {"message": "User location is not supported"}}
        )
        adapter = create_adapter(make_config("gemini-flash"), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS)
        assert exc_info.value.reason == "region_blocked"

    @pytest.mark.unit
    def test_plain_text_error_body(self, make_config, recorder, http_client):
        recorder.reply(502, text="Bad Gateway")
        adapter = create_adapter(make_config(), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS)
        assert exc_info.value.kind == ErrorKind.API_ERROR
        assert exc_info.value.retryable

    @pytest.mark.unit
    def test_connect_error(self, make_config, recorder, http_client):
        recorder.fail(httpx.ConnectError, "refused")
        adapter = create_adapter(make_config(), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS)
        assert exc_info.value.kind == ErrorKind.NETWORK
        assert exc_info.value.retryable
        assert exc_info.value.reason == "connection"

    @pytest.mark.unit
    def test_transport_timeout(self, make_config, recorder, http_client):
        recorder.fail(httpx.ReadTimeout, "slow")
        adapter = create_adapter(make_config(), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS)
        assert exc_info.value.kind == ErrorKind.NETWORK
        assert exc_info.value.reason == "transport_timeout"

    @pytest.mark.unit
    def test_cancelled_before_call(self, make_config, recorder, http_client):
        signal = CancellationSignal()
        signal.cancel()
        adapter = create_adapter(make_config(), http_client=http_client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS, signal=signal)
        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert recorder.calls == 0

    @pytest.mark.unit
    def test_cancelled_during_call(self, make_config, recorder, http_client):
        """A reply arriving after cancellation is discarded."""
        signal = CancellationSignal()
        recorder.reply(json=openai_reply())
        original = recorder.handler

        def cancel_then_reply(request):
            signal.cancel()
            return original(request)

        recorder.handler = cancel_then_reply
        client = recorder.client()
        adapter = create_adapter(make_config(), http_client=client)
        with pytest.raises(PluginError) as exc_info:
            adapter.generate_text("Hi", SETTINGS, signal=signal)
        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert recorder.calls == 1
        client.close()


class TestCapabilityRecord:
    """Tests for ProviderCapability defaults."""

    @pytest.mark.unit
    def test_defaults(self):
        spec = ProviderCapability(
            id="x",
            wire_family=WireFamily.OPENAI,
            display_name="X",
            model="m",
            api_base_url="https://x.example/v1",
        )
        assert spec.is_free
        assert not spec.requires_relay
        assert not spec.supports_vision
        assert not spec.is_local
