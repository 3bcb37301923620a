"""Tests for LLM generator module.

Covers:
- classify_error / RetryStrategy: Classification and backoff
- TextGenerator: Cache, retry and usage with a mocked transport
- BatchProcessor / PerLayerApplier: Sequential multi-item runs
- clean_response: Output cleanup
"""

import concurrent.futures
import json

import httpx
import pytest

from ...cache import ResponseCache
from ...cancellation import CancellationSignal
from ...errors import ErrorKind, PluginError, invalid_config
from ...settings import GenerationSettings, JsonFileSettingsStore
from ..backend import ProviderResponse, TokenUsage
from ..conftest import openai_reply
from .batch import (
    BatchItem,
    BatchProcessor,
    BatchProgress,
    BatchState,
    build_item_prompt,
)
from .cleanup import clean_response
from .layer import (
    CLEAN_OUTPUT_SUFFIX,
    PerLayerApplier,
    compose_system_prompt,
    pin_layer_settings,
)
from .lib import GenerationRequest, TextGenerator
from .retry import RetryConfig, RetryStrategy, classify_error


class FakeGenerator:
    """Stands in for TextGenerator in multi-item tests.

    `reply(request)` returns the response text or an exception to raise.
    """

    def __init__(self, reply=None):
        self.requests: list[GenerationRequest] = []
        self.reply = reply or (lambda request: f"out:{request.prompt}")

    def resolve(self, provider_id):
        if provider_id != "main":
            raise invalid_config(f"Provider not found: {provider_id}")
        return None, None

    def default_settings(self):
        return GenerationSettings()

    def generate(self, request):
        self.requests.append(request)
        result = self.reply(request)
        if isinstance(result, Exception):
            raise result
        return ProviderResponse(text=result, tokens=TokenUsage(10, 5), cost_usd=0.001)


def make_items(count: int) -> list[BatchItem]:
    return [BatchItem(f"id{i}", f"Item {i}", f"text {i}") for i in range(1, count + 1)]


# =============================================================================
# Error classification
# =============================================================================


class TestClassifyError:
    """Tests for classify_error."""

    @pytest.mark.unit
    def test_plugin_error_passes_through(self):
        error = PluginError(ErrorKind.AUTH, "nope")
        assert classify_error(error) is error

    @pytest.mark.unit
    def test_cancellation_markers(self):
        for error in (concurrent.futures.CancelledError(), TimeoutError()):
            result = classify_error(error)
            assert result.kind == ErrorKind.TIMEOUT
            assert result.retryable

    @pytest.mark.unit
    def test_transport_errors(self):
        for error in (httpx.ConnectError("down"), ConnectionResetError()):
            result = classify_error(error)
            assert result.kind == ErrorKind.NETWORK
            assert result.retryable

    @pytest.mark.unit
    def test_status_attribute(self):
        """Exceptions carrying a status are mapped by that status."""

        class StatusError(Exception):
            def __init__(self, status_code):
                super().__init__(f"HTTP {status_code}")
                self.status_code = status_code

        assert classify_error(StatusError(401)).kind == ErrorKind.AUTH
        assert classify_error(StatusError(429)).kind == ErrorKind.RATE_LIMIT
        server = classify_error(StatusError(502))
        assert server.kind == ErrorKind.API_ERROR
        assert server.retryable
        client = classify_error(StatusError(418))
        assert client.kind == ErrorKind.API_ERROR
        assert not client.retryable

    @pytest.mark.unit
    def test_http_status_error(self):
        request = httpx.Request("POST", "https://example.com")
        response = httpx.Response(429, request=request)
        error = httpx.HTTPStatusError("limited", request=request, response=response)
        assert classify_error(error).kind == ErrorKind.RATE_LIMIT

    @pytest.mark.unit
    def test_unknown_keeps_original(self):
        original = ValueError("odd")
        result = classify_error(original)
        assert result.kind == ErrorKind.UNKNOWN
        assert result.details["error"] is original


# =============================================================================
# Retry strategy
# =============================================================================


class TestRetryStrategy:
    """Tests for RetryStrategy."""

    @pytest.fixture
    def strategy(self, no_sleep):
        return RetryStrategy(RetryConfig(max_attempts=3), sleep=no_sleep)

    @pytest.mark.unit
    def test_default_config(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.initial_delay == 1.0
        assert config.max_delay == 10.0
        assert config.backoff_multiplier == 2.0
        assert config.retryable_kinds == {
            ErrorKind.NETWORK,
            ErrorKind.TIMEOUT,
            ErrorKind.RATE_LIMIT,
        }

    @pytest.mark.unit
    def test_config_from_environment(self, monkeypatch):
        monkeypatch.setenv("GENBRIDGE_RETRY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("GENBRIDGE_RETRY_INITIAL_DELAY", "0.5")
        config = RetryConfig.from_environment()
        assert config.max_attempts == 5
        assert config.initial_delay == 0.5

    @pytest.mark.unit
    def test_backoff_is_capped(self):
        strategy = RetryStrategy(RetryConfig(initial_delay=1.0, max_delay=10.0))
        delays = [strategy.get_backoff_delay(n) for n in range(1, 7)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]

    @pytest.mark.unit
    def test_rate_limit_then_success(self, strategy, no_sleep):
        """k < max failures then success takes k + 1 calls."""
        calls = []

        def operation():
            calls.append(1)
            if len(calls) <= 2:
                raise PluginError(ErrorKind.RATE_LIMIT, retryable=True)
            return "done"

        assert strategy.run(operation) == "done"
        assert len(calls) == 3
        assert no_sleep.delays == [1.0, 2.0]

    @pytest.mark.unit
    def test_auth_is_not_retried(self, strategy, no_sleep):
        calls = []

        def operation():
            calls.append(1)
            raise PluginError(ErrorKind.AUTH)

        with pytest.raises(PluginError) as exc_info:
            strategy.run(operation)
        assert exc_info.value.kind == ErrorKind.AUTH
        assert len(calls) == 1
        assert no_sleep.delays == []

    @pytest.mark.unit
    def test_retryable_flag_is_ignored(self, strategy):
        """Server errors flagged retryable are still not retried by default."""
        calls = []

        def operation():
            calls.append(1)
            raise PluginError(ErrorKind.API_ERROR, retryable=True)

        with pytest.raises(PluginError):
            strategy.run(operation)
        assert len(calls) == 1

    @pytest.mark.unit
    def test_exhausted_raises_last_error(self, strategy):
        calls = []

        def operation():
            calls.append(1)
            raise httpx.ConnectError(f"attempt {len(calls)}")

        with pytest.raises(PluginError) as exc_info:
            strategy.run(operation)
        assert exc_info.value.kind == ErrorKind.NETWORK
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert len(calls) == 3

    @pytest.mark.unit
    def test_cancellation_is_not_retried(self, strategy):
        signal = CancellationSignal()
        signal.cancel()
        calls = []

        def operation():
            calls.append(1)
            signal.throw_if_cancelled()

        with pytest.raises(PluginError):
            strategy.run(operation)
        assert len(calls) == 1

    @pytest.mark.unit
    def test_custom_retryable_kinds(self, no_sleep):
        strategy = RetryStrategy(
            RetryConfig(retryable_kinds=frozenset({ErrorKind.API_ERROR})),
            sleep=no_sleep,
        )
        error = PluginError(ErrorKind.API_ERROR)
        assert strategy.should_retry(error, 1)
        assert not strategy.should_retry(error, 3)
        assert not strategy.should_retry(PluginError(ErrorKind.NETWORK), 1)


# =============================================================================
# TextGenerator
# =============================================================================


@pytest.fixture
def generator(settings_store, http_client, no_sleep):
    gen = TextGenerator(
        settings_store,
        cache=ResponseCache(),
        cache_enabled=True,
        retry_config=RetryConfig(),
        http_client=http_client,
        sleep=no_sleep,
    )
    yield gen
    gen.close()


class TestTextGenerator:
    """Tests for TextGenerator orchestration."""

    @pytest.mark.unit
    def test_generate(self, generator, recorder):
        recorder.reply(json=openai_reply("Hi!", 8, 2))
        settings = GenerationSettings(temperature=0.3, max_tokens=64)

        response = generator.generate(
            GenerationRequest(provider_id="main", prompt="Say hi", settings=settings)
        )

        assert response.text == "Hi!"
        assert response.tokens == TokenUsage(8, 2)
        assert response.cost_usd == pytest.approx((8 * 2.5 + 2 * 10.0) / 1_000_000)
        assert recorder.last_json["temperature"] == 0.3
        usage = generator.usage["main"]
        assert usage.requests == 1
        assert usage.input_tokens == 8
        assert usage.output_tokens == 2

    @pytest.mark.unit
    def test_store_defaults_used_without_settings(self, generator, recorder):
        recorder.reply(json=openai_reply())
        generator.generate(GenerationRequest(provider_id="main", prompt="Hi"))
        assert recorder.last_json["temperature"] == 0.5
        assert recorder.last_json["max_tokens"] == 500

    @pytest.mark.unit
    def test_request_system_prompt_wins(self, generator, recorder):
        recorder.reply(json=openai_reply())
        generator.generate(
            GenerationRequest(
                provider_id="main",
                prompt="Hi",
                settings=GenerationSettings(system_prompt="from settings"),
                system_prompt="from request",
            )
        )
        assert recorder.last_json["messages"][0]["content"] == "from request"

    @pytest.mark.unit
    def test_cache_hit_skips_call(self, generator, recorder):
        recorder.reply(json=openai_reply("cached text", 10, 4))
        request = GenerationRequest(provider_id="main", prompt="Same")

        first = generator.generate(request)
        second = generator.generate(request)

        assert recorder.calls == 1
        assert not first.cached
        assert second.cached
        assert second.text == "cached text"
        assert second.tokens == TokenUsage(10, 4)
        assert second.cost_usd == 0.0
        usage = generator.usage["main"]
        assert usage.requests == 1
        assert usage.cache_hits == 1

    @pytest.mark.unit
    def test_cache_key_includes_settings(self, generator, recorder):
        recorder.reply(json=openai_reply("a")).reply(json=openai_reply("b"))
        generator.generate(
            GenerationRequest("main", "Same", GenerationSettings(temperature=0.1))
        )
        generator.generate(
            GenerationRequest("main", "Same", GenerationSettings(temperature=0.2))
        )
        assert recorder.calls == 2

    @pytest.mark.unit
    def test_vision_bypasses_cache(self, generator, recorder):
        recorder.reply(json=openai_reply("a")).reply(json=openai_reply("b"))
        request = GenerationRequest("main", "Describe", image_base64="AAAA")
        generator.generate(request)
        generator.generate(request)
        assert recorder.calls == 2
        assert generator.cache.size == 0

    @pytest.mark.unit
    def test_cache_disabled(self, settings_store, recorder, http_client):
        recorder.reply(json=openai_reply()).reply(json=openai_reply())
        with TextGenerator(
            settings_store,
            cache_enabled=False,
            retry_config=RetryConfig(),
            http_client=http_client,
        ) as gen:
            request = GenerationRequest("main", "Same")
            gen.generate(request)
            gen.generate(request)
            assert gen.cache is None
            assert gen.purge_cache() == 0
        assert recorder.calls == 2

    @pytest.mark.unit
    def test_on_chunk_called_once(self, generator, recorder):
        recorder.reply(json=openai_reply("abcdefgh"))
        chunks = []
        generator.generate(
            GenerationRequest(
                "main", "Hi", on_chunk=lambda text, tokens: chunks.append((text, tokens))
            )
        )
        assert chunks == [("abcdefgh", 2)]

    @pytest.mark.unit
    def test_unknown_provider(self, generator, recorder):
        with pytest.raises(PluginError) as exc_info:
            generator.generate(GenerationRequest("missing", "Hi"))
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert recorder.calls == 0

    @pytest.mark.unit
    def test_disabled_provider(self, generator, recorder):
        with pytest.raises(PluginError) as exc_info:
            generator.resolve("off")
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert "disabled" in exc_info.value.message

    @pytest.mark.unit
    def test_retries_rate_limit(self, generator, recorder, no_sleep):
        recorder.reply(429, json={"error": {"message": "slow down"}})
        recorder.reply(json=openai_reply("finally"))

        response = generator.generate(GenerationRequest("main", "Hi"))

        assert response.text == "finally"
        assert recorder.calls == 2
        assert no_sleep.delays == [1.0]

    @pytest.mark.unit
    def test_auth_failure_not_retried(self, generator, recorder):
        recorder.reply(401, json={"error": {"message": "bad key"}})
        with pytest.raises(PluginError) as exc_info:
            generator.generate(GenerationRequest("main", "Hi"))
        assert exc_info.value.kind == ErrorKind.AUTH
        assert recorder.calls == 1
        assert "main" not in generator.usage

    @pytest.mark.unit
    def test_failures_are_not_cached(self, generator, recorder):
        recorder.reply(400, json={"error": {"message": "bad"}})
        recorder.reply(json=openai_reply("ok"))
        with pytest.raises(PluginError):
            generator.generate(GenerationRequest("main", "Hi"))
        assert generator.generate(GenerationRequest("main", "Hi")).text == "ok"

    @pytest.mark.unit
    def test_cancel(self, generator, recorder):
        signal = CancellationSignal()
        generator.cancel(signal)
        assert signal.cancelled
        with pytest.raises(PluginError) as exc_info:
            generator.generate(GenerationRequest("main", "Hi", signal=signal))
        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert recorder.calls == 0

    @pytest.mark.unit
    def test_clear_cache(self, generator, recorder):
        recorder.reply(json=openai_reply()).reply(json=openai_reply())
        generator.generate(GenerationRequest("main", "Hi"))
        generator.clear_cache()
        generator.generate(GenerationRequest("main", "Hi"))
        assert recorder.calls == 2


# =============================================================================
# Batch processing
# =============================================================================


class TestBatchProcessor:
    """Tests for BatchProcessor."""

    @pytest.mark.unit
    def test_build_item_prompt(self):
        item = BatchItem("1", "Title", "Hello")
        assert build_item_prompt("Fix {{name}}: {{content}} ({{content}})", item) == (
            "Fix Title: Hello (Hello)"
        )

    @pytest.mark.unit
    def test_partial_failure(self, no_sleep):
        """Item 3 of 5 fails; the rest are still processed."""
        fake = FakeGenerator(
            lambda request: PluginError(ErrorKind.API_ERROR, "boom")
            if "Item 3" in request.prompt
            else "ok"
        )
        events: list[BatchProgress] = []
        notes: list[tuple[str, str]] = []
        processor = BatchProcessor(
            fake,
            delay=0.2,
            sleep=no_sleep,
            on_progress=events.append,
            on_notification=lambda level, msg: notes.append((level, msg)),
        )

        result = processor.process_batch(
            make_items(5), "main", "Rewrite {{name}}: {{content}}", GenerationSettings()
        )

        assert result.successful == 4
        assert result.failed == 1
        assert result.state == BatchState.COMPLETED
        assert processor.state == BatchState.COMPLETED
        assert len(fake.requests) == 5
        assert fake.requests[3].prompt == "Rewrite Item 4: text 4"
        assert result.total_tokens == 60
        assert result.total_cost_usd == pytest.approx(0.004)
        assert [o.ok for o in result.outcomes] == [True, True, False, True, True]
        assert result.outcomes[2].error.message == "boom"
        assert notes == [("warning", 'Failed to process "Item 3": boom')]
        assert no_sleep.delays == [0.2] * 4

    @pytest.mark.unit
    def test_progress_events(self, no_sleep):
        events: list[BatchProgress] = []
        processor = BatchProcessor(
            FakeGenerator(), delay=0, sleep=no_sleep, on_progress=events.append
        )
        processor.process_batch(make_items(4), "main", "{{content}}")
        assert [e.current_index for e in events] == [0, 1, 2, 3, 4]
        assert [e.percentage for e in events] == [0, 25, 50, 75, 100]
        assert events[0].current_item_label == "Item 1"
        assert events[-1] == BatchProgress(4, 4, "Completed", 100)

    @pytest.mark.unit
    def test_output_is_cleaned(self, no_sleep):
        fake = FakeGenerator(lambda request: 'Result: "Bonjour"\nHope this helps!')
        processor = BatchProcessor(fake, delay=0, sleep=no_sleep)
        result = processor.process_batch(
            [BatchItem("1", "Greeting", "Hello")], "main", "Translate {{content}}"
        )
        assert result.outcomes[0].text == "Bonjour"

    @pytest.mark.unit
    def test_cancel_between_items(self, no_sleep):
        """Cancellation keeps completed stats and skips the final event."""
        signal = CancellationSignal()
        events: list[BatchProgress] = []

        def reply(request):
            if len(fake.requests) == 2:
                signal.cancel()
            return "ok"

        fake = FakeGenerator(reply)
        processor = BatchProcessor(
            fake, delay=0, sleep=no_sleep, on_progress=events.append
        )
        result = processor.process_batch(
            make_items(5), "main", "{{content}}", signal=signal
        )

        assert result.state == BatchState.CANCELLED
        assert result.successful == 2
        assert result.failed == 0
        assert result.total_tokens == 30
        assert len(fake.requests) == 2
        assert all(e.current_item_label != "Completed" for e in events)

    @pytest.mark.unit
    def test_cancellation_error_is_not_a_failure(self, no_sleep):
        signal = CancellationSignal()

        def reply(request):
            if "Item 2" in request.prompt:
                signal.cancel()
                signal.throw_if_cancelled()
            return "ok"

        processor = BatchProcessor(FakeGenerator(reply), delay=0, sleep=no_sleep)
        result = processor.process_batch(
            make_items(3), "main", "{{name}}", signal=signal
        )
        assert result.state == BatchState.CANCELLED
        assert result.successful == 1
        assert result.failed == 0
        assert len(result.outcomes) == 1

    @pytest.mark.unit
    def test_empty_items(self, no_sleep):
        processor = BatchProcessor(FakeGenerator(), delay=0, sleep=no_sleep)
        with pytest.raises(PluginError) as exc_info:
            processor.process_batch([], "main", "x")
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG
        assert processor.state == BatchState.IDLE

    @pytest.mark.unit
    def test_unresolvable_provider_aborts(self, no_sleep):
        fake = FakeGenerator()
        processor = BatchProcessor(fake, delay=0, sleep=no_sleep)
        with pytest.raises(PluginError):
            processor.process_batch(make_items(2), "missing", "x")
        assert fake.requests == []

    @pytest.mark.unit
    def test_with_text_generator(self, generator, recorder, no_sleep):
        """Non-retryable HTTP failures become failed outcomes."""
        recorder.reply(json=openai_reply("uno"))
        recorder.reply(400, json={"error": {"message": "bad input"}})
        recorder.reply(json=openai_reply("tres"))
        processor = BatchProcessor(generator, delay=0, sleep=no_sleep)

        result = processor.process_batch(
            make_items(3), "main", "Translate: {{content}}"
        )

        assert result.successful == 2
        assert result.failed == 1
        assert [o.text for o in result.outcomes] == ["uno", None, "tres"]
        assert result.outcomes[1].error.kind == ErrorKind.API_ERROR

    @pytest.mark.unit
    def test_unreadable_settings_mid_run_fails_one_item(
        self, tmp_path, recorder, http_client, no_sleep
    ):
        """A settings file that turns unreadable only fails the items it hits."""
        path = tmp_path / "settings.json"
        good = json.dumps(
            {
                "providerConfigs": [
                    {"id": "main", "capabilityId": "openai-gpt4o-mini", "apiKey": "k"}
                ]
            }
        )
        path.write_text(good, encoding="utf-8")

        def swap_file(event):
            if event.current_index == 1:
                path.write_bytes(b"\xff\xfe{}")
            elif event.current_index == 2:
                path.write_text(good, encoding="utf-8")

        recorder.reply(json=openai_reply("uno"))
        recorder.reply(json=openai_reply("tres"))
        generator = TextGenerator(
            JsonFileSettingsStore(path),
            cache_enabled=False,
            retry_config=RetryConfig(),
            http_client=http_client,
            sleep=no_sleep,
        )
        processor = BatchProcessor(
            generator, delay=0, sleep=no_sleep, on_progress=swap_file
        )

        result = processor.process_batch(make_items(3), "main", "{{content}}")

        assert result.state == BatchState.COMPLETED
        assert result.successful == 2
        assert result.failed == 1
        assert result.outcomes[1].error.kind == ErrorKind.INVALID_CONFIG
        assert recorder.calls == 2


# =============================================================================
# Per-layer apply
# =============================================================================


class TestPerLayerApplier:
    """Tests for PerLayerApplier."""

    @pytest.mark.unit
    def test_compose_system_prompt(self):
        assert compose_system_prompt("Translate", "You are a translator") == (
            "You are a translator\n\nUser instruction: Translate" + CLEAN_OUTPUT_SUFFIX
        )
        assert compose_system_prompt("", "You are a translator") == (
            "You are a translator" + CLEAN_OUTPUT_SUFFIX
        )
        assert compose_system_prompt("Translate", None) == (
            "Translate" + CLEAN_OUTPUT_SUFFIX
        )

    @pytest.mark.unit
    def test_pinned_settings(self):
        pinned = pin_layer_settings(GenerationSettings(0.9, 2000), "sys")
        assert pinned == GenerationSettings(0.0, 200, "sys")
        assert pin_layer_settings(GenerationSettings(0.9, 50), "sys").max_tokens == 50
        assert pin_layer_settings(GenerationSettings(0.9, 0), "sys").max_tokens == 200

    @pytest.mark.unit
    def test_requests_use_item_content(self, no_sleep):
        fake = FakeGenerator()
        applier = PerLayerApplier(fake, delay=0.3, sleep=no_sleep)

        result = applier.apply(make_items(2), "main", "Uppercase")

        first = fake.requests[0]
        assert first.prompt == "text 1"
        assert first.settings.system_prompt == "Uppercase" + CLEAN_OUTPUT_SUFFIX
        assert first.settings.temperature == 0.0
        assert result.applied == 2
        assert no_sleep.delays == [0.3]

    @pytest.mark.unit
    def test_few_shot_keeps_two_latest_pairs(self, no_sleep):
        fake = FakeGenerator()
        applier = PerLayerApplier(fake, delay=0, sleep=no_sleep)

        applier.apply(make_items(4), "main", "Translate")

        counts = [len(r.few_shot_pairs) for r in fake.requests]
        assert counts == [0, 2, 4, 4]
        last = fake.requests[3].few_shot_pairs
        assert [(m.role, m.text) for m in last] == [
            ("user", "text 2"),
            ("assistant", "out:text 2"),
            ("user", "text 3"),
            ("assistant", "out:text 3"),
        ]

    @pytest.mark.unit
    def test_failures_recorded_and_skipped_in_few_shot(self, no_sleep):
        fake = FakeGenerator(
            lambda request: PluginError(ErrorKind.API_ERROR, "bad")
            if request.prompt == "text 1"
            else f"out:{request.prompt}"
        )
        notes = []
        applier = PerLayerApplier(
            fake,
            delay=0,
            sleep=no_sleep,
            on_notification=lambda level, msg: notes.append((level, msg)),
        )

        result = applier.apply(make_items(3), "main", "Translate")

        assert result.applied == 2
        assert result.failed == 1
        assert not result.cancelled
        assert len(fake.requests[1].few_shot_pairs) == 0
        assert len(fake.requests[2].few_shot_pairs) == 2
        assert notes[0] == ("info", "Processing 3 layers...")
        assert ("warning", 'Failed to process "Item 1": bad') in notes

    @pytest.mark.unit
    def test_empty_result_is_a_failure(self, no_sleep):
        """Replies that clean to nothing never enter the few-shot context."""
        fake = FakeGenerator(
            lambda request: '""'
            if request.prompt == "text 1"
            else f"out:{request.prompt}"
        )
        applier = PerLayerApplier(fake, delay=0, sleep=no_sleep)

        result = applier.apply(make_items(3), "main", "Translate")

        assert result.applied == 2
        assert result.failed == 1
        failed = result.outcomes[0]
        assert not failed.ok
        assert failed.error.kind == ErrorKind.API_ERROR
        assert failed.error.reason == "empty_result"
        assert len(fake.requests[1].few_shot_pairs) == 0
        assert [m.text for m in fake.requests[2].few_shot_pairs] == [
            "text 2",
            "out:text 2",
        ]
        assert result.total_tokens == 30

    @pytest.mark.unit
    def test_cancel(self, no_sleep):
        signal = CancellationSignal()

        def reply(request):
            signal.cancel()
            return "done"

        fake = FakeGenerator(reply)
        applier = PerLayerApplier(fake, delay=0, sleep=no_sleep)
        result = applier.apply(make_items(3), "main", "Translate", signal=signal)

        assert result.cancelled
        assert result.applied == 1
        assert len(fake.requests) == 1

    @pytest.mark.unit
    def test_requires_instruction(self, no_sleep):
        applier = PerLayerApplier(FakeGenerator(), delay=0, sleep=no_sleep)
        with pytest.raises(PluginError) as exc_info:
            applier.apply(make_items(1), "main", "")
        assert exc_info.value.kind == ErrorKind.INVALID_CONFIG


# =============================================================================
# Output cleanup
# =============================================================================


class TestCleanResponse:
    """Tests for clean_response."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ('"Bonjour"', "Bonjour"),
            ("'Bonjour'", "Bonjour"),
            ("«Привет»", "Привет"),
            ("“Hallo”", "Hallo"),
            ("„Hallo“", "Hallo"),
            ("「こんにちは」", "こんにちは"),
            ("  Hola  ", "Hola"),
        ],
    )
    def test_strips_wrapping_quotes(self, raw, expected):
        assert clean_response(raw, "Hello") == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw",
        [
            "Answer: Hola",
            "ANSWER: Hola",
            "Translation : Hola",
            "Перевод: Hola",
            "Traducción: Hola",
            "翻訳：Hola",
        ],
    )
    def test_strips_labels(self, raw):
        assert clean_response(raw, "Hello") == "Hola"

    @pytest.mark.unit
    def test_label_then_quotes(self):
        assert clean_response('Translation: "Hola"', "Hello") == "Hola"
        assert clean_response('"Result: Hola"', "Hello") == "Hola"

    @pytest.mark.unit
    def test_mismatched_quotes_kept(self):
        assert clean_response('"Hola', "Hello") == '"Hola'

    @pytest.mark.unit
    def test_single_line_source_keeps_first_line(self):
        raw = "Hola\n\nThis is the Spanish translation of your text."
        assert clean_response(raw, "Hello") == "Hola"

    @pytest.mark.unit
    def test_multi_line_source_trims_extra_lines(self):
        raw = "Uno\nDos\nTres\nCuatro\nCinco"
        assert clean_response(raw, "One\nTwo") == "Uno\nDos"

    @pytest.mark.unit
    def test_multi_line_source_keeps_similar_count(self):
        raw = "Uno\nDos\nTres"
        assert clean_response(raw, "One\nTwo") == "Uno\nDos\nTres"

    @pytest.mark.unit
    def test_long_result_keeps_first_line(self):
        raw = "A much longer first line\nand more"
        assert clean_response(raw, "a\nb") == "A much longer first line"

    @pytest.mark.unit
    def test_empty_source(self):
        assert clean_response("Anything goes here", "") == "Anything goes here"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,source",
        [
            ('Translation: "Hola"', "Hello"),
            ("«Привет»", "Hi"),
            ("Hola\nextra chatter", "Hello"),
            ("Uno\nDos\nTres\nCuatro\nCinco", "One\nTwo"),
            ("plain", "plain"),
        ],
    )
    def test_idempotent(self, raw, source):
        once = clean_response(raw, source)
        assert clean_response(once, source) == once
