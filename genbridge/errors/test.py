"""Tests for the error taxonomy and HTTP classification."""

import pytest

from .lib import (
    DEFAULT_MESSAGES,
    ErrorKind,
    PluginError,
    classify_http_error,
    extract_error_message,
    invalid_config,
    is_geo_blocked,
)


class TestPluginError:
    """Tests for PluginError construction."""

    @pytest.mark.unit
    def test_default_message_per_kind(self):
        """Missing messages fall back to the kind's default text."""
        for kind in ErrorKind:
            assert PluginError(kind).message == DEFAULT_MESSAGES[kind]

    @pytest.mark.unit
    def test_str_is_message(self):
        """str() shows the user-facing message."""
        error = PluginError(ErrorKind.AUTH, "bad key")
        assert str(error) == "bad key"
        assert not error.retryable

    @pytest.mark.unit
    def test_invalid_config_helper(self):
        """invalid_config builds a non-retryable configuration error."""
        error = invalid_config("missing folder", provider="yandex")
        assert error.kind == ErrorKind.INVALID_CONFIG
        assert error.details == {"provider": "yandex"}
        assert not error.retryable


class TestExtractErrorMessage:
    """Tests for provider error body parsing."""

    @pytest.mark.unit
    def test_nested_error_message(self):
        assert extract_error_message({"error": {"message": "quota"}}) == "quota"

    @pytest.mark.unit
    def test_error_string(self):
        assert extract_error_message({"error": "denied"}) == "denied"

    @pytest.mark.unit
    def test_message_then_detail(self):
        assert extract_error_message({"message": "m", "detail": "d"}) == "m"
        assert extract_error_message({"detail": "d"}) == "d"

    @pytest.mark.unit
    def test_falls_back_to_dump(self):
        assert extract_error_message({"code": 7}) == '{"code": 7}'

    @pytest.mark.unit
    def test_plain_text(self):
        assert extract_error_message("Bad Gateway") == "Bad Gateway"
        assert extract_error_message(None) == ""


class TestClassifyHttpError:
    """Tests for adapter-level HTTP classification."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "status,kind,retryable,reason",
        [
            (0, ErrorKind.NETWORK, True, "blocked"),
            (401, ErrorKind.AUTH, False, "auth"),
            (403, ErrorKind.AUTH, False, "auth"),
            (429, ErrorKind.RATE_LIMIT, True, "rate_limit"),
            (400, ErrorKind.API_ERROR, False, "bad_request"),
            (402, ErrorKind.API_ERROR, False, "billing"),
            (404, ErrorKind.API_ERROR, False, "not_found"),
            (500, ErrorKind.API_ERROR, True, "server_error"),
            (503, ErrorKind.API_ERROR, True, "server_error"),
            (418, ErrorKind.API_ERROR, False, "http_error"),
        ],
    )
    def test_status_mapping(self, status, kind, retryable, reason):
        """Each status maps to one kind and reason."""
        error = classify_http_error(status, {"error": "x"}, provider_name="Test")
        assert error.kind == kind
        assert error.retryable is retryable
        assert error.reason == reason
        assert error.status_code == status

    @pytest.mark.unit
    def test_auth_hint_includes_key_url(self):
        """Auth failures point the user at the key page."""
        error = classify_http_error(
            401,
            {"error": {"message": "Incorrect API key"}},
            provider_name="OpenAI",
            api_key_url="https://platform.openai.com/api-keys",
        )
        assert "Invalid API key for OpenAI" in error.message
        assert "https://platform.openai.com/api-keys" in error.message
        assert "Incorrect API key" in error.message

    @pytest.mark.unit
    def test_geo_block_detection(self):
        """Regional refusals are told apart from ordinary bad requests."""
        body = {"error": {"message": "User location is not supported for the API use."}}
        error = classify_http_error(400, body, provider_name="Gemini")
        assert error.reason == "region_blocked"
        assert "relay" in error.message

    @pytest.mark.unit
    def test_geo_marker_matching(self):
        assert is_geo_blocked("unsupported_country_region_territory")
        assert not is_geo_blocked("max_tokens is too large")
