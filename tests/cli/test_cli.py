"""Tests for the command-line entry point."""

import json
import subprocess
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]


def run_cli(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, ".", *args],
        capture_output=True,
        text=True,
        cwd=REPO_ROOT,
        timeout=60,
    )


@pytest.mark.integration
def test_no_command_prints_help():
    result = run_cli()
    assert result.returncode == 1
    assert "generate" in result.stdout


@pytest.mark.integration
def test_models_lists_capabilities():
    result = run_cli("models")
    assert result.returncode == 0
    assert "openai-gpt4o" in result.stderr
    assert "yandex-gpt-lite" in result.stderr


@pytest.mark.integration
def test_models_family_filter():
    result = run_cli("models", "--family", "claude")
    assert result.returncode == 0
    assert "claude-haiku" in result.stderr
    assert "openai-gpt4o" not in result.stderr


@pytest.mark.integration
def test_generate_accepts_timeout_flag():
    result = run_cli("generate", "--help")
    assert "--timeout" in result.stdout
    assert "--provider" in result.stdout


@pytest.mark.integration
def test_generate_without_settings_fails_cleanly():
    result = run_cli("generate", "hello", "--provider", "main")
    assert result.returncode == 1
    assert "GENBRIDGE_SETTINGS_PATH" in result.stderr


@pytest.mark.integration
def test_batch_unknown_provider_fails_cleanly(tmp_path):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"providerConfigs": []}), encoding="utf-8")
    items = tmp_path / "items.json"
    items.write_text(json.dumps(["first", "second"]), encoding="utf-8")

    result = run_cli(
        "batch",
        "Translate {{content}}",
        "--provider",
        "main",
        "--items",
        str(items),
        "--settings",
        str(settings),
    )

    assert result.returncode == 1
    assert "Provider not found: main" in result.stderr
