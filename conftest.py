"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- Isolation from local GENBRIDGE_* overrides
"""

from __future__ import annotations

import os

import pytest
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

ENV_PREFIX = "GENBRIDGE_"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove GENBRIDGE_* variables so tests see documented defaults."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]):
    """Mark tests without an explicit marker as unit tests."""
    for item in items:
        if not any(item.iter_markers(name="integration")):
            item.add_marker(pytest.mark.unit)
