"""Pytest configuration for django-kvrelay tests."""

import sys
from pathlib import Path

import pytest

from tests.fixtures import fake_client, listener, sleeper

# Re-export fixtures so pytest can discover them
__all__ = [
    "fake_client",
    "listener",
    "no_retry_delay",
    "sleeper",
]


def pytest_configure(config):
    """Add tests directory to Python path."""
    sys.path.insert(0, str(Path(__file__).absolute().parent))


@pytest.fixture
def no_retry_delay(sleeper):
    """Connection config that retries without waiting."""
    return {"retry_delay_ms": 0, "retry_jitter_ms": 0, "sleep": sleeper}
