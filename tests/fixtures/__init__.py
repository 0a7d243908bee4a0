"""Test fixtures for django-kvrelay."""

from tests.fixtures.clients import (
    FakeWireClient,
    RecordingListener,
    SleepRecorder,
    fake_client,
    listener,
    sleeper,
)

__all__ = [
    "FakeWireClient",
    "RecordingListener",
    "SleepRecorder",
    "fake_client",
    "listener",
    "sleeper",
]
