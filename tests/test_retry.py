import random
import time

import pytest

from django_kvrelay.retry import (
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_JITTER_MS,
    RetryPolicy,
    is_transient_error,
)
from tests.fixtures.clients import SleepRecorder


def fixed_random(value):
    return lambda low, high: value


def sleep_recorder(calls):
    return lambda seconds: calls.append(seconds)


class TestIsTransientError:
    @pytest.mark.parametrize(
        "message",
        [
            "Connection reset by peer",
            "Connection closed by server.",
            "protocol error, got '\x00' as reply-type byte",
            "Error while reading from socket: (104, 'Connection reset by peer')",
            "[Errno 32] Broken pipe",
            "Unexpected EOF",
            "server went away",
            "Resource temporarily unavailable",
        ],
    )
    def test_transient_messages(self, message):
        assert is_transient_error(RuntimeError(message))

    @pytest.mark.parametrize(
        "message",
        [
            "domain validation failure",
            "WRONGTYPE Operation against a key holding the wrong kind of value",
            "ERR syntax error",
            "",
        ],
    )
    def test_permanent_messages(self, message):
        assert not is_transient_error(RuntimeError(message))

    def test_builtin_connection_error(self):
        assert is_transient_error(ConnectionResetError(104, "Connection reset by peer"))


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy.from_config({})
        assert policy.base_delay_ms == DEFAULT_RETRY_DELAY_MS == 25
        assert policy.jitter_ms == DEFAULT_RETRY_JITTER_MS == 15

    def test_delay_adds_jitter(self):
        policy = RetryPolicy(base_delay_ms=10, jitter_ms=5, random_int=fixed_random(3))
        assert policy.delay_ms() == 13

    def test_jitter_failure_falls_back_to_base_delay(self):
        def broken(low, high):
            raise OSError("entropy unavailable")

        policy = RetryPolicy(base_delay_ms=10, jitter_ms=5, random_int=broken)
        assert policy.delay_ms() == 10

    def test_random_source_receives_jitter_bounds(self):
        bounds = []
        policy = RetryPolicy(base_delay_ms=0, jitter_ms=7, random_int=lambda low, high: bounds.append((low, high)) or 0)
        policy.delay_ms()
        assert bounds == [(0, 7)]

    def test_no_jitter_skips_random_source(self):
        def never(low, high):
            raise AssertionError("random source should not be used")

        assert RetryPolicy(base_delay_ms=10, jitter_ms=0, random_int=never).delay_ms() == 10

    def test_delay_is_never_negative(self):
        policy = RetryPolicy(base_delay_ms=1, jitter_ms=5, random_int=fixed_random(-50))
        assert policy.delay_ms() == 0

    def test_wait_sleeps_in_seconds(self):
        calls = []
        policy = RetryPolicy(base_delay_ms=10, jitter_ms=5, random_int=fixed_random(3), sleep=sleep_recorder(calls))
        policy.wait()
        assert calls == [pytest.approx(0.013)]

    def test_wait_skips_sleep_for_zero_delay(self):
        calls = []
        RetryPolicy(base_delay_ms=0, jitter_ms=0, sleep=sleep_recorder(calls)).wait()
        assert calls == []

    @pytest.mark.parametrize(
        "config,expected",
        [
            ({"retry_delay_ms": "40", "retry_jitter_ms": 2.9}, (40, 2)),
            ({"retry_delay_ms": -1, "retry_jitter_ms": "abc"}, (25, 15)),
            ({"retry_delay_ms": 0, "retry_jitter_ms": 0}, (0, 0)),
            ({"retry_delay_ms": True}, (25, 15)),
        ],
    )
    def test_from_config_normalizes_values(self, config, expected):
        policy = RetryPolicy.from_config(config)
        assert (policy.base_delay_ms, policy.jitter_ms) == expected

    def test_from_config_accepts_callables(self):
        calls = []
        policy = RetryPolicy.from_config(
            {"retry_delay_ms": 1, "random_int": fixed_random(2), "sleep": sleep_recorder(calls)},
        )
        policy.wait()
        assert calls == [pytest.approx(0.003)]

    def test_from_config_accepts_dotted_paths(self):
        policy = RetryPolicy.from_config(
            {
                "random_int": "random.randrange",
                "sleep": "tests.fixtures.clients.SleepRecorder",
            },
        )
        assert policy.random_int is random.randrange
        assert policy.sleep is SleepRecorder

    def test_from_config_ignores_non_callables(self):
        policy = RetryPolicy.from_config({"random_int": 5, "sleep": None})
        assert policy.random_int is random.randint
        assert policy.sleep is time.sleep
