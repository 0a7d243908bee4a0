"""Transient failure classification and retry backoff."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from django.utils.module_loading import import_string

from django_kvrelay.commands import TRANSIENT_ERROR_FRAGMENTS
from django_kvrelay.normalize import normalize_non_negative_int

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY_MS = 25
DEFAULT_RETRY_JITTER_MS = 15


def is_transient_error(exc: BaseException) -> bool:
    """Classify whether an exception is a transient transport failure.

    Matching is a plain substring search over the lower-cased message, so it
    depends on the wording of the client library's errors.
    """
    message = str(exc).lower()
    return any(fragment in message for fragment in TRANSIENT_ERROR_FRAGMENTS)


def _resolve_callable(value: Any, default: Callable) -> Callable:
    if isinstance(value, str):
        value = import_string(value)
    if callable(value):
        return value
    return default


@dataclass
class RetryPolicy:
    """Backoff applied before the single retry of a command.

    The delay is ``base_delay_ms`` plus a uniform draw from
    ``random_int(0, jitter_ms)``. A failing ``random_int`` degrades to the
    base delay. ``sleep`` receives seconds, so ``time.sleep`` is a valid
    replacement.
    """

    base_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    jitter_ms: int = DEFAULT_RETRY_JITTER_MS
    random_int: Callable[[int, int], int] = field(default=random.randint, repr=False)
    sleep: Callable[[float], Any] = field(default=time.sleep, repr=False)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> RetryPolicy:
        """Build a policy from ``retry_delay_ms``, ``retry_jitter_ms``, ``random_int`` and ``sleep``."""
        base_delay = normalize_non_negative_int(config.get("retry_delay_ms"))
        jitter = normalize_non_negative_int(config.get("retry_jitter_ms"))
        return cls(
            base_delay_ms=DEFAULT_RETRY_DELAY_MS if base_delay is None else base_delay,
            jitter_ms=DEFAULT_RETRY_JITTER_MS if jitter is None else jitter,
            random_int=_resolve_callable(config.get("random_int"), random.randint),
            sleep=_resolve_callable(config.get("sleep"), time.sleep),
        )

    def delay_ms(self) -> int:
        """Resolve the delay for one retry, in milliseconds."""
        delay = self.base_delay_ms
        if self.jitter_ms > 0:
            try:
                delay += int(self.random_int(0, self.jitter_ms))
            except Exception:
                logger.debug("Retry jitter generation failed, using base delay", exc_info=True)
                delay = self.base_delay_ms
        return max(0, delay)

    def wait(self) -> None:
        """Block for the resolved delay."""
        delay = self.delay_ms()
        if delay <= 0:
            return
        self.sleep(delay / 1000)
