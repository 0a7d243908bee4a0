"""Key prefix rewriting for command arguments.

Example:
    Namespacing keys for a shared store::

        >>> prefix_arguments("MGET", ["a", "b"], "app:")
        ['app:a', 'app:b']
        >>> prefix_arguments("EVAL", ["return 1", 1, "k1", "arg"], "app:")
        ['return 1', 1, 'app:k1', 'arg']
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django_kvrelay.commands import KeyPosition, key_position
from django_kvrelay.normalize import is_stringable, normalize_non_negative_int, to_text

if TYPE_CHECKING:
    from collections.abc import Sequence


def resolve_prefix(prefix: Any) -> str:
    """Resolve a configured prefix value; unsupported types mean no prefix."""
    return to_text(prefix) or ""


def prefix_key(prefix: str, key: Any) -> Any:
    """Prepend the prefix to a single key, leaving non-scalar values untouched.

    Booleans are not keys and pass through as-is. Floats use ``str()``, the
    same text redis-py sends for an unprefixed float (``1.0`` -> ``"app:1.0"``).
    """
    if isinstance(key, bytes):
        return prefix.encode() + key
    if isinstance(key, str):
        return prefix + key
    if isinstance(key, bool) or not is_stringable(key):
        return key
    return prefix + str(key)


def prefix_arguments(method: str, arguments: Sequence[Any], prefix: str) -> list[Any]:
    """Return a copy of arguments with every key position prefixed."""
    rewritten = list(arguments)
    if not prefix or not rewritten:
        return rewritten

    match key_position(method):
        case KeyPosition.SINGLE:
            rewritten[0] = prefix_key(prefix, rewritten[0])
        case KeyPosition.DOUBLE:
            for index in (0, 1):
                if index < len(rewritten):
                    rewritten[index] = prefix_key(prefix, rewritten[index])
        case KeyPosition.ALL:
            rewritten = [prefix_key(prefix, argument) for argument in rewritten]
        case KeyPosition.EVAL:
            _prefix_eval_keys(rewritten, prefix)

    return rewritten


def _prefix_eval_keys(arguments: list[Any], prefix: str) -> None:
    # EVAL script numkeys key [key ...] arg [arg ...]
    if len(arguments) < 2:
        return
    num_keys = normalize_non_negative_int(arguments[1])
    if not num_keys:
        return
    for index in range(2, min(2 + num_keys, len(arguments))):
        arguments[index] = prefix_key(prefix, arguments[index])
