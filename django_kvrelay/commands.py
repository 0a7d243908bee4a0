"""Static command classification tables.

These tables decide which positional arguments of a command are keys (and
therefore receive the configured prefix), which commands are safe to repeat
after a reconnect, and which error messages indicate a dropped transport.
All lookups are case-insensitive: command names are stored upper-case.
"""

from __future__ import annotations

from enum import StrEnum


class KeyPosition(StrEnum):
    """Where the keys of a command live in its argument list."""

    SINGLE = "single"  # argument 0
    DOUBLE = "double"  # arguments 0 and 1
    ALL = "all"  # every argument
    EVAL = "eval"  # argument 1 is the key count, keys start at argument 2
    NONE = "none"


# Read-only commands that may be repeated exactly once after a reconnect.
IDEMPOTENT_RETRYABLE_COMMANDS = frozenset(
    {
        "ECHO",
        "EXISTS",
        "GET",
        "GETBIT",
        "GETRANGE",
        "HGET",
        "HGETALL",
        "HEXISTS",
        "HKEYS",
        "HLEN",
        "MGET",
        "PING",
        "PTTL",
        "RANDOMKEY",
        "SCARD",
        "SISMEMBER",
        "SMEMBERS",
        "STRLEN",
        "TIME",
        "TTL",
        "TYPE",
        "ZCARD",
        "ZRANGE",
        "ZRANGEBYSCORE",
        "ZRANK",
        "ZSCORE",
    },
)

# Lower-case message fragments of transport faults (substring match).
TRANSIENT_ERROR_FRAGMENTS = (
    "connection reset by peer",
    "connection closed",
    "connection lost",
    "protocol error, got",
    "reply-type byte",
    "reply type byte",
    "socket",
    "broken pipe",
    "eof",
    "read error on connection",
    "error while reading",
    "went away",
    "temporarily unavailable",
)

SINGLE_KEY_COMMANDS = frozenset(
    {
        "APPEND",
        "BLPOP",
        "BRPOP",
        "DECR",
        "DECRBY",
        "DUMP",
        "EXISTS",
        "EXPIRE",
        "EXPIREAT",
        "EXPIRETIME",
        "GEOADD",
        "GEODIST",
        "GEOHASH",
        "GEOPOS",
        "GEOSEARCH",
        "GET",
        "GETBIT",
        "GETDEL",
        "GETEX",
        "GETRANGE",
        "GETSET",
        "HDEL",
        "HEXISTS",
        "HGET",
        "HGETALL",
        "HINCRBY",
        "HINCRBYFLOAT",
        "HKEYS",
        "HLEN",
        "HMGET",
        "HMSET",
        "HRANDFIELD",
        "HSCAN",
        "HSET",
        "HSETNX",
        "HSTRLEN",
        "HVALS",
        "INCR",
        "INCRBY",
        "INCRBYFLOAT",
        "LINDEX",
        "LINSERT",
        "LLEN",
        "LPOP",
        "LPOS",
        "LPUSH",
        "LPUSHX",
        "LRANGE",
        "LREM",
        "LSET",
        "LTRIM",
        "PERSIST",
        "PEXPIRE",
        "PEXPIREAT",
        "PEXPIRETIME",
        "PFADD",
        "PSETEX",
        "PTTL",
        "RESTORE",
        "RPOP",
        "RPUSH",
        "RPUSHX",
        "SADD",
        "SCARD",
        "SET",
        "SETBIT",
        "SETEX",
        "SETNX",
        "SETRANGE",
        "SISMEMBER",
        "SMEMBERS",
        "SMISMEMBER",
        "SPOP",
        "SRANDMEMBER",
        "SREM",
        "SSCAN",
        "STRLEN",
        "TTL",
        "TYPE",
        "XADD",
        "XDEL",
        "XLEN",
        "XRANGE",
        "XREVRANGE",
        "XTRIM",
        "ZADD",
        "ZCARD",
        "ZCOUNT",
        "ZINCRBY",
        "ZLEXCOUNT",
        "ZMSCORE",
        "ZPOPMAX",
        "ZPOPMIN",
        "ZRANDMEMBER",
        "ZRANGE",
        "ZRANGEBYLEX",
        "ZRANGEBYSCORE",
        "ZRANK",
        "ZREM",
        "ZREMRANGEBYLEX",
        "ZREMRANGEBYRANK",
        "ZREMRANGEBYSCORE",
        "ZREVRANGE",
        "ZREVRANGEBYLEX",
        "ZREVRANGEBYSCORE",
        "ZREVRANK",
        "ZSCAN",
        "ZSCORE",
    },
)

DOUBLE_KEY_COMMANDS = frozenset(
    {
        "BITOP",
        "BLMOVE",
        "BRPOPLPUSH",
        "COPY",
        "GEOSEARCHSTORE",
        "LMOVE",
        "RENAME",
        "RENAMENX",
        "RPOPLPUSH",
        "SMOVE",
        "ZRANGESTORE",
    },
)

ALL_KEYS_COMMANDS = frozenset(
    {
        "DEL",
        "MGET",
        "MSET",
        "SDIFF",
        "SINTER",
        "SUNION",
        "TOUCH",
        "UNLINK",
    },
)

EVAL_COMMANDS = frozenset({"EVAL", "EVALSHA"})


def key_position(method: str) -> KeyPosition:
    """Classify a command name by where its keys are."""
    name = method.upper()
    if name in EVAL_COMMANDS:
        return KeyPosition.EVAL
    if name in ALL_KEYS_COMMANDS:
        return KeyPosition.ALL
    if name in DOUBLE_KEY_COMMANDS:
        return KeyPosition.DOUBLE
    if name in SINGLE_KEY_COMMANDS:
        return KeyPosition.SINGLE
    return KeyPosition.NONE


def is_retryable(method: str) -> bool:
    """Check if a command is read-only and safe to repeat after a reconnect."""
    return method.upper() in IDEMPOTENT_RETRYABLE_COMMANDS
