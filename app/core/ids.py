"""Identifier generation for messages and conversations.

Ids look like ``<prefix>-<epoch millis>-<base36 random>`` so they sort roughly
by creation time and stay unique within a process even when two are minted in
the same millisecond.
"""

import logging
import random
import secrets
import time
from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

MESSAGE_PREFIX = "msg"
CONVERSATION_PREFIX = "chat"


def _strong_words() -> Sequence[int]:
    return (secrets.randbits(32), secrets.randbits(32))


# Replaced in tests to simulate a missing or broken random source.
random_words: Callable[[], Sequence[int | None]] | None = _strong_words


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


def _fallback_suffix() -> str:
    # 8 base36 chars, same shape as the strong path
    return "".join(random.choice(_ALPHABET) for _ in range(8))


def new_id(prefix: str) -> str:
    """Mint a new identifier. Never raises."""
    stamp = _now_millis()
    try:
        words = random_words()
        first, second = words[0], words[1]
        if first is None or second is None:
            raise ValueError("random source returned an incomplete result")
        suffix = to_base36(int(first)) + to_base36(int(second))
    except Exception as e:
        logger.debug("Secure random source unavailable, using fallback: %s", e)
        suffix = _fallback_suffix()
    return f"{prefix}-{stamp}-{suffix}"


def new_message_id() -> str:
    return new_id(MESSAGE_PREFIX)


def new_conversation_id() -> str:
    return new_id(CONVERSATION_PREFIX)


__all__ = [
    "new_id",
    "new_message_id",
    "new_conversation_id",
    "to_base36",
    "MESSAGE_PREFIX",
    "CONVERSATION_PREFIX",
]
