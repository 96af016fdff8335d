"""Identifier generation for requests and comments."""

import secrets
import time
from typing import Callable

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Epoch milliseconds fit in 8 base36 digits until 2059; padding keeps ids sortable past that
_TIMESTAMP_WIDTH = 9
_RANDOM_WIDTH = 6


def to_base36(value: int) -> str:
    """Encode a non-negative integer in upper-case base36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"

    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


class IdentifierGenerator:
    """
    Generate prefixed ids of the form ``REQ-<time>-<random>``.

    The time component comes first, so ids sort lexically in creation order.
    The random suffix separates ids generated within the same millisecond.
    """

    REQUEST_PREFIX = "REQ"
    COMMENT_PREFIX = "CMT"

    def __init__(self, clock_ms: Callable[[], int] | None = None):
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)

    def new_request_id(self) -> str:
        return self._new_id(self.REQUEST_PREFIX)

    def new_comment_id(self) -> str:
        return self._new_id(self.COMMENT_PREFIX)

    def _new_id(self, prefix: str) -> str:
        timestamp = to_base36(self._clock_ms()).rjust(_TIMESTAMP_WIDTH, "0")
        suffix = "".join(secrets.choice(_BASE36) for _ in range(_RANDOM_WIDTH))
        return f"{prefix}-{timestamp}-{suffix}"
