"""Record identifier generation."""

import random
import string
import time
import uuid

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def fallback_id() -> str:
    """Build a URL-safe id from a base-36 millisecond timestamp and 6 random base-36 characters."""
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(random.choice(_BASE36_DIGITS) for _ in range(6))
    return f"{stamp}_{suffix}"


def new_id() -> str:
    """
    Returns a new globally unique record id.

    Prefers a random UUID, which is also the primary key format of the remote
    table. Falls back to fallback_id() when the runtime has no usable
    randomness source for uuid4().
    """
    try:
        return str(uuid.uuid4())
    except (NotImplementedError, OSError):
        return fallback_id()
