import time
from typing import Optional

QUOTE_NUMBER_PREFIX = "NF"
QUOTE_NUMBER_DIGITS = 8


def generate_quote_number(now_ms: Optional[int] = None) -> str:
    """
    Build a short reference like NF12345678 from the last eight digits of the
    epoch-millisecond clock.

    Two submissions in the same millisecond (modulo 10^8) collide; the store's
    unique index turns that into an error instead of an overwrite.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = str(now_ms)[-QUOTE_NUMBER_DIGITS:].zfill(QUOTE_NUMBER_DIGITS)
    return f"{QUOTE_NUMBER_PREFIX}{suffix}"
