"""
Object ids: 12 bytes rendered as 24 lowercase hex characters.

Layout: 4-byte big-endian unix seconds, 5 random bytes fixed per process,
3-byte big-endian counter seeded randomly.
"""

import itertools
import os
import re
import threading
import time

from app.core.errors import ValidationError

_OBJECT_ID_RE = re.compile(r"[0-9a-fA-F]{24}")

_process_random = os.urandom(5)
_counter = itertools.count(int.from_bytes(os.urandom(3), "big"))
_counter_lock = threading.Lock()


def new_object_id() -> str:
    with _counter_lock:
        inc = next(_counter) & 0xFFFFFF
    raw = (
        int(time.time()).to_bytes(4, "big")
        + _process_random
        + inc.to_bytes(3, "big")
    )
    return raw.hex()


def is_object_id(value: str) -> bool:
    return bool(_OBJECT_ID_RE.fullmatch(value or ""))


def parse_object_id(value: str) -> str:
    """Validate and normalize an id taken from a request path."""
    if not is_object_id(value):
        raise ValidationError(f"invalid id format: {value!r}")
    return value.lower()
