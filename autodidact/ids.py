"""Time-ordered identifiers."""

import secrets
import threading
import time

_lock = threading.Lock()
_last_ns = 0


def new_id() -> str:
    """Return a unique id whose lexical order follows creation order.

    The first 16 hex digits are a strictly increasing nanosecond timestamp;
    a short random suffix guards against collisions between processes.
    """
    global _last_ns
    with _lock:
        now = time.time_ns()
        if now <= _last_ns:
            now = _last_ns + 1
        _last_ns = now
    return f"{now:016x}{secrets.token_hex(2)}"
