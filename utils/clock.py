"""Wall-clock helpers shared by the attendance services."""

import time


def now_ms() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)
