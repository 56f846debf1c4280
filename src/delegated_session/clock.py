"""Clock helpers.

Times throughout delegated-session are integer unix seconds. Components that
read time accept a ``Clock`` so tests and verifiers can supply their own.
"""
from __future__ import annotations

import time
from collections.abc import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Return the current wall-clock time in whole unix seconds."""
    return int(time.time())


def fixed_clock(now: int) -> Clock:
    """Return a clock that always reports *now*."""
    return lambda: now


__all__ = ["Clock", "fixed_clock", "system_clock"]
