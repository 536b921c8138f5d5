from __future__ import annotations
import time
from typing import Callable

Clock = Callable[[], int]

def system_clock() -> int:
    """Current time as integer seconds since the Unix epoch."""
    return int(time.time())

def get_clock() -> Clock:
    # FastAPI dependency; tests override it with a fixed clock
    return system_clock
