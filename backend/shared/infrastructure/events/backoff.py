"""
Reconnect and retry delays for Redis publishing and the station feed.
"""

from __future__ import annotations

import random


def retry_delay(attempt: int, base: float = 0.5, cap: float = 10.0) -> float:
    """
    Seconds to wait before retry number ``attempt`` (1-based).

    Exponential growth capped at ``cap``, with full jitter above ``base``
    so stations that lost Redis together do not reconnect together.
    """
    ceiling = min(cap, base * (2 ** max(attempt, 0)))
    return random.uniform(base, max(base, ceiling))
