"""
Pacing maths for outbound sends and conversational replies.

All delays are in milliseconds; callers convert to seconds for asyncio.sleep.
The `rng` argument lets tests pin the random source.
"""
from __future__ import annotations

import random
from enum import Enum
from typing import Optional

MS_PER_HOUR = 3_600_000


class DistributionPattern(str, Enum):
    EVEN = "even"
    RANDOM = "random"
    BURST = "burst"


def base_delay_ms(max_messages_per_hour: int) -> float:
    """Average spacing between sends for a given hourly budget."""
    return MS_PER_HOUR / max(1, max_messages_per_hour)


def compute_delay(pattern: str, base_ms: float, rng: Optional[random.Random] = None) -> float:
    """
    Shape a base delay by distribution pattern.

    even   → base
    random → base × U(0.5, 1.5)
    burst  → base × 0.5 with probability 0.7, else base × 2.5
    Unknown patterns behave as random.
    """
    rng = rng or random
    if pattern == DistributionPattern.EVEN.value:
        return base_ms
    if pattern == DistributionPattern.BURST.value:
        return base_ms * 0.5 if rng.random() < 0.7 else base_ms * 2.5
    return base_ms * (0.5 + rng.random())


def typing_delay(
    text: str,
    cpm: float = 150,
    variance: float = 50,
    min_ms: float = 2000,
    max_ms: float = 15000,
    rng: Optional[random.Random] = None,
) -> float:
    """Simulated human typing time for a reply of this length."""
    rng = rng or random
    if not text:
        return min_ms

    speed = cpm + rng.random() * variance * 2 - variance
    ms_per_char = 60_000 / max(speed, 1.0)
    length = len(text)
    delay = length * ms_per_char

    # thinking time
    if length > 100:
        delay += 3000
    elif length > 50:
        delay += 1500

    # occasional distraction
    if length > 30 and rng.random() < 0.2:
        delay += rng.random() * 5000

    return min(max(delay, min_ms), max_ms)
