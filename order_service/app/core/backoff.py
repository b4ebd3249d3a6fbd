"""Backoff utilities.

`exponential_backoff` is an async generator: it sleeps for the current delay and then
yields it, so the caller makes its attempt after each wait. Delays grow by `multiplier`
up to `max_delay`; with `jitter` > 0 every delay is spread uniformly by +-jitter.
`max_attempts=None` never stops on its own; the caller breaks out on success.
"""
import asyncio
import random
from typing import AsyncIterator, Callable


def backoff_delay(attempt: int, initial_delay: float, max_delay: float, multiplier: float) -> float:
    """Un-jittered delay before the given 1-based attempt."""
    return min(initial_delay * (multiplier ** (attempt - 1)), max_delay)


def apply_jitter(delay: float, jitter: float, rand: Callable[[float, float], float] = random.uniform) -> float:
    if jitter <= 0:
        return delay
    return max(0.0, delay * (1.0 + rand(-jitter, jitter)))


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int | None = None,
    jitter: float = 0.0,
) -> AsyncIterator[float]:
    attempt = 0
    while max_attempts is None or attempt < max_attempts:
        attempt += 1
        delay = apply_jitter(backoff_delay(attempt, initial_delay, max_delay, multiplier), jitter)
        await asyncio.sleep(delay)
        yield delay
