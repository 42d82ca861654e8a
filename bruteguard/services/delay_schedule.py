"""Escalating lockout delays.

Delays grow like a Fibonacci sequence seeded with ``min_wait_ms`` and are
clamped to ``max_wait_ms``. The schedule is computed once per policy and
indexed by the number of failures recorded so far.
"""

from __future__ import annotations

from collections.abc import Sequence


def build_delays(min_wait_ms: int, max_wait_ms: int) -> tuple[int, ...]:
    """Build the ordered lockout delays in milliseconds.

    Args:
        min_wait_ms: First delay; values below 1 are treated as 1.
        max_wait_ms: Ceiling; always the last element.

    Returns:
        Non-decreasing tuple starting at ``min_wait_ms`` and ending at
        ``max_wait_ms``. Collapses to ``(max_wait_ms,)`` when
        ``min_wait_ms >= max_wait_ms``.

    Examples:
        >>> build_delays(500, 5000)
        (500, 500, 1000, 1500, 2500, 4000, 5000)
        >>> build_delays(1000, 1000)
        (1000,)
    """
    delays = [max(min_wait_ms, 1)]
    while delays[-1] < max_wait_ms:
        second_last = delays[-2] if len(delays) > 1 else 0
        delays.append(delays[-1] + second_last)
    delays[-1] = max_wait_ms
    return tuple(delays)


def delay_for_attempt(count: int, delays: Sequence[int], max_wait_ms: int) -> int:
    """Delay for the ``count``-th recorded failure (1-based).

    Ordinals past the end of the schedule saturate at ``max_wait_ms``.
    """
    index = count - 1
    if 0 <= index < len(delays):
        return delays[index]
    return max_wait_ms
