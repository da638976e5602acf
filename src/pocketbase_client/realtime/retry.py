"""
Reconnect timing for the realtime transports.
"""

from __future__ import annotations

from collections.abc import Sequence

from pocketbase_client.config import DEFAULT_RETRY_DELAYS


def calculate_reconnect_delay(
    attempt: int,
    retry_hint: int = 0,
    delays: Sequence[int] = DEFAULT_RETRY_DELAYS,
) -> float:
    """
    Delay in seconds before reconnect attempt ``attempt`` (0-based).

    Args:
        attempt: Number of reconnects already made
        retry_hint: ``retry`` field (milliseconds) of the last received
            message; when positive it replaces the table value
        delays: Delay table in milliseconds; the last entry is reused once
            ``attempt`` runs past the end
    """
    if retry_hint > 0:
        return retry_hint / 1000

    index = min(max(attempt, 0), len(delays) - 1)
    return delays[index] / 1000


def should_reconnect(attempt: int, max_attempts: int | None) -> bool:
    """Whether another reconnect is allowed after ``attempt`` reconnects."""
    return max_attempts is None or attempt < max_attempts
