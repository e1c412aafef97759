"""
Rate limit metadata parsed from X response headers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping

LIMIT_HEADER = "x-rate-limit-limit"
REMAINING_HEADER = "x-rate-limit-remaining"
RESET_HEADER = "x-rate-limit-reset"


@dataclass(slots=True)
class RateLimitStatus:
    """Represents parsed rate limit metadata from X headers."""

    limit: int
    remaining: int
    reset_at: datetime

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitStatus | None":
        """
        Build a status from response headers.

        Header names are matched case-insensitively. Returns ``None`` when any of
        the three headers is missing or not an integer.
        """
        lowered = {key.lower(): value for key, value in headers.items()}
        try:
            limit = int(lowered[LIMIT_HEADER])
            remaining = int(lowered[REMAINING_HEADER])
            reset = int(lowered[RESET_HEADER])
        except (KeyError, TypeError, ValueError):
            return None
        return cls(
            limit=limit,
            remaining=remaining,
            reset_at=datetime.fromtimestamp(reset, tz=timezone.utc),
        )


def seconds_until_reset(
    status: RateLimitStatus,
    *,
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> float:
    """Seconds remaining until the window resets, never negative."""

    delta = (status.reset_at - now()).total_seconds()
    return max(delta, 0.0)
