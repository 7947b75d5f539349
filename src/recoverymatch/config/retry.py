"""Retry policy for transient record-store failures."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 10.0
    backoff_jitter: float = 0.25

    def backoff_for(self, attempt: int) -> float:
        """Return the base wait before retry number ``attempt`` (1-based), without jitter."""

        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        return min(self.backoff_factor * (2 ** (attempt - 1)), self.max_backoff_wait)


NO_RETRY = RetryPolicy(total=0)
