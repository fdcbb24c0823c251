from __future__ import annotations

from dataclasses import dataclass

__all__ = ["PollPolicy"]


@dataclass(frozen=True)
class PollPolicy:
    """Bounded, fixed-interval polling budget.

    The policy only describes *how long* to keep asking; the poller decides
    what an attempt is and which primitive performs the wait.
    """

    max_attempts: int = 60
    interval_seconds: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")

    @property
    def budget_seconds(self) -> float:
        return self.max_attempts * self.interval_seconds

    def exhausted(self, attempts: int) -> bool:
        return attempts >= self.max_attempts
