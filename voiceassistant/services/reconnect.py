"""Backoff policy for reopening the wake word session after a failure."""

from dataclasses import dataclass


@dataclass
class ReconnectPolicy:
    """Exponential backoff without a retry cap.

    The pipeline always heals back to wake listening; the delay is reset as
    soon as a session opens successfully.
    """
    initial_delay_ms: int = 500
    max_delay_ms: int = 30000
    multiplier: float = 2.0
    attempts: int = 0

    def next_delay(self) -> float:
        """Seconds to wait before the next attempt."""
        delay_ms = min(self.initial_delay_ms * (self.multiplier ** self.attempts), self.max_delay_ms)
        self.attempts += 1
        return delay_ms / 1000.0

    def reset(self) -> None:
        self.attempts = 0
