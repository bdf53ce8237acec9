"""Consecutive-failure tracking per (user, lift, progression)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class FailureCounter:
    """Consecutive failures for one progression on one lift.

    Stage progressions also keep their current stage here. ``version``
    increases on every write and guards against lost updates.
    """

    user_id: str
    lift_id: str
    progression_id: str
    consecutive_failures: int = 0
    current_stage_index: int = 0
    last_failure_at: datetime | None = None
    last_success_at: datetime | None = None
    version: int = 0

    def increment_failure(self, at: datetime | None = None) -> int:
        """Record a failure and return the new count."""
        self.consecutive_failures += 1
        self.last_failure_at = at or datetime.now()
        return self.consecutive_failures

    def reset_on_success(self, at: datetime | None = None) -> None:
        """Record a success."""
        self.consecutive_failures = 0
        self.last_success_at = at or datetime.now()

    def meets_threshold(self, threshold: int) -> bool:
        return self.consecutive_failures >= threshold

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "lift_id": self.lift_id,
            "progression_id": self.progression_id,
            "consecutive_failures": self.consecutive_failures,
            "current_stage_index": self.current_stage_index,
            "last_failure_at": self.last_failure_at.isoformat() if self.last_failure_at else None,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "version": self.version,
        }
