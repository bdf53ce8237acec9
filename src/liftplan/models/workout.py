"""The compiled workout returned to callers."""

from dataclasses import dataclass, field

from .lift import Lift
from .scheme import GeneratedSet


@dataclass(frozen=True)
class WorkoutExercise:
    """One prescription resolved to concrete sets."""

    prescription_id: str
    lift: Lift
    sets: tuple[GeneratedSet, ...]
    notes: str = ""
    rest_seconds: int | None = None
    autoregulated: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "prescription_id": self.prescription_id,
            "lift": self.lift.to_dict(),
            "sets": [s.to_dict() for s in self.sets],
            "notes": self.notes,
            "rest_seconds": self.rest_seconds,
            "autoregulated": self.autoregulated,
        }


@dataclass(frozen=True)
class WorkoutView:
    """Today's workout for a user."""

    user_id: str
    program_id: str
    cycle_iteration: int
    week_number: int
    day_slug: str
    day_name: str = ""
    exercises: tuple[WorkoutExercise, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "program_id": self.program_id,
            "cycle_iteration": self.cycle_iteration,
            "week_number": self.week_number,
            "day_slug": self.day_slug,
            "day_name": self.day_name,
            "exercises": [e.to_dict() for e in self.exercises],
        }
