"""Enrollment and workout session state."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class EnrollmentStatus(str, Enum):
    """Where a user stands with their program."""

    ACTIVE = "active"
    BETWEEN_CYCLES = "between_cycles"
    QUIT = "quit"


class CycleStatus(str, Enum):
    """Progress through the current cycle."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class WeekStatus(str, Enum):
    """Progress through the current week."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SessionStatus(str, Enum):
    """Lifecycle of a workout session."""

    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    ABANDONED = "abandoned"


@dataclass
class EnrollmentState:
    """A user's position in their program calendar.

    ``current_day_index`` is zero-based into the current week's slots;
    ``current_week`` and ``cycle_iteration`` are one-based.
    """

    user_id: str
    program_id: str
    cycle_iteration: int = 1
    current_week: int = 1
    current_day_index: int = 0
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    cycle_status: CycleStatus = CycleStatus.PENDING
    week_status: WeekStatus = WeekStatus.PENDING
    current_session_id: str | None = None
    enrolled_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None

    @property
    def is_enrolled(self) -> bool:
        return self.status != EnrollmentStatus.QUIT

    def get_position_display(self) -> str:
        """Get a human-readable position string."""
        return (
            f"Cycle {self.cycle_iteration}, Week {self.current_week}, "
            f"Day {self.current_day_index + 1}"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "program_id": self.program_id,
            "cycle_iteration": self.cycle_iteration,
            "current_week": self.current_week,
            "current_day_index": self.current_day_index,
            "status": self.status.value,
            "cycle_status": self.cycle_status.value,
            "week_status": self.week_status.value,
            "current_session_id": self.current_session_id,
            "enrolled_at": self.enrolled_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EnrollmentState":
        """Create from dictionary."""
        updated_at = None
        if data.get("updated_at"):
            updated_at = datetime.fromisoformat(data["updated_at"])

        return cls(
            user_id=data["user_id"],
            program_id=data["program_id"],
            cycle_iteration=data.get("cycle_iteration", 1),
            current_week=data.get("current_week", 1),
            current_day_index=data.get("current_day_index", 0),
            status=EnrollmentStatus(data.get("status", "active")),
            cycle_status=CycleStatus(data.get("cycle_status", "pending")),
            week_status=WeekStatus(data.get("week_status", "pending")),
            current_session_id=data.get("current_session_id"),
            enrolled_at=datetime.fromisoformat(data["enrolled_at"])
            if data.get("enrolled_at")
            else datetime.now(),
            updated_at=updated_at,
        )


@dataclass
class LoggedSet:
    """A set as the user actually performed it."""

    prescription_id: str
    lift_id: str
    set_number: int
    weight: float
    target_reps: int
    reps_performed: int
    is_amrap: bool = False
    rpe: float | None = None
    logged_at: datetime = field(default_factory=datetime.now)
    id: int | None = None

    @property
    def is_failure(self) -> bool:
        return self.reps_performed < self.target_reps

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "prescription_id": self.prescription_id,
            "lift_id": self.lift_id,
            "set_number": self.set_number,
            "weight": self.weight,
            "target_reps": self.target_reps,
            "reps_performed": self.reps_performed,
            "is_amrap": self.is_amrap,
            "rpe": self.rpe,
            "logged_at": self.logged_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "LoggedSet":
        """Create from dictionary."""
        logged_at = datetime.now()
        if data.get("logged_at"):
            logged_at = datetime.fromisoformat(data["logged_at"])

        return cls(
            id=id,
            prescription_id=data["prescription_id"],
            lift_id=data["lift_id"],
            set_number=int(data["set_number"]),
            weight=float(data["weight"]),
            target_reps=int(data["target_reps"]),
            reps_performed=int(data["reps_performed"]),
            is_amrap=bool(data.get("is_amrap", False)),
            rpe=data.get("rpe"),
            logged_at=logged_at,
        )


@dataclass
class WorkoutSession:
    """One training session and the sets logged in it."""

    id: str
    user_id: str
    program_id: str
    cycle_iteration: int
    week_number: int
    day_slug: str
    status: SessionStatus = SessionStatus.IN_PROGRESS
    logged_sets: list[LoggedSet] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None

    def lifts_performed(self) -> list[str]:
        """Lifts with at least one logged set, in logging order."""
        lifts: list[str] = []
        for logged in self.logged_sets:
            if logged.lift_id not in lifts:
                lifts.append(logged.lift_id)
        return lifts

    def total_reps(self, lift_id: str) -> int:
        """Total reps performed for a lift in this session."""
        return sum(s.reps_performed for s in self.logged_sets if s.lift_id == lift_id)

    def last_amrap_reps(self, lift_id: str) -> int | None:
        """Reps on the last AMRAP set logged for a lift, if any."""
        amrap_sets = [s for s in self.logged_sets if s.lift_id == lift_id and s.is_amrap]
        if not amrap_sets:
            return None
        return amrap_sets[-1].reps_performed

    def sets_for(self, prescription_id: str) -> list[LoggedSet]:
        """Logged sets for a prescription ordered by set number."""
        sets = [s for s in self.logged_sets if s.prescription_id == prescription_id]
        return sorted(sets, key=lambda s: s.set_number)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "program_id": self.program_id,
            "cycle_iteration": self.cycle_iteration,
            "week_number": self.week_number,
            "day_slug": self.day_slug,
            "status": self.status.value,
            "logged_sets": [s.to_dict() for s in self.logged_sets],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
