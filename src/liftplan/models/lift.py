"""Lift reference data and the append-only lift max log."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class MaxType(str, Enum):
    """Which kind of max a record holds."""

    ONE_RM = "one_rm"
    TRAINING_MAX = "training_max"


@dataclass(frozen=True)
class Lift:
    """An exercise that prescriptions and maxes refer to."""

    id: str
    name: str
    slug: str

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"id": self.id, "name": self.name, "slug": self.slug}

    @classmethod
    def from_dict(cls, data: dict) -> "Lift":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            slug=data.get("slug", data["id"]),
        )


@dataclass
class LiftMax:
    """One entry in the per (user, lift, max type) max log.

    Records are never updated in place. The current value for a key is
    the record with the highest sequence number.
    """

    user_id: str
    lift_id: str
    max_type: MaxType
    value: float
    sequence: int = 0
    recorded_at: datetime = field(default_factory=datetime.now)
    id: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "lift_id": self.lift_id,
            "max_type": self.max_type.value,
            "value": self.value,
            "sequence": self.sequence,
            "recorded_at": self.recorded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "LiftMax":
        """Create from dictionary."""
        recorded_at = datetime.now()
        if data.get("recorded_at"):
            recorded_at = datetime.fromisoformat(data["recorded_at"])

        return cls(
            id=id,
            user_id=data["user_id"],
            lift_id=data["lift_id"],
            max_type=MaxType(data["max_type"]),
            value=float(data["value"]),
            sequence=data.get("sequence", 0),
            recorded_at=recorded_at,
        )


# Lifts seeded by `liftplan init`
COMMON_LIFTS = [
    Lift(id="squat", name="Squat", slug="squat"),
    Lift(id="bench", name="Bench Press", slug="bench-press"),
    Lift(id="deadlift", name="Deadlift", slug="deadlift"),
    Lift(id="press", name="Overhead Press", slug="overhead-press"),
    Lift(id="row", name="Barbell Row", slug="barbell-row"),
    Lift(id="chinup", name="Chin-up", slug="chin-up"),
]
