"""Set schemes: how a prescription expands into concrete sets."""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from ..errors import ValidationError

DEFAULT_WORK_SET_THRESHOLD = 80.0
DEFAULT_FATIGUE_MAX_SETS = 10


class SetSchemeType(str, Enum):
    """Discriminator for set scheme variants."""

    FIXED = "fixed"
    AMRAP = "amrap"
    RAMP = "ramp"
    GREYSKULL = "greyskull"
    FATIGUE_DROP = "fatigue_drop"


@dataclass(frozen=True)
class GeneratedSet:
    """A concrete set in a workout."""

    set_number: int
    weight: float
    target_reps: int
    is_work_set: bool = True
    is_amrap: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "set_number": self.set_number,
            "weight": self.weight,
            "target_reps": self.target_reps,
            "is_work_set": self.is_work_set,
            "is_amrap": self.is_amrap,
        }


@dataclass(frozen=True)
class Fixed:
    """N identical straight sets."""

    sets: int
    reps: int

    type: ClassVar[SetSchemeType] = SetSchemeType.FIXED

    def validate(self) -> None:
        if self.sets < 1:
            raise ValidationError("fixed: sets must be at least 1")
        if self.reps < 1:
            raise ValidationError("fixed: reps must be at least 1")

    def to_dict(self) -> dict:
        return {"type": self.type.value, "sets": self.sets, "reps": self.reps}

    @classmethod
    def from_dict(cls, data: dict) -> "Fixed":
        return cls(sets=int(data["sets"]), reps=int(data["reps"]))


@dataclass(frozen=True)
class Amrap:
    """Sets at a minimum rep target, the last one taken to failure."""

    sets: int
    min_reps: int

    type: ClassVar[SetSchemeType] = SetSchemeType.AMRAP

    def validate(self) -> None:
        if self.sets < 1:
            raise ValidationError("amrap: sets must be at least 1")
        if self.min_reps < 1:
            raise ValidationError("amrap: min_reps must be at least 1")

    def to_dict(self) -> dict:
        return {"type": self.type.value, "sets": self.sets, "min_reps": self.min_reps}

    @classmethod
    def from_dict(cls, data: dict) -> "Amrap":
        return cls(sets=int(data.get("sets", 1)), min_reps=int(data["min_reps"]))


@dataclass(frozen=True)
class RampStep:
    """One step of a ramp: a percentage of the base weight for some reps."""

    percentage: float
    reps: int


@dataclass(frozen=True)
class Ramp:
    """Ascending sets, each a percentage of the base weight.

    Steps at or above ``work_set_threshold`` percent count as work sets.
    """

    steps: tuple[RampStep, ...]
    work_set_threshold: float = DEFAULT_WORK_SET_THRESHOLD

    type: ClassVar[SetSchemeType] = SetSchemeType.RAMP

    def validate(self) -> None:
        if not self.steps:
            raise ValidationError("ramp: at least one step is required")
        for i, step in enumerate(self.steps, start=1):
            if step.percentage <= 0:
                raise ValidationError(f"ramp: step {i} percentage must be positive")
            if step.reps < 1:
                raise ValidationError(f"ramp: step {i} reps must be at least 1")
        if not 0 <= self.work_set_threshold <= 100:
            raise ValidationError("ramp: work_set_threshold must be between 0 and 100")

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "steps": [{"percentage": s.percentage, "reps": s.reps} for s in self.steps],
            "work_set_threshold": self.work_set_threshold,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Ramp":
        return cls(
            steps=tuple(
                RampStep(percentage=float(s["percentage"]), reps=int(s["reps"]))
                for s in data["steps"]
            ),
            work_set_threshold=float(
                data.get("work_set_threshold") or DEFAULT_WORK_SET_THRESHOLD
            ),
        )


@dataclass(frozen=True)
class Greyskull:
    """Fixed-rep sets followed by AMRAP sets, all at one weight."""

    fixed_sets: int
    fixed_reps: int
    amrap_sets: int
    min_amrap_reps: int

    type: ClassVar[SetSchemeType] = SetSchemeType.GREYSKULL

    def validate(self) -> None:
        if self.fixed_sets < 0:
            raise ValidationError("greyskull: fixed_sets cannot be negative")
        if self.fixed_sets > 0 and self.fixed_reps < 1:
            raise ValidationError("greyskull: fixed_reps must be at least 1")
        if self.amrap_sets < 1:
            raise ValidationError("greyskull: amrap_sets must be at least 1")
        if self.min_amrap_reps < 1:
            raise ValidationError("greyskull: min_amrap_reps must be at least 1")

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "fixed_sets": self.fixed_sets,
            "fixed_reps": self.fixed_reps,
            "amrap_sets": self.amrap_sets,
            "min_amrap_reps": self.min_amrap_reps,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Greyskull":
        return cls(
            fixed_sets=int(data.get("fixed_sets", 2)),
            fixed_reps=int(data.get("fixed_reps", 5)),
            amrap_sets=int(data.get("amrap_sets", 1)),
            min_amrap_reps=int(data.get("min_amrap_reps", 5)),
        )


@dataclass(frozen=True)
class FatigueDrop:
    """Autoregulated back-off sets driven by reported RPE.

    The first set is the RPE-chart weight for ``target_reps`` at
    ``start_rpe``. Later sets only exist once the previous set's RPE
    has been reported.
    """

    target_reps: int
    start_rpe: float
    stop_rpe: float
    drop_percent: float
    max_sets: int = DEFAULT_FATIGUE_MAX_SETS

    type: ClassVar[SetSchemeType] = SetSchemeType.FATIGUE_DROP

    def __post_init__(self):
        if self.max_sets == 0:
            object.__setattr__(self, "max_sets", DEFAULT_FATIGUE_MAX_SETS)

    def validate(self) -> None:
        if self.target_reps < 1:
            raise ValidationError("fatigue_drop: target_reps must be at least 1")
        if not 1 <= self.start_rpe <= 10:
            raise ValidationError("fatigue_drop: start_rpe must be between 1 and 10")
        if not self.start_rpe < self.stop_rpe <= 10:
            raise ValidationError(
                "fatigue_drop: stop_rpe must be above start_rpe and at most 10"
            )
        if not 0 < self.drop_percent < 1:
            raise ValidationError("fatigue_drop: drop_percent must be between 0 and 1")
        if self.max_sets < 1:
            raise ValidationError("fatigue_drop: max_sets must be at least 1")

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "target_reps": self.target_reps,
            "start_rpe": self.start_rpe,
            "stop_rpe": self.stop_rpe,
            "drop_percent": self.drop_percent,
            "max_sets": self.max_sets,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FatigueDrop":
        return cls(
            target_reps=int(data["target_reps"]),
            start_rpe=float(data["start_rpe"]),
            stop_rpe=float(data["stop_rpe"]),
            drop_percent=float(data["drop_percent"]),
            max_sets=int(data.get("max_sets") or 0),
        )


SetScheme = Union[Fixed, Amrap, Ramp, Greyskull, FatigueDrop]

_SET_SCHEMES = {
    SetSchemeType.FIXED: Fixed,
    SetSchemeType.AMRAP: Amrap,
    SetSchemeType.RAMP: Ramp,
    SetSchemeType.GREYSKULL: Greyskull,
    SetSchemeType.FATIGUE_DROP: FatigueDrop,
}


def set_scheme_from_dict(data: dict) -> SetScheme:
    """Build and validate a set scheme from its tagged dictionary form."""
    try:
        scheme_type = SetSchemeType(data.get("type"))
    except ValueError:
        raise ValidationError(f"unknown set scheme type: {data.get('type')!r}") from None

    try:
        scheme = _SET_SCHEMES[scheme_type].from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"malformed {scheme_type.value} scheme: {e}") from e

    scheme.validate()
    return scheme
