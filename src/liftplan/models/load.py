"""Load strategies: how a prescription turns a reference max into a weight."""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from ..errors import ValidationError
from .lift import MaxType

DEFAULT_ROUNDING_INCREMENT = 5.0

# Selects the weekly lookup's per-set percentage list instead of the flat percentage
WEEK_LOOKUP_KEY = "week"

MIN_RPE_REPS = 1
MAX_RPE_REPS = 12
MIN_RPE = 7.0
MAX_RPE = 10.0


class LoadStrategyType(str, Enum):
    """Discriminator for load strategy variants."""

    PERCENT_OF = "percent_of"
    RPE_TARGET = "rpe_target"


class RoundingDirection(str, Enum):
    """How a computed weight snaps to the rounding increment."""

    NEAREST = "nearest"
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class PercentOf:
    """A percentage of the user's current max of the given type.

    When ``lookup_key`` is ``"week"`` the weekly lookup's percentage list
    supplies a percentage per set. Any other key names the daily lookup
    entry to use instead of the scheduled day's slug.
    """

    reference_type: MaxType
    percentage: float
    lookup_key: str | None = None
    rounding_increment: float | None = None
    rounding_direction: RoundingDirection = RoundingDirection.NEAREST

    type: ClassVar[LoadStrategyType] = LoadStrategyType.PERCENT_OF

    def validate(self) -> None:
        if self.percentage <= 0:
            raise ValidationError("percent_of: percentage must be positive")
        if self.rounding_increment is not None and self.rounding_increment <= 0:
            raise ValidationError("percent_of: rounding_increment must be positive")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "reference_type": self.reference_type.value,
            "percentage": self.percentage,
            "lookup_key": self.lookup_key,
            "rounding_increment": self.rounding_increment,
            "rounding_direction": self.rounding_direction.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PercentOf":
        """Create from dictionary."""
        return cls(
            reference_type=MaxType(data.get("reference_type", "training_max")),
            percentage=float(data["percentage"]),
            lookup_key=data.get("lookup_key"),
            rounding_increment=data.get("rounding_increment"),
            rounding_direction=RoundingDirection(
                data.get("rounding_direction", "nearest")
            ),
        )


@dataclass(frozen=True)
class RpeTarget:
    """A weight for a rep count at a target RPE, read off the RPE chart.

    Always references the one-rep max.
    """

    target_reps: int
    target_rpe: float
    rounding_increment: float = DEFAULT_ROUNDING_INCREMENT
    rounding_direction: RoundingDirection = RoundingDirection.NEAREST

    type: ClassVar[LoadStrategyType] = LoadStrategyType.RPE_TARGET

    @property
    def reference_type(self) -> MaxType:
        return MaxType.ONE_RM

    def validate(self) -> None:
        if not MIN_RPE_REPS <= self.target_reps <= MAX_RPE_REPS:
            raise ValidationError(
                f"rpe_target: target_reps must be between {MIN_RPE_REPS} and {MAX_RPE_REPS}"
            )
        if not MIN_RPE <= self.target_rpe <= MAX_RPE or (self.target_rpe * 2) % 1:
            raise ValidationError(
                "rpe_target: target_rpe must be 7.0-10.0 in 0.5 steps"
            )
        if self.rounding_increment <= 0:
            raise ValidationError("rpe_target: rounding_increment must be positive")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "type": self.type.value,
            "target_reps": self.target_reps,
            "target_rpe": self.target_rpe,
            "rounding_increment": self.rounding_increment,
            "rounding_direction": self.rounding_direction.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RpeTarget":
        """Create from dictionary."""
        return cls(
            target_reps=int(data["target_reps"]),
            target_rpe=float(data["target_rpe"]),
            rounding_increment=float(
                data.get("rounding_increment") or DEFAULT_ROUNDING_INCREMENT
            ),
            rounding_direction=RoundingDirection(
                data.get("rounding_direction", "nearest")
            ),
        )


LoadStrategy = Union[PercentOf, RpeTarget]

_LOAD_STRATEGIES = {
    LoadStrategyType.PERCENT_OF: PercentOf,
    LoadStrategyType.RPE_TARGET: RpeTarget,
}


def load_strategy_from_dict(data: dict) -> LoadStrategy:
    """Build and validate a load strategy from its tagged dictionary form."""
    try:
        strategy_type = LoadStrategyType(data.get("type"))
    except ValueError:
        raise ValidationError(
            f"unknown load strategy type: {data.get('type')!r}"
        ) from None

    try:
        strategy = _LOAD_STRATEGIES[strategy_type].from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"malformed {strategy_type.value} strategy: {e}") from e

    strategy.validate()
    return strategy
