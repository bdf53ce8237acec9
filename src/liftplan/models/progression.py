"""Progression rules and their results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Union

from ..errors import ValidationError
from .lift import MaxType


class TriggerType(str, Enum):
    """Events that can fire a progression."""

    AFTER_SESSION = "after_session"
    AFTER_WEEK = "after_week"
    AFTER_CYCLE = "after_cycle"
    ON_FAILURE = "on_failure"
    MANUAL = "manual"


class ProgressionType(str, Enum):
    """Discriminator for progression variants."""

    LINEAR = "linear"
    CYCLE = "cycle"
    AMRAP_THRESHOLD = "amrap_threshold"
    DELOAD_ON_FAILURE = "deload_on_failure"
    STAGE = "stage"
    GREYSKULL = "greyskull"


class DeloadType(str, Enum):
    """How a deload amount is computed."""

    PERCENT = "percent"
    FIXED = "fixed"


@dataclass(frozen=True)
class LinearProgression:
    """Add a fixed increment every time the trigger fires."""

    increment: float

    type: ClassVar[ProgressionType] = ProgressionType.LINEAR
    triggers: ClassVar[tuple] = (
        TriggerType.AFTER_SESSION,
        TriggerType.AFTER_WEEK,
        TriggerType.MANUAL,
    )

    def validate(self) -> None:
        if self.increment <= 0:
            raise ValidationError("linear: increment must be positive")

    def to_dict(self) -> dict:
        return {"increment": self.increment}

    @classmethod
    def from_dict(cls, data: dict) -> "LinearProgression":
        return cls(increment=float(data["increment"]))


@dataclass(frozen=True)
class CycleProgression:
    """Add a fixed increment at the end of every cycle."""

    increment: float

    type: ClassVar[ProgressionType] = ProgressionType.CYCLE
    triggers: ClassVar[tuple] = (TriggerType.AFTER_CYCLE,)

    def validate(self) -> None:
        if self.increment <= 0:
            raise ValidationError("cycle: increment must be positive")

    def to_dict(self) -> dict:
        return {"increment": self.increment}

    @classmethod
    def from_dict(cls, data: dict) -> "CycleProgression":
        return cls(increment=float(data["increment"]))


@dataclass(frozen=True)
class AmrapThreshold:
    """Reps at or above ``min_reps`` earn ``increment``."""

    min_reps: int
    increment: float


@dataclass(frozen=True)
class AmrapThresholdProgression:
    """Pick an increment by how many reps the AMRAP set got."""

    thresholds: tuple[AmrapThreshold, ...]

    type: ClassVar[ProgressionType] = ProgressionType.AMRAP_THRESHOLD
    triggers: ClassVar[tuple] = (TriggerType.AFTER_SESSION,)

    def validate(self) -> None:
        if not self.thresholds:
            raise ValidationError("amrap_threshold: at least one threshold is required")
        previous = None
        for threshold in self.thresholds:
            if threshold.min_reps < 1:
                raise ValidationError("amrap_threshold: min_reps must be at least 1")
            if threshold.increment <= 0:
                raise ValidationError("amrap_threshold: increment must be positive")
            if previous is not None and threshold.min_reps <= previous:
                raise ValidationError(
                    "amrap_threshold: thresholds must be sorted ascending by min_reps"
                )
            previous = threshold.min_reps

    def to_dict(self) -> dict:
        return {
            "thresholds": [
                {"min_reps": t.min_reps, "increment": t.increment}
                for t in self.thresholds
            ]
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AmrapThresholdProgression":
        return cls(
            thresholds=tuple(
                AmrapThreshold(min_reps=int(t["min_reps"]), increment=float(t["increment"]))
                for t in data["thresholds"]
            )
        )


@dataclass(frozen=True)
class DeloadOnFailureProgression:
    """Cut the max once enough consecutive failures pile up."""

    failure_threshold: int
    deload_type: DeloadType = DeloadType.PERCENT
    deload_percent: float = 0.10
    deload_amount: float = 0.0
    reset_on_deload: bool = True

    type: ClassVar[ProgressionType] = ProgressionType.DELOAD_ON_FAILURE
    triggers: ClassVar[tuple] = (TriggerType.ON_FAILURE,)

    def validate(self) -> None:
        if self.failure_threshold < 1:
            raise ValidationError("deload_on_failure: failure_threshold must be at least 1")
        if self.deload_type == DeloadType.PERCENT and not 0 < self.deload_percent <= 1:
            raise ValidationError("deload_on_failure: deload_percent must be in (0, 1]")
        if self.deload_type == DeloadType.FIXED and self.deload_amount <= 0:
            raise ValidationError("deload_on_failure: deload_amount must be positive")

    def to_dict(self) -> dict:
        return {
            "failure_threshold": self.failure_threshold,
            "deload_type": self.deload_type.value,
            "deload_percent": self.deload_percent,
            "deload_amount": self.deload_amount,
            "reset_on_deload": self.reset_on_deload,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeloadOnFailureProgression":
        return cls(
            failure_threshold=int(data["failure_threshold"]),
            deload_type=DeloadType(data.get("deload_type", "percent")),
            deload_percent=float(data.get("deload_percent", 0.10)),
            deload_amount=float(data.get("deload_amount", 0.0)),
            reset_on_deload=data.get("reset_on_deload", True),
        )


@dataclass(frozen=True)
class Stage:
    """A set/rep configuration inside a stage progression.

    Only ``name`` and ``min_volume`` drive the engine; ``sets``, ``reps`` and
    ``is_amrap`` only describe the stage. Programs carry the scheme
    each stage trains with.
    """

    name: str
    sets: int
    reps: int
    min_volume: int
    is_amrap: bool = False


@dataclass(frozen=True)
class StageProgression:
    """Step through rep schemes on failure, e.g. 5x3+ -> 6x2+ -> 10x1+."""

    stages: tuple[Stage, ...]
    reset_on_exhaustion: bool = False
    deload_on_reset: bool = False
    deload_percent: float = 0.0

    type: ClassVar[ProgressionType] = ProgressionType.STAGE
    triggers: ClassVar[tuple] = (TriggerType.ON_FAILURE,)

    def validate(self) -> None:
        if len(self.stages) < 2:
            raise ValidationError("stage: at least two stages are required")
        for stage in self.stages:
            if stage.sets < 1 or stage.reps < 1:
                raise ValidationError(f"stage: {stage.name} needs at least one set and rep")
            if stage.min_volume < 1:
                raise ValidationError(f"stage: {stage.name} min_volume must be at least 1")
        if self.deload_on_reset:
            if not self.reset_on_exhaustion:
                raise ValidationError("stage: deload_on_reset requires reset_on_exhaustion")
            if not 0 < self.deload_percent <= 1:
                raise ValidationError("stage: deload_percent must be in (0, 1]")

    def to_dict(self) -> dict:
        return {
            "stages": [
                {
                    "name": s.name,
                    "sets": s.sets,
                    "reps": s.reps,
                    "min_volume": s.min_volume,
                    "is_amrap": s.is_amrap,
                }
                for s in self.stages
            ],
            "reset_on_exhaustion": self.reset_on_exhaustion,
            "deload_on_reset": self.deload_on_reset,
            "deload_percent": self.deload_percent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StageProgression":
        return cls(
            stages=tuple(
                Stage(
                    name=s["name"],
                    sets=int(s["sets"]),
                    reps=int(s["reps"]),
                    min_volume=int(s["min_volume"]),
                    is_amrap=s.get("is_amrap", False),
                )
                for s in data["stages"]
            ),
            reset_on_exhaustion=data.get("reset_on_exhaustion", False),
            deload_on_reset=data.get("deload_on_reset", False),
            deload_percent=float(data.get("deload_percent", 0.0)),
        )


@dataclass(frozen=True)
class GreyskullProgression:
    """Deload, add, or double-add depending on AMRAP reps."""

    increment: float
    min_reps: int = 5
    double_threshold: int = 10
    deload_percent: float = 0.10

    type: ClassVar[ProgressionType] = ProgressionType.GREYSKULL
    triggers: ClassVar[tuple] = (TriggerType.AFTER_SESSION,)

    def validate(self) -> None:
        if self.increment <= 0:
            raise ValidationError("greyskull: increment must be positive")
        if self.min_reps < 1:
            raise ValidationError("greyskull: min_reps must be at least 1")
        if self.double_threshold <= self.min_reps:
            raise ValidationError("greyskull: double_threshold must exceed min_reps")
        if not 0 < self.deload_percent <= 1:
            raise ValidationError("greyskull: deload_percent must be in (0, 1]")

    def to_dict(self) -> dict:
        return {
            "increment": self.increment,
            "min_reps": self.min_reps,
            "double_threshold": self.double_threshold,
            "deload_percent": self.deload_percent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GreyskullProgression":
        return cls(
            increment=float(data["increment"]),
            min_reps=int(data.get("min_reps", 5)),
            double_threshold=int(data.get("double_threshold", 10)),
            deload_percent=float(data.get("deload_percent", 0.10)),
        )


ProgressionRule = Union[
    LinearProgression,
    CycleProgression,
    AmrapThresholdProgression,
    DeloadOnFailureProgression,
    StageProgression,
    GreyskullProgression,
]

PROGRESSION_RULES = {
    ProgressionType.LINEAR: LinearProgression,
    ProgressionType.CYCLE: CycleProgression,
    ProgressionType.AMRAP_THRESHOLD: AmrapThresholdProgression,
    ProgressionType.DELOAD_ON_FAILURE: DeloadOnFailureProgression,
    ProgressionType.STAGE: StageProgression,
    ProgressionType.GREYSKULL: GreyskullProgression,
}


@dataclass(frozen=True)
class Progression:
    """A named progression rule and the trigger it listens for."""

    id: str
    name: str
    trigger_type: TriggerType
    rule: ProgressionRule
    max_type: MaxType = MaxType.TRAINING_MAX

    @property
    def type(self) -> ProgressionType:
        return self.rule.type

    def validate(self) -> None:
        self.rule.validate()
        if self.trigger_type not in self.rule.triggers and self.trigger_type != TriggerType.MANUAL:
            allowed = ", ".join(t.value for t in self.rule.triggers)
            raise ValidationError(
                f"{self.rule.type.value}: trigger must be one of {allowed}, got {self.trigger_type.value}"
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "trigger_type": self.trigger_type.value,
            "max_type": self.max_type.value,
            "parameters": self.rule.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Progression":
        """Create from dictionary, validating the rule."""
        try:
            rule_cls = PROGRESSION_RULES[ProgressionType(data.get("type"))]
        except ValueError:
            raise ValidationError(f"unknown progression type: {data.get('type')!r}") from None

        try:
            rule = rule_cls.from_dict(data.get("parameters", {}))
            trigger_type = TriggerType(data.get("trigger_type") or rule_cls.triggers[0].value)
            progression = cls(
                id=data["id"],
                name=data.get("name", data["id"]),
                trigger_type=trigger_type,
                rule=rule,
                max_type=MaxType(data.get("max_type", "training_max")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"malformed {rule_cls.type.value} progression: {e}") from e

        progression.validate()
        return progression


@dataclass(frozen=True)
class TriggerEvent:
    """What fired a progression, plus the facts the rules may need.

    ``context_key`` identifies the firing occasion (a session, a week, a
    cycle) and is what makes re-delivery of the same event idempotent.
    """

    trigger_type: TriggerType
    context_key: str
    lifts_performed: tuple[str, ...] = ()
    amrap_reps: dict[str, int] = field(default_factory=dict)
    total_reps: dict[str, int] = field(default_factory=dict)
    manual: bool = False
    force: bool = False


@dataclass
class ProgressionResult:
    """Outcome of applying one progression rule to one lift."""

    applied: bool
    previous_value: float
    new_value: float
    delta: float
    lift_id: str
    max_type: MaxType
    applied_at: datetime = field(default_factory=datetime.now)
    reason: str = ""
    stage_index: int | None = None
    reset_failures: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "applied": self.applied,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "delta": self.delta,
            "lift_id": self.lift_id,
            "max_type": self.max_type.value,
            "applied_at": self.applied_at.isoformat(),
            "reason": self.reason,
            "stage_index": self.stage_index,
        }


@dataclass
class TriggerResult:
    """Outcome for one (progression, lift) pair within a batch."""

    progression_id: str
    lift_id: str
    applied: bool = False
    skipped: bool = False
    skip_reason: str = ""
    result: ProgressionResult | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "progression_id": self.progression_id,
            "lift_id": self.lift_id,
            "applied": self.applied,
            "skipped": self.skipped,
            "skip_reason": self.skip_reason,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


@dataclass
class AggregateResult:
    """Every trigger result from one event, with counts."""

    results: list[TriggerResult] = field(default_factory=list)

    @property
    def total_applied(self) -> int:
        return sum(1 for r in self.results if r.applied)

    @property
    def total_skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def total_errors(self) -> int:
        return sum(1 for r in self.results if r.error)

    def extend(self, other: "AggregateResult") -> None:
        self.results.extend(other.results)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "results": [r.to_dict() for r in self.results],
            "total_applied": self.total_applied,
            "total_skipped": self.total_skipped,
            "total_errors": self.total_errors,
        }


@dataclass
class ProgressionLogEntry:
    """History record for one applied progression."""

    user_id: str
    progression_id: str
    lift_id: str
    trigger_type: TriggerType
    context_key: str
    previous_value: float
    new_value: float
    delta: float
    applied_at: datetime = field(default_factory=datetime.now)
    id: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "progression_id": self.progression_id,
            "lift_id": self.lift_id,
            "trigger_type": self.trigger_type.value,
            "context_key": self.context_key,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "delta": self.delta,
            "applied_at": self.applied_at.isoformat(),
        }


# Presets

def gzclp_t1(progression_id: str = "gzclp-t1", name: str = "GZCLP T1") -> Progression:
    """GZCLP tier 1: 5x3+ -> 6x2+ -> 10x1+, then reset with a 15% deload."""
    return Progression(
        id=progression_id,
        name=name,
        trigger_type=TriggerType.ON_FAILURE,
        rule=StageProgression(
            stages=(
                Stage(name="5x3+", sets=5, reps=3, min_volume=15, is_amrap=True),
                Stage(name="6x2+", sets=6, reps=2, min_volume=12, is_amrap=True),
                Stage(name="10x1+", sets=10, reps=1, min_volume=10, is_amrap=True),
            ),
            reset_on_exhaustion=True,
            deload_on_reset=True,
            deload_percent=0.15,
        ),
    )


def gzclp_t2(progression_id: str = "gzclp-t2", name: str = "GZCLP T2") -> Progression:
    """GZCLP tier 2: 3x10 -> 3x8 -> 3x6, then reset with a 15% deload."""
    return Progression(
        id=progression_id,
        name=name,
        trigger_type=TriggerType.ON_FAILURE,
        rule=StageProgression(
            stages=(
                Stage(name="3x10", sets=3, reps=10, min_volume=30),
                Stage(name="3x8", sets=3, reps=8, min_volume=24),
                Stage(name="3x6", sets=3, reps=6, min_volume=18),
            ),
            reset_on_exhaustion=True,
            deload_on_reset=True,
            deload_percent=0.15,
        ),
    )


def greyskull_main(
    increment: float, progression_id: str = "greyskull-main", name: str = "GreySkull LP"
) -> Progression:
    """GreySkull main lift: 5 reps to progress, 10 to double."""
    return Progression(
        id=progression_id,
        name=name,
        trigger_type=TriggerType.AFTER_SESSION,
        rule=GreyskullProgression(
            increment=increment, min_reps=5, double_threshold=10, deload_percent=0.10
        ),
    )


def greyskull_accessory(
    increment: float,
    progression_id: str = "greyskull-accessory",
    name: str = "GreySkull LP accessory",
) -> Progression:
    """GreySkull accessory: 10 reps to progress, 15 to double."""
    return Progression(
        id=progression_id,
        name=name,
        trigger_type=TriggerType.AFTER_SESSION,
        rule=GreyskullProgression(
            increment=increment, min_reps=10, double_threshold=15, deload_percent=0.10
        ),
    )
