"""Data models for liftplan."""

from .failure import FailureCounter
from .lift import Lift, LiftMax, MaxType
from .load import LoadStrategy, PercentOf, RoundingDirection, RpeTarget
from .program import (
    Cycle,
    DailyLookup,
    DailyLookupEntry,
    Day,
    Prescription,
    Program,
    ProgressionLink,
    Week,
    WeeklyLookup,
    WeeklyLookupEntry,
    WeekSlot,
)
from .progression import (
    AggregateResult,
    Progression,
    ProgressionResult,
    ProgressionType,
    TriggerEvent,
    TriggerResult,
    TriggerType,
)
from .scheme import Amrap, FatigueDrop, Fixed, GeneratedSet, Greyskull, Ramp, RampStep, SetScheme
from .state import (
    CycleStatus,
    EnrollmentState,
    EnrollmentStatus,
    LoggedSet,
    SessionStatus,
    WeekStatus,
    WorkoutSession,
)
from .workout import WorkoutExercise, WorkoutView

__all__ = [
    "AggregateResult",
    "Amrap",
    "Cycle",
    "CycleStatus",
    "DailyLookup",
    "DailyLookupEntry",
    "Day",
    "EnrollmentState",
    "EnrollmentStatus",
    "FailureCounter",
    "FatigueDrop",
    "Fixed",
    "GeneratedSet",
    "Greyskull",
    "Lift",
    "LiftMax",
    "LoadStrategy",
    "LoggedSet",
    "MaxType",
    "PercentOf",
    "Prescription",
    "Program",
    "Progression",
    "ProgressionLink",
    "ProgressionResult",
    "ProgressionType",
    "Ramp",
    "RampStep",
    "RoundingDirection",
    "RpeTarget",
    "SessionStatus",
    "SetScheme",
    "TriggerEvent",
    "TriggerResult",
    "TriggerType",
    "Week",
    "WeekSlot",
    "WeekStatus",
    "WeeklyLookup",
    "WeeklyLookupEntry",
    "WorkoutExercise",
    "WorkoutSession",
    "WorkoutView",
]
