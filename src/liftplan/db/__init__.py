"""Database layer for liftplan."""

from .engine import get_db_path, init_db, transaction
from .repositories import (
    EnrollmentRepository,
    FailureCounterRepository,
    LiftMaxRepository,
    LiftRepository,
    ProgramRepository,
    ProgressionLogRepository,
    ProgressionRepository,
    WorkoutSessionRepository,
)

__all__ = [
    "EnrollmentRepository",
    "FailureCounterRepository",
    "get_db_path",
    "init_db",
    "LiftMaxRepository",
    "LiftRepository",
    "ProgramRepository",
    "ProgressionLogRepository",
    "ProgressionRepository",
    "transaction",
    "WorkoutSessionRepository",
]
