"""Services for liftplan."""

from .locks import UserLocks
from .progression_service import ProgressionService
from .training import AdvanceResult, SessionResult, TrainingService
from .workout_cache import WorkoutCache

__all__ = [
    "AdvanceResult",
    "ProgressionService",
    "SessionResult",
    "TrainingService",
    "UserLocks",
    "WorkoutCache",
]
