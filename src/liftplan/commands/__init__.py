"""CLI commands for liftplan."""

from .enrollment import advance, enroll, next_cycle, status, unenroll
from .init import init
from .lifts import lifts, maxes
from .programs import programs
from .progress import progress
from .serve import serve
from .workout import session, workout

__all__ = [
    "advance",
    "enroll",
    "init",
    "lifts",
    "maxes",
    "next_cycle",
    "programs",
    "progress",
    "serve",
    "session",
    "status",
    "unenroll",
    "workout",
]
