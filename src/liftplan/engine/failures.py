"""Failure classification for logged work."""

import logging
from dataclasses import replace
from datetime import datetime

from ..models.failure import FailureCounter
from ..models.progression import Progression, StageProgression
from ..models.state import LoggedSet

logger = logging.getLogger(__name__)


def is_volume_gated(progression: Progression) -> bool:
    """Whether failure is judged on session volume rather than per set."""
    return isinstance(progression.rule, StageProgression)


def set_failed(logged: LoggedSet) -> bool:
    """A set fails when it falls short of its target reps."""
    return logged.reps_performed < logged.target_reps


def stage_volume_failed(rule: StageProgression, stage_index: int, total_reps: int) -> bool:
    """A stage session fails when total reps miss the stage's minimum volume."""
    stage = rule.stages[max(0, min(stage_index, len(rule.stages) - 1))]
    return total_reps < stage.min_volume


def record_outcome(
    counter: FailureCounter, failed: bool, at: datetime | None = None
) -> FailureCounter:
    """Return a copy of the counter with one outcome applied."""
    updated = replace(counter)
    if failed:
        updated.increment_failure(at)
    else:
        updated.reset_on_success(at)
    logger.debug(
        "Failure counter %s/%s/%s -> %s",
        counter.user_id,
        counter.lift_id,
        counter.progression_id,
        updated.consecutive_failures,
    )
    return updated
