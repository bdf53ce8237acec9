"""Progression engine: a registry of handlers, one per progression type.

Handlers are pure. They read the firing event, the link, the failure
counter and the current max, and return a ProgressionResult. Writing
the new max is the caller's job.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ..errors import ValidationError
from ..models.failure import FailureCounter
from ..models.lift import LiftMax
from ..models.program import ProgressionLink
from ..models.progression import (
    AmrapThresholdProgression,
    CycleProgression,
    DeloadOnFailureProgression,
    DeloadType,
    GreyskullProgression,
    LinearProgression,
    Progression,
    ProgressionResult,
    ProgressionType,
    StageProgression,
    TriggerEvent,
    TriggerType,
)

logger = logging.getLogger(__name__)

EXHAUSTED_REASON = "all stages exhausted; manual intervention required"
NO_AMRAP_REASON = "no AMRAP set logged"


@dataclass(frozen=True)
class ProgressionInput:
    """Everything a handler may look at."""

    progression: Progression
    event: TriggerEvent
    link: ProgressionLink
    current: LiftMax
    counter: FailureCounter | None = None

    @property
    def lift_id(self) -> str:
        return self.current.lift_id


Handler = Callable[[ProgressionInput], ProgressionResult]

_HANDLERS: dict[ProgressionType, Handler] = {}


def handles(progression_type: ProgressionType):
    """Register a handler for a progression type."""

    def decorator(fn: Handler) -> Handler:
        _HANDLERS[progression_type] = fn
        return fn

    return decorator


def registered_types() -> set[ProgressionType]:
    return set(_HANDLERS)


def _skip(inp: ProgressionInput, reason: str) -> ProgressionResult:
    value = inp.current.value
    return ProgressionResult(
        applied=False,
        previous_value=value,
        new_value=value,
        delta=0.0,
        lift_id=inp.lift_id,
        max_type=inp.current.max_type,
        reason=reason,
    )


def _change(
    inp: ProgressionInput,
    delta: float,
    reason: str = "",
    stage_index: int | None = None,
    reset_failures: bool = False,
) -> ProgressionResult:
    previous = inp.current.value
    new_value = round(max(0.0, previous + delta), 4)
    return ProgressionResult(
        applied=True,
        previous_value=previous,
        new_value=new_value,
        delta=round(new_value - previous, 4),
        lift_id=inp.lift_id,
        max_type=inp.current.max_type,
        applied_at=datetime.now(),
        reason=reason,
        stage_index=stage_index,
        reset_failures=reset_failures,
    )


def _increment(rule_increment: float, link: ProgressionLink) -> float:
    if link.override_increment is not None:
        return link.override_increment
    return rule_increment


@handles(ProgressionType.LINEAR)
def _linear(inp: ProgressionInput) -> ProgressionResult:
    rule: LinearProgression = inp.progression.rule
    event = inp.event
    if (
        event.trigger_type == TriggerType.AFTER_SESSION
        and inp.lift_id not in event.lifts_performed
    ):
        return _skip(inp, f"lift {inp.lift_id} not performed in session")
    return _change(inp, _increment(rule.increment, inp.link))


@handles(ProgressionType.CYCLE)
def _cycle(inp: ProgressionInput) -> ProgressionResult:
    rule: CycleProgression = inp.progression.rule
    return _change(inp, _increment(rule.increment, inp.link))


@handles(ProgressionType.AMRAP_THRESHOLD)
def _amrap_threshold(inp: ProgressionInput) -> ProgressionResult:
    rule: AmrapThresholdProgression = inp.progression.rule
    reps = inp.event.amrap_reps.get(inp.lift_id)
    if reps is None:
        return _skip(inp, NO_AMRAP_REASON)

    # Highest threshold met wins
    for threshold in reversed(rule.thresholds):
        if reps >= threshold.min_reps:
            return _change(
                inp, threshold.increment, reason=f"{reps} reps met threshold {threshold.min_reps}"
            )
    return _skip(inp, f"no threshold met ({reps} reps)")


@handles(ProgressionType.DELOAD_ON_FAILURE)
def _deload_on_failure(inp: ProgressionInput) -> ProgressionResult:
    rule: DeloadOnFailureProgression = inp.progression.rule
    failures = inp.counter.consecutive_failures if inp.counter else 0
    if inp.counter is None or not inp.counter.meets_threshold(rule.failure_threshold):
        return _skip(
            inp,
            f"consecutive failures ({failures}) below threshold ({rule.failure_threshold})",
        )

    if rule.deload_type == DeloadType.FIXED:
        amount = rule.deload_amount
    else:
        amount = inp.current.value * rule.deload_percent
    return _change(
        inp,
        -amount,
        reason=f"deload after {failures} consecutive failures",
        reset_failures=rule.reset_on_deload,
    )


@handles(ProgressionType.STAGE)
def _stage(inp: ProgressionInput) -> ProgressionResult:
    rule: StageProgression = inp.progression.rule
    last = len(rule.stages) - 1
    index = inp.counter.current_stage_index if inp.counter else 0
    index = max(0, min(index, last))

    if index < last:
        # Same weight, next rep scheme
        return _change(
            inp,
            0.0,
            reason=f"stage {rule.stages[index].name} -> {rule.stages[index + 1].name}",
            stage_index=index + 1,
            reset_failures=True,
        )

    if not rule.reset_on_exhaustion:
        return _skip(inp, EXHAUSTED_REASON)

    delta = 0.0
    if rule.deload_on_reset:
        delta = -inp.current.value * rule.deload_percent
    return _change(
        inp,
        delta,
        reason=f"stages exhausted; reset to {rule.stages[0].name}",
        stage_index=0,
        reset_failures=True,
    )


@handles(ProgressionType.GREYSKULL)
def _greyskull(inp: ProgressionInput) -> ProgressionResult:
    rule: GreyskullProgression = inp.progression.rule
    reps = inp.event.amrap_reps.get(inp.lift_id)
    if reps is None:
        return _skip(inp, NO_AMRAP_REASON)

    if reps < rule.min_reps:
        return _change(
            inp, -inp.current.value * rule.deload_percent, reason=f"deload ({reps} reps)"
        )
    if reps >= rule.double_threshold:
        return _change(inp, rule.increment * 2, reason=f"double increment ({reps} reps)")
    return _change(inp, rule.increment)


def apply_progression(inp: ProgressionInput) -> ProgressionResult:
    """Run the handler for a progression.

    Mismatched trigger or max types are skipped, never errors.

    Raises:
        ValidationError: if no handler is registered for the type
    """
    progression = inp.progression
    if inp.event.trigger_type != progression.trigger_type:
        return _skip(
            inp,
            f"trigger type mismatch: expected {progression.trigger_type.value}, "
            f"got {inp.event.trigger_type.value}",
        )
    if inp.current.max_type != progression.max_type:
        return _skip(
            inp,
            f"max type mismatch: expected {progression.max_type.value}, "
            f"got {inp.current.max_type.value}",
        )

    handler = _HANDLERS.get(progression.type)
    if handler is None:
        raise ValidationError(f"no handler for progression type {progression.type.value}")

    result = handler(inp)
    logger.debug(
        "%s on %s: %s (%s -> %s) %s",
        progression.id,
        inp.lift_id,
        "applied" if result.applied else "skipped",
        result.previous_value,
        result.new_value,
        result.reason,
    )
    return result
