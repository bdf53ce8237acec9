"""Set-scheme expander: turn a scheme plus a load into concrete sets."""

import logging
from dataclasses import dataclass
from typing import Generator, Sequence

from ..errors import ValidationError
from ..models.load import LoadStrategy, PercentOf, RoundingDirection, RpeTarget
from ..models.scheme import (
    Amrap,
    FatigueDrop,
    Fixed,
    GeneratedSet,
    Greyskull,
    Ramp,
    SetScheme,
)
from .loads import (
    LoadContext,
    calculate_load,
    daily_modifier,
    lookup_reps,
    resolve_load,
    round_for,
)
from .rounding import round_weight

logger = logging.getLogger(__name__)

FATIGUE_DROP_INCREMENT = 5.0

MAX_SETS_REASON = "Maximum sets reached (safety limit)"
ZERO_WEIGHT_REASON = "Weight dropped to zero"


def _expand_fixed(scheme: Fixed, strategy: LoadStrategy, ctx: LoadContext) -> list[GeneratedSet]:
    sets = []
    for n in range(1, scheme.sets + 1):
        set_ctx = ctx.for_set(n)
        sets.append(
            GeneratedSet(
                set_number=n,
                weight=calculate_load(strategy, set_ctx),
                target_reps=lookup_reps(strategy, set_ctx, scheme.reps),
            )
        )
    return sets


def _expand_amrap(scheme: Amrap, strategy: LoadStrategy, ctx: LoadContext) -> list[GeneratedSet]:
    # Only the last set is open-ended; earlier sets are straight sets at min_reps.
    sets = []
    for n in range(1, scheme.sets + 1):
        set_ctx = ctx.for_set(n)
        sets.append(
            GeneratedSet(
                set_number=n,
                weight=calculate_load(strategy, set_ctx),
                target_reps=lookup_reps(strategy, set_ctx, scheme.min_reps),
                is_amrap=n == scheme.sets,
            )
        )
    return sets


def _expand_greyskull(
    scheme: Greyskull, strategy: LoadStrategy, ctx: LoadContext
) -> list[GeneratedSet]:
    weight = calculate_load(strategy, ctx)
    sets = [
        GeneratedSet(set_number=n, weight=weight, target_reps=scheme.fixed_reps)
        for n in range(1, scheme.fixed_sets + 1)
    ]
    for i in range(scheme.amrap_sets):
        sets.append(
            GeneratedSet(
                set_number=scheme.fixed_sets + i + 1,
                weight=weight,
                target_reps=scheme.min_amrap_reps,
                is_amrap=True,
            )
        )
    return sets


def ramp_base(strategy: LoadStrategy, ctx: LoadContext) -> float:
    """Base weight the ramp percentages apply to: the max times the day's modifier."""
    if isinstance(strategy, PercentOf):
        return ctx.reference_max(strategy.reference_type) * daily_modifier(strategy, ctx)
    return resolve_load(strategy, ctx)


def _expand_ramp(scheme: Ramp, strategy: LoadStrategy, ctx: LoadContext) -> list[GeneratedSet]:
    base = ramp_base(strategy, ctx)
    return [
        GeneratedSet(
            set_number=n,
            weight=round_for(strategy, base * step.percentage / 100),
            target_reps=step.reps,
            # Nominal step percentage only; modifiers change weight, not classification
            is_work_set=step.percentage >= scheme.work_set_threshold,
        )
        for n, step in enumerate(scheme.steps, start=1)
    ]


def fatigue_first_weight(scheme: FatigueDrop, strategy: LoadStrategy, ctx: LoadContext) -> float:
    """Weight of the opening set: the RPE chart at ``start_rpe``."""
    target = RpeTarget(target_reps=scheme.target_reps, target_rpe=scheme.start_rpe)
    if isinstance(strategy, RpeTarget):
        target = RpeTarget(
            target_reps=scheme.target_reps,
            target_rpe=scheme.start_rpe,
            rounding_increment=strategy.rounding_increment,
            rounding_direction=strategy.rounding_direction,
        )
    return calculate_load(target, ctx)


def fatigue_drop_sets(
    scheme: FatigueDrop, first_weight: float
) -> Generator[GeneratedSet, float, str]:
    """Yield FatigueDrop sets one at a time.

    Send the RPE reported for each yielded set to get the next one. The
    generator returns the termination reason when the sequence ends.
    A reported RPE above ``start_rpe`` means the lifter is more fatigued
    than planned, so the next set drops by ``drop_percent``.
    """
    weight = first_weight
    set_number = 1
    while True:
        reported = yield GeneratedSet(
            set_number=set_number, weight=weight, target_reps=scheme.target_reps
        )
        if reported is None:
            raise ValidationError("fatigue_drop needs the RPE reported for each set")

        if reported >= scheme.stop_rpe:
            return f"Target RPE reached ({reported:g}/{scheme.stop_rpe:g})"
        if set_number >= scheme.max_sets:
            return MAX_SETS_REASON

        if reported > scheme.start_rpe:
            weight = round_weight(
                weight * (1 - scheme.drop_percent),
                FATIGUE_DROP_INCREMENT,
                RoundingDirection.DOWN,
            )
            if weight <= 0:
                return ZERO_WEIGHT_REASON
        set_number += 1


@dataclass(frozen=True)
class FatigueDropProgress:
    """Where a FatigueDrop sequence stands after replaying reported RPEs."""

    completed: tuple[GeneratedSet, ...]
    next_set: GeneratedSet | None
    termination_reason: str | None = None

    @property
    def finished(self) -> bool:
        return self.next_set is None


def replay_fatigue_drop(
    scheme: FatigueDrop, first_weight: float, reported_rpes: Sequence[float]
) -> FatigueDropProgress:
    """Rebuild a FatigueDrop sequence from the RPEs reported so far.

    The same inputs always produce the same sets.
    """
    sets = fatigue_drop_sets(scheme, first_weight)
    current = next(sets)
    completed: list[GeneratedSet] = []
    for rpe in reported_rpes:
        completed.append(current)
        try:
            current = sets.send(rpe)
        except StopIteration as stop:
            logger.debug("FatigueDrop stopped after %s sets: %s", len(completed), stop.value)
            return FatigueDropProgress(tuple(completed), None, stop.value)
    return FatigueDropProgress(tuple(completed), current)


def expand_scheme(
    scheme: SetScheme, strategy: LoadStrategy, ctx: LoadContext
) -> list[GeneratedSet]:
    """Expand a scheme into ordered sets.

    FatigueDrop only yields its opening set here; later sets come from
    :func:`replay_fatigue_drop` as RPEs are reported.
    """
    if isinstance(scheme, Fixed):
        return _expand_fixed(scheme, strategy, ctx)
    if isinstance(scheme, Amrap):
        return _expand_amrap(scheme, strategy, ctx)
    if isinstance(scheme, Greyskull):
        return _expand_greyskull(scheme, strategy, ctx)
    if isinstance(scheme, Ramp):
        return _expand_ramp(scheme, strategy, ctx)
    if isinstance(scheme, FatigueDrop):
        return [next(fatigue_drop_sets(scheme, fatigue_first_weight(scheme, strategy, ctx)))]
    raise ValidationError(f"unsupported set scheme: {type(scheme).__name__}")
