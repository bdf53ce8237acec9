"""Workout assembler: compile today's workout from the program graph."""

import logging
from typing import Mapping, Sequence

from ..errors import NotFoundError, ValidationError
from ..models.lift import Lift, MaxType
from ..models.program import Prescription, Program
from ..models.scheme import FatigueDrop, GeneratedSet
from ..models.state import EnrollmentState, LoggedSet
from ..models.workout import WorkoutExercise, WorkoutView
from .loads import LoadContext
from .rpe_chart import DEFAULT_CHART, RpeChart
from .schemes import (
    FatigueDropProgress,
    expand_scheme,
    fatigue_first_weight,
    replay_fatigue_drop,
)
from .state_machine import ensure_can_generate

logger = logging.getLogger(__name__)

MaxLookup = Mapping[str, Mapping[MaxType, float]]


def load_context(
    program: Program,
    lift_id: str,
    week_number: int,
    day_slug: str,
    maxes: MaxLookup,
    chart: RpeChart = DEFAULT_CHART,
) -> LoadContext:
    """Build the load context for a lift at a calendar position."""
    weekly_entry = program.weekly_lookup.get(week_number) if program.weekly_lookup else None
    return LoadContext(
        lift_id=lift_id,
        maxes=maxes.get(lift_id, {}),
        weekly_entry=weekly_entry,
        daily_lookup=program.daily_lookup,
        day_slug=day_slug,
        chart=chart,
    )


def prescribed_sets(
    program: Program,
    prescription: Prescription,
    week_number: int,
    day_slug: str,
    maxes: MaxLookup,
    chart: RpeChart = DEFAULT_CHART,
) -> list[GeneratedSet]:
    """Expand one prescription at a calendar position."""
    ctx = load_context(program, prescription.lift_id, week_number, day_slug, maxes, chart)
    return expand_scheme(prescription.scheme, prescription.load, ctx)


def assemble_workout(
    program: Program,
    state: EnrollmentState,
    lifts: Mapping[str, Lift],
    maxes: MaxLookup,
    chart: RpeChart = DEFAULT_CHART,
) -> WorkoutView:
    """Compile the workout at the user's current position.

    A pure function of its inputs: the same program, state and maxes
    always give the same workout.

    Args:
        program: The enrolled program graph
        state: The user's enrollment state
        lifts: Lift id -> Lift for every lift the day prescribes
        maxes: Lift id -> {max type -> current value}
        chart: RPE chart used by RPE-based loads

    Raises:
        StateError: if the enrollment is between cycles or quit
        NotFoundError: if the week, day or a lift cannot be resolved
        ValidationError: if a prescription references a missing max
    """
    ensure_can_generate(state)
    if state.program_id != program.id:
        raise NotFoundError(
            f"user {state.user_id} is enrolled in {state.program_id}, not {program.id}"
        )

    day = program.day_for(state.current_week, state.current_day_index)

    exercises = []
    for prescription in day.ordered_prescriptions():
        lift = lifts.get(prescription.lift_id)
        if lift is None:
            raise NotFoundError(f"lift {prescription.lift_id!r} not found")

        sets = prescribed_sets(
            program, prescription, state.current_week, day.slug, maxes, chart
        )
        exercises.append(
            WorkoutExercise(
                prescription_id=prescription.id,
                lift=lift,
                sets=tuple(sets),
                notes=prescription.notes,
                rest_seconds=prescription.rest_seconds,
                autoregulated=isinstance(prescription.scheme, FatigueDrop),
            )
        )

    logger.debug(
        "Assembled %s for %s: %s exercises", day.slug, state.user_id, len(exercises)
    )
    return WorkoutView(
        user_id=state.user_id,
        program_id=program.id,
        cycle_iteration=state.cycle_iteration,
        week_number=state.current_week,
        day_slug=day.slug,
        day_name=day.name,
        exercises=tuple(exercises),
    )


def next_fatigue_set(
    program: Program,
    prescription: Prescription,
    week_number: int,
    day_slug: str,
    maxes: MaxLookup,
    logged_sets: Sequence[LoggedSet],
    chart: RpeChart = DEFAULT_CHART,
) -> FatigueDropProgress:
    """Replay logged RPEs for a FatigueDrop prescription and give the next set."""
    if not isinstance(prescription.scheme, FatigueDrop):
        raise ValidationError(f"prescription {prescription.id} is not autoregulated")

    ctx = load_context(program, prescription.lift_id, week_number, day_slug, maxes, chart)
    first_weight = fatigue_first_weight(prescription.scheme, prescription.load, ctx)
    ordered = sorted(logged_sets, key=lambda s: s.set_number)
    return replay_fatigue_drop(
        prescription.scheme, first_weight, [s.rpe for s in ordered]
    )
