"""Enrollment and session state machine.

Each status field moves only along the edges in its transition table.
The functions here are pure: they take a state and return a new one.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from ..errors import InvalidTransitionError, StateError
from ..models.program import Program
from ..models.progression import TriggerType
from ..models.state import (
    CycleStatus,
    EnrollmentState,
    EnrollmentStatus,
    SessionStatus,
    WeekStatus,
)

logger = logging.getLogger(__name__)

ENROLLMENT_TRANSITIONS = frozenset(
    {
        (None, EnrollmentStatus.ACTIVE),
        (EnrollmentStatus.ACTIVE, EnrollmentStatus.BETWEEN_CYCLES),
        (EnrollmentStatus.ACTIVE, EnrollmentStatus.QUIT),
        (EnrollmentStatus.BETWEEN_CYCLES, EnrollmentStatus.ACTIVE),
        (EnrollmentStatus.BETWEEN_CYCLES, EnrollmentStatus.QUIT),
        (EnrollmentStatus.QUIT, EnrollmentStatus.ACTIVE),
    }
)

CYCLE_TRANSITIONS = frozenset(
    {
        (CycleStatus.PENDING, CycleStatus.IN_PROGRESS),
        (CycleStatus.IN_PROGRESS, CycleStatus.COMPLETED),
        (CycleStatus.COMPLETED, CycleStatus.PENDING),
    }
)

WEEK_TRANSITIONS = frozenset(
    {
        (WeekStatus.PENDING, WeekStatus.IN_PROGRESS),
        (WeekStatus.IN_PROGRESS, WeekStatus.COMPLETED),
        (WeekStatus.COMPLETED, WeekStatus.PENDING),
    }
)

SESSION_TRANSITIONS = frozenset(
    {
        (None, SessionStatus.IN_PROGRESS),
        (SessionStatus.IN_PROGRESS, SessionStatus.FINISHED),
        (SessionStatus.IN_PROGRESS, SessionStatus.ABANDONED),
    }
)

_TABLES = {
    "enrollment": ENROLLMENT_TRANSITIONS,
    "cycle": CYCLE_TRANSITIONS,
    "week": WEEK_TRANSITIONS,
    "session": SESSION_TRANSITIONS,
}


def can_transition(machine: str, current: Enum | None, target: Enum) -> bool:
    return (current, target) in _TABLES[machine]


def transition(machine: str, current: Enum | None, target: Enum) -> Enum:
    """Validate one edge and return the target status.

    Raises:
        InvalidTransitionError: if the table has no such edge
    """
    if not can_transition(machine, current, target):
        raise InvalidTransitionError(
            machine, current.value if current is not None else None, target.value
        )
    return target


def ensure_can_generate(state: EnrollmentState) -> None:
    """Workouts exist only for active enrollments."""
    if state.status == EnrollmentStatus.BETWEEN_CYCLES:
        raise StateError(
            f"cycle {state.cycle_iteration - 1} is complete; start the next cycle first"
        )
    if state.status == EnrollmentStatus.QUIT:
        raise StateError(f"user {state.user_id} is not enrolled")


def enroll(
    user_id: str, program_id: str, previous: EnrollmentState | None = None
) -> EnrollmentState:
    """Start a program at cycle 1, week 1, first day."""
    transition("enrollment", previous.status if previous else None, EnrollmentStatus.ACTIVE)
    return EnrollmentState(user_id=user_id, program_id=program_id)


def unenroll(state: EnrollmentState) -> EnrollmentState:
    """Leave the program. Any active session is dropped by the caller."""
    status = transition("enrollment", state.status, EnrollmentStatus.QUIT)
    return replace(state, status=status, current_session_id=None, updated_at=datetime.now())


def _mark_started(state: EnrollmentState) -> EnrollmentState:
    cycle_status = state.cycle_status
    if cycle_status == CycleStatus.PENDING:
        cycle_status = transition("cycle", cycle_status, CycleStatus.IN_PROGRESS)
    week_status = state.week_status
    if week_status == WeekStatus.PENDING:
        week_status = transition("week", week_status, WeekStatus.IN_PROGRESS)
    return replace(state, cycle_status=cycle_status, week_status=week_status)


def begin_session(state: EnrollmentState, session_id: str) -> EnrollmentState:
    """Attach a new session to the enrollment.

    Raises:
        StateError: if a session is already in progress or the
            enrollment cannot generate workouts
    """
    ensure_can_generate(state)
    if state.current_session_id is not None:
        raise StateError(f"session {state.current_session_id} is already in progress")
    started = _mark_started(state)
    return replace(started, current_session_id=session_id, updated_at=datetime.now())


def end_session(state: EnrollmentState, session_id: str) -> EnrollmentState:
    """Detach a finished or abandoned session."""
    if state.current_session_id != session_id:
        return state
    return replace(state, current_session_id=None, updated_at=datetime.now())


@dataclass(frozen=True)
class AdvanceOutcome:
    """New state plus the structural events the move crossed."""

    state: EnrollmentState
    completed_week: int | None = None
    completed_cycle: int | None = None

    @property
    def events(self) -> tuple[TriggerType, ...]:
        events = []
        if self.completed_week is not None:
            events.append(TriggerType.AFTER_WEEK)
        if self.completed_cycle is not None:
            events.append(TriggerType.AFTER_CYCLE)
        return tuple(events)


def advance(state: EnrollmentState, program: Program) -> AdvanceOutcome:
    """Move to the next scheduled day.

    Rolling past the last day of a week completes the week. Rolling
    past the last week completes the cycle: the week resets to 1,
    ``cycle_iteration`` increases by one and the enrollment waits in
    BETWEEN_CYCLES until :func:`next_cycle`.

    Raises:
        StateError: if a session is active or the enrollment is not active
        NotFoundError: if the current week is not in the program
    """
    if state.status == EnrollmentStatus.BETWEEN_CYCLES:
        raise StateError("cycle complete; start the next cycle before advancing")
    if state.status != EnrollmentStatus.ACTIVE:
        raise StateError(f"user {state.user_id} is not enrolled")
    if state.current_session_id is not None:
        raise StateError(
            f"finish or abandon session {state.current_session_id} before advancing"
        )

    days_in_week = program.days_in_week(state.current_week)
    state = _mark_started(state)
    now = datetime.now()

    next_day = state.current_day_index + 1
    if next_day < days_in_week:
        return AdvanceOutcome(replace(state, current_day_index=next_day, updated_at=now))

    completed_week = state.current_week
    week_status = transition("week", state.week_status, WeekStatus.COMPLETED)
    week_status = transition("week", week_status, WeekStatus.PENDING)

    if completed_week + 1 <= program.cycle.length_weeks:
        logger.debug("Week %s complete for %s", completed_week, state.user_id)
        return AdvanceOutcome(
            replace(
                state,
                current_week=completed_week + 1,
                current_day_index=0,
                week_status=week_status,
                updated_at=now,
            ),
            completed_week=completed_week,
        )

    completed_cycle = state.cycle_iteration
    logger.debug("Cycle %s complete for %s", completed_cycle, state.user_id)
    return AdvanceOutcome(
        replace(
            state,
            current_week=1,
            current_day_index=0,
            cycle_iteration=completed_cycle + 1,
            week_status=week_status,
            cycle_status=transition("cycle", state.cycle_status, CycleStatus.COMPLETED),
            status=transition("enrollment", state.status, EnrollmentStatus.BETWEEN_CYCLES),
            updated_at=now,
        ),
        completed_week=completed_week,
        completed_cycle=completed_cycle,
    )


def next_cycle(state: EnrollmentState) -> EnrollmentState:
    """Leave BETWEEN_CYCLES and resume workout generation.

    Raises:
        StateError: unless the enrollment is between cycles
    """
    if state.status != EnrollmentStatus.BETWEEN_CYCLES:
        raise StateError("next cycle can only start once the current cycle is complete")
    return replace(
        state,
        status=transition("enrollment", state.status, EnrollmentStatus.ACTIVE),
        cycle_status=transition("cycle", state.cycle_status, CycleStatus.PENDING),
        week_status=WeekStatus.PENDING,
        updated_at=datetime.now(),
    )
