"""Training service: the operations the CLI and web API call.

Reads go straight to the repositories. Every mutation for a user runs
under that user's lock and inside one database transaction, so a
session transition, its failure counters and any LiftMax appends land
together or not at all.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from ..db.engine import get_db_path, transaction
from ..db.repositories import (
    EnrollmentRepository,
    LiftMaxRepository,
    LiftRepository,
    ProgramRepository,
    ProgressionLogRepository,
    ProgressionRepository,
    WorkoutSessionRepository,
)
from ..engine import state_machine
from ..engine.assembler import assemble_workout, next_fatigue_set, prescribed_sets
from ..engine.rpe_chart import DEFAULT_CHART, RpeChart
from ..engine.schemes import FatigueDropProgress
from ..errors import NotFoundError, StateError, ValidationError
from ..models.lift import Lift, LiftMax, MaxType
from ..models.program import Program
from ..models.progression import (
    AggregateResult,
    Progression,
    ProgressionLogEntry,
    TriggerEvent,
    TriggerType,
)
from ..models.scheme import FatigueDrop, GeneratedSet
from ..models.state import (
    EnrollmentState,
    LoggedSet,
    SessionStatus,
    WorkoutSession,
)
from ..models.workout import WorkoutView
from .locks import UserLocks
from .progression_service import ProgressionService
from .workout_cache import WorkoutCache

logger = logging.getLogger(__name__)

MANUAL_CONTEXT_PREFIX = "manual"


@dataclass
class AdvanceResult:
    """New enrollment state plus whatever progressions the move fired."""

    state: EnrollmentState
    completed_week: int | None = None
    completed_cycle: int | None = None
    progressions: AggregateResult = field(default_factory=AggregateResult)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "state": self.state.to_dict(),
            "completed_week": self.completed_week,
            "completed_cycle": self.completed_cycle,
            "progressions": self.progressions.to_dict(),
        }


@dataclass
class SessionResult:
    """A session after a mutation plus the progressions it fired."""

    session: WorkoutSession
    progressions: AggregateResult = field(default_factory=AggregateResult)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "session": self.session.to_dict(),
            "progressions": self.progressions.to_dict(),
        }


class TrainingService:
    """Facade over the engine and the stores."""

    def __init__(
        self,
        db_path: Path | None = None,
        locks: UserLocks | None = None,
        cache: WorkoutCache | None = None,
        chart: RpeChart = DEFAULT_CHART,
    ):
        """Initialize the service.

        Args:
            db_path: SQLite database (default: the configured data dir)
            locks: Per-user lock registry, shared by everything that
                writes for the same users
            cache: Workout cache
            chart: RPE chart for RPE-based loads
        """
        self.db_path = db_path or get_db_path()
        self.locks = locks if locks is not None else UserLocks()
        self.cache = cache if cache is not None else WorkoutCache()
        self.chart = chart

        self.lifts = LiftRepository(self.db_path)
        self.maxes = LiftMaxRepository(self.db_path)
        self.programs = ProgramRepository(self.db_path)
        self.progressions = ProgressionRepository(self.db_path)
        self.enrollments = EnrollmentRepository(self.db_path)
        self.sessions = WorkoutSessionRepository(self.db_path)
        self.logs = ProgressionLogRepository(self.db_path)
        self.progression_service = ProgressionService(self.db_path)

    # Reference data

    async def add_lift(self, lift: Lift) -> None:
        await self.lifts.save(lift)

    async def save_program(self, program: Program) -> None:
        """Store a program and drop workouts built from its old version."""
        program.validate()
        await self.programs.save(program)
        self.cache.invalidate_program(program.id)
        logger.info("Saved program %s", program.id)

    async def save_progression(self, progression: Progression) -> None:
        progression.validate()
        await self.progressions.save(progression)
        self.cache.clear()

    async def set_max(
        self, user_id: str, lift_id: str, max_type: MaxType, value: float
    ) -> LiftMax:
        """Record a new max by hand."""
        if value < 0:
            raise ValidationError("max value must not be negative")
        if await self.lifts.get(lift_id) is None:
            raise NotFoundError(f"lift {lift_id!r} not found")

        async with self.locks.hold(user_id):
            record = await self.maxes.append(user_id, lift_id, max_type, value)
        self.cache.invalidate(user_id)
        logger.info("Set %s %s=%s for %s", lift_id, max_type.value, value, user_id)
        return record

    async def current_maxes(self, user_id: str) -> dict[str, dict[MaxType, float]]:
        return await self.maxes.current_values(user_id)

    # Enrollment

    async def get_enrollment(self, user_id: str) -> EnrollmentState:
        state = await self.enrollments.get(user_id)
        if state is None:
            raise NotFoundError(f"user {user_id} has no enrollment")
        return state

    async def get_program(self, program_id: str, db=None) -> Program:
        program = await self.programs.get(program_id, db=db)
        if program is None:
            raise NotFoundError(f"program {program_id!r} not found")
        return program

    async def enroll(self, user_id: str, program_id: str) -> EnrollmentState:
        """Enroll a user at cycle 1, week 1, day 1.

        Raises:
            NotFoundError: if the program does not exist
            InvalidTransitionError: if the user is already enrolled
        """
        program = await self.get_program(program_id)
        async with self.locks.hold(user_id):
            async with transaction(self.db_path) as db:
                previous = await self.enrollments.get(user_id, db=db)
                state = state_machine.enroll(user_id, program.id, previous)
                await self.enrollments.save(state, db=db)
        self.cache.invalidate(user_id)
        logger.info("Enrolled %s in %s", user_id, program.id)
        return state

    async def unenroll(self, user_id: str) -> EnrollmentState:
        """Quit the program, abandoning any session in progress."""
        async with self.locks.hold(user_id):
            async with transaction(self.db_path) as db:
                state = await self.enrollments.get(user_id, db=db)
                if state is None:
                    raise NotFoundError(f"user {user_id} has no enrollment")
                if state.current_session_id is not None:
                    session = await self.sessions.get(state.current_session_id, db=db)
                    if session is not None and session.status == SessionStatus.IN_PROGRESS:
                        await self._close_session(session, SessionStatus.ABANDONED, db)
                state = state_machine.unenroll(state)
                await self.enrollments.save(state, db=db)
        self.cache.invalidate(user_id)
        logger.info("Unenrolled %s", user_id)
        return state

    # Workouts

    async def compute_workout(self, user_id: str) -> WorkoutView:
        """Compile the user's workout for their current position.

        Raises:
            NotFoundError: if the user is not enrolled or the program is gone
            StateError: if the enrollment is between cycles or quit
            ValidationError: if a prescription needs a max the user lacks
        """
        generation = self.cache.generation(user_id)
        state = await self.get_enrollment(user_id)
        key = (
            state.program_id,
            state.status.value,
            state.cycle_iteration,
            state.current_week,
            state.current_day_index,
        )
        cached = self.cache.get(user_id, key)
        if cached is not None:
            return cached

        view = await self._assemble(state)
        self.cache.put(user_id, key, view, generation)
        return view

    async def _assemble(self, state: EnrollmentState, db=None) -> WorkoutView:
        state_machine.ensure_can_generate(state)
        program = await self.get_program(state.program_id, db=db)
        lift_ids = program.lift_ids()
        lifts = await self.lifts.get_many(lift_ids, db=db)
        maxes = await self.maxes.current_values(state.user_id, lift_ids, db=db)
        return assemble_workout(program, state, lifts, maxes, self.chart)

    # Sessions

    async def get_session(self, session_id: str) -> WorkoutSession:
        session = await self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"session {session_id} not found")
        return session

    async def start_session(self, user_id: str) -> WorkoutSession:
        """Start a session for the current day.

        The workout is compiled first, so a session never starts for a
        day whose loads cannot be resolved.

        Raises:
            StateError: if a session is already in progress
        """
        async with self.locks.hold(user_id):
            async with transaction(self.db_path) as db:
                state = await self.enrollments.get(user_id, db=db)
                if state is None:
                    raise NotFoundError(f"user {user_id} has no enrollment")
                view = await self._assemble(state, db=db)

                session = WorkoutSession(
                    id=str(uuid4()),
                    user_id=user_id,
                    program_id=state.program_id,
                    cycle_iteration=state.cycle_iteration,
                    week_number=state.current_week,
                    day_slug=view.day_slug,
                )
                state_machine.transition("session", None, session.status)
                state = state_machine.begin_session(state, session.id)
                await self.sessions.create(session, db=db)
                await self.enrollments.save(state, db=db)

        self.cache.invalidate(user_id)
        logger.info("Started session %s for %s (%s)", session.id, user_id, session.day_slug)
        return session

    async def _active_session(self, session_id: str, db) -> WorkoutSession:
        session = await self.sessions.get(session_id, db=db)
        if session is None:
            raise NotFoundError(f"session {session_id} not found")
        if session.status != SessionStatus.IN_PROGRESS:
            raise StateError(f"session {session_id} is {session.status.value}")
        return session

    def _check_sets(self, program: Program, session: WorkoutSession, sets: list[LoggedSet]) -> None:
        day = program.get_day(session.day_slug)
        prescriptions = {p.id: p for p in day.prescriptions}
        for logged in sets:
            prescription = prescriptions.get(logged.prescription_id)
            if prescription is None:
                raise ValidationError(
                    f"prescription {logged.prescription_id!r} is not part of {day.slug}"
                )
            if logged.lift_id != prescription.lift_id:
                raise ValidationError(
                    f"prescription {prescription.id} is for {prescription.lift_id}, "
                    f"not {logged.lift_id}"
                )
            if logged.set_number < 1:
                raise ValidationError("set_number must be at least 1")
            if logged.reps_performed < 0 or logged.target_reps < 0:
                raise ValidationError("reps must not be negative")
            if logged.weight < 0:
                raise ValidationError("weight must not be negative")

    async def log_sets(self, session_id: str, sets: list[LoggedSet]) -> SessionResult:
        """Record performed sets and update failure counters.

        Failed sets fire ON_FAILURE progressions immediately.

        Raises:
            StateError: if the session is not in progress
            ValidationError: if a set does not match the session's day
        """
        session = await self.get_session(session_id)
        async with self.locks.hold(session.user_id):
            async with transaction(self.db_path) as db:
                session = await self._active_session(session_id, db)
                program = await self.get_program(session.program_id, db=db)
                self._check_sets(program, session, sets)

                await self.sessions.add_sets(session.id, sets, db=db)
                session.logged_sets.extend(sets)
                results = await self.progression_service.record_set_outcomes(
                    db, session.user_id, program, session.id, sets
                )

        if results.total_applied:
            self.cache.invalidate(session.user_id)
        logger.info("Logged %s sets in session %s", len(sets), session.id)
        return SessionResult(session=session, progressions=results)

    async def log_performance(
        self,
        session_id: str,
        prescription_id: str,
        reps: list[int],
        rpes: list[float | None] | None = None,
    ) -> SessionResult:
        """Log sets for a prescription from the reps performed.

        Weights and targets come from the prescription, continuing after
        any sets already logged for it. Autoregulated prescriptions need
        an RPE for every set.
        """
        if not reps:
            raise ValidationError("at least one set is required")
        rpes = list(rpes) if rpes else [None] * len(reps)
        if len(rpes) != len(reps):
            raise ValidationError("give one RPE per set")

        session = await self.get_session(session_id)
        program = await self.get_program(session.program_id)
        prescription = program.find_prescription(prescription_id)
        maxes = await self.maxes.current_values(session.user_id, [prescription.lift_id])
        history = session.sets_for(prescription_id)

        new_sets: list[LoggedSet] = []
        if isinstance(prescription.scheme, FatigueDrop):
            if any(rpe is None for rpe in rpes):
                raise ValidationError(f"prescription {prescription_id} needs an RPE for every set")
            for performed, rpe in zip(reps, rpes):
                progress = next_fatigue_set(
                    program,
                    prescription,
                    session.week_number,
                    session.day_slug,
                    maxes,
                    history + new_sets,
                    self.chart,
                )
                if progress.finished:
                    raise ValidationError(
                        f"no sets left for {prescription_id}: {progress.termination_reason}"
                    )
                new_sets.append(
                    self._logged(
                        prescription.lift_id, prescription_id, progress.next_set, performed, rpe
                    )
                )
        else:
            planned = prescribed_sets(
                program, prescription, session.week_number, session.day_slug, maxes, self.chart
            )
            start = len(history)
            if start + len(reps) > len(planned):
                raise ValidationError(
                    f"prescription {prescription_id} has {len(planned)} sets, "
                    f"{start} already logged"
                )
            for offset, (performed, rpe) in enumerate(zip(reps, rpes)):
                new_sets.append(
                    self._logged(
                        prescription.lift_id,
                        prescription_id,
                        planned[start + offset],
                        performed,
                        rpe,
                    )
                )

        return await self.log_sets(session_id, new_sets)

    def _logged(
        self,
        lift_id: str,
        prescription_id: str,
        planned: GeneratedSet,
        reps: int,
        rpe: float | None,
    ) -> LoggedSet:
        return LoggedSet(
            prescription_id=prescription_id,
            lift_id=lift_id,
            set_number=planned.set_number,
            weight=planned.weight,
            target_reps=planned.target_reps,
            reps_performed=reps,
            is_amrap=planned.is_amrap,
            rpe=rpe,
        )

    async def _close_session(self, session: WorkoutSession, status: SessionStatus, db) -> None:
        session.status = state_machine.transition("session", session.status, status)
        session.finished_at = datetime.now()
        await self.sessions.update(session, db=db)

    async def finish_session(self, session_id: str) -> SessionResult:
        """Finish a session and fire its AFTER_SESSION progressions.

        Stage progressions are judged on the session's volume here. The
        enrollment does not move; call :meth:`advance` for that.
        """
        session = await self.get_session(session_id)
        async with self.locks.hold(session.user_id):
            async with transaction(self.db_path) as db:
                session = await self._active_session(session_id, db)
                program = await self.get_program(session.program_id, db=db)
                await self._close_session(session, SessionStatus.FINISHED, db)

                state = await self.enrollments.get(session.user_id, db=db)
                if state is not None:
                    await self.enrollments.save(
                        state_machine.end_session(state, session.id), db=db
                    )

                results = await self.progression_service.record_stage_outcomes(
                    db, session.user_id, program, session
                )
                lifts = session.lifts_performed()
                amrap_reps = {}
                for lift_id in lifts:
                    reps = session.last_amrap_reps(lift_id)
                    if reps is not None:
                        amrap_reps[lift_id] = reps
                event = TriggerEvent(
                    trigger_type=TriggerType.AFTER_SESSION,
                    context_key=session.id,
                    lifts_performed=tuple(lifts),
                    amrap_reps=amrap_reps,
                    total_reps={lift_id: session.total_reps(lift_id) for lift_id in lifts},
                )
                results.extend(
                    await self.progression_service.apply_event(
                        db, session.user_id, program, event
                    )
                )

        self.cache.invalidate(session.user_id)
        logger.info("Finished session %s for %s", session.id, session.user_id)
        return SessionResult(session=session, progressions=results)

    async def abandon_session(self, session_id: str) -> WorkoutSession:
        """Abandon a session. No progressions fire."""
        session = await self.get_session(session_id)
        async with self.locks.hold(session.user_id):
            async with transaction(self.db_path) as db:
                session = await self._active_session(session_id, db)
                await self._close_session(session, SessionStatus.ABANDONED, db)
                state = await self.enrollments.get(session.user_id, db=db)
                if state is not None:
                    await self.enrollments.save(
                        state_machine.end_session(state, session.id), db=db
                    )

        self.cache.invalidate(session.user_id)
        logger.info("Abandoned session %s for %s", session.id, session.user_id)
        return session

    async def next_fatigue_set(self, session_id: str, prescription_id: str) -> FatigueDropProgress:
        """Next set of an autoregulated prescription given the RPEs logged so far."""
        session = await self.get_session(session_id)
        program = await self.get_program(session.program_id)
        prescription = program.find_prescription(prescription_id)
        maxes = await self.maxes.current_values(session.user_id, [prescription.lift_id])
        return next_fatigue_set(
            program,
            prescription,
            session.week_number,
            session.day_slug,
            maxes,
            session.sets_for(prescription_id),
            self.chart,
        )

    # Calendar

    async def advance(self, user_id: str) -> AdvanceResult:
        """Move to the next day, firing AFTER_WEEK / AFTER_CYCLE progressions.

        Raises:
            StateError: while a session is active or between cycles
        """
        async with self.locks.hold(user_id):
            async with transaction(self.db_path) as db:
                state = await self.enrollments.get(user_id, db=db)
                if state is None:
                    raise NotFoundError(f"user {user_id} has no enrollment")
                program = await self.get_program(state.program_id, db=db)

                outcome = state_machine.advance(state, program)
                result = AdvanceResult(
                    state=outcome.state,
                    completed_week=outcome.completed_week,
                    completed_cycle=outcome.completed_cycle,
                )
                if outcome.completed_week is not None:
                    event = TriggerEvent(
                        trigger_type=TriggerType.AFTER_WEEK,
                        context_key=f"c{state.cycle_iteration}w{outcome.completed_week}",
                    )
                    result.progressions.extend(
                        await self.progression_service.apply_event(db, user_id, program, event)
                    )
                if outcome.completed_cycle is not None:
                    event = TriggerEvent(
                        trigger_type=TriggerType.AFTER_CYCLE,
                        context_key=f"c{outcome.completed_cycle}",
                    )
                    result.progressions.extend(
                        await self.progression_service.apply_event(db, user_id, program, event)
                    )
                await self.enrollments.save(outcome.state, db=db)

        self.cache.invalidate(user_id)
        logger.info("Advanced %s to %s", user_id, outcome.state.get_position_display())
        return result

    async def next_cycle(self, user_id: str) -> EnrollmentState:
        """Start the next cycle once the current one is complete."""
        async with self.locks.hold(user_id):
            async with transaction(self.db_path) as db:
                state = await self.enrollments.get(user_id, db=db)
                if state is None:
                    raise NotFoundError(f"user {user_id} has no enrollment")
                state = state_machine.next_cycle(state)
                await self.enrollments.save(state, db=db)

        self.cache.invalidate(user_id)
        logger.info("Started cycle %s for %s", state.cycle_iteration, user_id)
        return state

    # Progressions

    def _manual_event(
        self, progression: Progression, state: EnrollmentState, lift_ids: list[str], force: bool
    ) -> TriggerEvent:
        trigger_type = progression.trigger_type
        if trigger_type == TriggerType.AFTER_WEEK:
            context_key = f"c{state.cycle_iteration}w{state.current_week}"
        elif trigger_type == TriggerType.AFTER_CYCLE:
            context_key = f"c{state.cycle_iteration}"
        else:
            # Each manual call is its own occasion
            context_key = f"{MANUAL_CONTEXT_PREFIX}:{uuid4().hex}"
        return TriggerEvent(
            trigger_type=trigger_type,
            context_key=context_key,
            lifts_performed=tuple(lift_ids),
            manual=True,
            force=force,
        )

    async def trigger_progression(
        self,
        user_id: str,
        progression_id: str,
        lift_id: str | None = None,
        force: bool = False,
    ) -> AggregateResult:
        """Apply a progression by hand.

        With ``lift_id`` only that lift progresses; otherwise every lift
        the enrolled program links to the progression. ``force`` bypasses
        the already-applied check.

        Raises:
            NotFoundError: if the progression or an applicable link is missing
        """
        async with self.locks.hold(user_id):
            async with transaction(self.db_path) as db:
                state = await self.enrollments.get(user_id, db=db)
                if state is None or not state.is_enrolled:
                    raise NotFoundError(f"user {user_id} is not enrolled")
                program = await self.get_program(state.program_id, db=db)
                progression = await self.progressions.get(progression_id, db=db)
                if progression is None:
                    raise NotFoundError(f"progression {progression_id!r} not found")

                if lift_id is not None:
                    lift_ids = [lift_id]
                else:
                    lift_ids = program.lift_ids()
                lift_ids = [
                    lid
                    for lid in lift_ids
                    if any(link.progression_id == progression_id for link in program.links_for(lid))
                ]
                if not lift_ids:
                    target = f"lift {lift_id}" if lift_id else "any lift"
                    raise NotFoundError(
                        f"progression {progression_id} is not linked to {target} "
                        f"in program {program.id}"
                    )

                event = self._manual_event(progression, state, lift_ids, force)
                results = await self.progression_service.apply_event(
                    db, user_id, program, event, lift_ids=lift_ids, progression_id=progression_id
                )

        if results.total_applied:
            self.cache.invalidate(user_id)
        return results

    async def history(self, user_id: str, lift_id: str | None = None, limit: int = 50) -> list[ProgressionLogEntry]:
        return await self.logs.list_for_user(user_id, lift_id=lift_id, limit=limit)
