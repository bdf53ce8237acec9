"""Tests for workout assembly and the enrollment state machine."""

from dataclasses import replace

import pytest

from liftplan.engine import state_machine
from liftplan.engine.assembler import assemble_workout, next_fatigue_set
from liftplan.errors import InvalidTransitionError, NotFoundError, StateError, ValidationError
from liftplan.models.lift import MaxType
from liftplan.models.load import RpeTarget
from liftplan.models.program import Prescription
from liftplan.models.scheme import FatigueDrop
from liftplan.models.state import (
    CycleStatus,
    EnrollmentState,
    EnrollmentStatus,
    LoggedSet,
    SessionStatus,
    WeekStatus,
)

MAXES = {
    "squat": {MaxType.TRAINING_MAX: 100.0, MaxType.ONE_RM: 120.0},
    "bench": {MaxType.TRAINING_MAX: 80.0, MaxType.ONE_RM: 95.0},
}


@pytest.fixture
def lifts(sample_lifts):
    return {lift.id: lift for lift in sample_lifts}


@pytest.fixture
def state():
    return EnrollmentState(user_id="alice", program_id="ab-split")


class TestAssembler:
    """Tests for compiling a workout."""

    def test_first_day(self, sample_program, state, lifts):
        """Test the workout at cycle 1, week 1, day 1."""
        view = assemble_workout(sample_program, state, lifts, MAXES)

        assert view.day_slug == "a"
        assert view.week_number == 1
        assert [e.prescription_id for e in view.exercises] == ["squat-main", "bench-main"]

        squat = view.exercises[0]
        assert [s.weight for s in squat.sets] == [100.0, 100.0, 100.0]
        assert squat.sets[-1].is_amrap
        assert view.exercises[1].sets[0].weight == 80.0

    def test_second_day(self, sample_program, state, lifts):
        """Test that the day index selects the week slot."""
        view = assemble_workout(
            sample_program, replace(state, current_day_index=1), lifts, MAXES
        )

        assert view.day_slug == "b"
        assert [s.weight for s in view.exercises[0].sets] == [80.0, 80.0, 80.0]

    def test_same_inputs_same_workout(self, sample_program, state, lifts):
        """Test that assembly is deterministic."""
        first = assemble_workout(sample_program, state, lifts, MAXES)
        second = assemble_workout(sample_program, state, lifts, MAXES)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_between_cycles_rejected(self, sample_program, state, lifts):
        """Test that no workout exists between cycles."""
        waiting = replace(state, status=EnrollmentStatus.BETWEEN_CYCLES, cycle_iteration=2)
        with pytest.raises(StateError):
            assemble_workout(sample_program, waiting, lifts, MAXES)

    def test_missing_max(self, sample_program, state, lifts):
        """Test that a missing training max fails assembly."""
        with pytest.raises(ValidationError):
            assemble_workout(sample_program, state, lifts, {"squat": MAXES["squat"]})

    def test_missing_lift(self, sample_program, state, lifts):
        """Test that an unknown lift fails assembly."""
        with pytest.raises(NotFoundError):
            assemble_workout(sample_program, state, {"squat": lifts["squat"]}, MAXES)

    def test_wrong_program(self, sample_program, state, lifts):
        """Test that the state must belong to the program."""
        with pytest.raises(NotFoundError):
            assemble_workout(
                sample_program, replace(state, program_id="other"), lifts, MAXES
            )

    def test_autoregulated_flag(self, sample_program, state, lifts):
        """Test that FatigueDrop prescriptions are flagged and give one set."""
        prescription = Prescription(
            id="bench-rpe",
            lift_id="bench",
            load=RpeTarget(target_reps=5, target_rpe=8.0),
            scheme=FatigueDrop(target_reps=5, start_rpe=8.0, stop_rpe=9.5, drop_percent=0.05),
            order=2,
        )
        sample_program.days[0].prescriptions.append(prescription)

        view = assemble_workout(sample_program, state, lifts, MAXES)
        exercise = view.exercises[-1]

        assert exercise.autoregulated
        assert len(exercise.sets) == 1
        # 95 * 0.77 = 73.15 -> 75
        assert exercise.sets[0].weight == 75.0

        logged = [
            LoggedSet(
                prescription_id="bench-rpe",
                lift_id="bench",
                set_number=1,
                weight=75.0,
                target_reps=5,
                reps_performed=5,
                rpe=9.0,
            )
        ]
        progress = next_fatigue_set(sample_program, prescription, 1, "a", MAXES, logged)
        # 75 * 0.95 = 71.25 -> 70
        assert progress.next_set.weight == 70.0


class TestStateMachine:
    """Tests for enrollment and session transitions."""

    def test_enroll(self):
        """Test a fresh enrollment."""
        state = state_machine.enroll("alice", "ab-split")

        assert state.status == EnrollmentStatus.ACTIVE
        assert (state.cycle_iteration, state.current_week, state.current_day_index) == (1, 1, 0)
        assert state.cycle_status == CycleStatus.PENDING

    def test_enroll_twice_rejected(self, state):
        """Test that an active enrollment cannot be enrolled again."""
        with pytest.raises(InvalidTransitionError):
            state_machine.enroll("alice", "ab-split", state)

    def test_reenroll_after_quit(self, state):
        """Test that quitting allows a new enrollment."""
        quit_state = state_machine.unenroll(state)
        assert quit_state.status == EnrollmentStatus.QUIT

        again = state_machine.enroll("alice", "ab-split", quit_state)
        assert again.status == EnrollmentStatus.ACTIVE

    def test_begin_session(self, state):
        """Test that starting a session starts the cycle and week."""
        started = state_machine.begin_session(state, "s1")

        assert started.current_session_id == "s1"
        assert started.cycle_status == CycleStatus.IN_PROGRESS
        assert started.week_status == WeekStatus.IN_PROGRESS

        with pytest.raises(StateError):
            state_machine.begin_session(started, "s2")

    def test_end_session(self, state):
        """Test detaching a session."""
        started = state_machine.begin_session(state, "s1")
        assert state_machine.end_session(started, "s1").current_session_id is None
        assert state_machine.end_session(started, "other").current_session_id == "s1"

    def test_session_transitions(self):
        """Test the session lifecycle table."""
        assert state_machine.can_transition(
            "session", SessionStatus.IN_PROGRESS, SessionStatus.FINISHED
        )
        with pytest.raises(InvalidTransitionError) as exc_info:
            state_machine.transition("session", SessionStatus.FINISHED, SessionStatus.IN_PROGRESS)
        assert exc_info.value.machine == "session"
        assert exc_info.value.from_state == "finished"

    def test_advance_within_week(self, sample_program, state):
        """Test moving to the next day."""
        outcome = state_machine.advance(state, sample_program)

        assert outcome.state.current_day_index == 1
        assert outcome.completed_week is None
        assert outcome.events == ()

    def test_advance_completes_week(self, sample_program, state):
        """Test rolling into the next week."""
        outcome = state_machine.advance(replace(state, current_day_index=1), sample_program)

        assert outcome.completed_week == 1
        assert outcome.completed_cycle is None
        assert outcome.state.current_week == 2
        assert outcome.state.current_day_index == 0
        assert outcome.state.week_status == WeekStatus.PENDING

    def test_advance_completes_cycle(self, sample_program, state):
        """Test the wrap at the end of the last week."""
        last_day = replace(state, current_week=2, current_day_index=1)
        outcome = state_machine.advance(last_day, sample_program)

        assert outcome.completed_week == 2
        assert outcome.completed_cycle == 1
        assert [e.value for e in outcome.events] == ["after_week", "after_cycle"]

        wrapped = outcome.state
        assert wrapped.status == EnrollmentStatus.BETWEEN_CYCLES
        assert wrapped.cycle_iteration == 2
        assert (wrapped.current_week, wrapped.current_day_index) == (1, 0)
        assert wrapped.cycle_status == CycleStatus.COMPLETED

    def test_advance_rejected_between_cycles(self, sample_program, state):
        """Test that advancing waits for the next cycle."""
        waiting = replace(state, status=EnrollmentStatus.BETWEEN_CYCLES)
        with pytest.raises(StateError):
            state_machine.advance(waiting, sample_program)

    def test_advance_rejected_during_session(self, sample_program, state):
        """Test that a session in progress blocks advancing."""
        started = state_machine.begin_session(state, "s1")
        with pytest.raises(StateError):
            state_machine.advance(started, sample_program)

    def test_next_cycle(self, sample_program, state):
        """Test resuming after a completed cycle."""
        last_day = replace(state, current_week=2, current_day_index=1)
        waiting = state_machine.advance(last_day, sample_program).state

        resumed = state_machine.next_cycle(waiting)
        assert resumed.status == EnrollmentStatus.ACTIVE
        assert resumed.cycle_status == CycleStatus.PENDING
        assert resumed.cycle_iteration == 2

        with pytest.raises(StateError):
            state_machine.next_cycle(resumed)
