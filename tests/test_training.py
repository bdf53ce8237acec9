"""Tests for the training service."""

import asyncio

import pytest

from liftplan.errors import NotFoundError, StateError, ValidationError
from liftplan.models.lift import MaxType
from liftplan.models.program import ProgressionLink
from liftplan.models.progression import LinearProgression, Progression, TriggerType
from liftplan.models.state import EnrollmentStatus, LoggedSet, SessionStatus
from liftplan.services import UserLocks, WorkoutCache
from liftplan.services.progression_service import IDEMPOTENT_SKIP_REASON

TM = MaxType.TRAINING_MAX


async def training_max(service, lift_id: str) -> float:
    return (await service.current_maxes("alice"))[lift_id][TM]


async def link_manual_bump(service) -> None:
    """Link a hand-triggered +5 squat progression into the program."""
    await service.save_progression(
        Progression(
            id="squat-bump",
            name="Squat bump",
            trigger_type=TriggerType.MANUAL,
            rule=LinearProgression(increment=5.0),
        )
    )
    program = await service.get_program("ab-split")
    program.progression_links.append(ProgressionLink("squat-bump", lift_id="squat"))
    await service.save_program(program)


@pytest.mark.asyncio
class TestWorkouts:
    """Tests for workout generation through the service."""

    async def test_compute_workout(self, enrolled):
        """Test today's workout for a fresh enrollment."""
        view = await enrolled.compute_workout("alice")

        assert view.day_slug == "a"
        assert [s.weight for s in view.exercises[0].sets] == [100.0, 100.0, 100.0]
        assert [s.weight for s in view.exercises[1].sets] == [80.0, 80.0, 80.0]

    async def test_workout_is_cached(self, enrolled):
        """Test that repeated reads reuse the compiled workout."""
        first = await enrolled.compute_workout("alice")
        second = await enrolled.compute_workout("alice")
        assert first is second

    async def test_new_max_invalidates_cache(self, enrolled):
        """Test that recording a max rebuilds the workout."""
        await enrolled.compute_workout("alice")
        await enrolled.set_max("alice", "squat", TM, 120)

        view = await enrolled.compute_workout("alice")
        assert view.exercises[0].sets[0].weight == 120.0

    async def test_max_recorded_mid_compile(self, enrolled, monkeypatch):
        """Test that a workout compiled across a new max is not kept."""
        assemble = enrolled._assemble

        async def assemble_then_write(state, db=None):
            view = await assemble(state, db=db)
            await enrolled.set_max("alice", "squat", TM, 200)
            return view

        monkeypatch.setattr(enrolled, "_assemble", assemble_then_write)
        stale = await enrolled.compute_workout("alice")
        assert stale.exercises[0].sets[0].weight == 100.0

        monkeypatch.undo()
        view = await enrolled.compute_workout("alice")
        assert view.exercises[0].sets[0].weight == 200.0

    async def test_not_enrolled(self, service):
        """Test that a user without an enrollment has no workout."""
        with pytest.raises(NotFoundError):
            await service.compute_workout("alice")

    async def test_set_max_validation(self, service):
        """Test max recording errors."""
        with pytest.raises(NotFoundError):
            await service.set_max("alice", "curl", TM, 20)
        with pytest.raises(ValidationError):
            await service.set_max("alice", "squat", TM, -1)


@pytest.mark.asyncio
class TestSessions:
    """Tests for session logging and progressions."""

    async def test_one_session_at_a_time(self, enrolled):
        """Test that a second session cannot start."""
        session = await enrolled.start_session("alice")

        state = await enrolled.get_enrollment("alice")
        assert state.current_session_id == session.id
        with pytest.raises(StateError):
            await enrolled.start_session("alice")

    async def test_concurrent_starts(self, enrolled):
        """Test that concurrent starts for one user serialize."""
        results = await asyncio.gather(
            enrolled.start_session("alice"),
            enrolled.start_session("alice"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], StateError)

    async def test_greyskull_after_session(self, enrolled):
        """Test that a big AMRAP set doubles the increment."""
        session = await enrolled.start_session("alice")
        await enrolled.log_performance(session.id, "squat-main", [5, 5, 12])

        result = await enrolled.finish_session(session.id)

        assert result.session.status == SessionStatus.FINISHED
        assert result.progressions.total_applied == 1
        applied = result.progressions.results[0]
        assert applied.progression_id == "greyskull-main"
        assert applied.result.new_value == 105.0
        assert await training_max(enrolled, "squat") == 105.0

        history = await enrolled.history("alice")
        assert [(e.progression_id, e.context_key) for e in history] == [
            ("greyskull-main", session.id)
        ]

    async def test_finish_does_not_advance(self, enrolled):
        """Test that the calendar only moves on advance."""
        session = await enrolled.start_session("alice")
        await enrolled.finish_session(session.id)

        state = await enrolled.get_enrollment("alice")
        assert state.current_day_index == 0
        assert state.current_session_id is None

    async def test_deload_after_consecutive_failures(self, enrolled):
        """Test the deload on the second failed set in a row."""
        session = await enrolled.start_session("alice")
        result = await enrolled.log_performance(session.id, "bench-main", [5, 4, 4])

        assert result.progressions.total_skipped == 1
        assert result.progressions.total_applied == 1
        assert await training_max(enrolled, "bench") == 72.0

        counters = await enrolled.progression_service.counters.list_for_user("alice")
        assert [(c.lift_id, c.consecutive_failures) for c in counters] == [("bench", 0)]

        # 72 rounds to the 2.5 increment
        view = await enrolled.compute_workout("alice")
        assert view.exercises[1].sets[0].weight == 72.5

    async def test_success_resets_failures(self, enrolled):
        """Test that a successful set breaks the failure streak."""
        session = await enrolled.start_session("alice")
        result = await enrolled.log_performance(session.id, "bench-main", [4, 5, 4])

        assert result.progressions.total_applied == 0
        assert await training_max(enrolled, "bench") == 80.0

    async def test_log_performance_continues_numbering(self, enrolled):
        """Test logging a prescription in several calls."""
        session = await enrolled.start_session("alice")
        await enrolled.log_performance(session.id, "bench-main", [5])
        result = await enrolled.log_performance(session.id, "bench-main", [5, 5])

        assert [s.set_number for s in result.session.sets_for("bench-main")] == [1, 2, 3]
        with pytest.raises(ValidationError):
            await enrolled.log_performance(session.id, "bench-main", [5])

    async def test_sets_must_match_the_day(self, enrolled):
        """Test that logged sets are checked against the session's day."""
        session = await enrolled.start_session("alice")
        wrong_day = LoggedSet(
            prescription_id="squat-light",
            lift_id="squat",
            set_number=1,
            weight=80,
            target_reps=5,
            reps_performed=5,
        )
        with pytest.raises(ValidationError):
            await enrolled.log_sets(session.id, [wrong_day])

        wrong_lift = LoggedSet(
            prescription_id="squat-main",
            lift_id="bench",
            set_number=1,
            weight=80,
            target_reps=5,
            reps_performed=5,
        )
        with pytest.raises(ValidationError):
            await enrolled.log_sets(session.id, [wrong_lift])

    async def test_no_logging_after_finish(self, enrolled):
        """Test that finished sessions are closed."""
        session = await enrolled.start_session("alice")
        await enrolled.finish_session(session.id)

        with pytest.raises(StateError):
            await enrolled.log_performance(session.id, "bench-main", [5])
        with pytest.raises(StateError):
            await enrolled.finish_session(session.id)

    async def test_abandon(self, enrolled):
        """Test that abandoning fires nothing and frees the enrollment."""
        session = await enrolled.start_session("alice")
        await enrolled.log_performance(session.id, "squat-main", [5, 5, 12])

        abandoned = await enrolled.abandon_session(session.id)

        assert abandoned.status == SessionStatus.ABANDONED
        assert await training_max(enrolled, "squat") == 100.0
        assert (await enrolled.get_enrollment("alice")).current_session_id is None
        await enrolled.start_session("alice")

    async def test_unenroll_abandons_session(self, enrolled):
        """Test that quitting closes the open session."""
        session = await enrolled.start_session("alice")
        state = await enrolled.unenroll("alice")

        assert state.status == EnrollmentStatus.QUIT
        assert (await enrolled.get_session(session.id)).status == SessionStatus.ABANDONED
        with pytest.raises(StateError):
            await enrolled.compute_workout("alice")


@pytest.mark.asyncio
class TestCalendar:
    """Tests for advancing through weeks and cycles."""

    async def test_advance_blocked_by_session(self, enrolled):
        """Test that advancing needs the session closed first."""
        await enrolled.start_session("alice")
        with pytest.raises(StateError):
            await enrolled.advance("alice")

    async def test_full_cycle(self, enrolled):
        """Test a whole cycle and the end-of-cycle progression."""
        first = await enrolled.advance("alice")
        assert first.state.current_day_index == 1

        second = await enrolled.advance("alice")
        assert second.completed_week == 1
        assert second.progressions.results == []

        await enrolled.advance("alice")
        last = await enrolled.advance("alice")

        assert last.completed_cycle == 1
        assert last.state.status == EnrollmentStatus.BETWEEN_CYCLES
        assert last.progressions.total_applied == 2
        assert await training_max(enrolled, "squat") == 105.0
        assert await training_max(enrolled, "bench") == 85.0

        with pytest.raises(StateError):
            await enrolled.compute_workout("alice")
        with pytest.raises(StateError):
            await enrolled.start_session("alice")
        with pytest.raises(StateError):
            await enrolled.advance("alice")

        state = await enrolled.next_cycle("alice")
        assert state.status == EnrollmentStatus.ACTIVE
        view = await enrolled.compute_workout("alice")
        assert view.cycle_iteration == 2
        assert view.exercises[0].sets[0].weight == 105.0


@pytest.mark.asyncio
class TestManualTrigger:
    """Tests for applying progressions by hand."""

    async def test_idempotent_and_force(self, enrolled):
        """Test that a repeat is skipped unless forced."""
        first = await enrolled.trigger_progression("alice", "cycle-bump", lift_id="squat")
        assert first.total_applied == 1
        assert await training_max(enrolled, "squat") == 105.0

        repeat = await enrolled.trigger_progression("alice", "cycle-bump", lift_id="squat")
        assert repeat.total_applied == 0
        assert repeat.results[0].skip_reason == IDEMPOTENT_SKIP_REASON

        forced = await enrolled.trigger_progression(
            "alice", "cycle-bump", lift_id="squat", force=True
        )
        assert forced.total_applied == 1
        assert await training_max(enrolled, "squat") == 110.0

    async def test_manual_progression_repeats(self, enrolled):
        """Test that every manual trigger of a manual rule applies."""
        await link_manual_bump(enrolled)

        first = await enrolled.trigger_progression("alice", "squat-bump", lift_id="squat")
        for _ in range(4):
            await enrolled.advance("alice")
        await enrolled.next_cycle("alice")
        second = await enrolled.trigger_progression("alice", "squat-bump", lift_id="squat")
        third = await enrolled.trigger_progression("alice", "squat-bump", lift_id="squat")

        assert [r.total_applied for r in (first, second, third)] == [1, 1, 1]
        # Three manual bumps plus the end-of-cycle bump
        assert await training_max(enrolled, "squat") == 120.0

        history = await enrolled.history("alice", lift_id="squat")
        keys = [e.context_key for e in history if e.progression_id == "squat-bump"]
        assert len(keys) == 3
        assert len(keys) == len(set(keys))
        assert all(key.startswith("manual:") for key in keys)

    async def test_manual_counts_toward_cycle_event(self, enrolled):
        """Test that the cycle event skips a lift already bumped this cycle."""
        await enrolled.trigger_progression("alice", "cycle-bump", lift_id="squat")
        for _ in range(3):
            await enrolled.advance("alice")
        last = await enrolled.advance("alice")

        assert last.progressions.total_applied == 1
        assert last.progressions.total_skipped == 1
        assert await training_max(enrolled, "squat") == 105.0
        assert await training_max(enrolled, "bench") == 85.0

    async def test_every_linked_lift(self, enrolled):
        """Test that without a lift every linked lift progresses."""
        results = await enrolled.trigger_progression("alice", "cycle-bump")
        assert sorted(r.lift_id for r in results.results) == ["bench", "squat"]

    async def test_unlinked(self, enrolled):
        """Test that a progression must be linked to the lift."""
        with pytest.raises(NotFoundError):
            await enrolled.trigger_progression("alice", "greyskull-main", lift_id="bench")
        with pytest.raises(NotFoundError):
            await enrolled.trigger_progression("alice", "nonexistent")

    async def test_missing_max_is_skipped(self, enrolled):
        """Test that a lift without the max type is skipped, not an error."""
        await enrolled.set_max("bob", "squat", TM, 60)
        await enrolled.enroll("bob", "ab-split")

        results = await enrolled.trigger_progression("bob", "cycle-bump")

        reasons = {r.lift_id: r.skip_reason for r in results.results}
        assert results.total_applied == 1
        assert reasons["bench"] == "no current training_max found for lift"


class TestWorkoutCache:
    """Tests for the workout cache."""

    def test_key_mismatch_misses(self):
        """Test that a moved calendar position is a miss."""
        cache = WorkoutCache()
        cache.put("alice", ("p", 1), object())

        assert cache.get("alice", ("p", 1)) is not None
        assert cache.get("alice", ("p", 2)) is None
        cache.invalidate("alice")
        assert len(cache) == 0

    def test_put_after_invalidate_is_dropped(self):
        """Test that a view compiled before an invalidation is not stored."""
        cache = WorkoutCache()
        token = cache.generation("alice")
        cache.invalidate("alice")

        assert not cache.put("alice", ("p", 1), object(), token)
        assert cache.get("alice", ("p", 1)) is None
        assert cache.put("alice", ("p", 1), object(), cache.generation("alice"))

    def test_program_change_moves_every_token(self):
        """Test that a program change invalidates compiles in flight."""
        cache = WorkoutCache()
        token = cache.generation("alice")
        cache.invalidate_program("ab-split")

        assert not cache.put("alice", ("p", 1), object(), token)


@pytest.mark.asyncio
class TestUserLocks:
    """Tests for per-user locks."""

    async def test_hold(self):
        """Test that holding marks only that user locked."""
        locks = UserLocks()
        async with locks.hold("alice"):
            assert locks.is_locked("alice")
            assert not locks.is_locked("bob")
        assert not locks.is_locked("alice")
