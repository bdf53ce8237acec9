"""Tests for the SQLite repositories."""

import pytest

from liftplan.db.engine import init_db, transaction
from liftplan.db.repositories import (
    FailureCounterRepository,
    LiftMaxRepository,
    ProgramRepository,
    ProgressionLogRepository,
)
from liftplan.errors import ConcurrencyConflict
from liftplan.models.failure import FailureCounter
from liftplan.models.lift import MaxType
from liftplan.models.progression import ProgressionLogEntry, TriggerType

TM = MaxType.TRAINING_MAX


@pytest.mark.asyncio
class TestLiftMaxRepository:
    """Tests for the append-only max log."""

    async def test_append_and_current(self, temp_db_path):
        """Test that the newest record is current."""
        await init_db(temp_db_path)
        repo = LiftMaxRepository(temp_db_path)

        first = await repo.append("alice", "squat", TM, 100)
        second = await repo.append("alice", "squat", TM, 105)

        assert (first.sequence, second.sequence) == (1, 2)
        current = await repo.current("alice", "squat", TM)
        assert current.value == 105
        assert [m.value for m in await repo.history("alice", "squat")] == [100, 105]

    async def test_current_values(self, temp_db_path):
        """Test the per-lift view of current maxes."""
        await init_db(temp_db_path)
        repo = LiftMaxRepository(temp_db_path)
        await repo.append("alice", "squat", TM, 100)
        await repo.append("alice", "squat", TM, 110)
        await repo.append("alice", "squat", MaxType.ONE_RM, 125)
        await repo.append("alice", "bench", TM, 80)
        await repo.append("bob", "squat", TM, 60)

        values = await repo.current_values("alice")
        assert values == {
            "squat": {TM: 110, MaxType.ONE_RM: 125},
            "bench": {TM: 80},
        }
        assert set(await repo.current_values("alice", ["bench"])) == {"bench"}

    async def test_stale_sequence_conflicts(self, temp_db_path):
        """Test that a writer holding an old current record loses."""
        await init_db(temp_db_path)
        repo = LiftMaxRepository(temp_db_path)
        await repo.append("alice", "squat", TM, 100)
        read = await repo.current("alice", "squat", TM)

        await repo.append("alice", "squat", TM, 105, expected_sequence=read.sequence)
        with pytest.raises(ConcurrencyConflict):
            await repo.append("alice", "squat", TM, 102.5, expected_sequence=read.sequence)

        assert (await repo.current("alice", "squat", TM)).value == 105

    async def test_rollback_discards_append(self, temp_db_path):
        """Test that appends inside a failed transaction do not land."""
        await init_db(temp_db_path)
        repo = LiftMaxRepository(temp_db_path)

        with pytest.raises(RuntimeError):
            async with transaction(temp_db_path) as db:
                await repo.append("alice", "squat", TM, 100, db=db)
                raise RuntimeError("boom")

        assert await repo.current("alice", "squat", TM) is None


@pytest.mark.asyncio
class TestFailureCounterRepository:
    """Tests for versioned failure counters."""

    async def test_save_bumps_version(self, temp_db_path):
        """Test create then update."""
        await init_db(temp_db_path)
        repo = FailureCounterRepository(temp_db_path)

        counter = await repo.get_or_new("alice", "squat", "deload")
        assert counter.version == 0

        counter.increment_failure()
        await repo.save(counter)
        assert counter.version == 1

        counter.increment_failure()
        await repo.save(counter)

        stored = await repo.get("alice", "squat", "deload")
        assert stored.consecutive_failures == 2
        assert stored.version == 2

    async def test_stale_update_conflicts(self, temp_db_path):
        """Test that two writers from the same version cannot both land."""
        await init_db(temp_db_path)
        repo = FailureCounterRepository(temp_db_path)
        await repo.save(FailureCounter("alice", "squat", "deload"))

        first = await repo.get("alice", "squat", "deload")
        second = await repo.get("alice", "squat", "deload")

        first.increment_failure()
        await repo.save(first)
        second.reset_on_success()
        with pytest.raises(ConcurrencyConflict):
            await repo.save(second)

    async def test_duplicate_create_conflicts(self, temp_db_path):
        """Test that two fresh counters for one key cannot both be created."""
        await init_db(temp_db_path)
        repo = FailureCounterRepository(temp_db_path)
        await repo.save(FailureCounter("alice", "squat", "deload"))

        with pytest.raises(ConcurrencyConflict):
            await repo.save(FailureCounter("alice", "squat", "deload"))


@pytest.mark.asyncio
class TestProgressionLogRepository:
    """Tests for progression history."""

    async def test_exists_by_context(self, temp_db_path):
        """Test the idempotency lookup."""
        await init_db(temp_db_path)
        repo = ProgressionLogRepository(temp_db_path)
        await repo.create(
            ProgressionLogEntry(
                user_id="alice",
                progression_id="linear",
                lift_id="squat",
                trigger_type=TriggerType.AFTER_SESSION,
                context_key="s1",
                previous_value=100,
                new_value=105,
                delta=5,
            )
        )

        assert await repo.exists("alice", "linear", "squat", TriggerType.AFTER_SESSION, "s1")
        assert not await repo.exists("alice", "linear", "squat", TriggerType.AFTER_SESSION, "s2")
        assert not await repo.exists("alice", "linear", "bench", TriggerType.AFTER_SESSION, "s1")

        history = await repo.list_for_user("alice")
        assert len(history) == 1
        assert history[0].delta == 5


@pytest.mark.asyncio
class TestProgramRepository:
    """Tests for program storage."""

    async def test_get_by_id_or_slug(self, temp_db_path, sample_program):
        """Test lookups by either identifier."""
        await init_db(temp_db_path)
        repo = ProgramRepository(temp_db_path)
        sample_program.slug = "a-b"
        await repo.save(sample_program)

        assert await repo.get("ab-split") == sample_program
        assert (await repo.get("a-b")).id == "ab-split"
        assert await repo.get("missing") is None
