"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio
import tempfile
from pathlib import Path

from liftplan.db.engine import init_db
from liftplan.models.lift import Lift, MaxType
from liftplan.models.load import PercentOf
from liftplan.models.program import (
    Cycle,
    Day,
    Prescription,
    Program,
    ProgressionLink,
    Week,
    WeekSlot,
)
from liftplan.models.progression import (
    CycleProgression,
    DeloadOnFailureProgression,
    Progression,
    TriggerType,
    greyskull_main,
)
from liftplan.models.scheme import Fixed, Greyskull
from liftplan.services import TrainingService


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def sample_lifts():
    """Squat and bench."""
    return [
        Lift(id="squat", name="Squat", slug="squat"),
        Lift(id="bench", name="Bench Press", slug="bench-press"),
    ]


@pytest.fixture
def sample_progressions():
    """GreySkull on squat, deload on bench, a cycle bump for everything."""
    return [
        greyskull_main(2.5),
        Progression(
            id="bench-deload",
            name="Bench deload",
            trigger_type=TriggerType.ON_FAILURE,
            rule=DeloadOnFailureProgression(failure_threshold=2, deload_percent=0.10),
        ),
        Progression(
            id="cycle-bump",
            name="Cycle bump",
            trigger_type=TriggerType.AFTER_CYCLE,
            rule=CycleProgression(increment=5.0),
        ),
    ]


@pytest.fixture
def sample_program():
    """Two weeks of an A/B split.

    Day A: squat 2x5 + 1x5+ at the training max, bench 3x5.
    Day B: squat 3x5 at 80%.
    """
    training_max = MaxType.TRAINING_MAX
    day_a = Day(
        name="Day A",
        slug="a",
        prescriptions=[
            Prescription(
                id="squat-main",
                lift_id="squat",
                load=PercentOf(training_max, 100, rounding_increment=2.5),
                scheme=Greyskull(fixed_sets=2, fixed_reps=5, amrap_sets=1, min_amrap_reps=5),
                order=0,
            ),
            Prescription(
                id="bench-main",
                lift_id="bench",
                load=PercentOf(training_max, 100, rounding_increment=2.5),
                scheme=Fixed(sets=3, reps=5),
                order=1,
            ),
        ],
    )
    day_b = Day(
        name="Day B",
        slug="b",
        prescriptions=[
            Prescription(
                id="squat-light",
                lift_id="squat",
                load=PercentOf(training_max, 80, rounding_increment=2.5),
                scheme=Fixed(sets=3, reps=5),
            ),
        ],
    )
    weeks = [
        Week(
            week_number=n,
            slots=[WeekSlot("monday", "a"), WeekSlot("thursday", "b")],
        )
        for n in (1, 2)
    ]
    return Program(
        id="ab-split",
        name="A/B Split",
        slug="ab-split",
        cycle=Cycle(name="Block", length_weeks=2, weeks=weeks),
        days=[day_a, day_b],
        progression_links=[
            ProgressionLink("greyskull-main", lift_id="squat"),
            ProgressionLink("bench-deload", lift_id="bench"),
            ProgressionLink("cycle-bump", priority=10),
        ],
    )


@pytest_asyncio.fixture
async def service(temp_db_path, sample_lifts, sample_progressions, sample_program):
    """A training service over a seeded database: squat TM 100, bench TM 80."""
    await init_db(temp_db_path)
    svc = TrainingService(temp_db_path)
    for lift in sample_lifts:
        await svc.add_lift(lift)
    for progression in sample_progressions:
        await svc.save_progression(progression)
    await svc.save_program(sample_program)
    await svc.set_max("alice", "squat", MaxType.TRAINING_MAX, 100)
    await svc.set_max("alice", "bench", MaxType.TRAINING_MAX, 80)
    return svc


@pytest_asyncio.fixture
async def enrolled(service):
    """The seeded service with alice enrolled in the A/B split."""
    await service.enroll("alice", "ab-split")
    return service
