"""Pytest configuration for integration tests."""

import pytest
import pytest_asyncio

from liftplan.db.engine import init_db
from liftplan.models.lift import COMMON_LIFTS, MaxType
from liftplan.models.load import PercentOf, RpeTarget
from liftplan.models.program import (
    Cycle,
    Day,
    Prescription,
    Program,
    ProgressionLink,
    Week,
    WeekSlot,
)
from liftplan.models.progression import gzclp_t1, gzclp_t2
from liftplan.models.scheme import Amrap, FatigueDrop, Fixed
from liftplan.services import TrainingService


# Mark all tests in this directory as integration tests
def pytest_collection_modifyitems(items):
    """Add integration marker to all tests in this directory."""
    for item in items:
        if "integration_tests" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def gzclp_program() -> Program:
    """A one-week GZCLP-style program.

    Day A1: squat T1 (5x3+) and press T2 (3x10).
    Day B1: an autoregulated bench top set with back-off sets.
    """
    training_max = MaxType.TRAINING_MAX
    a1 = Day(
        name="A1",
        slug="a1",
        prescriptions=[
            Prescription(
                id="squat-t1",
                lift_id="squat",
                load=PercentOf(training_max, 100, rounding_increment=2.5),
                scheme=Amrap(sets=5, min_reps=3),
                order=0,
            ),
            Prescription(
                id="press-t2",
                lift_id="press",
                load=PercentOf(training_max, 100, rounding_increment=2.5),
                scheme=Fixed(sets=3, reps=10),
                order=1,
                rest_seconds=120,
            ),
        ],
    )
    b1 = Day(
        name="B1",
        slug="b1",
        prescriptions=[
            Prescription(
                id="bench-top",
                lift_id="bench",
                load=RpeTarget(target_reps=5, target_rpe=8.0),
                scheme=FatigueDrop(
                    target_reps=5, start_rpe=8.0, stop_rpe=9.5, drop_percent=0.05
                ),
            ),
        ],
    )
    return Program(
        id="gzclp",
        name="GZCLP",
        slug="gzclp",
        cycle=Cycle(
            name="Week",
            length_weeks=1,
            weeks=[Week(1, [WeekSlot("monday", "a1"), WeekSlot("thursday", "b1")])],
        ),
        days=[a1, b1],
        progression_links=[
            ProgressionLink("gzclp-t1", lift_id="squat"),
            ProgressionLink("gzclp-t2", lift_id="press"),
        ],
    )


@pytest.fixture
def temp_db_path(tmp_path):
    """Database path in a per-test directory."""
    return tmp_path / "integration.db"


@pytest_asyncio.fixture
async def gzclp_service(temp_db_path):
    """Service with the GZCLP program, presets and sam's maxes."""
    await init_db(temp_db_path)
    service = TrainingService(temp_db_path)
    for lift in COMMON_LIFTS:
        await service.add_lift(lift)
    await service.save_progression(gzclp_t1())
    await service.save_progression(gzclp_t2())
    await service.save_program(gzclp_program())

    await service.set_max("sam", "squat", MaxType.TRAINING_MAX, 200)
    await service.set_max("sam", "press", MaxType.TRAINING_MAX, 50)
    await service.set_max("sam", "bench", MaxType.ONE_RM, 100)
    await service.enroll("sam", "gzclp")
    return service
