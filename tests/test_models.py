"""Tests for data models."""

import pytest

from liftplan.errors import NotFoundError, ValidationError
from liftplan.models.lift import COMMON_LIFTS, Lift
from liftplan.models.program import Program, ProgressionLink, WeekSlot
from liftplan.models.progression import (
    DeloadOnFailureProgression,
    Progression,
    TriggerType,
    gzclp_t1,
)
from liftplan.models.scheme import Amrap
from liftplan.models.state import EnrollmentState, LoggedSet, WorkoutSession

PROGRAM_DATA = {
    "id": "gzclp",
    "name": "GZCLP",
    "cycle": {
        "weeks": [
            {
                "week_number": 1,
                "slots": [
                    {"day_of_week": "monday", "day_slug": "a1"},
                    {"day_of_week": "wednesday", "day_slug": "a1"},
                ],
            }
        ]
    },
    "days": [
        {
            "name": "A1",
            "slug": "a1",
            "prescriptions": [
                {
                    "id": "squat-t1",
                    "lift_id": "squat",
                    "load": {"type": "percent_of", "percentage": 85, "rounding_increment": 2.5},
                    "scheme": {"type": "amrap", "sets": 5, "min_reps": 3},
                }
            ],
        }
    ],
    "progression_links": [
        {"progression_id": "late", "priority": 5},
        {"progression_id": "gzclp-t1", "lift_id": "squat"},
        {"progression_id": "off", "enabled": False},
    ],
}


class TestLift:
    """Tests for Lift model."""

    def test_lift_from_dict(self):
        """Test that the slug defaults to the ID."""
        lift = Lift.from_dict({"id": "squat", "name": "Squat"})
        assert lift.slug == "squat"

    def test_common_lifts_populated(self):
        """Test that common lifts are populated."""
        ids = [lift.id for lift in COMMON_LIFTS]
        assert "squat" in ids
        assert "bench" in ids
        assert "deadlift" in ids
        assert len(set(ids)) == len(ids)


class TestProgram:
    """Tests for the program graph."""

    def test_from_dict(self):
        """Test program deserialization."""
        program = Program.from_dict(PROGRAM_DATA)

        assert program.slug == "gzclp"
        assert program.cycle.length_weeks == 1
        prescription = program.find_prescription("squat-t1")
        assert prescription.scheme == Amrap(sets=5, min_reps=3)
        assert prescription.load.reference_type.value == "training_max"

    def test_round_trip(self):
        """Test that to_dict output loads back to the same program."""
        program = Program.from_dict(PROGRAM_DATA)
        assert Program.from_dict(program.to_dict()) == program

    def test_shared_day(self):
        """Test that two slots may reference the same day."""
        program = Program.from_dict(PROGRAM_DATA)

        assert program.days_in_week(1) == 2
        assert program.day_for(1, 0) is program.day_for(1, 1)

    def test_lookups_fail_cleanly(self):
        """Test missing weeks, days and prescriptions."""
        program = Program.from_dict(PROGRAM_DATA)

        with pytest.raises(NotFoundError):
            program.get_week(2)
        with pytest.raises(NotFoundError):
            program.day_for(1, 2)
        with pytest.raises(NotFoundError):
            program.find_prescription("nope")

    def test_links_for(self):
        """Test link filtering and priority order."""
        program = Program.from_dict(PROGRAM_DATA)

        assert [link.progression_id for link in program.links_for("squat")] == ["gzclp-t1", "late"]
        assert [link.progression_id for link in program.links_for("bench")] == ["late"]

    def test_link_applies_to(self):
        """Test that a link without a lift covers every lift."""
        assert ProgressionLink("p").applies_to("anything")
        assert not ProgressionLink("p", lift_id="squat").applies_to("bench")
        assert not ProgressionLink("p", enabled=False).applies_to("squat")

    def test_validate_unknown_day(self):
        """Test that week slots must point at known days."""
        program = Program.from_dict(PROGRAM_DATA)
        program.cycle.weeks[0].slots.append(WeekSlot("friday", "b1"))

        with pytest.raises(ValidationError, match="b1"):
            program.validate()

    def test_malformed_scheme(self):
        """Test that bad prescriptions are rejected on load."""
        data = dict(PROGRAM_DATA)
        data["days"] = [
            {
                "name": "A1",
                "slug": "a1",
                "prescriptions": [
                    {
                        "id": "x",
                        "lift_id": "squat",
                        "load": {"type": "percent_of", "percentage": 85},
                        "scheme": {"type": "fixed", "sets": 0, "reps": 5},
                    }
                ],
            }
        ]
        with pytest.raises(ValidationError):
            Program.from_dict(data)


class TestProgression:
    """Tests for progression definitions."""

    def test_from_dict(self):
        """Test progression deserialization with a default trigger."""
        progression = Progression.from_dict(
            {
                "id": "deload",
                "type": "deload_on_failure",
                "parameters": {"failure_threshold": 3},
            }
        )

        assert progression.trigger_type == TriggerType.ON_FAILURE
        assert progression.rule == DeloadOnFailureProgression(failure_threshold=3)
        assert progression.name == "deload"

    def test_preset_round_trip(self):
        """Test that presets survive storage."""
        preset = gzclp_t1()
        assert Progression.from_dict(preset.to_dict()) == preset

    def test_wrong_trigger_rejected(self):
        """Test that a rule only listens for its own triggers."""
        with pytest.raises(ValidationError, match="trigger"):
            Progression.from_dict(
                {
                    "id": "g",
                    "type": "greyskull",
                    "trigger_type": "after_cycle",
                    "parameters": {"increment": 2.5},
                }
            )

    def test_manual_trigger_allowed(self):
        """Test that any rule may be manual-only."""
        progression = Progression.from_dict(
            {
                "id": "c",
                "type": "cycle",
                "trigger_type": "manual",
                "parameters": {"increment": 5},
            }
        )
        assert progression.trigger_type == TriggerType.MANUAL

    def test_unknown_type(self):
        """Test that unknown progression types are rejected."""
        with pytest.raises(ValidationError, match="unknown progression type"):
            Progression.from_dict({"id": "x", "type": "wishful"})

    def test_missing_parameters(self):
        """Test that missing parameters are a validation error."""
        with pytest.raises(ValidationError):
            Progression.from_dict({"id": "x", "type": "linear", "parameters": {}})


class TestSession:
    """Tests for session state."""

    def make_set(self, lift_id, set_number, reps, is_amrap=False, prescription_id="p1"):
        return LoggedSet(
            prescription_id=prescription_id,
            lift_id=lift_id,
            set_number=set_number,
            weight=100,
            target_reps=5,
            reps_performed=reps,
            is_amrap=is_amrap,
        )

    def test_session_totals(self):
        """Test per-lift totals and the last AMRAP set."""
        session = WorkoutSession(
            id="s1",
            user_id="alice",
            program_id="gzclp",
            cycle_iteration=1,
            week_number=1,
            day_slug="a1",
            logged_sets=[
                self.make_set("squat", 1, 5),
                self.make_set("squat", 2, 8, is_amrap=True),
                self.make_set("bench", 1, 4, prescription_id="p2"),
            ],
        )

        assert session.lifts_performed() == ["squat", "bench"]
        assert session.total_reps("squat") == 13
        assert session.last_amrap_reps("squat") == 8
        assert session.last_amrap_reps("bench") is None
        assert [s.set_number for s in session.sets_for("p1")] == [1, 2]

    def test_failed_set(self):
        """Test set failure against target reps."""
        assert self.make_set("squat", 1, 4).is_failure
        assert not self.make_set("squat", 1, 5).is_failure

    def test_enrollment_from_dict(self):
        """Test enrollment defaults."""
        state = EnrollmentState.from_dict({"user_id": "alice", "program_id": "gzclp"})

        assert state.is_enrolled
        assert state.get_position_display() == "Cycle 1, Week 1, Day 1"
