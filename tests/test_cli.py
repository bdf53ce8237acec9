"""Tests for the command line interface."""

import json

import pytest
from click.testing import CliRunner

from liftplan.cli import main


@pytest.fixture
def runner(tmp_path):
    """A CLI runner pointed at an empty data directory."""
    return CliRunner(env={"LIFTPLAN_DATA_DIR": str(tmp_path / "data"), "LIFTPLAN_USER": "alice"})


@pytest.fixture
def program_file(tmp_path, sample_program, sample_progressions):
    path = tmp_path / "program.json"
    path.write_text(
        json.dumps(
            {
                "program": sample_program.to_dict(),
                "progressions": [p.to_dict() for p in sample_progressions],
            }
        )
    )
    return path


class TestCli:
    """Tests for CLI commands."""

    def test_requires_init(self, runner):
        """Test that commands refuse to run before init."""
        result = runner.invoke(main, ["lifts", "list"])

        assert result.exit_code == 1
        assert "liftplan init" in result.output

    def test_init_seeds_lifts(self, runner):
        """Test that init creates the database and the lift library."""
        result = runner.invoke(main, ["init"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(main, ["lifts", "list"])
        assert result.exit_code == 0
        assert "bench-press" in result.output

        result = runner.invoke(main, ["progress", "list"])
        assert "gzclp-t1" in result.output

    def test_training_day(self, runner, program_file):
        """Test a day of training from the command line."""
        assert runner.invoke(main, ["init"]).exit_code == 0
        assert runner.invoke(main, ["maxes", "set", "squat", "100"]).exit_code == 0
        assert runner.invoke(main, ["maxes", "set", "bench", "80"]).exit_code == 0

        result = runner.invoke(main, ["programs", "import", str(program_file)])
        assert result.exit_code == 0, result.output

        result = runner.invoke(main, ["enroll", "ab-split"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(main, ["workout"])
        assert result.exit_code == 0, result.output
        assert "5+" in result.output

        assert runner.invoke(main, ["session", "start"]).exit_code == 0
        result = runner.invoke(
            main, ["session", "log", "squat-main", "-r", "5", "-r", "5", "-r", "12"]
        )
        assert result.exit_code == 0, result.output

        result = runner.invoke(main, ["session", "finish"])
        assert result.exit_code == 0, result.output
        assert "greyskull-main" in result.output
        assert "100 -> 105" in result.output

        result = runner.invoke(main, ["advance"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(main, ["maxes", "list"])
        assert "105" in result.output

    def test_engine_errors_exit_nonzero(self, runner):
        """Test that engine errors become exit code 1."""
        runner.invoke(main, ["init"])
        result = runner.invoke(main, ["enroll", "nope"])

        assert result.exit_code == 1
