"""Shared CLI utilities."""

import asyncio
import logging
from functools import wraps

import click

from ..db import get_db_path
from ..errors import LiftplanError
from ..services import TrainingService

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

user_option = click.option(
    "--user",
    "-u",
    "user_id",
    default="default",
    envvar="LIFTPLAN_USER",
    show_default=True,
    help="User to act as (env: LIFTPLAN_USER)",
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging once for the whole CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def async_command(f):
    """Decorator to run async Click commands.

    Engine errors are reported and turned into exit code 1.
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(f(*args, **kwargs))
        except LiftplanError as e:
            echo_error(str(e))
            raise SystemExit(1) from e

    return wrapper


def ensure_initialized(ctx: click.Context) -> None:
    """Ensure the database is initialized."""
    db_path = get_db_path()
    if not db_path.exists():
        click.echo(
            click.style("Error: ", fg="red")
            + "Project not initialized. Run 'liftplan init' first."
        )
        ctx.exit(1)


def get_service() -> TrainingService:
    """Training service over the configured database."""
    return TrainingService(get_db_path())


def echo_success(message: str) -> None:
    """Print a success message."""
    click.echo(click.style("[OK] ", fg="green") + message)


def echo_error(message: str) -> None:
    """Print an error message."""
    click.echo(click.style("[ERROR] ", fg="red") + message, err=True)


def echo_info(message: str) -> None:
    """Print an info message."""
    click.echo(click.style("[INFO] ", fg="blue") + message)


def echo_warning(message: str) -> None:
    """Print a warning message."""
    click.echo(click.style("[WARN] ", fg="yellow") + message)


def format_weight(weight: float) -> str:
    return f"{weight:g}"


def format_table(headers: list[str], rows: list[list[str]], padding: int = 2) -> str:
    """Format data as a simple table."""
    if not rows:
        return ""

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    lines = ["".join(h.ljust(widths[i] + padding) for i, h in enumerate(headers))]
    lines.append("".join("-" * w + " " * padding for w in widths))
    for row in rows:
        lines.append(
            "".join(str(cell).ljust(widths[i] + padding) for i, cell in enumerate(row))
        )
    return "\n".join(line.rstrip() for line in lines)


def echo_progressions(results) -> None:
    """Print the outcome of a progression batch."""
    if not results.results:
        return

    rows = []
    for r in results.results:
        if r.error:
            outcome = "error"
            detail = r.error
        elif r.applied:
            outcome = "applied"
            detail = f"{format_weight(r.result.previous_value)} -> {format_weight(r.result.new_value)}"
            if r.result.reason:
                detail += f" ({r.result.reason})"
        else:
            outcome = "skipped"
            detail = r.skip_reason
        rows.append([r.progression_id, r.lift_id, outcome, detail])

    click.echo()
    click.echo(format_table(["Progression", "Lift", "Outcome", "Detail"], rows))
    click.echo(
        f"{results.total_applied} applied, {results.total_skipped} skipped, "
        f"{results.total_errors} errors"
    )
