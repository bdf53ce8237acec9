"""CLI entry point for liftplan."""

import click

from . import __version__
from .commands import (
    advance,
    enroll,
    init,
    lifts,
    maxes,
    next_cycle,
    programs,
    progress,
    serve,
    session,
    status,
    unenroll,
    workout,
)
from .commands.base import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="liftplan")
@click.option("--verbose", "-v", is_flag=True, help="Log engine decisions to stderr")
def main(verbose: bool):
    """liftplan: strength-training program engine.

    Compiles today's workout from a program, tracks sessions, and applies
    progressions to your training maxes.

    Example usage:

        # Initialize the database
        liftplan init

        # Record maxes, import a program and enroll
        liftplan maxes set squat 140
        liftplan programs import gzclp.json
        liftplan enroll gzclp

        # Train
        liftplan session start
        liftplan session log squat-t1 -r 3 -r 3 -r 3 -r 3 -r 6
        liftplan session finish
        liftplan advance
    """
    setup_logging(verbose)


# Register commands
main.add_command(init)
main.add_command(lifts)
main.add_command(maxes)
main.add_command(programs)
main.add_command(enroll)
main.add_command(unenroll)
main.add_command(status)
main.add_command(workout)
main.add_command(session)
main.add_command(advance)
main.add_command(next_cycle)
main.add_command(progress)
main.add_command(serve)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
