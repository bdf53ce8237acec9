"""Initialize project command."""

import click

from ..db import get_db_path, init_db
from ..db.engine import get_data_dir
from ..models.lift import COMMON_LIFTS
from ..models.progression import greyskull_accessory, greyskull_main, gzclp_t1, gzclp_t2
from .base import async_command, echo_info, echo_success, get_service


@click.command()
@click.option("--no-seed", is_flag=True, help="Skip the common lifts and preset progressions")
@async_command
async def init(no_seed: bool):
    """Initialize the liftplan database.

    Creates the data directory and the SQLite schema, then seeds the
    common barbell lifts and the preset progressions.
    """
    data_dir = get_data_dir()
    db_path = get_db_path(data_dir)

    echo_info(f"Initializing liftplan in {data_dir}")
    await init_db(db_path)
    echo_success("Database initialized")

    if no_seed:
        return

    service = get_service()
    for lift in COMMON_LIFTS:
        await service.add_lift(lift)
    echo_success(f"Lift library populated ({len(COMMON_LIFTS)} lifts)")

    presets = [gzclp_t1(), gzclp_t2(), greyskull_main(2.5), greyskull_accessory(2.5)]
    for progression in presets:
        await service.save_progression(progression)
    echo_success(f"Preset progressions added ({', '.join(p.id for p in presets)})")

    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Record your training maxes:")
    click.echo("     liftplan maxes set squat 140")
    click.echo()
    click.echo("  2. Import a program and enroll:")
    click.echo("     liftplan programs import program.json")
    click.echo("     liftplan enroll <program-id>")
