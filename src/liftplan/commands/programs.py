"""Program management commands."""

import json
from pathlib import Path

import click

from ..errors import ValidationError
from ..models.program import Program
from ..models.progression import Progression
from .base import (
    async_command,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    get_service,
)


@click.group()
@click.pass_context
def programs(ctx):
    """Manage program definitions."""
    ensure_initialized(ctx)


def load_program_file(path: Path) -> tuple[Program, list[Progression]]:
    """Parse a program file.

    The file holds either a bare program object, or an object with a
    ``program`` key and an optional ``progressions`` list.
    """
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path.name} is not valid JSON: {e}") from e

    if "program" in data:
        program_data = data["program"]
        progression_data = data.get("progressions", [])
    else:
        program_data = data
        progression_data = []

    try:
        program = Program.from_dict(program_data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"malformed program in {path.name}: {e}") from e
    progressions = [Progression.from_dict(p) for p in progression_data]
    return program, progressions


@programs.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@async_command
async def import_program(path: Path):
    """Import a program (and its progressions) from JSON."""
    program, progressions = load_program_file(path)
    service = get_service()
    for progression in progressions:
        await service.save_progression(progression)
    await service.save_program(program)

    echo_success(f"Imported program {program.id}: {program.name}")
    if progressions:
        echo_info(f"Imported {len(progressions)} progression(s)")


@programs.command("list")
@async_command
async def list_programs():
    """List all programs."""
    all_programs = await get_service().programs.list_all()
    if not all_programs:
        echo_info("No programs found. Import one with 'liftplan programs import'")
        return

    rows = []
    for prog in all_programs:
        rows.append([
            prog.id,
            prog.name[:30] + "..." if len(prog.name) > 30 else prog.name,
            str(prog.cycle.length_weeks),
            str(len(prog.days)),
            str(len(prog.lift_ids())),
        ])

    click.echo()
    click.echo(format_table(["ID", "Name", "Weeks", "Days", "Lifts"], rows))
    click.echo()
    click.echo(f"Total: {len(all_programs)} program(s)")


@programs.command("show")
@click.argument("program_id")
@async_command
async def show(program_id: str):
    """Show a program's calendar and progression links."""
    service = get_service()
    program = await service.get_program(program_id)

    click.echo()
    click.echo("=" * 60)
    click.echo(f"Program: {program.name} (ID: {program.id})")
    click.echo("=" * 60)
    if program.description:
        click.echo(program.description)

    for week in program.cycle.weeks:
        click.echo()
        click.echo(click.style(f"Week {week.week_number}", bold=True))
        for i, slot in enumerate(week.slots, start=1):
            day = program.get_day(slot.day_slug)
            click.echo(f"  Day {i}: {day.name} ({len(day.prescriptions)} exercises)")

    if program.progression_links:
        click.echo()
        click.echo(click.style("Progressions", bold=True))
        for link in sorted(program.progression_links, key=lambda link: link.priority):
            target = link.lift_id or "all lifts"
            state = "" if link.enabled else " (disabled)"
            click.echo(f"  [{link.priority}] {link.progression_id} -> {target}{state}")
