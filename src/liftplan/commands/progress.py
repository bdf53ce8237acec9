"""Progression commands."""

import click

from .base import (
    async_command,
    echo_info,
    echo_progressions,
    ensure_initialized,
    format_table,
    format_weight,
    get_service,
    user_option,
)


@click.group()
@click.pass_context
def progress(ctx):
    """Apply progressions and review their history."""
    ensure_initialized(ctx)


@progress.command("list")
@async_command
async def list_progressions():
    """List the defined progressions."""
    all_progressions = await get_service().progressions.list_all()
    if not all_progressions:
        echo_info("No progressions defined.")
        return

    rows = [
        [p.id, p.name, p.type.value, p.trigger_type.value, p.max_type.value]
        for p in all_progressions
    ]
    click.echo()
    click.echo(format_table(["ID", "Name", "Type", "Trigger", "Max"], rows))


@progress.command("trigger")
@click.argument("progression_id")
@click.option("--lift", "lift_id", help="Only this lift (default: every linked lift)")
@click.option("--force", is_flag=True, help="Apply even if already applied for this occasion")
@user_option
@async_command
async def trigger(progression_id: str, lift_id: str | None, force: bool, user_id: str):
    """Apply a progression by hand.

    Examples:

        liftplan progress trigger linear-5 --lift squat

        liftplan progress trigger gzclp-t1 --lift bench --force
    """
    results = await get_service().trigger_progression(
        user_id, progression_id, lift_id=lift_id, force=force
    )
    echo_progressions(results)


@progress.command("history")
@click.option("--lift", "lift_id", help="Only this lift")
@click.option("--limit", default=20, show_default=True, type=int)
@user_option
@async_command
async def history(lift_id: str | None, limit: int, user_id: str):
    """Show applied progressions, newest first."""
    entries = await get_service().history(user_id, lift_id=lift_id, limit=limit)
    if not entries:
        echo_info("No progressions applied yet.")
        return

    rows = [
        [
            e.applied_at.strftime("%Y-%m-%d %H:%M"),
            e.progression_id,
            e.lift_id,
            e.trigger_type.value,
            f"{format_weight(e.previous_value)} -> {format_weight(e.new_value)}",
            f"{e.delta:+g}",
        ]
        for e in entries
    ]
    click.echo()
    click.echo(format_table(["When", "Progression", "Lift", "Trigger", "Max", "Delta"], rows))
