"""Lift and max management commands."""

import click

from ..models.lift import Lift, MaxType
from .base import (
    async_command,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    format_weight,
    get_service,
    user_option,
)


@click.group()
@click.pass_context
def lifts(ctx):
    """Manage the lift library."""
    ensure_initialized(ctx)


@lifts.command("add")
@click.argument("lift_id")
@click.argument("name")
@click.option("--slug", help="URL slug (default: the lift ID)")
@async_command
async def add_lift(lift_id: str, name: str, slug: str | None):
    """Add or rename a lift."""
    await get_service().add_lift(Lift(id=lift_id, name=name, slug=slug or lift_id))
    echo_success(f"Saved lift {lift_id}: {name}")


@lifts.command("list")
@async_command
async def list_lifts():
    """List all lifts."""
    all_lifts = await get_service().lifts.list_all()
    if not all_lifts:
        echo_info("No lifts found. Add one with 'liftplan lifts add'")
        return

    click.echo()
    rows = [[lift.id, lift.name, lift.slug] for lift in all_lifts]
    click.echo(format_table(["ID", "Name", "Slug"], rows))


@click.group()
@click.pass_context
def maxes(ctx):
    """Record and review one-rep and training maxes."""
    ensure_initialized(ctx)


@maxes.command("set")
@click.argument("lift_id")
@click.argument("value", type=float)
@click.option(
    "--type",
    "max_type",
    type=click.Choice([t.value for t in MaxType]),
    default=MaxType.TRAINING_MAX.value,
    show_default=True,
)
@user_option
@async_command
async def set_max(lift_id: str, value: float, max_type: str, user_id: str):
    """Record a new max for a lift."""
    record = await get_service().set_max(user_id, lift_id, MaxType(max_type), value)
    echo_success(
        f"{lift_id} {record.max_type.value} = {format_weight(record.value)} "
        f"(entry #{record.sequence})"
    )


@maxes.command("list")
@user_option
@async_command
async def list_maxes(user_id: str):
    """Show current maxes."""
    current = await get_service().current_maxes(user_id)
    if not current:
        echo_info(f"No maxes recorded for {user_id}.")
        return

    rows = []
    for lift_id in sorted(current):
        values = current[lift_id]
        rows.append([
            lift_id,
            format_weight(values[MaxType.ONE_RM]) if MaxType.ONE_RM in values else "-",
            format_weight(values[MaxType.TRAINING_MAX]) if MaxType.TRAINING_MAX in values else "-",
        ])
    click.echo()
    click.echo(format_table(["Lift", "1RM", "Training max"], rows))


@maxes.command("history")
@click.argument("lift_id")
@user_option
@async_command
async def max_history(lift_id: str, user_id: str):
    """Show every recorded max for a lift."""
    records = await get_service().maxes.history(user_id, lift_id)
    if not records:
        echo_info(f"No maxes recorded for {lift_id}.")
        return

    rows = [
        [
            str(r.sequence),
            r.max_type.value,
            format_weight(r.value),
            r.recorded_at.strftime("%Y-%m-%d %H:%M"),
        ]
        for r in records
    ]
    click.echo()
    click.echo(format_table(["#", "Type", "Value", "Recorded"], rows))
