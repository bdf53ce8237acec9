"""Enrollment and calendar commands."""

import click

from .base import (
    async_command,
    echo_info,
    echo_progressions,
    echo_success,
    echo_warning,
    ensure_initialized,
    get_service,
    user_option,
)


@click.command()
@click.argument("program_id")
@user_option
@click.pass_context
@async_command
async def enroll(ctx: click.Context, program_id: str, user_id: str):
    """Enroll in a program at cycle 1, week 1, day 1."""
    ensure_initialized(ctx)
    state = await get_service().enroll(user_id, program_id)
    echo_success(f"{user_id} enrolled in {state.program_id}")
    click.echo(f"Position: {state.get_position_display()}")


@click.command()
@user_option
@click.pass_context
@async_command
async def unenroll(ctx: click.Context, user_id: str):
    """Quit the current program."""
    ensure_initialized(ctx)
    state = await get_service().unenroll(user_id)
    echo_success(f"{user_id} left {state.program_id}")


@click.command()
@user_option
@click.pass_context
@async_command
async def status(ctx: click.Context, user_id: str):
    """Show enrollment status and position."""
    ensure_initialized(ctx)
    state = await get_service().get_enrollment(user_id)

    click.echo()
    click.echo(click.style(f"Program: {state.program_id}", bold=True))
    click.echo("=" * 50)
    click.echo(f"Status: {state.status.value}")
    click.echo(f"Position: {state.get_position_display()}")
    click.echo(f"Week: {state.week_status.value}, cycle: {state.cycle_status.value}")
    click.echo(f"Enrolled: {state.enrolled_at.strftime('%Y-%m-%d')}")
    if state.current_session_id:
        echo_info(f"Session in progress: {state.current_session_id}")


@click.command()
@user_option
@click.pass_context
@async_command
async def advance(ctx: click.Context, user_id: str):
    """Move to the next scheduled day."""
    ensure_initialized(ctx)
    result = await get_service().advance(user_id)

    if result.completed_week is not None:
        echo_success(f"Week {result.completed_week} complete")
    if result.completed_cycle is not None:
        echo_success(f"Cycle {result.completed_cycle} complete")
        echo_warning("Run 'liftplan next-cycle' to start the next cycle.")
    click.echo(f"Position: {result.state.get_position_display()}")
    echo_progressions(result.progressions)


@click.command("next-cycle")
@user_option
@click.pass_context
@async_command
async def next_cycle(ctx: click.Context, user_id: str):
    """Start the next cycle after finishing one."""
    ensure_initialized(ctx)
    state = await get_service().next_cycle(user_id)
    echo_success(f"Cycle {state.cycle_iteration} started")
    click.echo(f"Position: {state.get_position_display()}")
