"""Workout and session commands."""

import click
import questionary
from questionary import Style

from ..errors import StateError, ValidationError
from ..models.scheme import GeneratedSet
from ..models.workout import WorkoutView
from ..services import SessionResult, TrainingService
from .base import (
    async_command,
    echo_info,
    echo_progressions,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
    format_weight,
    get_service,
    user_option,
)

# Custom style for set prompts
custom_style = Style(
    [
        ("qmark", "fg:#673ab7 bold"),
        ("question", "bold"),
        ("answer", "fg:#f44336 bold"),
        ("instruction", ""),
        ("text", ""),
    ]
)


def describe_set(s: GeneratedSet) -> str:
    reps = f"{s.target_reps}+" if s.is_amrap else str(s.target_reps)
    return f"{format_weight(s.weight)} x {reps}"


def echo_workout(view: WorkoutView) -> None:
    """Print a compiled workout."""
    click.echo()
    title = view.day_name or view.day_slug
    click.echo(click.style(f"{title}", bold=True))
    click.echo(f"Cycle {view.cycle_iteration}, Week {view.week_number}")
    click.echo("=" * 50)

    for exercise in view.exercises:
        click.echo()
        header = f"{exercise.lift.name}  [{exercise.prescription_id}]"
        if exercise.autoregulated:
            header += "  (autoregulated)"
        click.echo(click.style(header, bold=True))

        rows = [
            [
                str(s.set_number),
                format_weight(s.weight),
                f"{s.target_reps}+" if s.is_amrap else str(s.target_reps),
                "work" if s.is_work_set else "warmup",
            ]
            for s in exercise.sets
        ]
        click.echo(format_table(["Set", "Weight", "Reps", "Type"], rows))
        if exercise.rest_seconds:
            click.echo(f"Rest: {exercise.rest_seconds}s")
        if exercise.notes:
            click.echo(f"Notes: {exercise.notes}")


@click.command()
@user_option
@click.pass_context
@async_command
async def workout(ctx: click.Context, user_id: str):
    """Show today's workout."""
    ensure_initialized(ctx)
    view = await get_service().compute_workout(user_id)
    echo_workout(view)


@click.group()
@click.pass_context
def session(ctx):
    """Run a workout session: start, log sets, finish."""
    ensure_initialized(ctx)


@session.command("start")
@user_option
@async_command
async def start(user_id: str):
    """Start a session for today's workout."""
    service = get_service()
    started = await service.start_session(user_id)
    echo_success(f"Session started: {started.id}")
    echo_workout(await service.compute_workout(user_id))


async def _current_session_id(service: TrainingService, user_id: str, session_id: str | None) -> str:
    if session_id:
        return session_id
    state = await service.get_enrollment(user_id)
    if state.current_session_id is None:
        raise StateError(f"{user_id} has no session in progress")
    return state.current_session_id


async def _prompt_reps(planned: GeneratedSet) -> int | None:
    answer = await questionary.text(
        f"Set {planned.set_number} ({describe_set(planned)}) reps:",
        default=str(planned.target_reps),
        validate=lambda v: v.isdigit() or "Enter a whole number",
        style=custom_style,
    ).ask_async()
    return int(answer) if answer is not None else None


async def _prompt_rpe() -> float | None:
    answer = await questionary.text(
        "RPE:",
        validate=lambda v: _is_number(v) or "Enter a number such as 8 or 8.5",
        style=custom_style,
    ).ask_async()
    return float(answer) if answer is not None else None


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


async def _log_interactively(
    service: TrainingService, session_id: str, prescription_id: str
) -> SessionResult | None:
    current = await service.get_session(session_id)
    view = await service.compute_workout(current.user_id)
    exercise = next((e for e in view.exercises if e.prescription_id == prescription_id), None)
    if exercise is None:
        raise ValidationError(f"prescription {prescription_id!r} is not in today's workout")

    result = None
    if exercise.autoregulated:
        while True:
            progress = await service.next_fatigue_set(session_id, prescription_id)
            if progress.finished:
                echo_info(progress.termination_reason)
                return result
            reps = await _prompt_reps(progress.next_set)
            rpe = await _prompt_rpe() if reps is not None else None
            if reps is None or rpe is None:
                return result
            result = await service.log_performance(session_id, prescription_id, [reps], [rpe])

    done = len(current.sets_for(prescription_id))
    remaining = exercise.sets[done:]
    if not remaining:
        echo_warning(f"All sets for {prescription_id} are already logged.")
        return None

    reps = []
    for planned in remaining:
        answer = await _prompt_reps(planned)
        if answer is None:
            break
        reps.append(answer)
    if not reps:
        return None
    return await service.log_performance(session_id, prescription_id, reps)


@session.command("log")
@click.argument("prescription_id")
@click.option("--reps", "-r", multiple=True, type=int, help="Reps per set (repeatable)")
@click.option("--rpe", multiple=True, type=float, help="RPE per set (repeatable)")
@click.option("--session", "session_id", help="Session ID (default: the one in progress)")
@user_option
@async_command
async def log(
    prescription_id: str,
    reps: tuple[int, ...],
    rpe: tuple[float, ...],
    session_id: str | None,
    user_id: str,
):
    """Log sets for a prescription.

    Without --reps, prompts for each remaining set.

    Examples:

        liftplan session log squat-t1 -r 3 -r 3 -r 3 -r 3 -r 5

        liftplan session log squat-top -r 3 --rpe 8
    """
    service = get_service()
    session_id = await _current_session_id(service, user_id, session_id)

    if reps:
        result = await service.log_performance(
            session_id, prescription_id, list(reps), list(rpe) or None
        )
    else:
        result = await _log_interactively(service, session_id, prescription_id)

    if result is None:
        echo_info("Nothing logged.")
        return
    logged = result.session.sets_for(prescription_id)
    echo_success(f"{len(logged)} set(s) logged for {prescription_id}")
    failed = [s for s in logged if s.is_failure]
    if failed:
        echo_warning(f"{len(failed)} set(s) below target")
    echo_progressions(result.progressions)


@session.command("next-set")
@click.argument("prescription_id")
@click.option("--session", "session_id", help="Session ID (default: the one in progress)")
@user_option
@async_command
async def next_set(prescription_id: str, session_id: str | None, user_id: str):
    """Show the next set of an autoregulated prescription."""
    service = get_service()
    session_id = await _current_session_id(service, user_id, session_id)
    progress = await service.next_fatigue_set(session_id, prescription_id)
    if progress.finished:
        echo_info(f"Done: {progress.termination_reason}")
    else:
        click.echo(f"Set {progress.next_set.set_number}: {describe_set(progress.next_set)}")


@session.command("finish")
@click.option("--session", "session_id", help="Session ID (default: the one in progress)")
@user_option
@async_command
async def finish(session_id: str | None, user_id: str):
    """Finish the session and apply its progressions."""
    service = get_service()
    session_id = await _current_session_id(service, user_id, session_id)
    result = await service.finish_session(session_id)
    echo_success(f"Session {session_id} finished")
    echo_progressions(result.progressions)
    click.echo("Run 'liftplan advance' to move to the next day.")


@session.command("abandon")
@click.option("--session", "session_id", help="Session ID (default: the one in progress)")
@user_option
@async_command
async def abandon(session_id: str | None, user_id: str):
    """Abandon the session without applying progressions."""
    service = get_service()
    session_id = await _current_session_id(service, user_id, session_id)
    await service.abandon_session(session_id)
    echo_success(f"Session {session_id} abandoned")
