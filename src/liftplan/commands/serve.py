"""JSON API server command."""

import click

from ..db import get_db_path
from .base import ensure_initialized


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", "-p", default=8000, type=int, show_default=True, help="Port to bind")
@click.option("--reload", is_flag=True, help="Restart on code changes (development only)")
@click.option(
    "--log-level",
    type=click.Choice(["critical", "error", "warning", "info", "debug"]),
    default="info",
    show_default=True,
    help="uvicorn log level",
)
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool, log_level: str):
    """Serve the training engine as a JSON API.

    The server uses the same database as the CLI, so LIFTPLAN_DATA_DIR
    applies to both.

    Examples:

        liftplan serve --port 9000
    """
    ensure_initialized(ctx)

    import uvicorn

    from ..web import create_app

    db_path = get_db_path()
    click.echo(click.style("liftplan API", fg="green") + f" on http://{host}:{port}")
    click.echo(f"  Database: {db_path}")
    click.echo(f"  OpenAPI:  http://{host}:{port}/docs")

    if reload:
        # The reloader imports the factory by name; it reads the data dir from the environment
        uvicorn.run(
            "liftplan.web:create_app",
            host=host,
            port=port,
            reload=True,
            factory=True,
            log_level=log_level,
        )
        return

    uvicorn.run(create_app(db_path), host=host, port=port, log_level=log_level)
