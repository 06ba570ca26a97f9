"""Typer CLI root application with serve command."""

import typer

from foxshrine_api.core.config import get_settings
from foxshrine_api.core.logging import setup_logging

app = typer.Typer(name="foxshrine-api", help="Fox Shrine site API and administration CLI")


@app.callback()
def _main_callback() -> None:
    """Load settings (refusing a placeholder secret in production) and initialize logging."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int | None = typer.Option(None, "--port", help="Bind port (default: PORT setting)"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "foxshrine_api.main:create_app",
        factory=True,
        host=host,
        port=port or get_settings().port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from foxshrine_api.cli.db_cmd import db_app
    from foxshrine_api.cli.seed_cmd import seed
    from foxshrine_api.cli.user_cmd import user_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(user_app, name="user", help="User management commands")
    app.command("seed")(seed)


_register_subcommands()
