"""dbsetup main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path
from typing import Annotated

import sentry_sdk
import typer
from dotenv import load_dotenv

from dbsetup.__about__ import __version__
from dbsetup.cli.commands.client import client_app
from dbsetup.cli.commands.config import config_app
from dbsetup.cli.commands.export import export_command
from dbsetup.core.config import load_settings
from dbsetup.core.exceptions import DbSetupError
from dbsetup.core.logging import setup_logging
from dbsetup.core.monitoring import setup_sentry

app = typer.Typer(
    help="dbsetup - Supabase starter client factory and schema export tool",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.add_typer(client_app, name="client")
app.command("export")(export_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dbsetup {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    env_file: Annotated[
        Path | None,
        typer.Option("--env-file", help="Dotenv file to load (default: ./.env)"),
    ] = None,
) -> None:
    """dbsetup - Supabase starter client factory and schema export tool."""
    setup_logging(verbose)

    # Existing environment variables win over the dotenv file.
    load_dotenv(env_file or Path(".env"), override=False)
    settings = load_settings()

    if setup_sentry(settings):
        transaction = sentry_sdk.start_transaction(
            op="cli", name=ctx.invoked_subcommand or "dbsetup"
        )
        transaction.__enter__()

        def cleanup() -> None:
            transaction.__exit__(None, None, None)
            sentry_sdk.flush(timeout=2)

        atexit.register(cleanup)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["settings"] = settings


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except DbSetupError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
