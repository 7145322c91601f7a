"""Client factory CLI commands."""

from __future__ import annotations

from typing import Annotated

import typer

from dbsetup.cli.commands._shared import get_settings
from dbsetup.core.clients import MemoryCookieJar, create_client, create_server_client

client_app = typer.Typer(help="Client factory commands")


@client_app.callback(invoke_without_command=True)
def client_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@client_app.command("status")
def client_status(
    ctx: typer.Context,
    server: Annotated[
        bool,
        typer.Option(
            "--server",
            help="Use the server variant with cookie-backed session storage",
        ),
    ] = False,
) -> None:
    """
    Build a client through the factory and report its mode.

    In example mode no network call is made. Otherwise the current
    user is fetched from the Supabase project.
    """
    settings = get_settings(ctx)
    if server:
        client = create_server_client(settings.client, MemoryCookieJar())
    else:
        client = create_client(settings.client)

    mode = "example" if client.is_example_mode else "live"
    typer.echo(f"Mode: {mode}")
    typer.echo(f"Variant: {'server' if server else 'browser'}")
    if not client.is_example_mode:
        typer.echo(f"Project: {settings.client.supabase_url}")

    response = client.auth.get_user()
    if response.error is not None:
        typer.echo(f"Error: {response.error.message}", err=True)
        raise typer.Exit(1)
    user = (response.data or {}).get("user")
    if user:
        typer.echo(f"User: {user.get('email') or user.get('id')}")
    else:
        typer.echo("User: not signed in")
