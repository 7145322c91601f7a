"""Configuration inspection CLI commands."""

from __future__ import annotations

import typer

from dbsetup.cli.commands._shared import get_settings

config_app = typer.Typer(help="Configuration inspection commands")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _mask_secret(value: str | None) -> str:
    if value is None:
        return "not set"
    return "***"


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved configuration with source attribution."""
    settings = get_settings(ctx)
    sources = settings.sources

    def source(key: str) -> str:
        return sources.get(key, "default")

    client = settings.client
    typer.echo("Client Settings (resolved):")
    client_fields = [
        ("example_mode", str(client.example_mode).lower()),
        ("supabase_url", client.supabase_url or "not set"),
        ("supabase_anon_key", _mask_secret(client.supabase_anon_key)),
    ]
    for field_name, value in client_fields:
        typer.echo(f"  {field_name}: {value} ({source(f'client.{field_name}')})")
    mode = "example" if client.use_mock else "live"
    typer.echo(f"  mode: {mode}")

    export = settings.export
    typer.echo("")
    typer.echo("Export Connection (resolved):")
    export_fields = [
        ("dsn", _mask_secret(export.dsn)),
        ("host", export.host or "not set"),
        ("port", str(export.port)),
        ("database", export.dbname),
        ("user", export.user),
        ("password", _mask_secret(export.password)),
    ]
    for field_name, value in export_fields:
        source_key = "dbname" if field_name == "database" else field_name
        typer.echo(f"  {field_name}: {value} ({source(f'export.{source_key}')})")

    typer.echo("")
    typer.echo("Monitoring:")
    typer.echo(
        f"  sentry: {'enabled' if settings.sentry_dsn else 'disabled'}"
        f" ({source('sentry_dsn')})"
    )
    typer.echo(
        f"  environment: {settings.sentry_environment}"
        f" ({source('sentry_environment')})"
    )
