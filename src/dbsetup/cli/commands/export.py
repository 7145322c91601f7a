"""Schema export command.

Thin CLI layer: option parsing and the human-readable summary.
The export itself lives in core.exporter.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from dbsetup.cli.commands._shared import get_settings
from dbsetup.core.exporter import DEFAULT_OUTPUT_DIR, DEFAULT_SCRIPTS_DIR, run_export

if TYPE_CHECKING:
    from dbsetup.core.models import BuildMetadata


def print_summary(metadata: BuildMetadata, output_dir: Path) -> None:
    typer.echo("")
    typer.echo("Database build generation complete!")
    typer.echo("Execution Summary:")
    typer.echo(f"   Successful: {metadata.successful_executions}")
    typer.echo(f"   Failed: {metadata.failed_executions}")
    typer.echo(f"   Output directory: {output_dir}/")

    succeeded = [e for e in metadata.execution_summary if e.status == "success"]
    failed = [e for e in metadata.execution_summary if e.status != "success"]
    if succeeded:
        typer.echo("")
        typer.echo("Generated files:")
        for entry in succeeded:
            typer.echo(f"   - {entry.output} ({entry.records} records)")
    if failed:
        typer.echo("")
        typer.echo("Failed files:")
        for entry in failed:
            typer.echo(f"   - {entry.output}: {entry.error}")


def export_command(
    ctx: typer.Context,
    output_dir: Annotated[
        Path,
        typer.Option("--output-dir", "-o", help="Directory for the JSON files"),
    ] = DEFAULT_OUTPUT_DIR,
    scripts_dir: Annotated[
        Path,
        typer.Option("--scripts-dir", "-s", help="Directory holding the SQL scripts"),
    ] = DEFAULT_SCRIPTS_DIR,
) -> None:
    """
    Export database schema metadata to JSON files.

    Runs the tables, functions, indexes, RLS policies, constraints,
    triggers and extensions queries, writing one JSON file per query
    plus build-metadata.json. A failing query is reported and the
    export continues.
    """
    settings = get_settings(ctx)
    metadata = run_export(settings, output_dir=output_dir, scripts_dir=scripts_dir)
    print_summary(metadata, output_dir)
