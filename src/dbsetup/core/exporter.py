"""Schema export orchestration.

Runs every descriptor in DB_QUERIES against one connection pool, writes
one JSON file per descriptor and a build-metadata.json manifest.

Failures inside a descriptor (missing script, rejected SQL, unwritable
output file) are recorded and the run moves on. Configuration, pool
and manifest failures abort the run. The pool is released on every
exit path.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path

import sentry_sdk

from dbsetup.core.config import ConnectionParams, Settings, resolve_connection
from dbsetup.core.descriptors import DB_QUERIES, MANIFEST_FILE
from dbsetup.core.exceptions import DbSetupError, OutputError
from dbsetup.core.logging import get_logger
from dbsetup.core.models import (
    BuildMetadata,
    ExecutionResult,
    QueryDescriptor,
    QueryResult,
    SummaryEntry,
)
from dbsetup.core.pool import PgPool
from dbsetup.core.sql_source import is_blank, load_sql_script, split_statements
from dbsetup.formatters.json import JSONFormatter

DEFAULT_OUTPUT_DIR = Path("db-setup")
DEFAULT_SCRIPTS_DIR = DEFAULT_OUTPUT_DIR / "scripts"

PoolFactory = Callable[[ConnectionParams, float], PgPool]


def execute_statements(pool: PgPool, statements: Sequence[str]) -> QueryResult:
    """Run statements one by one, concatenating their rows.

    A failing statement is logged and skipped.
    """
    log = get_logger("exporter")
    rows = []
    for statement in statements:
        try:
            result = pool.execute(statement)
        except DbSetupError as e:
            log.warning(
                "statement failed, skipping",
                error=e.message,
                statement=statement[:100],
            )
            continue
        rows.extend(result.rows)
    return QueryResult(rows=rows, status_message=f"SELECT {len(rows)}")


def execute_script(pool: PgPool, sql: str) -> QueryResult:
    """Execute a script as one query, or statement by statement if it holds several.

    A script with nothing but comments yields no rows and sends nothing.
    """
    if is_blank(sql):
        return QueryResult(rows=[], status_message="EMPTY")
    statements = split_statements(sql)
    if len(statements) > 1:
        return execute_statements(pool, statements)
    return pool.execute(sql)


def run_descriptor(
    pool: PgPool,
    descriptor: QueryDescriptor,
    scripts_dir: Path,
    output_dir: Path,
    formatter: JSONFormatter | None = None,
) -> tuple[SummaryEntry, ExecutionResult]:
    """Load, execute and persist one descriptor, never raising for its own failures."""
    log = get_logger("exporter", script=descriptor.name)
    formatter = formatter or JSONFormatter()
    log.info(descriptor.description)

    try:
        sql = load_sql_script(scripts_dir, descriptor.sql_file)
        result = execute_script(pool, sql)
        try:
            formatter.write(output_dir / descriptor.output_file, result.rows)
        except OSError as e:
            msg = f"Cannot write {descriptor.output_file}: {e}"
            raise OutputError(msg) from e
    except DbSetupError as e:
        sentry_sdk.capture_exception(e)
        log.error("script failed", error=e.message)
        return (
            SummaryEntry(
                script=descriptor.name,
                output=descriptor.output_file,
                records=0,
                status="error",
                error=e.message,
            ),
            ExecutionResult(success=False, error=e.message),
        )

    log.info("saved", output=descriptor.output_file, records=result.row_count)
    return (
        SummaryEntry(
            script=descriptor.name,
            output=descriptor.output_file,
            records=result.row_count,
            status="success",
        ),
        ExecutionResult(success=True, record_count=result.row_count),
    )


def build_metadata(
    summary: list[SummaryEntry],
    results: dict[str, ExecutionResult],
    generated_at: datetime | None = None,
) -> BuildMetadata:
    generated_at = generated_at or datetime.now(UTC)
    successful = sum(1 for entry in summary if entry.status == "success")
    return BuildMetadata(
        generated_at=generated_at.isoformat(timespec="milliseconds").replace(
            "+00:00", "Z"
        ),
        successful_executions=successful,
        failed_executions=len(summary) - successful,
        execution_summary=summary,
        results=results,
    )


def write_manifest(output_dir: Path, metadata: BuildMetadata) -> Path:
    path = output_dir / MANIFEST_FILE
    try:
        JSONFormatter().write(path, metadata.to_json_dict())
    except OSError as e:
        msg = f"Cannot write {MANIFEST_FILE}: {e}"
        raise OutputError(msg) from e
    return path


def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        msg = f"Cannot create output directory {path}: {e}"
        raise OutputError(msg) from e


def run_export(
    settings: Settings,
    output_dir: Path = DEFAULT_OUTPUT_DIR,
    scripts_dir: Path = DEFAULT_SCRIPTS_DIR,
    descriptors: Sequence[QueryDescriptor] = DB_QUERIES,
    pool_factory: PoolFactory | None = None,
) -> BuildMetadata:
    """Run one export: connect, run every descriptor, write the manifest.

    Raises ConfigError, NetworkError or OutputError for fatal failures.
    """
    log = get_logger("exporter")
    log.info("starting database build generation")

    params = resolve_connection(settings.export)
    pool_factory = pool_factory or PgPool
    summary: list[SummaryEntry] = []
    results: dict[str, ExecutionResult] = {}

    with pool_factory(params, settings.export.statement_timeout) as pool:
        ensure_dir(output_dir)
        formatter = JSONFormatter()
        for descriptor in descriptors:
            entry, outcome = run_descriptor(
                pool, descriptor, scripts_dir, output_dir, formatter
            )
            summary.append(entry)
            results[descriptor.name] = outcome

        metadata = build_metadata(summary, results)
        write_manifest(output_dir, metadata)

    log.info(
        "database build generation complete",
        successful=metadata.successful_executions,
        failed=metadata.failed_executions,
    )
    return metadata
