"""PostgreSQL connection pool for the export tool.

Wraps a psycopg v3 ConnectionPool with query execution, statement
timeout, and exception mapping to the DbSetupError hierarchy.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import psycopg
import psycopg.errors
import sentry_sdk
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from dbsetup.core.exceptions import NetworkError, QueryError, TimeoutError
from dbsetup.core.logging import get_logger
from dbsetup.core.models import QueryResult

if TYPE_CHECKING:
    from dbsetup.core.config import ConnectionParams


class PgPool:
    """Single-caller connection pool.

    The pool is opened on ``open()`` (or on entering the context manager)
    and released by ``close()``. Closing is idempotent so the pool is
    released exactly once however the run ends.
    """

    def __init__(
        self, params: ConnectionParams, statement_timeout: float = 30.0
    ) -> None:
        self.params = params
        self.statement_timeout = statement_timeout
        self._pool: ConnectionPool | None = None

    def __enter__(self) -> PgPool:
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def open(self) -> None:
        """Open the pool and wait for its first connection.

        Raises NetworkError if no connection can be established within
        the configured connect timeout.
        """
        if self._pool is not None:
            return

        log = get_logger("pool", target=self.params.target)
        log.debug("opening connection pool")
        pool = ConnectionPool(
            self.params.conninfo,
            kwargs={
                **self.params.connect_kwargs(),
                "autocommit": True,
                "row_factory": dict_row,
            },
            min_size=1,
            max_size=1,
            open=False,
            name="dbsetup",
        )
        try:
            pool.open(wait=True, timeout=float(self.params.connect_timeout))
        except (PoolTimeout, psycopg.OperationalError) as e:
            pool.close()
            msg = f"Connection failed to {self.params.target}: {e}"
            raise NetworkError(msg) from e
        self._pool = pool

    def execute(self, sql: str) -> QueryResult:
        """Execute SQL and return its rows as dictionaries."""
        if self._pool is None:
            msg = "Connection pool is not open"
            raise NetworkError(msg)

        log = get_logger("pool", target=self.params.target)
        timeout_ms = int(self.statement_timeout * 1000)
        sql_normalized = " ".join(sql.split())
        log.debug("executing query", sql=sql_normalized)
        with sentry_sdk.start_span(
            op="db.query", description=sql_normalized[:100]
        ) as span:
            start_time = time.monotonic()
            try:
                with self._pool.connection() as conn, conn.cursor() as cur:
                    cur.execute(f"SET statement_timeout = {timeout_ms}")
                    cur.execute(sql)
                    rows: list[dict[str, Any]] = (
                        cur.fetchall() if cur.description else []
                    )
                    duration_ms = (time.monotonic() - start_time) * 1000
                    span.set_data("row_count", len(rows))
                    span.set_data("duration_ms", duration_ms)
                    log.debug(
                        "query complete",
                        duration_ms=f"{duration_ms:.1f}",
                        row_count=len(rows),
                    )
                    return QueryResult(
                        rows=rows, status_message=cur.statusmessage or ""
                    )

            except PoolTimeout as e:
                span.set_status("unavailable")
                msg = f"No connection available from pool: {e}"
                raise NetworkError(msg) from e
            except psycopg.errors.QueryCanceled as e:
                span.set_status("deadline_exceeded")
                msg = f"Query timed out after {self.statement_timeout}s: {e}"
                raise TimeoutError(msg) from e
            except psycopg.OperationalError as e:
                span.set_status("unavailable")
                raise NetworkError(f"Database error: {e}") from e
            except psycopg.Error as e:
                span.set_status("invalid_argument")
                raise QueryError(f"SQL error: {e}") from e

    def close(self) -> None:
        """Release the pool."""
        if self._pool is not None:
            self._pool.close()
            self._pool = None
