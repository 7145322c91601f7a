"""Shared test fixtures for dbsetup."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from dbsetup.cli.main import app
from dbsetup.core.descriptors import DB_QUERIES
from dbsetup.core.exceptions import QueryError
from dbsetup.core.models import QueryResult

ENV_VARS = (
    "NEXT_PUBLIC_EXAMPLE_MODE",
    "NEXT_PUBLIC_SUPABASE_URL",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "POSTGRES_URL_WITH_PASSWORD",
    "POSTGRES_HOST",
    "PGPORT",
    "POSTGRES_DATABASE",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "SENTRY_DSN",
    "SENTRY_ENVIRONMENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate every test from the developer's environment and .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary directory for test files."""
    return Path(tmp_path)


@pytest.fixture
def scripts_dir(temp_dir):
    """A scripts directory holding one single-statement script per descriptor."""
    path = temp_dir / "scripts"
    path.mkdir()
    for descriptor in DB_QUERIES:
        (path / descriptor.sql_file).write_text(
            f"-- {descriptor.description}\nSELECT '{descriptor.name}' AS name;\n"
        )
    return path


class FakePool:
    """Stands in for PgPool: canned rows per SQL text, records every call."""

    def __init__(self, responses=None, failures=None):
        self.responses = responses or {}
        self.failures = failures or {}
        self.queries: list[str] = []
        self.close_calls = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def execute(self, sql):
        self.queries.append(sql)
        for marker, message in self.failures.items():
            if marker in sql:
                raise QueryError(message)
        for marker, rows in self.responses.items():
            if marker in sql:
                return QueryResult(rows=rows, status_message=f"SELECT {len(rows)}")
        return QueryResult(rows=[], status_message="SELECT 0")

    def close(self):
        self.close_calls += 1


@pytest.fixture
def fake_pool():
    return FakePool()


@pytest.fixture
def pool_factory(fake_pool):
    """Factory handing out ``fake_pool`` and remembering what it was built with."""
    calls = []

    def factory(params, statement_timeout):
        calls.append((params, statement_timeout))
        return fake_pool

    factory.calls = calls
    return factory
