"""Export models for dbsetup.

Pydantic models for query descriptors, per-descriptor outcomes and the
build-metadata manifest written at the end of an export run.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class QueryDescriptor(BaseModel):
    """A named metadata query, its SQL source and JSON destination."""

    model_config = ConfigDict(frozen=True)

    name: str
    output_file: str
    description: str
    sql_file: str


class QueryResult(BaseModel):
    """Rows returned by one query, keyed by column name."""

    rows: list[dict[str, Any]] = []
    status_message: str = ""

    @property
    def row_count(self) -> int:
        return len(self.rows)


class ExecutionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    record_count: int | None = Field(default=None, alias="recordCount")
    error: str | None = None


class SummaryEntry(BaseModel):
    script: str
    output: str
    records: int = 0
    status: Literal["success", "error"]
    error: str | None = None


class BuildMetadata(BaseModel):
    """The build-metadata.json manifest."""

    model_config = ConfigDict(populate_by_name=True)

    generated_at: str = Field(alias="generatedAt")
    method: str = "direct_postgres"
    successful_executions: int = Field(alias="successfulExecutions")
    failed_executions: int = Field(alias="failedExecutions")
    execution_summary: list[SummaryEntry] = Field(alias="executionSummary")
    results: dict[str, ExecutionResult]

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
