"""
Result and API response models for the SQL agent.

Stage results (ValidationResult, SqlGenerationResult, SqlExecutionResult,
ColumnStats) are returned by repositories; AskResponse, HealthResponse and
ErrorResponse are the HTTP payloads.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .base_enums import ErrorKind


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Health status", examples=["healthy", "degraded"])
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="Application version")
    database_status: str = Field(..., description="Database connection status")
    llm_service_status: str = Field(..., description="Completion service status")


class ErrorResponse(BaseModel):
    """Response model for error responses."""

    error: str = Field(..., description="Error type or category")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )
    trace_id: Optional[str] = Field(
        default=None,
        description="Trace ID for debugging"
    )
    timestamp: datetime = Field(..., description="Error timestamp")


# =============================================================================
# Stage Results
# =============================================================================


class ValidationResult(BaseModel):
    """
    Outcome of checking a SQL string against the allow-list.

    Recomputed wherever it is needed; never stored on the pipeline state.
    """

    ok: bool = Field(..., description="True when tables were found and all are allowed")
    unknown_tables: List[str] = Field(default_factory=list, description="Found tables absent from the allow-list")
    none_found: bool = Field(..., description="True when no table reference could be resolved")
    found_tables: List[str] = Field(default_factory=list, description="Lower-cased schema.table references, in order of appearance")


class SqlGenerationResult(BaseModel):
    """SQL produced for a question, or the diagnostic explaining why it cannot run."""

    sql: str = Field(default="", description="Generated SQL, auto-qualified; the text that is executed")
    sql_clean: str = Field(default="", description="Display variant with single-table qualifiers stripped")
    answer: Optional[str] = Field(default=None, description="Diagnostic answer when the SQL was rejected")
    error: Optional[ErrorKind] = Field(default=None, description="Error kind when the SQL was rejected")


class SqlExecutionResult(BaseModel):
    """Rows returned by an execution attempt plus any diagnostic."""

    rows: List[Dict[str, Any]] = Field(default_factory=list, description="Result rows")
    answer: Optional[str] = Field(default=None, description="Diagnostic for blocked, failed or empty executions")
    error: Optional[ErrorKind] = Field(default=None, description="Error kind for blocked or failed executions")
    execution_time_ms: Optional[float] = Field(default=None, description="Query time when the query ran")


class ColumnStats(BaseModel):
    """Numeric summary of one column over the statistics sample."""

    count: int = Field(..., description="Values that coerced to a number")
    min: float
    max: float
    avg: float


class FormattedColumnStats(BaseModel):
    """Currency rendering of ColumnStats for monetary columns."""

    count: int
    min: str
    max: str
    avg: str


# =============================================================================
# Ask Endpoint
# =============================================================================


class AskResponse(BaseModel):
    """
    Result of asking a question.

    ok is False only when the question was rejected before the pipeline ran.
    Blocked queries and database errors still return ok=True with a
    diagnostic answer and the error kind.
    """

    ok: bool = Field(..., description="Whether the pipeline ran")
    question: str = Field(default="", description="The question as received")
    sql: Optional[str] = Field(default=None, description="Executed (or rejected) SQL")
    sql_clean: Optional[str] = Field(default=None, description="SQL for display")
    answer: Optional[str] = Field(default=None, description="Formatted answer or diagnostic")
    rows: List[Dict[str, Any]] = Field(default_factory=list, description="Result rows")
    error: Optional[ErrorKind] = Field(default=None, description="Error kind, when a stage could not proceed")
    message: Optional[str] = Field(default=None, description="Reason the question was rejected")
    trace_id: Optional[str] = Field(default=None, description="Trace ID for debugging")
