"""
Domain package for the SQL agent.

This package contains the catalog models, pipeline state, stage results,
API models, enums and the exception hierarchy.
"""

from .base_enums import ErrorKind, OutputFormat, PipelineStepName
from .catalog import CatalogColumn, CatalogTable, SchemaCatalog
from .pipeline import PipelineState, STAGE_FIELDS
from .requests import AskRequest
from .responses import (
    AskResponse,
    ColumnStats,
    ErrorResponse,
    FormattedColumnStats,
    HealthResponse,
    SqlExecutionResult,
    SqlGenerationResult,
    ValidationResult,
)

__all__ = [
    # Enums
    "ErrorKind",
    "OutputFormat",
    "PipelineStepName",

    # Catalog
    "CatalogColumn",
    "CatalogTable",
    "SchemaCatalog",

    # Pipeline
    "PipelineState",
    "STAGE_FIELDS",

    # Requests
    "AskRequest",

    # Results and responses
    "AskResponse",
    "ColumnStats",
    "ErrorResponse",
    "FormattedColumnStats",
    "HealthResponse",
    "SqlExecutionResult",
    "SqlGenerationResult",
    "ValidationResult",
]
