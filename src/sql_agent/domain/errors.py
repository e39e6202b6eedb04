"""
Custom exception hierarchy for the SQL agent.

This module defines the exceptions raised by infrastructure clients and
the pipeline, with:
- Consistent error codes for API responses
- HTTP status code mappings for FastAPI
- Detailed error messages for debugging

Only a catalog failure aborts a question. Blocked SQL, database errors and
an unavailable completion service are reported as diagnostic answers
(see ErrorKind in base_enums); the exceptions below carry them between the
client layer and the repositories that convert them.

Usage:
    raise DatabaseConnectionError("Failed to connect to database")
    raise CatalogUnavailableError("Catalog query failed", details={"schema_names": []})
"""

from typing import Any, Dict, Optional


class SQLAgentException(Exception):
    """
    Base exception for all SQL agent errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code (e.g., "DATABASE_CONNECTION_ERROR")
        http_status: HTTP status code to return (default: 500)
        details: Optional dictionary with additional error context
    """

    error_code: str = "INTERNAL_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        if http_status:
            self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Configuration Errors (5xx)
# =============================================================================


class ConfigurationError(SQLAgentException):
    """
    Raised when configuration is invalid or missing.

    HTTP Status: 500 Internal Server Error
    """

    error_code = "CONFIGURATION_ERROR"
    http_status = 500


# =============================================================================
# Database Errors (5xx)
# =============================================================================


class DatabaseError(SQLAgentException):
    """
    Base class for database-related errors.

    HTTP Status: 503 Service Unavailable
    """

    error_code = "DATABASE_ERROR"
    http_status = 503


class DatabaseConnectionError(DatabaseError):
    """
    Raised when the pool cannot be created or a connection cannot be acquired.

    HTTP Status: 503 Service Unavailable
    """

    error_code = "DATABASE_CONNECTION_ERROR"
    http_status = 503


class DatabaseQueryError(DatabaseError):
    """
    Raised when query execution fails.

    The executor turns this into a "DB error: ..." diagnostic answer;
    it only reaches the transport from code paths outside the pipeline.

    HTTP Status: 500 Internal Server Error
    """

    error_code = "DATABASE_QUERY_ERROR"
    http_status = 500


# =============================================================================
# Schema Errors (5xx)
# =============================================================================


class SchemaError(SQLAgentException):
    """
    Raised when schema operations fail.

    HTTP Status: 500 Internal Server Error
    """

    error_code = "SCHEMA_ERROR"
    http_status = 500


class CatalogUnavailableError(SchemaError):
    """
    Raised when catalog metadata cannot be read.

    Fatal for the question: without an allow-list no SQL can be
    generated or executed safely.

    HTTP Status: 503 Service Unavailable
    """

    error_code = "CATALOG_UNAVAILABLE"
    http_status = 503


# =============================================================================
# LLM Errors (5xx)
# =============================================================================


class LLMError(SQLAgentException):
    """
    Raised when a completion request fails.

    HTTP Status: 503 Service Unavailable

    Examples:
        - API unreachable or rate limited after client retries
        - Empty response
        - Input exceeds the configured character limit
    """

    error_code = "LLM_ERROR"
    http_status = 503


class CompletionUnavailableError(LLMError):
    """
    Raised when no completion service is configured (no API key).

    HTTP Status: 503 Service Unavailable
    """

    error_code = "COMPLETION_UNAVAILABLE"
    http_status = 503


# =============================================================================
# Service Unavailable (5xx)
# =============================================================================


class ServiceUnavailableError(SQLAgentException):
    """
    Raised when a required service is not available.

    HTTP Status: 503 Service Unavailable

    Examples:
        - Database or LLM client not initialized at request time
    """

    error_code = "SERVICE_UNAVAILABLE"
    http_status = 503
