from enum import Enum


class PipelineStepName(str, Enum):
    """Stages of the question-to-answer pipeline, in execution order."""
    INTROSPECT = "introspect"
    GENERATE_SQL = "generate_sql"
    EXECUTE_SQL = "execute_sql"
    FORMAT_ANSWER = "format_answer"


class ErrorKind(str, Enum):
    """Classification tag stored in PipelineState.error."""
    UNKNOWN_TABLES = "UNKNOWN_TABLES"
    DATABASE_ERROR = "DATABASE_ERROR"
    CATALOG_UNAVAILABLE = "CATALOG_UNAVAILABLE"
    COMPLETION_UNAVAILABLE = "COMPLETION_UNAVAILABLE"


class OutputFormat(str, Enum):
    """Renderings of an ask result offered by the HTTP layer."""
    JSON = "json"
    SQL = "sql"
    MARKDOWN = "md"
    SQL_DOWNLOAD = "sqldownload"
