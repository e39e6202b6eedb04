"""
Main FastAPI application for the SQL agent.

This module sets up the FastAPI application with logging, tracing,
CORS and error handling, and exposes the ask endpoint with its output
renderings.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Dict, Union

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response

from .utils.logging import configure_logging, get_module_logger
from .utils.tracing import get_trace_id
from .domain.base_enums import OutputFormat
from .domain.requests import AskRequest
from .domain.responses import AskResponse, HealthResponse
from .api.middleware import (
    trace_id_middleware,
    logging_middleware,
    register_exception_handlers,
    ERROR_RESPONSES,
)
from .api.dependencies import (
    SettingsDep,
    SQLAgentServiceDep,
    OptionalDatabaseClientDep,
    OptionalLLMClientDep,
)
from .config import get_settings
from .infrastructure.database_client import DatabaseClient
from .infrastructure.llm_client import LLMClient

API_VERSION = "0.1.0"

# Configure logging on module import
configure_logging()
logger = get_module_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting SQL agent API server", version=API_VERSION)

    settings = get_settings()
    app.state.settings = settings
    logger.info("Settings loaded successfully")

    db_client = DatabaseClient(settings.database)
    try:
        await db_client.connect()
        logger.info("Database client connected successfully")
    except Exception as e:
        # Questions fail with 503 until the database is reachable; health reports it
        logger.error(f"Failed to connect database client: {e}")

    llm_client = LLMClient(settings.llm)
    try:
        await llm_client.connect()
        logger.info("LLM client connected successfully")
    except Exception as e:
        # Answers degrade to diagnostics and plain summaries
        logger.error(f"Failed to connect LLM client: {e}")

    app.state.db_client = db_client
    app.state.llm_client = llm_client

    yield

    logger.info("Shutting down SQL agent API server")

    if hasattr(app.state, "db_client"):
        await app.state.db_client.close()
        logger.info("Database client closed")

    if hasattr(app.state, "llm_client"):
        await app.state.llm_client.close()
        logger.info("LLM client closed")


app = FastAPI(
    title="SQL Agent API",
    description="Natural language questions answered with validated, read-only SQL",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last registered = first executed
app.middleware("http")(logging_middleware)
app.middleware("http")(trace_id_middleware)

register_exception_handlers(app)


def render_ask_response(result: AskResponse, output_format: OutputFormat) -> Union[AskResponse, Response]:
    """
    Render an ask result in the requested format.

    json returns the full result; sql, md and sqldownload return only the
    executed SQL. The display variant (sql_clean) is JSON-only. A rejected
    question is always JSON.
    """
    if output_format == OutputFormat.JSON or not result.ok:
        return result

    sql = result.sql or ""

    if output_format == OutputFormat.SQL:
        return PlainTextResponse(sql)

    if output_format == OutputFormat.MARKDOWN:
        return PlainTextResponse(f"```sql\n{sql}\n```", media_type="text/markdown")

    return PlainTextResponse(
        sql,
        headers={"Content-Disposition": 'attachment; filename="query.sql"'}
    )


# API Routes
@app.get("/", tags=["Root"])
async def root(settings: SettingsDep) -> Dict[str, Union[str, None]]:
    """
    Root endpoint returning basic API information.
    """
    trace_id = get_trace_id()
    logger.info("Root endpoint accessed", trace_id=trace_id)

    return {
        "message": "SQL Agent API",
        "version": API_VERSION,
        "trace_id": trace_id,
        "log_level": settings.app.log_level
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health(
    db_client: OptionalDatabaseClientDep,
    llm_client: OptionalLLMClientDep,
) -> HealthResponse:
    """
    Health check endpoint.

    **Response Model**: `HealthResponse`
    - status: healthy when the database is reachable and the LLM is configured,
      degraded otherwise
    """
    trace_id = get_trace_id()
    logger.info("Health check endpoint accessed", trace_id=trace_id)

    database_status = "not_configured"
    if db_client:
        db_health = await db_client.health_check()
        database_status = db_health.get("status", "unknown")

    llm_status = "not_configured"
    if llm_client:
        llm_status = "healthy" if llm_client.is_connected() else "unhealthy"

    overall_status = "healthy" if database_status == "healthy" and llm_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=API_VERSION,
        database_status=database_status,
        llm_service_status=llm_status,
    )


@app.get(
    "/rag/ask",
    response_model=None,
    tags=["SQL Agent"],
    responses={
        200: {"model": AskResponse, "description": "Ask result, or its SQL rendering"},
        **{k: v for k, v in ERROR_RESPONSES.items() if k in [422, 500, 503]},
    },
)
async def ask(
    params: Annotated[AskRequest, Query()],
    sql_agent_service: SQLAgentServiceDep,
) -> Union[AskResponse, Response]:
    """
    Answer a natural language question.

    Pipeline: introspect the catalog, generate SQL, validate it against the
    allow-list, execute it read-only and format the answer.

    **Query parameters**
    - q: the question; blank returns ok=false with "Missing query parameter q"
    - format: json (default), sql, md (fenced block) or sqldownload (query.sql)

    Blocked SQL and database errors are reported in `answer` with ok=true.

    **Possible Errors**:
    - 422: Unknown format
    - 503: Catalog metadata could not be read
    """
    trace_id = get_trace_id()
    logger.info("Ask requested", question_length=len(params.q), format=params.format.value, trace_id=trace_id)

    result = await sql_agent_service.ask(params.q)

    logger.info(
        "Ask completed",
        ok=result.ok,
        error=result.error.value if result.error else None,
        row_count=len(result.rows),
        trace_id=trace_id,
    )

    return render_ask_response(result, params.format)
