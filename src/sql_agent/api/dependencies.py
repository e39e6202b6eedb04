"""
FastAPI dependencies for dependency injection.

This module provides reusable dependencies that can be injected into
API route handlers following the layered architecture:
- SQLAgentService for the question-to-answer pipeline
- Settings for configuration
- Optional client dependencies for health checks only

Routes should depend on services, not infrastructure clients directly.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..config import Settings
from ..domain.errors import ConfigurationError, ServiceUnavailableError
from ..infrastructure.database_client import DatabaseClient
from ..infrastructure.llm_client import LLMClient
from ..repositories.answer_formatting import AnswerFormattingRepository
from ..repositories.schema_repository import SchemaIntrospector
from ..repositories.sql_execution import SQLExecutionRepository
from ..repositories.sql_generation import SQLGenerationRepository
from ..services.sql_agent_service import SQLAgentService


def get_settings(request: Request) -> Settings:
    """
    Dependency to get the settings from app state.

    Raises:
        ConfigurationError: If settings are not initialized
    """
    if not hasattr(request.app.state, "settings"):
        raise ConfigurationError("Settings not initialized")

    return request.app.state.settings


# Optional dependency getters for health checks
def get_db_client_optional(request: Request) -> DatabaseClient | None:
    """Get database client if available, None otherwise."""
    return getattr(request.app.state, "db_client", None)


def get_llm_client_optional(request: Request) -> LLMClient | None:
    """Get LLM client if available, None otherwise."""
    return getattr(request.app.state, "llm_client", None)


def get_sql_agent_service(request: Request) -> SQLAgentService:
    """
    Dependency to get a SQLAgentService instance.

    Repositories are cheap wrappers around the shared clients, so a
    service is built per request:
    SQLAgentService (orchestrator)
      ├── SchemaIntrospector (catalog)
      ├── SQLGenerationRepository (LLM-based generation)
      ├── SQLExecutionRepository (read-only execution)
      └── AnswerFormattingRepository (statistics and answer)

    Either client may be unconnected. A disconnected database surfaces as
    a catalog failure once a question is asked; a disconnected LLM makes
    generation report a diagnostic and formatting fall back to a summary.

    Raises:
        ServiceUnavailableError: If a client is not initialized
        ConfigurationError: If settings are not initialized
    """
    if not hasattr(request.app.state, "db_client"):
        raise ServiceUnavailableError("Database client not initialized")
    if not hasattr(request.app.state, "llm_client"):
        raise ServiceUnavailableError("LLM client not initialized")
    if not hasattr(request.app.state, "settings"):
        raise ConfigurationError("Settings not initialized")

    db_client = request.app.state.db_client
    llm_client = request.app.state.llm_client
    settings = request.app.state.settings

    return SQLAgentService(
        schema_introspector=SchemaIntrospector(db_client, settings.agent),
        sql_generation_repository=SQLGenerationRepository(llm_client=llm_client, config=settings.llm),
        sql_execution_repository=SQLExecutionRepository(db_client=db_client, config=settings.database),
        answer_formatting_repository=AnswerFormattingRepository(llm_client=llm_client, config=settings.agent),
    )


# Type aliases for cleaner dependency injection
SQLAgentServiceDep = Annotated[SQLAgentService, Depends(get_sql_agent_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Optional client dependencies (used in health checks)
OptionalDatabaseClientDep = Annotated[DatabaseClient | None, Depends(get_db_client_optional)]
OptionalLLMClientDep = Annotated[LLMClient | None, Depends(get_llm_client_optional)]
