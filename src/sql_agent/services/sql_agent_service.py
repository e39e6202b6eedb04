"""
SQL Agent Service - Orchestrator for question-to-answer conversion.

This service is a THIN ORCHESTRATOR that coordinates repositories:
1. SchemaIntrospector - Catalog metadata and the allow-list
2. SQLGenerationRepository - LLM-based SQL generation, qualification, validation
3. SQLExecutionRepository - Re-validation and read-only execution
4. AnswerFormattingRepository - Statistics and the final answer

Key principles:
- Service layer only orchestrates, no business logic
- Fixed sequence, no branching and no retries; each step decides from
  state.error whether it has anything to do
- The state is immutable; each step returns a delta merged into a new state
- Only a catalog failure aborts the question; every other failure ends
  as a diagnostic answer
"""

from datetime import datetime, timezone

from ..domain.base_enums import ErrorKind, PipelineStepName
from ..domain.errors import CatalogUnavailableError
from ..domain.pipeline import PipelineState
from ..domain.responses import AskResponse
from ..domain.types import StageDelta
from ..repositories.answer_formatting import AnswerFormattingRepository
from ..repositories.schema_repository import SchemaIntrospector
from ..repositories.sql_execution import SQLExecutionRepository
from ..repositories.sql_generation import SQLGenerationRepository
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id

logger = get_module_logger()

MISSING_QUESTION_MESSAGE = "Missing query parameter q"


class SQLAgentService:
    """
    Main orchestrator for the SQL agent pipeline.

    Introspect -> GenerateSQL -> ExecuteSQL -> FormatAnswer
    """

    def __init__(
        self,
        schema_introspector: SchemaIntrospector,
        sql_generation_repository: SQLGenerationRepository,
        sql_execution_repository: SQLExecutionRepository,
        answer_formatting_repository: AnswerFormattingRepository,
    ):
        self.introspector = schema_introspector
        self.generation_repo = sql_generation_repository
        self.execution_repo = sql_execution_repository
        self.formatting_repo = answer_formatting_repository

        logger.info("SQLAgentService initialized")

    async def ask(self, question: str) -> AskResponse:
        """
        Answer a natural language question.

        Args:
            question: Natural language question

        Returns:
            AskResponse. ok is False only for a blank question, in which case
            neither the database nor the LLM is called.

        Raises:
            CatalogUnavailableError: If catalog metadata could not be read
        """
        trace_id = current_trace_id()
        question = (question or "").strip()

        if not question:
            logger.info("Rejected blank question", trace_id=trace_id)
            return AskResponse(ok=False, question=question, message=MISSING_QUESTION_MESSAGE, trace_id=trace_id)

        state = await self.run(question)

        if state.error == ErrorKind.CATALOG_UNAVAILABLE:
            raise CatalogUnavailableError(state.answer)

        return AskResponse(
            ok=True,
            question=state.question,
            sql=state.sql or None,
            sql_clean=state.sql_clean or None,
            answer=state.answer,
            rows=state.row_list,
            error=state.error,
            trace_id=trace_id,
        )

    async def run(self, question: str) -> PipelineState:
        """
        Run the pipeline for one question.

        Returns:
            Terminal PipelineState
        """
        trace_id = current_trace_id()
        start_time = datetime.now(timezone.utc)

        logger.info("Starting SQL agent pipeline", question_length=len(question), trace_id=trace_id)

        state = PipelineState(question=question)
        state = state.merge(PipelineStepName.INTROSPECT, await self._step_introspect(state))
        state = state.merge(PipelineStepName.GENERATE_SQL, await self._step_generate_sql(state))
        state = state.merge(PipelineStepName.EXECUTE_SQL, await self._step_execute_sql(state))
        state = state.merge(PipelineStepName.FORMAT_ANSWER, await self._step_format_answer(state))

        total_time_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
        logger.info(
            "SQL agent pipeline finished",
            error=state.error.value if state.error else None,
            row_count=len(state.rows),
            total_time_ms=round(total_time_ms, 2),
            trace_id=trace_id,
        )

        return state

    # =========================================================================
    # Pipeline Steps (thin - delegate to repositories)
    # =========================================================================

    async def _step_introspect(self, state: PipelineState) -> StageDelta:
        """Step 1: Read the catalog."""
        logger.info("Step 1: Introspecting schema", trace_id=current_trace_id())

        try:
            schema_text, allowed_tables = await self.introspector.introspect()
        except CatalogUnavailableError as e:
            return {
                "answer": f"Catalog unavailable: {e.message}",
                "error": ErrorKind.CATALOG_UNAVAILABLE,
            }

        return {"schema_text": schema_text, "allowed_tables": allowed_tables}

    async def _step_generate_sql(self, state: PipelineState) -> StageDelta:
        """Step 2: Generate, qualify and validate SQL."""
        if state.error is not None:
            return {}

        logger.info("Step 2: Generating SQL", trace_id=current_trace_id())

        result = await self.generation_repo.generate(
            question=state.question,
            schema_text=state.schema_text,
            allowed_tables=state.allowed_table_list,
        )

        delta: StageDelta = {"sql": result.sql, "sql_clean": result.sql_clean}
        if result.error is not None:
            delta.update(answer=result.answer or "", error=result.error)
        return delta

    async def _step_execute_sql(self, state: PipelineState) -> StageDelta:
        """Step 3: Execute SQL."""
        if state.error is not None or not state.sql:
            return {}

        logger.info("Step 3: Executing SQL", trace_id=current_trace_id())

        result = await self.execution_repo.execute(sql=state.sql, allowed_tables=state.allowed_table_list)

        delta: StageDelta = {"rows": result.rows}
        if result.answer:
            delta["answer"] = result.answer
        if result.error is not None:
            delta["error"] = result.error
        return delta

    async def _step_format_answer(self, state: PipelineState) -> StageDelta:
        """Step 4: Format the answer; always runs."""
        logger.info("Step 4: Formatting answer", trace_id=current_trace_id())

        answer = await self.formatting_repo.format(
            rows=state.row_list,
            prior_answer=state.answer,
            question=state.question,
            sql=state.sql,
            allowed_tables=state.allowed_table_list,
            error=state.error,
        )
        return {"answer": answer}
