"""
Answer Formatting Repository.

Turns result rows into the final answer:
- Numeric statistics over a sample of rows, with monetary columns
  rendered as CLP
- A narrative answer from the LLM under a fixed section structure, with
  an HTML results table
- A deterministic fallback when the LLM is not available

When a stage diagnostic is already set (blocked SQL, database error,
missing SQL) it is returned verbatim; the LLM is only asked to narrate
actual results.
"""

import json
from typing import Any, Mapping, Optional, Sequence, Tuple

from ..config import AgentConfig
from ..domain.base_enums import ErrorKind
from ..domain.errors import LLMError
from ..infrastructure.llm_client import LLMClient
from ..utils.logging import get_module_logger
from ..utils.number_format import compute_column_stats, format_column_stats
from ..utils.text_limits import truncate_rows
from ..utils.tracing import current_trace_id
from .sql_validation import validate_sql_tables

logger = get_module_logger()

NO_RESULTS = "No results."

ANSWER_SYSTEM_PROMPT = """Eres un analista de datos senior. Respondes en {language} con tono profesional. Genera Markdown y HTML (rehype-raw). Estructura SIEMPRE la salida en secciones con encabezados:
- Resumen ejecutivo (breve, accionable)
- Hallazgos clave (bullets)
- Resultados (tabla HTML con Tailwind)
- Análisis (tendencias, outliers, comparaciones)
- Recomendaciones (pasos accionables)
- Limitaciones (calidad de datos, supuestos)
- Próximos pasos.

Tabla de Resultados (OBLIGATORIO):
- Genera una tabla HTML accesible con Tailwind:
  <div class="overflow-x-auto rounded-md ring-1 ring-gray-200 dark:ring-gray-700">
    <table class="min-w-full w-full table-fixed text-sm text-gray-700 dark:text-gray-200">
      <caption class="text-left text-sm text-gray-500 dark:text-gray-400 p-3">Resultados</caption>
      <thead class="bg-gray-50 dark:bg-gray-800">
        <tr class="border-b border-gray-200 dark:border-gray-700">... th scope="col" ...</tr>
      </thead>
      <tbody>... tr/td ...</tbody>
    </table>
  </div>
- Alinea a la derecha columnas monetarias (text-right, tabular-nums).
- Zebra striping en filas: odd:bg-white even:bg-gray-50 dark:odd:bg-gray-900 dark:even:bg-gray-800, y hover.

Reglas de formato de montos (CLP):
- Formatea como $1.234.567 (sin decimales); negativos como -$1.234.567.
- Si el valor viene como string (con símbolos, espacios, puntos o comas), normalízalo sin alterar la magnitud:
  ejemplos: "CLP 1,234.56" -> $1.235; "1.234,56" -> $1.235; "$ 12 345" -> $12.345.
- NO inventes cifras ni cambies cantidades; solo cambia la representación (separadores/decimales).

NO incluyas la consulta SQL. Evita jerga innecesaria."""


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


class AnswerFormattingRepository:
    """
    Repository for answer formatting.

    Usage:
        repo = AnswerFormattingRepository(llm_client, settings.agent)
        answer = await repo.format(
            rows=rows,
            prior_answer="",
            question="top 5 products by price",
            sql=sql,
            allowed_tables=["public.producto"],
        )
    """

    def __init__(self, llm_client: LLMClient, config: AgentConfig):
        self.llm_client = llm_client
        self.config = config

    async def format(
        self,
        rows: Sequence[Mapping[str, Any]],
        prior_answer: Optional[str],
        question: str,
        sql: str,
        allowed_tables: Sequence[str],
        error: Optional[ErrorKind] = None,
    ) -> str:
        """
        Produce the final answer text.

        Args:
            rows: Result rows (possibly empty)
            prior_answer: Diagnostic from an earlier stage, if any
            question: The question being answered
            sql: Executed SQL, used only to name the referenced tables
            allowed_tables: Allow-listed "schema.table" identifiers
            error: Error kind set by an earlier stage

        Returns:
            Trimmed answer text; never empty
        """
        trace_id = current_trace_id()
        prior = (prior_answer or "").strip()

        if error is not None:
            logger.info("Surfacing stage diagnostic", error=error.value, trace_id=trace_id)
            return prior or NO_RESULTS

        if not self.llm_client.is_connected():
            logger.info("LLM unavailable, using fallback answer", row_count=len(rows), trace_id=trace_id)
            return self.fallback_answer(rows, prior)

        system_prompt, prompt = self._build_prompts(rows, prior, question, sql, allowed_tables)

        try:
            completion = await self.llm_client.generate(
                prompt=prompt,
                system_prompt=system_prompt,
                temperature=0.0,
            )
        except LLMError as e:
            logger.warning(
                "Answer formatting failed, using fallback answer",
                error=e.message,
                trace_id=trace_id,
            )
            return self.fallback_answer(rows, prior)

        answer = completion.strip()
        logger.info("Answer formatted", answer_length=len(answer), trace_id=trace_id)
        return answer or prior or NO_RESULTS

    def fallback_answer(self, rows: Sequence[Mapping[str, Any]], prior_answer: str) -> str:
        """
        Deterministic answer: the prior diagnostic, else a row summary, else "No results.".

        Example:
            >>> repo.fallback_answer([{"nombre": "A", "precio": 10}], "")
            'Found 1 rows. Keys: nombre, precio. Sample: [{"nombre": "A", "precio": 10}]'
        """
        if prior_answer:
            return prior_answer
        if not rows:
            return NO_RESULTS

        keys = ", ".join(rows[0].keys())
        sample = [dict(row) for row in rows[: self.config.fallback_sample_size]]
        return f"Found {len(rows)} rows. Keys: {keys}. Sample: {_to_json(sample)}"

    def _build_prompts(
        self,
        rows: Sequence[Mapping[str, Any]],
        prior_answer: str,
        question: str,
        sql: str,
        allowed_tables: Sequence[str],
    ) -> Tuple[str, str]:
        """Build the system and user prompts for answer formatting."""
        display_rows = truncate_rows(rows, self.config.display_sample_size, self.config.max_cell_length)
        stats = compute_column_stats(rows[: self.config.stats_sample_size])
        formatted_stats = format_column_stats(stats, self.config.currency_hints)
        found_tables = validate_sql_tables(sql or "", allowed_tables).found_tables

        stats_payload = {column: value.model_dump() for column, value in formatted_stats.items()}
        note = f"\nNOTA (diagnóstico): {prior_answer}\n" if prior_answer else ""

        prompt = (
            f"PREGUNTA: {question}\n"
            f"TABLAS REFERENCIADAS: {', '.join(found_tables) or 'N/D'}\n"
            f"FILAS (JSON) - muestra hasta {self.config.display_sample_size} "
            f"(sin formateo, pueden venir strings numéricas):\n"
            f"{_to_json(display_rows)}\n"
            f"ESTADÍSTICAS NUMÉRICAS (sobre muestra hasta {self.config.stats_sample_size}) "
            f"- usa estos valores VERBATIM si los mencionas:\n"
            f"{_to_json(stats_payload)}\n"
            f"{note}"
            "\nInstrucciones: Genera la tabla HTML completa en la sección Resultados aplicando "
            "las reglas CLP y Tailwind indicadas. No alteres las cantidades."
        )

        system_prompt = ANSWER_SYSTEM_PROMPT.format(language=self.config.answer_language)
        return system_prompt, prompt
