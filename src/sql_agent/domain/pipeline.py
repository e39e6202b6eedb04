"""
Pipeline state model for the SQL agent.

The state is an immutable value. Each stage reads the prior state and
returns a delta; PipelineState.merge produces the next state and rejects
deltas that write fields the stage does not own.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional, Tuple

from .base_enums import ErrorKind, PipelineStepName
from .types import AllowedTables, Row, StageDelta


# Fields each stage is allowed to write
STAGE_FIELDS: Dict[PipelineStepName, FrozenSet[str]] = {
    PipelineStepName.INTROSPECT: frozenset({"schema_text", "allowed_tables", "answer", "error"}),
    PipelineStepName.GENERATE_SQL: frozenset({"sql", "sql_clean", "answer", "error"}),
    PipelineStepName.EXECUTE_SQL: frozenset({"rows", "answer", "error"}),
    PipelineStepName.FORMAT_ANSWER: frozenset({"answer"}),
}


@dataclass(frozen=True)
class PipelineState:
    """
    State threaded through Introspect -> GenerateSQL -> ExecuteSQL -> FormatAnswer.

    Starts with only the question; every other field is filled by the
    stage that owns it.
    """

    # Input
    question: str

    # Introspection
    schema_text: str = ""
    allowed_tables: Tuple[str, ...] = ()

    # SQL generation
    sql: str = ""
    sql_clean: str = ""

    # Execution
    rows: Tuple[Row, ...] = field(default_factory=tuple)

    # Final answer or diagnostic text
    answer: str = ""

    # Error classification, set by the first stage that cannot proceed
    error: Optional[ErrorKind] = None

    @property
    def allowed_table_list(self) -> AllowedTables:
        return list(self.allowed_tables)

    @property
    def row_list(self) -> List[Row]:
        return list(self.rows)

    def merge(self, step: PipelineStepName, delta: StageDelta) -> "PipelineState":
        """
        Return a new state with delta applied.

        Raises:
            ValueError: If delta writes a field that step does not own
        """
        owned = STAGE_FIELDS[step]
        foreign = set(delta) - owned
        if foreign:
            raise ValueError(
                f"Stage '{step.value}' cannot write fields: {', '.join(sorted(foreign))}"
            )

        changes = dict(delta)
        if "allowed_tables" in changes:
            changes["allowed_tables"] = tuple(changes["allowed_tables"])
        if "rows" in changes:
            changes["rows"] = tuple(changes["rows"])
        return replace(self, **changes)

