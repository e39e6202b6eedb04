"""
Type aliases for the SQL agent.

Provides reusable, descriptive type aliases for common patterns
to improve code readability and type safety.
"""

from typing import Any, Dict, List


# Qualified "schema.table" identifiers in catalog case, e.g. ["public.Producto"]
AllowedTables = List[str]

# One result row keyed by column name
Row = Dict[str, Any]

# Partial update returned by a pipeline stage: {field_name: value}
StageDelta = Dict[str, Any]
