"""
API request models for the SQL agent.

All fields include descriptions that appear in Swagger/OpenAPI documentation.
"""

from pydantic import BaseModel, Field

from .base_enums import OutputFormat


class AskRequest(BaseModel):
    """
    Query-string parameters of GET /rag/ask.

    A blank question is accepted here and answered with ok=false by the
    service; only an oversized question or an unknown format is a 422.
    """

    q: str = Field(
        default="",
        description="Natural language question. "
                    "Example: 'top 5 products by price'",
        max_length=2000,
        json_schema_extra={"example": "top 5 products by price"}
    )
    format: OutputFormat = Field(
        default=OutputFormat.JSON,
        description="Rendering of the result: 'json' (full result), 'sql' (plain SQL), "
                    "'md' (SQL in a fenced code block) or 'sqldownload' (SQL as query.sql attachment).",
        json_schema_extra={"example": "json"}
    )
