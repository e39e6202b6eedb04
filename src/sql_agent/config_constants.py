from enum import Enum


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

class OPENAI_LLM_MODELS(str, Enum):
    GPT_4O = "gpt-4o"
    GPT_4O_MINI = "gpt-4o-mini"
    GPT_41_MINI = "gpt-4.1-mini"

# -------------------------
# Answer Formatting Constants
# -------------------------

# Column-name fragments that mark a column as monetary.
# Spanish terms come from the deployed catalog; English ones cover generic schemas.
DEFAULT_CURRENCY_HINTS = [
    "precio", "monto", "total", "valor", "costo", "venta", "ventas",
    "importe", "subtotal", "neto", "bruto",
    "price", "amount", "cost", "revenue", "sales",
]

# Schemas that never contribute to the allow-list
SYSTEM_SCHEMAS = ("pg_catalog", "information_schema")

# Literal the model must return when the question cannot be answered
UNANSWERABLE_SQL = "SELECT 1 WHERE FALSE"
