"""SQLite Agent - a tool-using LLM agent that runs inside a SQLite connection.

The agent answers goals in free text or gathers data with external tools and
inserts it into a table, filling embedding columns and vector indices along
the way. Inference, tool transport and vector search are delegated to
providers.
"""

__version__ = "0.1.0"

from .agent import SQLiteAgent
from .config import Settings, get_settings, load_settings
from .exceptions import (
    AgentError,
    ClientError,
    ContextCreationError,
    ExtractionError,
    InsertionError,
    InvalidArgumentsError,
    NotConnectedError,
    SchemaError,
    ToolError,
)
from .extension import register
from .request import AgentRequest
from .types import (
    ColumnSpec,
    EmbeddingReport,
    InsertionOutcome,
    ParsedResponse,
    ResponseKind,
    SqlType,
    ToolCall,
)

__all__ = [
    # main agent
    "SQLiteAgent",
    "AgentRequest",
    "register",
    # configuration
    "Settings",
    "get_settings",
    "load_settings",
    # types
    "ColumnSpec",
    "EmbeddingReport",
    "InsertionOutcome",
    "ParsedResponse",
    "ResponseKind",
    "SqlType",
    "ToolCall",
    # exceptions
    "AgentError",
    "ClientError",
    "ContextCreationError",
    "ExtractionError",
    "InsertionError",
    "InvalidArgumentsError",
    "NotConnectedError",
    "SchemaError",
    "ToolError",
]
