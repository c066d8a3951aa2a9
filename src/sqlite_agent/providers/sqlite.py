"""Providers backed by SQL functions of loaded SQLite extensions.

These call the functions registered by sqlite-mcp (tools), sqlite-ai (chat
and embeddings) and sqlite-vector (indices) on the same connection the agent
runs on. Loading the extensions is the caller's job.
"""

import sqlite3

from ..exceptions import ProviderUnavailableError
from ..logging import get_logger
from .base import ChatProvider, EmbeddingProvider, ToolProvider, VectorIndexProvider

logger = get_logger(__name__)


def _scalar(connection: sqlite3.Connection, sql: str, params: tuple = ()):
    row = connection.execute(sql, params).fetchone()
    return row[0] if row else None


class SQLiteToolProvider(ToolProvider):
    """Tools exposed through ``mcp_list_tools_json`` / ``mcp_call_tool_json``."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection

    def list_tools(self) -> str | None:
        try:
            return _scalar(self.connection, "SELECT mcp_list_tools_json()")
        except sqlite3.Error as e:
            logger.debug(f"failed to execute mcp_list_tools_json(): {e}")
            return None

    def call_tool(self, name: str, arguments: str) -> str | None:
        try:
            return _scalar(
                self.connection, "SELECT mcp_call_tool_json(?, ?)", (name, arguments)
            )
        except sqlite3.Error as e:
            logger.debug(f"failed to execute mcp_call_tool_json(): {e}")
            return None


class SQLiteChatProvider(ChatProvider):
    """Chat through ``llm_chat_respond`` and friends."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection

    def create_context(self, capacity: int | None = None) -> bool:
        try:
            if capacity:
                _scalar(
                    self.connection,
                    "SELECT llm_context_create_chat(?)",
                    (f"context_size={capacity}",),
                )
            else:
                _scalar(self.connection, "SELECT llm_context_create_chat()")
        except sqlite3.Error as e:
            logger.warning(f"failed to create chat context: {e}")
            return False
        return True

    def respond(self, prompt: str) -> str | None:
        try:
            return _scalar(self.connection, "SELECT llm_chat_respond(?)", (prompt,))
        except sqlite3.Error as e:
            raise ProviderUnavailableError(f"LLM did not respond: {e}") from e

    def context_size(self) -> int:
        try:
            return int(_scalar(self.connection, "SELECT llm_context_size()") or 0)
        except sqlite3.Error:
            return 0


class SQLiteEmbeddingProvider(EmbeddingProvider):
    """Embeddings through ``llm_embed_generate``."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection

    def create_context(self, config: str) -> bool:
        try:
            _scalar(self.connection, "SELECT llm_context_create_embedding(?)", (config,))
        except sqlite3.Error as e:
            logger.warning(f"failed to create embedding context: {e}")
            return False
        return True

    def generate(self, text: str) -> bytes:
        return _scalar(self.connection, "SELECT llm_embed_generate(?, '')", (text,))

    def dimension(self) -> int:
        try:
            return int(_scalar(self.connection, "SELECT llm_model_n_embd()") or 0)
        except sqlite3.Error as e:
            logger.warning(f"failed to get embedding dimension: {e}")
            return 0

    def sql_expression(self, connection: sqlite3.Connection, argument_sql: str) -> str:
        # the extension function is already registered on the connection
        return f"llm_embed_generate({argument_sql}, '')"

    def register_sql_function(self, connection: sqlite3.Connection) -> None:
        pass


class SQLiteVectorIndexProvider(VectorIndexProvider):
    """Vector indices through sqlite-vector's ``vector_init``."""

    def __init__(self, connection: sqlite3.Connection, vector_type: str = "FLOAT32"):
        self.connection = connection
        self.vector_type = vector_type

    def build_index(self, table: str, column: str, dimension: int, distance: str) -> bool:
        options = f"dimension={dimension},type={self.vector_type},distance={distance}"
        try:
            _scalar(self.connection, "SELECT vector_init(?, ?, ?)", (table, column, options))
        except sqlite3.Error as e:
            logger.warning(f"vector_init failed for {table}.{column}: {e}")
            return False
        return True
