"""Shared types for the sqlite agent.

These types describe a single agent run: the parsed request, what the model
said on each turn, the target table's columns and the outcome of the
table pipeline. Nothing here outlives one call to the agent.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


DEFAULT_MAX_ITERATIONS = 5


class SqlType(Enum):
    """Storage class a column's declared type resolves to."""
    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"
    BLOB = "BLOB"

    @classmethod
    def from_declared(cls, declared: str | None) -> "SqlType":
        """Resolve a declared column type using SQLite's affinity rules."""
        decl = (declared or "").upper()
        if "INT" in decl:
            return cls.INTEGER
        if "CHAR" in decl or "CLOB" in decl or "TEXT" in decl:
            return cls.TEXT
        if "BLOB" in decl or not decl:
            return cls.BLOB
        return cls.REAL


@dataclass(frozen=True)
class ColumnSpec:
    """A column of the target table."""
    name: str
    declared_type: str
    sql_type: SqlType

    @property
    def is_embedding_target(self) -> bool:
        """BLOB columns named ``embedding`` or ``*_embedding`` receive vectors."""
        return self.sql_type == SqlType.BLOB and (
            self.name == "embedding" or self.name.endswith("_embedding")
        )


@dataclass(frozen=True)
class ToolCall:
    """A tool call parsed out of model text.

    Attributes:
        name: Tool name as the model wrote it
        arguments: Raw JSON argument text, passed through untouched
    """
    name: str
    arguments: str = "{}"

    @property
    def has_placeholder(self) -> bool:
        """Check for unresolved ``{{...}}`` template syntax in the arguments."""
        return "{{" in self.arguments or "}}" in self.arguments


class ResponseKind(Enum):
    """What a single model response asks the loop to do."""
    DONE = auto()
    TOOL_CALL = auto()
    FINAL_ANSWER = auto()
    UNRECOGNIZED = auto()


@dataclass
class ParsedResponse:
    """A model response interpreted by one of the two grammars.

    Attributes:
        kind: The action the response maps to
        text: The full response text
        tool_call: The parsed call (only for TOOL_CALL)
        error: Why parsing failed (only for UNRECOGNIZED)
    """
    kind: ResponseKind
    text: str
    tool_call: ToolCall | None = None
    error: str | None = None

    @property
    def is_done(self) -> bool:
        return self.kind == ResponseKind.DONE

    @property
    def is_tool_call(self) -> bool:
        return self.kind == ResponseKind.TOOL_CALL


class LoopState(Enum):
    """States of the text-mode loop."""
    PROMPTING = auto()
    AWAITING_MODEL = auto()
    TERMINATED = auto()


@dataclass
class IterationState:
    """Per-run loop bookkeeping. Reset once at the start of each run."""
    iteration_index: int = 0
    conversation_history: list[str] = field(default_factory=list)
    consecutive_identical_errors: int = 0
    last_error_signature: str = ""

    @property
    def history_text(self) -> str:
        return "".join(self.conversation_history)


@dataclass(frozen=True)
class BudgetPlan:
    """Chat context sizing for one table-mode run."""
    capacity: int
    available: int
    truncate_at: int


# one extracted row: non-embedding column name -> typed value or None
ExtractedRow = dict[str, Any]


@dataclass(frozen=True)
class InsertionOutcome:
    """Result of a committed insertion batch."""
    rows_inserted: int


@dataclass
class EmbeddingReport:
    """What the embedding and vector-index step managed to do.

    Attributes:
        columns_embedded: Embedding columns whose update statement ran
        rows_updated: Rows touched across all embedding updates
        indexes_built: Embedding columns with a vector index
        dimension: Embedding dimension reported by the provider
    """
    columns_embedded: list[str] = field(default_factory=list)
    rows_updated: int = 0
    indexes_built: list[str] = field(default_factory=list)
    dimension: int = 0
