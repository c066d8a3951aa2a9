"""Turns the gathered conversation into rows of the target table.

One more chat call asks the model to restate the history as a JSON array.
The reply is not parsed as JSON: it is scanned for successive brace-matched
objects and each object's column values are read by key, which tolerates
truncated arrays, stray prose and markdown fences around the data.
"""

import json
import re

from ..config import Settings, get_settings
from ..core.prompt_builder import PromptBuilder
from ..exceptions import ClientError, ExtractionError
from ..logging import get_logger
from ..providers.base import ChatContext
from ..storage import TableStore
from ..types import ColumnSpec, ExtractedRow, InsertionOutcome, SqlType
from ..utils.brace_scanner import BraceScanner

logger = get_logger(__name__)

_INTEGER_RE = re.compile(r"\s*([+-]?\d+)")
_REAL_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_BARE_TOKEN_RE = re.compile(r"[^,}\]\n]*")


def _key_pattern(column: str) -> re.Pattern:
    return re.compile('"' + re.escape(column) + r'"\s*:\s*')


def _read_quoted(text: str) -> str | None:
    """Read the string literal at the start of ``text`` (JSON escapes decoded)."""
    escape = False
    for i in range(1, len(text)):
        c = text[i]
        if escape:
            escape = False
        elif c == "\\":
            escape = True
        elif c == '"':
            literal = text[:i + 1]
            try:
                return json.loads(literal)
            except json.JSONDecodeError:
                return literal[1:-1]
    return None


def _read_number(token: str, sql_type: SqlType) -> int | float | None:
    if sql_type == SqlType.INTEGER:
        match = _INTEGER_RE.match(token)
        return int(match.group(1)) if match else None
    match = _REAL_RE.match(token)
    return float(match.group(1)) if match else None


def read_value(obj: str, column: ColumnSpec) -> int | float | str | None:
    """Read one column's value out of an object's text.

    The first ``"<column>":`` inside the object locates the value. Numeric
    columns accept a bare or quoted numeral and use its leading number;
    anything non-numeric binds NULL. Other columns take a quoted string or,
    failing that, the bare token up to the next delimiter. ``null`` and a
    missing key both bind NULL.

    Args:
        obj: Text of one brace-matched object
        column: The column to read

    Returns:
        The typed value, or None for SQL NULL
    """
    match = _key_pattern(column.name).search(obj)
    if not match:
        return None

    rest = obj[match.end():]
    if rest.startswith("null"):
        return None

    if column.sql_type in (SqlType.INTEGER, SqlType.REAL):
        if rest.startswith('"'):
            end = rest.find('"', 1)
            if end == -1:
                return None
            rest = rest[1:end]
        return _read_number(rest, column.sql_type)

    if rest.startswith('"'):
        return _read_quoted(rest)
    token = _BARE_TOKEN_RE.match(rest).group(0).strip()
    return token or None


class ExtractionPipeline:
    """Extracts rows from the conversation history and inserts them."""

    def __init__(
        self,
        chat: ChatContext,
        store: TableStore,
        prompt_builder: PromptBuilder | None = None,
        scanner: BraceScanner | None = None,
        settings: Settings | None = None,
    ):
        self.chat = chat
        self.store = store
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.settings = settings or get_settings()
        self.scanner = scanner or BraceScanner(self.settings.string_aware_scanning)

    def extract(self, columns: list[ColumnSpec], history: str) -> list[ExtractedRow]:
        """Ask the model for rows and scan them out of its reply.

        Args:
            columns: All columns of the target table
            history: Full conversation history

        Returns:
            One row per object found, keyed by non-embedding column name

        Raises:
            ExtractionError: If the chat call fails
        """
        schema = self.prompt_builder.describe_schema(columns)
        capped = history[:self.settings.extraction_history_chars]
        prompt = self.prompt_builder.build_extraction_prompt(schema, capped)
        logger.debug(f"extraction prompt:\n{prompt}")

        # reuse the provider's current capacity, or its default if it has none
        self.chat.ensure_capacity(self.chat.existing_capacity())

        try:
            response = self.chat.respond(prompt)
        except ClientError as e:
            raise ExtractionError(f"Failed to extract structured data: {e}") from e

        if response is None:
            logger.warning("extraction call returned no response")
            response = "[]"
        logger.debug(f"extracted json:\n{response}")

        return self.parse_rows(response, columns)

    def parse_rows(self, response: str, columns: list[ColumnSpec]) -> list[ExtractedRow]:
        """Build one row from every brace-matched object in ``response``."""
        targets = [c for c in columns if not c.is_embedding_target]
        rows = []
        for obj in self.scanner.iter_objects(response):
            logger.debug(f"found object (length={len(obj)}): {obj[:200]}")
            rows.append({col.name: read_value(obj, col) for col in targets})
        return rows

    def run(self, table_name: str, columns: list[ColumnSpec], history: str) -> InsertionOutcome:
        """Extract rows and insert them in one transaction.

        Args:
            table_name: Target table
            columns: All columns of the target table
            history: Full conversation history

        Returns:
            InsertionOutcome with the committed row count

        Raises:
            ExtractionError: If the chat call fails
            InsertionError: If any row fails; nothing is committed
        """
        rows = self.extract(columns, history)
        targets = [c for c in columns if not c.is_embedding_target]
        outcome = self.store.insert_rows(table_name, targets, rows)
        logger.info(f"inserted {outcome.rows_inserted} rows into {table_name}")
        return outcome
