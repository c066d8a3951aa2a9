"""Storage access for the table pipeline.

Schema introspection, the all-or-nothing row insert and the embedding
update all run on the caller's ``sqlite3`` connection. Writes are scoped by
a savepoint so they stay atomic whether or not the caller already has a
transaction open.
"""

import sqlite3
from contextlib import contextmanager
from typing import Callable, Iterator

from .exceptions import InsertionError
from .logging import get_logger
from .types import ColumnSpec, ExtractedRow, InsertionOutcome, SqlType

logger = get_logger(__name__)


def quote_identifier(name: str) -> str:
    """Quote a table or column name for use in SQL."""
    return '"' + name.replace('"', '""') + '"'


class TableStore:
    """Reads table schemas and writes rows on one connection."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection

    def table_schema(self, table_name: str) -> list[ColumnSpec]:
        """Return the table's columns in declaration order.

        An empty list means the table does not exist or has no columns.
        """
        rows = self.connection.execute(
            f"PRAGMA table_info({quote_identifier(table_name)})"
        ).fetchall()

        columns = []
        for row in rows:
            name, declared = row[1], row[2]
            if name is None or declared is None:
                continue
            columns.append(
                ColumnSpec(
                    name=name,
                    declared_type=declared,
                    sql_type=SqlType.from_declared(declared),
                )
            )
        return columns

    @contextmanager
    def atomic(self, name: str = "sqlite_agent") -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements as one unit.

        Everything is released on success and rolled back on any exception,
        which is re-raised.
        """
        savepoint = quote_identifier(name)
        self.connection.execute(f"SAVEPOINT {savepoint}")
        try:
            yield self.connection
        except BaseException:
            self.connection.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
            self.connection.execute(f"RELEASE SAVEPOINT {savepoint}")
            raise
        self.connection.execute(f"RELEASE SAVEPOINT {savepoint}")

    def insert_rows(
        self,
        table_name: str,
        columns: list[ColumnSpec],
        rows: list[ExtractedRow],
    ) -> InsertionOutcome:
        """Insert every row or none of them.

        Args:
            table_name: Target table.
            columns: Columns to fill, in binding order.
            rows: Values keyed by column name; missing keys bind NULL.

        Returns:
            InsertionOutcome with the committed row count.

        Raises:
            InsertionError: If any row fails; no row is kept.
        """
        column_sql = ", ".join(quote_identifier(c.name) for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        sql = (
            f"INSERT INTO {quote_identifier(table_name)} ({column_sql}) "
            f"VALUES ({placeholders})"
        )
        logger.debug(f"preparing insert: {sql}")

        inserted = 0
        try:
            with self.atomic("sqlite_agent_insert") as conn:
                for row in rows:
                    conn.execute(sql, [row.get(c.name) for c in columns])
                    inserted += 1
                    logger.debug(f"row {inserted} inserted")
        except (sqlite3.Error, OverflowError) as e:
            logger.warning(f"insert failed after {inserted} rows, rolled back: {e}")
            raise InsertionError(table_name, e) from e

        return InsertionOutcome(rows_inserted=inserted)

    def update_embeddings(
        self,
        table_name: str,
        column: str,
        source_columns: list[str],
        embed_sql: Callable[[str], str],
    ) -> int:
        """Fill NULL embeddings from the concatenated source columns.

        Args:
            table_name: Target table.
            column: Embedding column to fill.
            source_columns: Columns joined with ``' | '`` (NULLs as '').
            embed_sql: Turns the concatenation SQL into an embedding SQL call.

        Returns:
            Number of rows updated.
        """
        concat = " || ' | ' || ".join(
            f"COALESCE({quote_identifier(c)}, '')" for c in source_columns
        )
        target = quote_identifier(column)
        sql = (
            f"UPDATE {quote_identifier(table_name)} SET {target} = {embed_sql(concat)} "
            f"WHERE {target} IS NULL"
        )
        logger.debug(f"embedding update: {sql}")

        with self.atomic("sqlite_agent_embed") as conn:
            cursor = conn.execute(sql)
        return max(cursor.rowcount, 0)
