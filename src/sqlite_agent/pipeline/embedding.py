"""Embedding generation and vector-index creation after an insert.

For every embedding column the model picks which text columns describe the
row; their concatenation is embedded for rows that have no embedding yet,
and a cosine vector index is built over the column. Every failure here is
logged and skipped: the rows are already committed.
"""

import sqlite3

from ..config import Settings, get_settings
from ..core.prompt_builder import PromptBuilder
from ..exceptions import AgentError
from ..logging import get_logger
from ..providers.base import ChatContext, EmbeddingProvider, VectorIndexProvider
from ..storage import TableStore
from ..types import ColumnSpec, EmbeddingReport, SqlType

logger = get_logger(__name__)


def parse_column_list(response: str, valid: list[str]) -> list[str]:
    """Parse a comma-separated column list, dropping unknown names.

    Args:
        response: Model reply, e.g. ``"title, description"``
        valid: Column names that may be used

    Returns:
        Known column names in the order given, without duplicates
    """
    selected = []
    for token in response.split(","):
        name = token.strip()
        if name in valid and name not in selected:
            selected.append(name)
    return selected


class EmbeddingIndexTrigger:
    """Populates embedding columns and builds their vector indices."""

    def __init__(
        self,
        chat: ChatContext,
        embeddings: EmbeddingProvider,
        vector_index: VectorIndexProvider,
        store: TableStore,
        prompt_builder: PromptBuilder | None = None,
        settings: Settings | None = None,
    ):
        self.chat = chat
        self.embeddings = embeddings
        self.vector_index = vector_index
        self.store = store
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.settings = settings or get_settings()

    def select_sources(self, embedding_column: str, columns: list[ColumnSpec]) -> list[str]:
        """Ask the model which text columns feed ``embedding_column``.

        Returns:
            The validated column list; empty when nothing usable came back.
        """
        text_columns = [
            c.name for c in columns
            if not c.is_embedding_target and c.sql_type == SqlType.TEXT
        ]
        if not text_columns:
            logger.info(f"no text columns to embed for {embedding_column}")
            return []

        prompt = self.prompt_builder.build_mapping_prompt(text_columns, embedding_column)
        try:
            response = self.chat.respond(prompt)
        except AgentError as e:
            logger.warning(f"column mapping failed for {embedding_column}: {e}")
            return []

        valid = [c.name for c in columns if not c.is_embedding_target]
        selected = parse_column_list(response or "", valid)
        if not selected:
            logger.warning(
                f"could not resolve source columns for {embedding_column} from {response!r}"
            )
        return selected

    def run(self, table_name: str, columns: list[ColumnSpec], rows_inserted: int) -> EmbeddingReport:
        """Embed new rows and build indices.

        Does nothing unless the table has an embedding column and at least
        one row was committed.

        Args:
            table_name: Target table
            columns: All columns of the target table
            rows_inserted: Rows committed by the insertion step

        Returns:
            EmbeddingReport describing what succeeded
        """
        report = EmbeddingReport()
        targets = [c for c in columns if c.is_embedding_target]
        if not targets or rows_inserted <= 0:
            return report

        try:
            if not self.embeddings.create_context(self.settings.embedding_config):
                logger.warning("failed to create embedding context")
        except (sqlite3.Error, AgentError) as e:
            logger.warning(f"failed to create embedding context: {e}")

        for column in targets:
            sources = self.select_sources(column.name, columns)
            if not sources:
                continue
            try:
                updated = self.store.update_embeddings(
                    table_name,
                    column.name,
                    sources,
                    lambda expr: self.embeddings.sql_expression(self.store.connection, expr),
                )
            except (sqlite3.Error, AgentError) as e:
                logger.warning(f"embedding update failed for {column.name}: {e}")
                continue
            logger.info(f"embedded {updated} rows into {table_name}.{column.name}")
            report.columns_embedded.append(column.name)
            report.rows_updated += updated

        self.build_indices(table_name, targets, report)
        return report

    def build_indices(
        self,
        table_name: str,
        targets: list[ColumnSpec],
        report: EmbeddingReport,
    ) -> None:
        """Build one vector index per embedding column."""
        try:
            dimension = self.embeddings.dimension()
        except AgentError as e:
            logger.warning(f"failed to get embedding dimension: {e}")
            return

        report.dimension = dimension
        if dimension <= 0:
            logger.warning("embedding dimension is 0, skipping vector indices")
            return

        for column in targets:
            logger.debug(f"initializing vector index for {table_name}.{column.name}")
            try:
                built = self.vector_index.build_index(
                    table_name, column.name, dimension, self.settings.vector_distance
                )
            except (sqlite3.Error, AgentError) as e:
                logger.warning(f"vector index failed for {column.name}: {e}")
                continue
            if built:
                report.indexes_built.append(column.name)
            else:
                logger.warning(f"vector index failed for {column.name}")
