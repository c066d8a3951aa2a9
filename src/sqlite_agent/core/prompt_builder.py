"""Prompt construction and formatting utilities.

This module renders the tool catalog, the target schema description and
every prompt the agent sends to the chat provider.
"""

from ..prompts import (
    EMBEDDING_MAPPING_PROMPT,
    EXTRACTION_PROMPT,
    SCHEMA_HEADER,
    TABLE_MODE_PROMPT,
    TEXT_MODE_PROMPT,
    TOOL_CATALOG_HEADER,
)
from ..types import ColumnSpec


class PromptBuilder:
    """Constructs and formats prompts for the agent.

    A non-empty ``system_prompt_override`` replaces the generated instruction
    prompt verbatim in both modes; no template is rendered in that case.
    """

    def __init__(self, system_prompt_override: str | None = None):
        """Initialize the prompt builder.

        Args:
            system_prompt_override: Caller-supplied prompt used instead of the
                generated instruction prompt.
        """
        self.system_prompt_override = system_prompt_override or None

    def format_tool_catalog(self, raw_tools: str) -> str:
        """Wrap the provider's tool listing for inclusion in prompts.

        Args:
            raw_tools: Tool listing as returned by the tool provider.

        Returns:
            Formatted tool catalog text.
        """
        return f"{TOOL_CATALOG_HEADER}{raw_tools}"

    def describe_schema(self, columns: list[ColumnSpec]) -> str:
        """Describe every non-embedding column with its declared type.

        Args:
            columns: Target table columns in declaration order.

        Returns:
            Schema description text.
        """
        lines = [
            f"  - {col.name} ({col.declared_type})\n"
            for col in columns
            if not col.is_embedding_target
        ]
        return SCHEMA_HEADER + "".join(lines)

    def build_text_prompt(self, goal: str, tool_catalog: str) -> str:
        """Build the text-mode instruction prompt."""
        if self.system_prompt_override:
            return self.system_prompt_override
        return TEXT_MODE_PROMPT.format(tool_catalog=tool_catalog, goal=goal)

    def build_table_prompt(self, goal: str, tool_catalog: str, schema: str) -> str:
        """Build the table-mode instruction prompt."""
        if self.system_prompt_override:
            return self.system_prompt_override
        return TABLE_MODE_PROMPT.format(
            tool_catalog=tool_catalog, schema=schema, goal=goal
        )

    def build_extraction_prompt(self, schema: str, history: str) -> str:
        """Build the prompt that turns gathered history into a JSON array.

        Args:
            schema: Schema description from describe_schema().
            history: Conversation history, already capped by the caller.

        Returns:
            Extraction prompt text.
        """
        return EXTRACTION_PROMPT.format(schema=schema, history=history)

    def build_mapping_prompt(self, text_columns: list[str], embedding_column: str) -> str:
        """Build the prompt asking which columns feed an embedding column."""
        return EMBEDDING_MAPPING_PROMPT.format(
            columns=", ".join(text_columns),
            embedding_column=embedding_column,
        )
