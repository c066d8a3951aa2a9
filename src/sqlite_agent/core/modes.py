"""The two operating modes of the agent.

A run is either ``TextResponse`` (free text back to the caller) or
``TableExtraction`` (rows inserted into a table). The mode is picked once
when the request is parsed and never changes during the run. Each variant
knows how to build its instruction prompt and which grammar reads the
model's replies.
"""

from dataclasses import dataclass

from ..types import ParsedResponse
from ..utils.brace_scanner import BraceScanner
from .prompt_builder import PromptBuilder
from .response_parser import TableGrammar, TextGrammar


@dataclass(frozen=True)
class TextResponse:
    """Answer the goal in free text."""

    def build_prompt(
        self,
        builder: PromptBuilder,
        goal: str,
        tool_catalog: str,
        schema: str | None = None,
    ) -> str:
        return builder.build_text_prompt(goal, tool_catalog)

    def parse_response(self, response: str, scanner: BraceScanner) -> ParsedResponse:
        return TextGrammar(scanner).parse(response)


@dataclass(frozen=True)
class TableExtraction:
    """Gather data with tools and insert it into ``table_name``."""
    table_name: str

    def build_prompt(
        self,
        builder: PromptBuilder,
        goal: str,
        tool_catalog: str,
        schema: str | None = None,
    ) -> str:
        return builder.build_table_prompt(goal, tool_catalog, schema or "")

    def parse_response(self, response: str, scanner: BraceScanner) -> ParsedResponse:
        return TableGrammar(scanner).parse(response)


Mode = TextResponse | TableExtraction
