"""Chat context sizing and per-tool-result truncation.

The chat context must hold the tool catalog, the instruction prompt, the
accumulated tool results and the extraction prompt. The budget below decides
how large the context is and how much of each tool result may be kept.
"""

import math

from ..config import Settings, get_settings
from ..types import BudgetPlan


class ContextBudget:
    """Computes chat context capacity and tool-result truncation limits."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def required_capacity(self, catalog_length: int) -> int:
        """Capacity needed for a tool catalog of the given length."""
        return max(self.settings.min_context_size, 2 * catalog_length)

    def capacity(self, existing: int, catalog_length: int) -> int:
        """Never shrink a context the provider already has."""
        return max(existing or 0, self.required_capacity(catalog_length))

    def plan(
        self,
        capacity: int,
        catalog_length: int,
        prompt_length: int,
        max_iterations: int,
    ) -> BudgetPlan:
        """Split the remaining context between expected tool results.

        About half of the iterations are assumed to produce a tool result;
        each gets an equal share of what is left after the catalog, the
        prompt, the extraction template and a safety margin.

        Args:
            capacity: Chat context capacity in use
            catalog_length: Length of the formatted tool catalog
            prompt_length: Length of the instruction prompt
            max_iterations: Loop bound of the run

        Returns:
            BudgetPlan with the clamped per-result limit
        """
        s = self.settings
        available = (
            capacity
            - catalog_length
            - prompt_length
            - s.extraction_prompt_overhead
            - s.safety_margin
        )
        available = max(available, s.min_conversation_space)

        expected_results = max(1, math.ceil(max_iterations / 2))
        truncate_at = available // expected_results
        truncate_at = max(s.min_truncate_chars, min(truncate_at, s.max_truncate_chars))

        return BudgetPlan(capacity=capacity, available=available, truncate_at=truncate_at)

    @staticmethod
    def format_tool_result(tool_name: str, result: str, truncate_at: int) -> str:
        """Render a tool result as a history line, truncating long results.

        Args:
            tool_name: Tool that produced the result
            result: Raw result text
            truncate_at: Maximum number of result characters kept

        Returns:
            One history entry, newline terminated
        """
        if len(result) > truncate_at:
            return (
                f"Tool {tool_name} returned (truncated to {truncate_at} chars): "
                f"{result[:truncate_at]}...\n"
            )
        return f"Tool {tool_name} returned: {result}\n"
