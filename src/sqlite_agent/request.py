"""Parsing of ``agent_run`` arguments into a request."""

from dataclasses import dataclass
from typing import Any

from .core.modes import Mode, TableExtraction, TextResponse
from .exceptions import InvalidArgumentsError
from .types import DEFAULT_MAX_ITERATIONS

USAGE = (
    "agent_run requires 1-4 arguments: "
    "(goal, [table_name], [max_iterations], [system_prompt])"
)


@dataclass(frozen=True)
class AgentRequest:
    """A validated agent request.

    Attributes:
        goal: What the agent should accomplish
        table_name: Target table, or None for a free-text answer
        max_iterations: Upper bound on model turns
        system_prompt: Replaces the generated instruction prompt when set
    """
    goal: str
    table_name: str | None = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    system_prompt: str | None = None

    @classmethod
    def from_args(
        cls,
        *args: Any,
        default_max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> "AgentRequest":
        """Build a request from positional ``agent_run`` arguments.

        Accepted shapes are ``(goal)``, ``(goal, max_iterations)``,
        ``(goal, table_name)``, ``(goal, table_name, max_iterations)`` and
        ``(goal, table_name, max_iterations, system_prompt)``. An integer
        second argument is an iteration cap; anything else is a table name,
        so ``"5"`` names a table while ``5`` caps iterations.

        Args:
            *args: The raw arguments
            default_max_iterations: Cap used when none is given

        Returns:
            The parsed request

        Raises:
            InvalidArgumentsError: On bad arity or a null/empty goal
        """
        if not 1 <= len(args) <= 4:
            raise InvalidArgumentsError(USAGE)

        goal = args[0]
        if goal is None:
            raise InvalidArgumentsError("goal must be non-null")
        goal = str(goal)
        if not goal:
            raise InvalidArgumentsError("goal must be non-empty")

        table_name = None
        max_iterations = default_max_iterations
        system_prompt = None

        if len(args) >= 2:
            second = args[1]
            if isinstance(second, int) and not isinstance(second, bool):
                max_iterations = second
            elif second is not None:
                table_name = str(second) or None

        if len(args) >= 3 and args[2] is not None:
            try:
                max_iterations = int(args[2])
            except (TypeError, ValueError) as e:
                raise InvalidArgumentsError(
                    f"max_iterations must be an integer, got {args[2]!r}"
                ) from e

        if len(args) == 4 and args[3]:
            system_prompt = str(args[3])

        return cls(
            goal=goal,
            table_name=table_name,
            max_iterations=max_iterations,
            system_prompt=system_prompt,
        )

    @property
    def mode(self) -> Mode:
        """The operating mode this request selects."""
        if self.table_name:
            return TableExtraction(self.table_name)
        return TextResponse()
