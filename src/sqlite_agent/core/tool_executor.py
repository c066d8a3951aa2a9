"""Tool execution logic for the agent.

This module sends parsed tool calls to the tool provider and classifies
what comes back.
"""

from ..exceptions import TemplatePlaceholderError, ToolInvocationError
from ..logging import get_logger
from ..providers.base import ToolProvider
from ..types import ToolCall

logger = get_logger(__name__)


class ToolExecutor:
    """Dispatches tool calls and classifies their results.

    This class manages:
    - Rejecting calls whose arguments still hold template placeholders
    - Turning a missing result into ToolInvocationError
    - Recognizing results that report an error
    """

    def __init__(self, provider: ToolProvider, error_markers: list[str]):
        """Initialize the tool executor.

        Args:
            provider: The tool provider to call.
            error_markers: Substrings that flag a result as an error.
        """
        self.provider = provider
        self.error_markers = error_markers

    def check_placeholders(self, tool_call: ToolCall) -> None:
        """Reject arguments the model copied from a template.

        Args:
            tool_call: The call to check.

        Raises:
            TemplatePlaceholderError: If the arguments contain ``{{`` or ``}}``.
        """
        if tool_call.has_placeholder:
            raise TemplatePlaceholderError(tool_call.name, tool_call.arguments)

    def execute(self, tool_call: ToolCall) -> str:
        """Execute a single tool call and return its result.

        Args:
            tool_call: The call to dispatch.

        Returns:
            The tool result text.

        Raises:
            TemplatePlaceholderError: If the arguments hold placeholders.
            ToolInvocationError: If the call did not complete.
        """
        self.check_placeholders(tool_call)

        logger.info(f"executing tool: {tool_call.name} with args: {tool_call.arguments}")
        try:
            result = self.provider.call_tool(tool_call.name, tool_call.arguments)
        except ToolInvocationError:
            raise
        except Exception as e:
            raise ToolInvocationError(tool_call.name, e) from e

        if result is None:
            raise ToolInvocationError(tool_call.name)

        suffix = "..." if len(result) > 500 else ""
        logger.debug(f"tool result (length={len(result)}): {result[:500]}{suffix}")
        return result

    def is_error_result(self, result: str) -> bool:
        """Check whether a tool result reports an error.

        Args:
            result: The tool result text.

        Returns:
            True if any error marker occurs in the result.
        """
        return any(marker in result for marker in self.error_markers)
