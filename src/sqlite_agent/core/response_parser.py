"""Parsers that pull a tool call or a termination signal out of model text.

Two grammars are supported:

Text grammar::

    TOOL_CALL: tool_name
    ARGS: {"param": "value"}

Table grammar::

    {"tool": "tool_name", "args": {"param": "value"}}

In both, the literal ``DONE`` anywhere in the response ends the loop.
"""

from ..exceptions import ParseError
from ..logging import get_logger
from ..types import ParsedResponse, ResponseKind, ToolCall
from ..utils.brace_scanner import BraceScanner

logger = get_logger(__name__)

DONE_MARKER = "DONE"
TOOL_CALL_MARKER = "TOOL_CALL:"
ARGS_MARKER = "ARGS:"
TOOL_KEY = '"tool"'
ARGS_KEY = '"args"'
EMPTY_ARGS = "{}"


class TextGrammar:
    """Parses the ``TOOL_CALL:`` / ``ARGS:`` line format."""

    def __init__(self, scanner: BraceScanner | None = None):
        self.scanner = scanner or BraceScanner()

    def parse(self, response: str) -> ParsedResponse:
        """Interpret a text-mode response.

        A response without a tool marker is the final answer.

        Args:
            response: Raw model output

        Returns:
            ParsedResponse of kind DONE, FINAL_ANSWER or TOOL_CALL
        """
        if DONE_MARKER in response:
            return ParsedResponse(kind=ResponseKind.DONE, text=response)

        marker = response.find(TOOL_CALL_MARKER)
        if marker == -1:
            return ParsedResponse(kind=ResponseKind.FINAL_ANSWER, text=response)

        name_start = marker + len(TOOL_CALL_MARKER)
        while name_start < len(response) and response[name_start] in " \n":
            name_start += 1
        name_end = response.find("\n", name_start)
        if name_end == -1:
            name_end = len(response)
        name = response[name_start:name_end].strip()

        arguments = self._parse_arguments(response, name_start)
        return ParsedResponse(
            kind=ResponseKind.TOOL_CALL,
            text=response,
            tool_call=ToolCall(name=name, arguments=arguments),
        )

    def _parse_arguments(self, response: str, start: int) -> str:
        args_marker = response.find(ARGS_MARKER, start)
        if args_marker == -1:
            logger.debug("found TOOL_CALL without ARGS, defaulting to empty args")
            return EMPTY_ARGS

        args_start = args_marker + len(ARGS_MARKER)
        while args_start < len(response) and response[args_start] in " \n":
            args_start += 1

        if response.find("{", args_start) == -1:
            # no object at all: take the rest of the line verbatim
            line_end = response.find("\n", args_start)
            if line_end == -1:
                line_end = len(response)
            return response[args_start:line_end]

        obj = self.scanner.extract_object(response, args_start)
        if obj is None:
            logger.debug("ARGS object never balances, defaulting to empty args")
            return EMPTY_ARGS
        return obj


class TableGrammar:
    """Parses the ``{"tool": ..., "args": {...}}`` object format."""

    def __init__(self, scanner: BraceScanner | None = None):
        self.scanner = scanner or BraceScanner()

    def parse(self, response: str) -> ParsedResponse:
        """Interpret a table-mode response.

        Args:
            response: Raw model output

        Returns:
            ParsedResponse of kind DONE, TOOL_CALL or UNRECOGNIZED
        """
        if DONE_MARKER in response:
            return ParsedResponse(kind=ResponseKind.DONE, text=response)

        try:
            tool_call = self.parse_tool_object(response)
        except ParseError as e:
            return ParsedResponse(
                kind=ResponseKind.UNRECOGNIZED, text=response, error=str(e)
            )
        return ParsedResponse(
            kind=ResponseKind.TOOL_CALL, text=response, tool_call=tool_call
        )

    def parse_tool_object(self, response: str) -> ToolCall:
        """Extract the tool name and argument object.

        The name is the quoted text following the first ``"tool"`` key; the
        arguments are the first brace-matched object after ``"args"``.

        Args:
            response: Raw model output

        Returns:
            The parsed tool call

        Raises:
            ParseError: If either key is missing or the name is empty
        """
        tool_key = response.find(TOOL_KEY)
        args_key = response.find(ARGS_KEY)
        if tool_key == -1 or args_key == -1:
            raise ParseError("response has no \"tool\"/\"args\" object")

        name = ""
        value_start = response.find('"', tool_key + len(TOOL_KEY))
        if value_start != -1:
            value_end = response.find('"', value_start + 1)
            if value_end != -1:
                name = response[value_start + 1:value_end]
        if not name:
            raise ParseError("could not read a tool name after \"tool\"")

        arguments = self.scanner.extract_object(response, args_key + len(ARGS_KEY))
        return ToolCall(name=name, arguments=arguments or EMPTY_ARGS)
