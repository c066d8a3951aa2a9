"""Tool provider serving in-process BaseTool instances."""

import json
from typing import Any

from ..logging import get_logger
from ..tools.base import BaseTool
from .base import ToolProvider

logger = get_logger(__name__)


def _error_result(message: str) -> str:
    return json.dumps({"isError": True, "content": [{"type": "text", "text": message}]})


class LocalToolProvider(ToolProvider):
    """Serves Python tools with MCP-shaped results.

    Results are wrapped as ``{"content": [{"type": "text", "text": ...}]}``
    and failures carry ``"isError": true`` so the agent's error
    classification treats them like remote tool errors.
    """

    def __init__(self, tools: list[BaseTool]):
        self.tools = {tool.name: tool for tool in tools}

    def list_tools(self) -> str | None:
        return json.dumps([tool.to_schema() for tool in self.tools.values()])

    def call_tool(self, name: str, arguments: str) -> str | None:
        tool = self.tools.get(name)
        if tool is None:
            return _error_result(f"Tool '{name}' not found")

        try:
            kwargs = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as e:
            return _error_result(f"Invalid arguments for {name}: {e}")
        if not isinstance(kwargs, dict):
            return _error_result(f"Arguments for {name} must be a JSON object")

        try:
            result: Any = tool.execute(**kwargs)
        except Exception as e:
            logger.warning(f"tool {name} raised: {e}")
            return _error_result(f"Tool {name} failed to run: {e}")

        text = result if isinstance(result, str) else json.dumps(result, default=str)
        return json.dumps({"content": [{"type": "text", "text": text}]})
