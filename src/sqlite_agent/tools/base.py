from abc import ABC, abstractmethod
from typing import Any


class BaseTool(ABC):
    """Abstract base class for in-process tools.

    Tools are served to the agent by LocalToolProvider, which lists their
    schemas as the tool catalog and dispatches calls to execute().
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Return the tool description."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """Return the JSON schema for tool parameters."""
        pass

    @abstractmethod
    def execute(self, **kwargs) -> Any:
        """Execute the tool with the given arguments."""
        pass

    def to_schema(self) -> dict[str, Any]:
        """Return the tool schema as listed in the tool catalog."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters,
        }
