"""Core agent components.

This module provides the building blocks of the agent loop:
- PromptBuilder: Renders the tool catalog, schema and prompts
- TextGrammar / TableGrammar: Parse tool calls out of model text
- ContextBudget: Sizes the chat context and tool-result truncation
- MemoryManager: Conversation history and repeated-error tracking
- ToolExecutor: Dispatches tool calls and classifies results
"""

from .budget import ContextBudget
from .memory_manager import MemoryManager
from .modes import Mode, TableExtraction, TextResponse
from .prompt_builder import PromptBuilder
from .response_parser import TableGrammar, TextGrammar
from .tool_executor import ToolExecutor

__all__ = [
    "ContextBudget",
    "MemoryManager",
    "Mode",
    "PromptBuilder",
    "TableExtraction",
    "TableGrammar",
    "TextGrammar",
    "TextResponse",
    "ToolExecutor",
]
