"""Collaborator implementations.

All providers implement the interfaces in providers.base; the agent only
talks to those interfaces.
"""

from .base import (
    ChatContext,
    ChatProvider,
    ContextState,
    EmbeddingProvider,
    ToolProvider,
    VectorIndexProvider,
    with_retry,
)
from .local import LocalToolProvider
from .openai import OpenAIChatProvider, OpenAIEmbeddingProvider
from .sqlite import (
    SQLiteChatProvider,
    SQLiteEmbeddingProvider,
    SQLiteToolProvider,
    SQLiteVectorIndexProvider,
)

__all__ = [
    "ChatContext",
    "ChatProvider",
    "ContextState",
    "EmbeddingProvider",
    "ToolProvider",
    "VectorIndexProvider",
    "LocalToolProvider",
    "OpenAIChatProvider",
    "OpenAIEmbeddingProvider",
    "SQLiteChatProvider",
    "SQLiteEmbeddingProvider",
    "SQLiteToolProvider",
    "SQLiteVectorIndexProvider",
    "with_retry",
]
