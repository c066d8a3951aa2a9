"""Interfaces of the collaborators the agent drives.

The agent never performs inference, tool transport or vector search itself.
It sequences calls to the providers defined here and interprets their text
output. Concrete implementations live in the sibling modules.
"""

import functools
import random
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum, auto
from typing import Any, Callable, Iterator, TypeVar

from ..exceptions import ContextCreationError, ProviderUnavailableError, RateLimitError
from ..logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def with_retry(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for retrying provider calls with exponential backoff.

    Retries on RateLimitError and ProviderUnavailableError. Other exceptions
    are raised immediately.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        initial_delay: Initial delay in seconds between retries (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential backoff (default: 2.0)
        jitter: Whether to add random jitter to delay (default: True)

    Returns:
        Decorated function with retry logic.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except (RateLimitError, ProviderUnavailableError) as e:
                    if attempt == max_retries:
                        logger.warning(
                            f"max retries ({max_retries}) exceeded for {func.__name__}: {e}"
                        )
                        raise

                    actual_delay = min(delay, max_delay)
                    if jitter:
                        actual_delay *= (0.5 + random.random())

                    logger.info(
                        f"retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {actual_delay:.1f}s: {e}"
                    )
                    time.sleep(actual_delay)
                    delay *= exponential_base

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper
    return decorator


class ToolProvider(ABC):
    """Lists and invokes external tools (an MCP session, for instance)."""

    @abstractmethod
    def list_tools(self) -> str | None:
        """Return the tool listing as text, or None if no session exists."""

    @abstractmethod
    def call_tool(self, name: str, arguments: str) -> str | None:
        """Invoke a tool with JSON argument text.

        Returns:
            The result text, or None if the call did not complete.
        """


class ChatProvider(ABC):
    """A chat model that keeps its own turn history between calls."""

    @abstractmethod
    def create_context(self, capacity: int | None = None) -> bool:
        """Create or resize the chat context.

        Args:
            capacity: Requested capacity; None asks for the provider default.

        Returns:
            True on success.
        """

    @abstractmethod
    def respond(self, prompt: str) -> str | None:
        """Send one user turn and return the reply (None if there is none)."""

    @abstractmethod
    def context_size(self) -> int:
        """Capacity of the current context, 0 if none has been created."""


class EmbeddingProvider(ABC):
    """Generates embedding vectors as binary blobs."""

    @abstractmethod
    def create_context(self, config: str) -> bool:
        """Prepare the embedding model. Returns True on success."""

    @abstractmethod
    def generate(self, text: str) -> bytes:
        """Embed text, returning the vector as a blob."""

    @abstractmethod
    def dimension(self) -> int:
        """Embedding dimension of the model, 0 if unknown."""

    def sql_expression(self, connection: sqlite3.Connection, argument_sql: str) -> str:
        """Return SQL that embeds ``argument_sql`` inside an UPDATE.

        The default calls ``generate`` through ``agent_embed_generate``.
        Providers backed by a loaded extension override this to call their
        own function.

        Args:
            connection: Connection the UPDATE will run on.
            argument_sql: SQL expression producing the text to embed.

        Returns:
            SQL expression producing the embedding blob.
        """
        self.register_sql_function(connection)
        return f"agent_embed_generate({argument_sql})"

    def register_sql_function(self, connection: sqlite3.Connection) -> None:
        """Register ``generate`` as ``agent_embed_generate`` on a connection.

        Registers at most once per connection: SQLite refuses to redefine a
        function while a statement such as ``SELECT agent_run(...)`` is
        still running on it.
        """
        registered = self.__dict__.setdefault("_sql_connections", [])
        if any(conn is connection for conn in registered):
            return
        connection.create_function("agent_embed_generate", 1, self._generate_or_null)
        registered.append(connection)
        logger.debug("registered agent_embed_generate")

    def _generate_or_null(self, text: str | None) -> bytes | None:
        if text is None:
            return None
        return self.generate(text)


class VectorIndexProvider(ABC):
    """Builds vector indices over embedding columns."""

    @abstractmethod
    def build_index(self, table: str, column: str, dimension: int, distance: str) -> bool:
        """Build an index for one column. Returns True on success."""


class ContextState(Enum):
    """Lifecycle of a chat context handle."""
    UNINITIALIZED = auto()
    SIZED = auto()
    DESTROYED = auto()


class ChatContext:
    """Explicit handle on a chat provider's context.

    The provider's context is mutable state shared by everything that talks
    to it. A run holds the handle's lock for its whole duration, so runs that
    share a handle execute one at a time; give concurrent runs distinct
    handles (and providers) to run them in parallel.

    Attributes:
        provider: The chat provider this handle sizes and talks to
        state: Current lifecycle state
        capacity: Capacity requested at the last successful sizing
    """

    def __init__(self, provider: ChatProvider):
        self.provider = provider
        self.state = ContextState.UNINITIALIZED
        self.capacity = 0
        self._lock = threading.Lock()

    @contextmanager
    def session(self) -> Iterator["ChatContext"]:
        """Hold the handle for the duration of one run."""
        with self._lock:
            yield self

    def existing_capacity(self) -> int:
        """Capacity the provider reports for its current context."""
        return self.provider.context_size() or 0

    def ensure_capacity(self, capacity: int | None) -> int:
        """Create or resize the provider context.

        Args:
            capacity: Capacity to request; None or 0 uses the provider default.

        Returns:
            The capacity now recorded on the handle.

        Raises:
            ContextCreationError: If the provider refuses.
        """
        if self.state == ContextState.DESTROYED:
            raise ContextCreationError(capacity)

        requested = capacity if capacity and capacity > 0 else None
        if not self.provider.create_context(requested):
            raise ContextCreationError(capacity)

        self.capacity = requested or self.existing_capacity()
        self.state = ContextState.SIZED
        logger.debug(f"chat context sized to {self.capacity}")
        return self.capacity

    def respond(self, prompt: str) -> str | None:
        return self.provider.respond(prompt)

    def destroy(self) -> None:
        """Mark the handle unusable."""
        self.state = ContextState.DESTROYED
        self.capacity = 0
