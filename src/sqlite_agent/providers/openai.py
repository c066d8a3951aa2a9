"""OpenAI-compatible chat and embedding providers.

These let the agent run against any OpenAI-compatible endpoint instead of an
in-database model. The chat provider keeps the turn history on the client
side so the agent's "Continue" turns see the earlier tool calls.
"""

import os
from array import array
from contextlib import contextmanager
from typing import Any

from openai import APIConnectionError, APIError, OpenAI
from openai import AuthenticationError as OpenAIAuthError
from openai import RateLimitError as OpenAIRateLimitError

from ..exceptions import (
    AuthenticationError,
    ClientError,
    ProviderUnavailableError,
    RateLimitError,
)
from ..logging import get_logger
from .base import ChatProvider, EmbeddingProvider, with_retry

logger = get_logger(__name__)

# rough conversion used to keep the client-side history within capacity
CHARS_PER_TOKEN = 4


@contextmanager
def _handle_api_errors():
    """Map OpenAI SDK errors onto the agent's client errors."""
    try:
        yield
    except OpenAIAuthError as e:
        raise AuthenticationError(f"OpenAI authentication failed: {e}") from e
    except OpenAIRateLimitError as e:
        raise RateLimitError("OpenAI rate limit exceeded") from e
    except APIConnectionError as e:
        raise ProviderUnavailableError(f"OpenAI API unavailable: {e}") from e
    except APIError as e:
        raise ClientError(f"OpenAI request failed: {e}") from e


def _create_client(api_key: str | None, base_url: str | None) -> OpenAI:
    """Create the OpenAI SDK client."""
    return OpenAI(
        api_key=api_key or os.environ.get("OPENAI_API_KEY"),
        base_url=base_url or os.environ.get("OPENAI_BASE_URL"),
    )


class OpenAIChatProvider(ChatProvider):
    """Chat provider for OpenAI-compatible chat completions."""

    SUPPORTED_CONFIG_KEYS = {
        "temperature",
        "top_p",
        "max_tokens",
        "stop",
        "presence_penalty",
        "frequency_penalty",
    }

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        client_config: dict | None = None,
        default_capacity: int = 4096,
    ):
        """Initialize the provider.

        Args:
            api_key: API key. Defaults to OPENAI_API_KEY env var.
            model: Chat model name.
            base_url: Endpoint for OpenAI-compatible servers.
            client_config: Optional sampling parameters (temperature, ...).
            default_capacity: Capacity used when none is requested.
        """
        self.model = model
        self.client_config = client_config or {}
        self.default_capacity = default_capacity
        self.client = _create_client(api_key, base_url)
        self._turns: list[dict[str, str]] = []
        self._capacity = 0

    def create_context(self, capacity: int | None = None) -> bool:
        """Start a fresh conversation, never shrinking the capacity."""
        self._capacity = max(self._capacity, capacity or self.default_capacity)
        self._turns = []
        return True

    def context_size(self) -> int:
        return self._capacity

    def respond(self, prompt: str) -> str | None:
        self._turns.append({"role": "user", "content": prompt})
        self._trim_turns()

        try:
            content = self._complete(list(self._turns))
        except Exception:
            # drop the unanswered turn so the history keeps alternating
            self._turns.pop()
            raise
        if content is not None:
            self._turns.append({"role": "assistant", "content": content})
        return content

    @with_retry(max_retries=3, initial_delay=1.0)
    def _complete(self, messages: list[dict[str, str]]) -> str | None:
        api_args: dict[str, Any] = {"model": self.model, "messages": messages}
        for key, value in self.client_config.items():
            if key in self.SUPPORTED_CONFIG_KEYS:
                api_args[key] = value

        with _handle_api_errors():
            response = self.client.chat.completions.create(**api_args)

        if not response.choices:
            return None
        return response.choices[0].message.content

    def _trim_turns(self) -> None:
        # keep the first turn (it carries the instruction prompt)
        if not self._capacity:
            return
        limit = self._capacity * CHARS_PER_TOKEN
        while len(self._turns) > 2 and sum(len(t["content"]) for t in self._turns) > limit:
            dropped = self._turns.pop(1)
            logger.debug(f"dropped {dropped['role']} turn to stay within capacity")


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embedding provider producing FLOAT32 blobs."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        dimension: int | None = None,
    ):
        """Initialize the provider.

        Args:
            api_key: API key. Defaults to OPENAI_API_KEY env var.
            model: Embedding model name.
            base_url: Endpoint for OpenAI-compatible servers.
            dimension: Known embedding dimension; discovered on first use if None.
        """
        self.model = model
        self.client = _create_client(api_key, base_url)
        self.config: str | None = None
        self._dimension = dimension

    def create_context(self, config: str) -> bool:
        self.config = config
        return True

    @with_retry(max_retries=3, initial_delay=1.0)
    def generate(self, text: str) -> bytes:
        with _handle_api_errors():
            response = self.client.embeddings.create(model=self.model, input=text)
        vector = response.data[0].embedding
        self._dimension = len(vector)
        return array("f", vector).tobytes()

    def dimension(self) -> int:
        if self._dimension is None:
            self.generate(" ")
        return self._dimension or 0
