"""Shared test fixtures and configuration."""

import sqlite3
import struct
from unittest.mock import MagicMock

import pytest

from sqlite_agent.config import Settings
from sqlite_agent.providers.base import (
    ChatProvider,
    EmbeddingProvider,
    ToolProvider,
    VectorIndexProvider,
)
from sqlite_agent.storage import TableStore


class ScriptedChatProvider(ChatProvider):
    """Chat provider that replays a fixed list of responses.

    Entries that are exceptions are raised instead of returned. Once the
    script runs out every call returns None.
    """

    def __init__(self, responses=None, capacity=0, accept_context=True):
        self.responses = list(responses or [])
        self.prompts = []
        self.context_requests = []
        self.capacity = capacity
        self.accept_context = accept_context

    def create_context(self, capacity=None):
        self.context_requests.append(capacity)
        if not self.accept_context:
            return False
        if capacity:
            self.capacity = capacity
        return True

    def respond(self, prompt):
        self.prompts.append(prompt)
        if not self.responses:
            return None
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def context_size(self):
        return self.capacity


class FakeToolProvider(ToolProvider):
    """Tool provider with a fixed catalog and scripted results."""

    def __init__(self, catalog="[]", results=None):
        self.catalog = catalog
        self.results = list(results or [])
        self.calls = []

    def list_tools(self):
        return self.catalog

    def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        if not self.results:
            return None
        return self.results.pop(0)


class FakeEmbeddingProvider(EmbeddingProvider):
    """Embeds text as a 4-dimensional float32 vector of simple statistics."""

    DIMENSION = 4

    def __init__(self):
        self.configs = []
        self.texts = []

    def create_context(self, config):
        self.configs.append(config)
        return True

    def generate(self, text):
        self.texts.append(text)
        values = (float(len(text)), float(text.count(" ")), float(text.count("|")), 1.0)
        return struct.pack("<4f", *values)

    def dimension(self):
        return self.DIMENSION


class FakeVectorIndexProvider(VectorIndexProvider):
    """Records the indices it was asked to build."""

    def __init__(self, succeed=True):
        self.built = []
        self.succeed = succeed

    def build_index(self, table, column, dimension, distance):
        self.built.append((table, column, dimension, distance))
        return self.succeed


@pytest.fixture
def settings():
    """Default settings, unaffected by any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def connection():
    """In-memory database, closed after the test."""
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def store(connection):
    return TableStore(connection)


@pytest.fixture
def items_table(connection):
    """Table with an INTEGER, a TEXT and an embedding column."""
    connection.execute("CREATE TABLE items (id INTEGER, title TEXT, embedding BLOB)")
    return "items"


@pytest.fixture
def chat_provider():
    return ScriptedChatProvider()


@pytest.fixture
def tool_provider():
    return FakeToolProvider()


@pytest.fixture
def embedding_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def vector_provider():
    return FakeVectorIndexProvider()


@pytest.fixture
def mock_chat_provider():
    """Create a mock chat provider."""
    provider = MagicMock(spec=ChatProvider)
    provider.create_context.return_value = True
    provider.context_size.return_value = 0
    return provider
