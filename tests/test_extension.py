"""Tests for the SQL function surface and the extension-backed providers."""

import json
import logging
import sqlite3

import pytest

from conftest import (
    FakeEmbeddingProvider,
    FakeToolProvider,
    FakeVectorIndexProvider,
    ScriptedChatProvider,
)
from sqlite_agent import __version__
from sqlite_agent.agent import SQLiteAgent
from sqlite_agent.config import Settings
from sqlite_agent.exceptions import NotConnectedError
from sqlite_agent.extension import register
from sqlite_agent.logging import setup_logging


class FakeExtensions:
    """Stand-ins for the sqlite-mcp, sqlite-ai and sqlite-vector functions."""

    def __init__(self, connection, responses, tool_result="{}", tools="[]"):
        self.responses = list(responses)
        self.tool_result = tool_result
        self.tools = tools
        self.context_size = 0
        self.tool_calls = []
        self.chat_configs = []
        self.embedding_configs = []
        self.vector_inits = []

        connection.create_function("mcp_list_tools_json", 0, self.list_tools)
        connection.create_function("mcp_call_tool_json", 2, self.call_tool)
        connection.create_function("llm_context_size", 0, lambda: self.context_size)
        connection.create_function("llm_context_create_chat", -1, self.create_chat)
        connection.create_function("llm_chat_respond", 1, self.respond)
        connection.create_function("llm_context_create_embedding", 1, self.create_embedding)
        connection.create_function("llm_embed_generate", 2, self.embed)
        connection.create_function("llm_model_n_embd", 0, lambda: 3)
        connection.create_function("vector_init", 3, self.vector_init)

    def list_tools(self):
        if self.tools is None:
            raise RuntimeError("not connected")
        return self.tools

    def call_tool(self, name, arguments):
        self.tool_calls.append((name, arguments))
        return self.tool_result

    def create_chat(self, *args):
        self.chat_configs.append(args)
        if args:
            self.context_size = int(args[0].split("=")[1])
        else:
            self.context_size = 4096
        return 1

    def respond(self, prompt):
        return self.responses.pop(0) if self.responses else None

    def create_embedding(self, config):
        self.embedding_configs.append(config)
        return 1

    def embed(self, text, options):
        return text.encode()[:12].ljust(12, b"\0")

    def vector_init(self, table, column, options):
        self.vector_inits.append((table, column, options))
        return 1


def test_agent_version(connection, settings):
    agent = SQLiteAgent(FakeToolProvider(), ScriptedChatProvider(), connection, settings=settings)
    register(connection, agent)
    assert connection.execute("SELECT agent_version()").fetchone()[0] == __version__


def test_agent_run_text_mode(connection, settings):
    agent = SQLiteAgent(
        FakeToolProvider(), ScriptedChatProvider(["Hello! DONE"]), connection, settings=settings
    )
    register(connection, agent)
    assert connection.execute("SELECT agent_run('say hello', 1)").fetchone()[0] == "Hello! DONE"


def test_agent_run_errors_surface(connection, settings):
    agent = SQLiteAgent(FakeToolProvider(), ScriptedChatProvider(), connection, settings=settings)
    register(connection, agent)
    with pytest.raises(sqlite3.OperationalError):
        connection.execute("SELECT agent_run()").fetchone()


def test_register_wires_extension_functions(connection, settings):
    FakeExtensions(connection, ["Hi from the model"])
    agent = register(connection, SQLiteAgent.from_connection(connection, settings))
    assert connection.execute("SELECT agent_run('greet')").fetchone()[0] == "Hi from the model"
    assert agent.chat.capacity == 4096


class TestFromConnection:
    """End-to-end runs against the extension-backed providers."""

    def test_text_mode_tool_call(self, connection, settings):
        ext = FakeExtensions(
            connection,
            ['TOOL_CALL: search\nARGS: {"q": "rome"}', "Rome has 3 results. DONE"],
            tool_result='{"content": [{"type": "text", "text": "3 results"}]}',
            tools='[{"name": "search"}]',
        )
        agent = SQLiteAgent.from_connection(connection, settings)

        assert agent.run("search rome") == "Rome has 3 results. DONE"
        assert ext.tool_calls == [("search", '{"q": "rome"}')]
        assert ext.chat_configs == [("context_size=4096",)]

    def test_not_connected(self, connection, settings):
        FakeExtensions(connection, ["unused"], tools=None)
        agent = SQLiteAgent.from_connection(connection, settings)
        with pytest.raises(NotConnectedError):
            agent.run("goal")

    def test_table_mode_with_embeddings(self, connection, settings):
        connection.execute("CREATE TABLE places (id INTEGER, name TEXT, embedding BLOB)")
        ext = FakeExtensions(
            connection,
            [
                '{"tool": "search", "args": {"q": "places"}}',
                "DONE",
                json.dumps([{"id": 10, "name": "Rome"}, {"id": 11, "name": "Oslo"}]),
                "name",
            ],
            tool_result='{"content": [{"type": "text", "text": "Rome 10, Oslo 11"}]}',
        )
        agent = SQLiteAgent.from_connection(connection, settings)

        assert agent.run("find places", "places") == 2

        rows = connection.execute("SELECT id, name, embedding FROM places ORDER BY id").fetchall()
        assert rows == [
            (10, "Rome", b"Rome".ljust(12, b"\0")),
            (11, "Oslo", b"Oslo".ljust(12, b"\0")),
        ]
        assert ext.embedding_configs == ["embedding_type=FLOAT32"]
        assert ext.vector_inits == [
            ("places", "embedding", "dimension=3,type=FLOAT32,distance=cosine")
        ]


def test_table_mode_twice_through_sql(connection, settings):
    connection.execute("CREATE TABLE docs (id INTEGER, title TEXT, embedding BLOB)")
    search = '{"tool": "search", "args": {"q": "docs"}}'
    chat = ScriptedChatProvider([
        search, "DONE", '[{"id": 1, "title": "first"}]', "title",
        search, "DONE", '[{"id": 2, "title": "second"}]', "title",
    ])
    tools = FakeToolProvider(results=["found first", "found second"])
    embeddings = FakeEmbeddingProvider()
    vectors = FakeVectorIndexProvider()
    agent = SQLiteAgent(
        tools, chat, connection,
        embedding_provider=embeddings, vector_provider=vectors, settings=settings,
    )
    register(connection, agent)

    for _ in range(2):
        assert connection.execute("SELECT agent_run('collect docs', 'docs')").fetchone()[0] == 1

    rows = connection.execute(
        "SELECT id, embedding IS NULL FROM docs ORDER BY id"
    ).fetchall()
    assert rows == [(1, 0), (2, 0)]
    assert embeddings.texts == ["first", "second"]


def test_register_applies_log_level(connection):
    settings = Settings(_env_file=None, log_level="ERROR")
    agent = SQLiteAgent(FakeToolProvider(), ScriptedChatProvider(), connection, settings=settings)
    register(connection, agent)
    assert logging.getLogger("sqlite_agent").level == logging.ERROR
    setup_logging("WARNING")
