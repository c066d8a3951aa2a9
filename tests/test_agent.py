"""Tests for the agent loop in both modes."""

import pytest

from conftest import FakeToolProvider, ScriptedChatProvider
from sqlite_agent.agent import SQLiteAgent
from sqlite_agent.core.prompt_builder import PromptBuilder
from sqlite_agent.exceptions import (
    ContextCreationError,
    InsertionError,
    InvalidArgumentsError,
    NotConnectedError,
    ProviderUnavailableError,
    SchemaError,
)
from sqlite_agent.pipeline.embedding import EmbeddingIndexTrigger
from sqlite_agent.providers.base import ChatContext

TOOL_CALL = '{"tool": "search", "args": {"q": "items"}}'
SEARCH_RESULT = '{"content": [{"type": "text", "text": "item 1 is A, item 2 is B"}]}'
TOOL_ERROR = '{"isError":true,"content":[{"type":"text","text":"boom"}]}'


def _agent(store, settings, responses, catalog="[]", results=None, **kwargs):
    chat = ScriptedChatProvider(responses)
    tools = FakeToolProvider(catalog=catalog, results=results)
    agent = SQLiteAgent(tools, chat, store, settings=settings, **kwargs)
    return agent, chat, tools


class TestTextMode:
    """Tests for the free-text loop."""

    def test_done_returns_full_response(self, store, settings):
        agent, chat, tools = _agent(store, settings, ["Hello! DONE"])
        assert agent.run("say hello", 1) == "Hello! DONE"
        assert len(chat.prompts) == 1
        assert tools.calls == []

    def test_final_answer_without_tool_call(self, store, settings):
        agent, _, _ = _agent(store, settings, ["Paris is the capital."])
        assert agent.run("capital of France?") == "Paris is the capital."

    def test_tool_call_then_answer(self, store, settings):
        agent, chat, tools = _agent(
            store,
            settings,
            ['TOOL_CALL: search\nARGS: {"q": "x"}', "Found it."],
            results=["raw result"],
        )
        assert agent.run("find x") == "Found it."
        assert tools.calls == [("search", '{"q": "x"}')]
        # the full instruction prompt is sent every time
        assert chat.prompts[0] == chat.prompts[1]
        assert "User goal: find x" in chat.prompts[0]

    def test_exhausted_iterations_return_last_result(self, store, settings):
        agent, _, _ = _agent(
            store, settings, ["TOOL_CALL: ping\nARGS: {}"], results=["pong"]
        )
        assert agent.run("ping it", 1) == "pong"

    def test_failed_tool_call_returns_error_payload(self, store, settings):
        agent, chat, _ = _agent(
            store, settings, ["TOOL_CALL: search\nARGS: {}", "never sent"], results=[]
        )
        assert agent.run("goal") == '{"error": "Failed to execute tool search"}'
        assert len(chat.prompts) == 1

    def test_placeholder_args_not_dispatched(self, store, settings):
        agent, _, tools = _agent(
            store,
            settings,
            ['TOOL_CALL: get\nARGS: {"id": "{{items[0].id}}"}', "gave up"],
            results=["unused"],
        )
        assert agent.run("goal") == "gave up"
        assert tools.calls == []

    def test_missing_response_ends_loop(self, store, settings):
        agent, _, _ = _agent(store, settings, [])
        assert agent.run("goal", 3) == ""

    @pytest.mark.parametrize("max_iterations", [0, -1])
    def test_non_positive_iterations(self, store, settings, max_iterations):
        agent, chat, tools = _agent(store, settings, ["unused"])
        assert agent.run("goal", max_iterations) == ""
        assert chat.prompts == []
        assert tools.calls == []

    def test_not_connected_before_any_model_call(self, store, settings):
        agent, chat, _ = _agent(store, settings, ["unused"], catalog=None)
        with pytest.raises(NotConnectedError, match="mcp_connect"):
            agent.run("goal")
        assert chat.prompts == []
        assert chat.context_requests == []

    def test_context_sized_from_catalog(self, store, settings):
        catalog = "x" * 3000
        agent, chat, _ = _agent(store, settings, ["DONE"], catalog=catalog)
        agent.run("goal")
        expected = 2 * len(PromptBuilder().format_tool_catalog(catalog))
        assert chat.context_requests == [expected]

    def test_context_creation_failure(self, store, settings):
        chat = ScriptedChatProvider(["DONE"], accept_context=False)
        agent = SQLiteAgent(FakeToolProvider(), chat, store, settings=settings)
        with pytest.raises(ContextCreationError):
            agent.run("goal")
        assert chat.prompts == []

    def test_system_prompt_override(self, store, settings):
        agent, chat, _ = _agent(store, settings, ["DONE"])
        agent.run("goal", None, 2, "Just say DONE")
        assert chat.prompts == ["Just say DONE"]

    def test_chat_failure_propagates(self, store, settings):
        agent, _, _ = _agent(store, settings, [ProviderUnavailableError("LLM did not respond")])
        with pytest.raises(ProviderUnavailableError):
            agent.run("goal")

    def test_invalid_arguments(self, store, settings):
        agent, chat, _ = _agent(store, settings, [])
        with pytest.raises(InvalidArgumentsError):
            agent.run()
        assert chat.prompts == []


class TestTableMode:
    """Tests for the table extraction loop."""

    def test_tool_call_then_extraction(self, store, connection, settings, items_table):
        agent, chat, tools = _agent(
            store,
            settings,
            [TOOL_CALL, "DONE", '[{"id":1,"title":"A"},{"id":2,"title":"B"}]'],
            results=[SEARCH_RESULT],
        )

        assert agent.run("collect items", items_table) == 2

        assert tools.calls == [("search", '{"q": "items"}')]
        assert chat.prompts[1] == "Continue"
        assert "Tool search returned: " + SEARCH_RESULT in chat.prompts[2]
        rows = connection.execute("SELECT id, title, embedding FROM items ORDER BY id").fetchall()
        assert rows == [(1, "A", None), (2, "B", None)]

    def test_embedding_filled_after_trigger(
        self, store, connection, settings, items_table, embedding_provider, vector_provider
    ):
        agent, _, _ = _agent(
            store,
            settings,
            [TOOL_CALL, "DONE", '[{"id":1,"title":"A"},{"id":2,"title":"B"}]'],
            results=[SEARCH_RESULT],
        )
        assert agent.run("collect items", items_table) == 2
        assert connection.execute(
            "SELECT COUNT(*) FROM items WHERE embedding IS NULL"
        ).fetchone()[0] == 2

        trigger = EmbeddingIndexTrigger(
            ChatContext(ScriptedChatProvider(["title"])),
            embedding_provider,
            vector_provider,
            store,
            settings=settings,
        )
        report = trigger.run(items_table, store.table_schema(items_table), 2)

        assert report.rows_updated == 2
        assert connection.execute(
            "SELECT COUNT(*) FROM items WHERE embedding IS NULL"
        ).fetchone()[0] == 0

    def test_embedding_step_runs_in_agent(
        self, store, connection, settings, items_table, embedding_provider, vector_provider
    ):
        agent, chat, _ = _agent(
            store,
            settings,
            [TOOL_CALL, "DONE", '[{"id":1,"title":"A"}]', "title"],
            results=[SEARCH_RESULT],
            embedding_provider=embedding_provider,
            vector_provider=vector_provider,
        )

        assert agent.run("collect items", items_table) == 1

        assert embedding_provider.texts == ["A"]
        assert vector_provider.built == [("items", "embedding", 4, "cosine")]
        assert connection.execute("SELECT embedding FROM items").fetchone()[0] is not None

    def test_embedding_context_failure_keeps_rows(
        self, store, connection, settings, items_table, embedding_provider, vector_provider
    ):
        def unavailable(config):
            raise ProviderUnavailableError("embedding model unavailable")

        embedding_provider.create_context = unavailable
        agent, _, _ = _agent(
            store,
            settings,
            [TOOL_CALL, "DONE", '[{"id":1,"title":"A"}]', "title"],
            results=[SEARCH_RESULT],
            embedding_provider=embedding_provider,
            vector_provider=vector_provider,
        )

        assert agent.run("collect items", items_table) == 1
        assert connection.execute("SELECT id, title FROM items").fetchall() == [(1, "A")]

    def test_repeated_errors_abort_loop_but_extract(self, store, connection, settings, items_table):
        agent, chat, tools = _agent(
            store,
            settings,
            [TOOL_CALL] * 3 + ['[{"id": 9, "title": "partial"}]'],
            results=[TOOL_ERROR] * 3,
        )

        assert agent.run("collect items", items_table, 10) == 1

        assert len(tools.calls) == 3
        assert agent.history.count("boom") == 1
        # prompt, two continuations, then the extraction call
        assert len(chat.prompts) == 4
        assert connection.execute("SELECT id, title FROM items").fetchall() == [(9, "partial")]

    def test_unrecognized_response_continues(self, store, settings, items_table):
        agent, _, tools = _agent(
            store,
            settings,
            ["I will search now.", TOOL_CALL, "DONE", "[]"],
            results=[SEARCH_RESULT],
        )
        assert agent.run("collect", items_table) == 0
        assert len(tools.calls) == 1

    def test_chat_failure_is_skipped(self, store, settings, items_table):
        agent, _, tools = _agent(
            store,
            settings,
            [ProviderUnavailableError("busy"), TOOL_CALL, "DONE", "[]"],
            results=[SEARCH_RESULT],
        )
        assert agent.run("collect", items_table) == 0
        assert len(tools.calls) == 1

    def test_placeholder_recorded_in_history(self, store, settings, items_table):
        agent, _, tools = _agent(
            store,
            settings,
            ['{"tool": "get", "args": {"id": "{{items[0].id}}"}}', "DONE", "[]"],
        )
        agent.run("collect", items_table)
        assert tools.calls == []
        assert agent.history == (
            'ERROR: Tool args contain invalid template syntax: {"id": "{{items[0].id}}"}\n'
        )

    def test_failed_tool_recorded_in_history(self, store, settings, items_table):
        agent, _, _ = _agent(store, settings, [TOOL_CALL, "DONE", "[]"], results=[])
        agent.run("collect", items_table)
        assert agent.history == "ERROR: Tool search failed to execute\n"

    def test_long_results_truncated(self, store, settings, items_table):
        small = settings.model_copy(update={"min_truncate_chars": 10, "max_truncate_chars": 10})
        agent, _, _ = _agent(store, small, [TOOL_CALL, "DONE", "[]"], results=["y" * 50])
        agent.run("collect", items_table)
        assert agent.history == f"Tool search returned (truncated to 10 chars): {'y' * 10}...\n"

    def test_history_reset_between_runs(self, store, settings, items_table):
        agent, chat, tools = _agent(
            store,
            settings,
            [TOOL_CALL, "DONE", "[]", TOOL_CALL, "DONE", "[]"],
            results=["first", "second"],
        )
        agent.run("collect", items_table)
        agent.run("collect", items_table)
        assert agent.history == "Tool search returned: second\n"

    def test_missing_table(self, store, settings):
        agent, chat, _ = _agent(store, settings, ["unused"])
        with pytest.raises(SchemaError):
            agent.run("collect", "no_such_table")
        assert chat.prompts == []

    def test_not_connected(self, store, settings, items_table):
        agent, chat, _ = _agent(store, settings, ["unused"], catalog=None)
        with pytest.raises(NotConnectedError):
            agent.run("collect", items_table)
        assert chat.prompts == []

    def test_insertion_failure_leaves_table_unchanged(self, store, connection, settings):
        connection.execute("CREATE TABLE strict_items (id INTEGER NOT NULL, title TEXT)")
        connection.execute("INSERT INTO strict_items VALUES (1, 'kept')")
        connection.commit()
        agent, _, _ = _agent(
            store,
            settings,
            ["DONE", '[{"id": 2, "title": "ok"}, {"id": null, "title": "bad"}]'],
        )

        with pytest.raises(InsertionError):
            agent.run("collect", "strict_items")

        assert connection.execute("SELECT COUNT(*) FROM strict_items").fetchone()[0] == 1

    def test_custom_system_prompt(self, store, settings, items_table):
        agent, chat, _ = _agent(store, settings, ["DONE", "[]"])
        agent.run("collect", items_table, 3, "CUSTOM PROMPT")
        assert chat.prompts[0] == "CUSTOM PROMPT"
        assert "Table columns:" in chat.prompts[1]
