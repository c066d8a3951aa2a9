"""Main agent implementation.

The SQLiteAgent runs a goal against an LLM and a set of external tools.
In text mode it returns the model's final answer; in table mode it gathers
data with tools, extracts rows from what was gathered, inserts them into a
table and fills any embedding columns.
"""

import sqlite3

from .config import Settings, get_settings
from .core import (
    ContextBudget,
    MemoryManager,
    PromptBuilder,
    TableExtraction,
    TextResponse,
    ToolExecutor,
)
from .exceptions import (
    ClientError,
    NotConnectedError,
    RepeatedToolError,
    SchemaError,
    TemplatePlaceholderError,
    ToolInvocationError,
)
from .logging import get_logger
from .pipeline.embedding import EmbeddingIndexTrigger
from .pipeline.extraction import ExtractionPipeline
from .providers.base import (
    ChatContext,
    ChatProvider,
    EmbeddingProvider,
    ToolProvider,
    VectorIndexProvider,
)
from .providers.sqlite import (
    SQLiteChatProvider,
    SQLiteEmbeddingProvider,
    SQLiteToolProvider,
    SQLiteVectorIndexProvider,
)
from .request import AgentRequest
from .storage import TableStore
from .types import LoopState, ResponseKind
from .utils.brace_scanner import BraceScanner

logger = get_logger(__name__)


class SQLiteAgent:
    """Agent that coordinates between the chat model, tools and a database.

    Each call to run() is one independent request:
    1. Fetch the tool catalog and size the chat context
    2. Loop: ask the model, execute the tool call it asks for
    3. Stop on DONE, a final answer, a missing reply or the iteration cap
    4. In table mode, extract rows from the gathered results and insert them

    A run holds the chat context's lock for its whole duration.
    """

    def __init__(
        self,
        tool_provider: ToolProvider,
        chat: ChatProvider | ChatContext,
        store: TableStore | sqlite3.Connection,
        embedding_provider: EmbeddingProvider | None = None,
        vector_provider: VectorIndexProvider | None = None,
        settings: Settings | None = None,
        system_prompt: str | None = None,
    ):
        """Initialize the agent.

        Args:
            tool_provider: Lists and invokes tools
            chat: Chat provider, or an existing handle on one
            store: Table store, or the connection to build one on
            embedding_provider: Fills embedding columns (table mode only)
            vector_provider: Builds vector indices (table mode only)
            settings: Agent settings; the cached settings when omitted
            system_prompt: Default prompt override for every run
        """
        self.settings = settings or get_settings()
        self.tool_provider = tool_provider
        self.chat = chat if isinstance(chat, ChatContext) else ChatContext(chat)
        self.store = store if isinstance(store, TableStore) else TableStore(store)
        self.embedding_provider = embedding_provider
        self.vector_provider = vector_provider

        # initialize components
        self.scanner = BraceScanner(self.settings.string_aware_scanning)
        self.prompt_builder = PromptBuilder(system_prompt)
        self.budget = ContextBudget(self.settings)
        self.tool_executor = ToolExecutor(tool_provider, self.settings.error_markers)
        self.memory = MemoryManager(
            error_threshold=self.settings.repeated_error_threshold,
            signature_chars=self.settings.error_signature_chars,
        )
        self.state = LoopState.TERMINATED

    @classmethod
    def from_connection(
        cls,
        connection: sqlite3.Connection,
        settings: Settings | None = None,
    ) -> "SQLiteAgent":
        """Build an agent on the sqlite-ai, sqlite-mcp and sqlite-vector functions.

        The extensions must already be loaded on ``connection``.
        """
        settings = settings or get_settings()
        return cls(
            tool_provider=SQLiteToolProvider(connection),
            chat=SQLiteChatProvider(connection),
            store=TableStore(connection),
            embedding_provider=SQLiteEmbeddingProvider(connection),
            vector_provider=SQLiteVectorIndexProvider(connection, settings.vector_type),
            settings=settings,
        )

    @property
    def history(self) -> str:
        """Conversation history of the last table-mode run."""
        return self.memory.history

    def run(self, *args) -> str | int:
        """Run one request.

        Args:
            *args: ``goal[, table_name | max_iterations[, max_iterations[,
                system_prompt]]]``

        Returns:
            The final answer (text mode) or the number of rows inserted
            (table mode)

        Raises:
            InvalidArgumentsError: On bad arity or an empty goal
            NotConnectedError: If no tool catalog is available
            ContextCreationError: If the chat context cannot be sized
            SchemaError: If the target table is missing
            ExtractionError: If the extraction call fails
            InsertionError: If the rows cannot be inserted
        """
        request = AgentRequest.from_args(
            *args, default_max_iterations=self.settings.default_max_iterations
        )
        return self.execute(request)

    def execute(self, request: AgentRequest) -> str | int:
        """Run an already parsed request."""
        mode = request.mode
        with self.chat.session():
            if isinstance(mode, TableExtraction):
                logger.info(f"table extraction run into {mode.table_name}")
                return self._run_table(request, mode)
            logger.info("text response run")
            return self._run_text(request, mode)

    def _prompt_builder(self, request: AgentRequest) -> PromptBuilder:
        if request.system_prompt:
            return PromptBuilder(request.system_prompt)
        return self.prompt_builder

    def _fetch_catalog(self) -> str:
        tools = self.tool_provider.list_tools()
        if tools is None:
            raise NotConnectedError()
        logger.debug(f"received tools list (length={len(tools)})")
        return self.prompt_builder.format_tool_catalog(tools)

    def _run_text(self, request: AgentRequest, mode: TextResponse) -> str:
        """Text-mode loop. The full prompt is sent on every iteration."""
        catalog = self._fetch_catalog()
        capacity = self.budget.capacity(self.chat.existing_capacity(), len(catalog))
        self.chat.ensure_capacity(capacity)

        prompt = mode.build_prompt(self._prompt_builder(request), request.goal, catalog)
        logger.debug(f"system prompt (length={len(prompt)}):\n{prompt}")

        result = ""
        self.state = LoopState.PROMPTING
        for i in range(request.max_iterations):
            logger.debug(f"iteration {i + 1}/{request.max_iterations}")

            self.state = LoopState.AWAITING_MODEL
            response = self.chat.respond(prompt)
            if response is None:
                logger.warning("LLM returned no response, ending loop")
                break
            logger.debug(f"LLM response (length={len(response)}):\n{response}")

            parsed = mode.parse_response(response, self.scanner)
            if parsed.kind in (ResponseKind.DONE, ResponseKind.FINAL_ANSWER):
                result = parsed.text
                break

            call = parsed.tool_call
            logger.debug(f"extracted tool: {call.name!r} args: {call.arguments!r}")
            try:
                result = self.tool_executor.execute(call)
            except TemplatePlaceholderError as e:
                logger.warning(str(e))
                self.state = LoopState.PROMPTING
                continue
            except ToolInvocationError:
                logger.warning(f"failed to execute tool {call.name!r}")
                result = f'{{"error": "Failed to execute tool {call.name}"}}'
                break

            self.state = LoopState.PROMPTING

        self.state = LoopState.TERMINATED
        return result

    def _run_table(self, request: AgentRequest, mode: TableExtraction) -> int:
        """Table-mode loop followed by extraction, insertion and embedding."""
        columns = self.store.table_schema(mode.table_name)
        if not columns:
            raise SchemaError(mode.table_name)
        embedding_columns = [c.name for c in columns if c.is_embedding_target]
        logger.debug(
            f"schema has {len(columns)} columns, embedding columns: {embedding_columns}"
        )

        catalog = self._fetch_catalog()
        schema = self.prompt_builder.describe_schema(columns)
        prompt = mode.build_prompt(
            self._prompt_builder(request), request.goal, catalog, schema
        )

        capacity = self.budget.capacity(self.chat.existing_capacity(), len(catalog))
        self.chat.ensure_capacity(capacity)
        plan = self.budget.plan(capacity, len(catalog), len(prompt), request.max_iterations)
        logger.info(
            f"context budget: capacity={plan.capacity} available={plan.available} "
            f"truncate_at={plan.truncate_at}"
        )

        self.memory.clear()
        self._table_loop(request, mode, prompt, plan.truncate_at)

        history = self.memory.history
        logger.debug(f"conversation history length: {len(history)}")

        pipeline = ExtractionPipeline(
            self.chat, self.store, self.prompt_builder, self.scanner, self.settings
        )
        outcome = pipeline.run(mode.table_name, columns, history)

        if self.embedding_provider and self.vector_provider:
            trigger = EmbeddingIndexTrigger(
                self.chat,
                self.embedding_provider,
                self.vector_provider,
                self.store,
                self.prompt_builder,
                self.settings,
            )
            trigger.run(mode.table_name, columns, outcome.rows_inserted)

        return outcome.rows_inserted

    def _table_loop(
        self,
        request: AgentRequest,
        mode: TableExtraction,
        prompt: str,
        truncate_at: int,
    ) -> None:
        """Gather tool results into the conversation history.

        Only the first message carries the instruction prompt; the chat
        provider keeps the turns, so later iterations just ask it to go on.
        """
        preview = self.settings.placeholder_preview_chars
        for i in range(request.max_iterations):
            self.memory.start_iteration(i)
            logger.debug(f"iteration {i + 1}/{request.max_iterations}")

            message = prompt if i == 0 else self.settings.continuation_message
            try:
                response = self.chat.respond(message)
            except ClientError as e:
                logger.warning(f"failed to get LLM response: {e}")
                continue
            if response is None:
                logger.warning("LLM returned no response, ending loop")
                break
            logger.debug(f"LLM response (length={len(response)}):\n{response}")

            parsed = mode.parse_response(response, self.scanner)
            if parsed.is_done:
                logger.info("agent said DONE, ending loop")
                break
            if not parsed.is_tool_call:
                logger.info(f"no tool call in response: {parsed.error or 'unrecognized'}")
                continue

            call = parsed.tool_call
            try:
                result = self.tool_executor.execute(call)
            except TemplatePlaceholderError as e:
                logger.warning(str(e))
                self.memory.add_entry(
                    "ERROR: Tool args contain invalid template syntax: "
                    f"{call.arguments[:preview]}"
                )
                continue
            except ToolInvocationError:
                logger.warning(f"tool {call.name} failed to execute")
                self.memory.add_entry(f"ERROR: Tool {call.name} failed to execute")
                continue

            is_error = self.tool_executor.is_error_result(result)
            try:
                append = self.memory.record_result(result, is_error)
            except RepeatedToolError as e:
                logger.warning(f"{e}, aborting loop")
                break

            if append:
                if len(result) > truncate_at:
                    logger.info(
                        f"truncating result from {call.name} "
                        f"({len(result)} -> {truncate_at} chars)"
                    )
                self.memory.add_entry(
                    self.budget.format_tool_result(call.name, result, truncate_at)
                )
