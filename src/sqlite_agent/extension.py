"""SQL functions exposing the agent on a connection.

After ``register(conn)``::

    SELECT agent_version();
    SELECT agent_run('Find three restaurants in Rome', 'restaurants', 8);
"""

import sqlite3

from . import __version__
from .agent import SQLiteAgent
from .logging import get_logger, setup_logging

logger = get_logger(__name__)


def agent_version() -> str:
    return __version__


def register(connection: sqlite3.Connection, agent: SQLiteAgent | None = None) -> SQLiteAgent:
    """Install ``agent_run`` and ``agent_version`` on a connection.

    Args:
        connection: Connection to register the functions on
        agent: Agent serving ``agent_run``; one wired to the sqlite-ai,
            sqlite-mcp and sqlite-vector functions of ``connection`` when
            omitted

    Returns:
        The agent behind ``agent_run``
    """
    if agent is None:
        agent = SQLiteAgent.from_connection(connection)
    setup_logging(agent.settings.log_level)

    connection.create_function("agent_version", 0, agent_version, deterministic=True)
    # -1: variadic, arity is checked by the request parser
    connection.create_function("agent_run", -1, agent.run)
    # agent_run keeps its statement open, so embedders are registered up front
    if agent.embedding_provider is not None:
        agent.embedding_provider.register_sql_function(connection)
    logger.debug("registered agent_run and agent_version")
    return agent
