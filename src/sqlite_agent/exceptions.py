"""Custom exception hierarchy for the sqlite agent.

This module defines all custom exceptions used throughout the agent,
organized into logical categories: request errors, provider errors,
loop conditions and table pipeline errors.
"""


class AgentError(Exception):
    """Base exception for all agent errors."""


# =============================================================================
# Request Errors - Fatal, reported before any model call
# =============================================================================

class InvalidArgumentsError(AgentError):
    """Wrong number of arguments or a null/empty goal."""


class NotConnectedError(AgentError):
    """The tool provider has no established session."""

    def __init__(self, message: str = "Not connected. Call mcp_connect() first"):
        super().__init__(message)


class ContextCreationError(AgentError):
    """The chat provider could not create or resize its context."""

    def __init__(self, capacity: int | None = None):
        self.capacity = capacity
        if capacity:
            message = f"Failed to create LLM chat context (capacity={capacity})"
        else:
            message = "Failed to create LLM chat context"
        super().__init__(message)


class SchemaError(AgentError):
    """The target table is missing or has no columns."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table does not exist or has no columns: {table_name}")


# =============================================================================
# Client Errors - Issues with chat/embedding provider interactions
# =============================================================================

class ClientError(AgentError):
    """Base class for chat and embedding provider errors."""


class AuthenticationError(ClientError):
    """API key is invalid or missing."""


class RateLimitError(ClientError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float | None = None):
        self.retry_after = retry_after
        if retry_after:
            message = f"{message}. Retry after: {retry_after}s"
        super().__init__(message)


class ProviderUnavailableError(ClientError):
    """Provider is temporarily unavailable."""


class InvalidResponseError(ClientError):
    """Response from provider could not be interpreted."""


# =============================================================================
# Tool Errors - Issues with tool invocation
# =============================================================================

class ToolError(AgentError):
    """Base class for tool invocation errors."""


class ToolInvocationError(ToolError):
    """A tool call did not complete."""

    def __init__(self, tool_name: str, cause: Exception | str | None = None):
        self.tool_name = tool_name
        self.cause = cause
        message = f"Failed to execute tool {tool_name}"
        if cause:
            message = f"{message}: {cause}"
        super().__init__(message)


# =============================================================================
# Loop Conditions - Non-fatal, logged by the loop and never raised out of run
# =============================================================================

class ParseError(AgentError):
    """The model response did not contain a recognizable tool call."""


class TemplatePlaceholderError(AgentError):
    """Tool arguments still contain {{...}} template placeholders."""

    def __init__(self, tool_name: str, arguments: str):
        self.tool_name = tool_name
        self.arguments = arguments
        super().__init__(f"Tool args contain invalid template syntax: {arguments}")


class RepeatedToolError(AgentError):
    """The same tool error came back too many times in a row."""

    def __init__(self, signature: str, count: int):
        self.signature = signature
        self.count = count
        super().__init__(f"Stopping after {count} consecutive identical errors: {signature}")


# =============================================================================
# Table Pipeline Errors - Fatal to a table-mode run, nothing is committed
# =============================================================================

class ExtractionError(AgentError):
    """The extraction call failed to produce a response."""


class InsertionError(AgentError):
    """A row failed to insert; the whole batch was rolled back."""

    def __init__(self, table_name: str, cause: Exception | str):
        self.table_name = table_name
        self.cause = cause
        super().__init__(f"Failed to insert row into {table_name}: {cause}")
