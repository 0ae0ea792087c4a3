"""
Application errors for clean API and agent error handling.

Use ServiceUnavailableError when a dependency (vector store, embeddings, LLM)
is misconfigured or unreachable so the API can return 503 with a user-facing message.
AgentError subclasses are raised inside the document agent and converted to a
single terminal error event by the orchestration loop.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. vector store, embeddings API) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AgentError(Exception):
    """Base class for failures that end a document agent run."""


class DirectiveParseError(AgentError):
    """The model turn is not a valid directive object."""

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)


class UnknownFunctionError(AgentError):
    """The directive names a function that is not in the tool registry."""

    def __init__(self, function: str) -> None:
        self.function = function
        super().__init__(f"Unknown function: {function}")


class ToolExecutionError(AgentError):
    """A tool raised while executing."""

    def __init__(self, function: str, cause: BaseException) -> None:
        self.function = function
        self.cause = cause
        super().__init__(f"{function} failed: {cause}")
