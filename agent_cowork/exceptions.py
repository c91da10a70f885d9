"""Custom exceptions for Agent Cowork."""


class AgentCoworkError(Exception):
    """Base exception for Agent Cowork."""

    pass


class ConfigurationError(AgentCoworkError):
    """Configuration-related errors."""

    pass


class LLMError(AgentCoworkError):
    """LLM-related errors."""

    pass


class LLMAPIError(LLMError):
    """LLM API errors (rate limit, auth, transport, etc.)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ToolError(AgentCoworkError):
    """Tool execution errors."""

    pass


class ToolExecutionError(ToolError):
    """Tool execution failed."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """Tool not found in registry."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class PathSecurityError(ToolError):
    """Path resolves outside the confinement boundary."""

    def __init__(self, path: str):
        super().__init__(f"Access denied: path is outside working directory: {path}")
        self.path = path


class IterationLimitError(AgentCoworkError):
    """Agent loop reached its iteration cap without a final answer."""

    def __init__(self, max_iterations: int):
        super().__init__(
            f"Max iterations reached ({max_iterations}): iteration limit exhausted without a final answer"
        )
        self.max_iterations = max_iterations


class SessionError(AgentCoworkError):
    """Session-related errors."""

    pass


class SessionNotFoundError(SessionError):
    """Session not found."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id
