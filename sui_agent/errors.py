"""Exception hierarchy shared by the registry, executor, composer and protocol adapters."""

from __future__ import annotations

from typing import Optional


class AgentError(Exception):
    """Base class for every error raised by the agent core."""


class ConfigurationError(AgentError, RuntimeError):
    """A required environment variable or collaborator is missing."""


class ToolNotFoundError(AgentError):
    """The caller selected a tool name that is not registered."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool {tool_name} not found")


class DuplicateToolError(AgentError):
    """A tool name was registered twice on the same registry."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool {tool_name} is already registered")


class ArgumentValidationError(AgentError):
    """Positional arguments do not match the tool's declared parameters."""

    def __init__(self, tool_name: str, message: str, parameter: Optional[str] = None) -> None:
        self.tool_name = tool_name
        self.parameter = parameter
        super().__init__(f"Invalid arguments for tool {tool_name}: {message}")


class ComposerError(AgentError):
    """The LLM reply could not be parsed as a structured result."""

    def __init__(self, raw_text: str, reason: str) -> None:
        self.raw_text = raw_text
        self.reason = reason
        super().__init__(f"Could not parse final answer: {reason}")


class ProtocolError(AgentError):
    """A protocol connector or its SDK client failed."""


class NotInitializedError(ProtocolError):
    """A connector operation was called before ``initialize()`` completed."""

    def __init__(self, protocol: str) -> None:
        self.protocol = protocol
        super().__init__(f"{protocol} client not initialized")
