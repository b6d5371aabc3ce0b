"""Tool dispatch and response-normalization core for a Sui blockchain agent."""

from sui_agent.agent import Agent
from sui_agent.results import StructuredResult, handle_error
from sui_agent.tools import ToolParameter, ToolRegistry, ToolSpec

__all__ = ["Agent", "StructuredResult", "ToolParameter", "ToolRegistry", "ToolSpec", "handle_error"]
