"""LLM-driven tool selection over the registry catalogue."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from sui_agent.llm import LLMClient, strip_code_fence
from sui_agent.prompts import CATALOGUE_PLACEHOLDER, TOOL_SELECTION_PROMPT
from sui_agent.tools import ToolRegistry

logger = logging.getLogger(__name__)


class ToolSelection(BaseModel):
    """What the LLM picked: a tool name (or ``None``) and its positional arguments."""

    model_config = ConfigDict(populate_by_name=True)

    tool: Optional[str] = Field(default=None, alias="selected_tool")
    arguments: List[Any] = Field(default_factory=list, alias="tool_arguments")
    reasoning: str = ""

    @field_validator("tool", mode="before")
    @classmethod
    def _tool_name(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return value if isinstance(value, str) else str(value)

    @field_validator("arguments", mode="before")
    @classmethod
    def _argument_list(cls, value: Any) -> Any:
        if value is None:
            return []
        return value if isinstance(value, list) else [value]

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


#: The reply is one selection object, or a JSON list holding exactly one.
_SELECTION_REPLY: TypeAdapter = TypeAdapter(Union[ToolSelection, Tuple[ToolSelection]])


class ToolSelector:
    """
    Ask the LLM to pick one registered tool for a query.

    The registry catalogue is rendered into the system prompt on every call,
    so tools registered later are offered too.
    """

    def __init__(self, tools: ToolRegistry, llm: Optional[LLMClient] = None) -> None:
        self.tools = tools
        self.llm = llm or LLMClient()

    def build_prompt(self) -> str:
        return TOOL_SELECTION_PROMPT.replace(CATALOGUE_PLACEHOLDER, self.tools.describe())

    async def select(self, query: str) -> ToolSelection:
        """Ask the LLM which tool answers ``query``. Unreadable replies select nothing."""
        raw = await self.llm.chat(
            [
                {"role": "system", "content": self.build_prompt()},
                {"role": "user", "content": query},
            ],
            temperature=0.0,
        )
        selection = parse_selection(raw)
        logger.info("Selected tool: %s", selection.tool)
        return selection


def parse_selection(raw: str) -> ToolSelection:
    """
    Read the selection reply.

    Parameters
    ----------
    raw : str
        LLM output, optionally wrapped in a Markdown code fence.

    Returns
    -------
    ToolSelection
        ``tool=None`` with the raw text as reasoning when the reply is not a
        selection object.
    """
    try:
        parsed = _SELECTION_REPLY.validate_json(strip_code_fence(raw))
    except ValidationError:
        logger.warning("Tool selection reply is not a selection object; selecting no tool.")
        return ToolSelection(tool=None, reasoning=raw)
    return parsed[0] if isinstance(parsed, tuple) else parsed
