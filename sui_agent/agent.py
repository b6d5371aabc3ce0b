"""Query executor: resolve a tool, run it, and fold every outcome into one result envelope."""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, List, Mapping, Optional, Sequence

from sui_agent.composer import FinalAnswerComposer, ParseFailure
from sui_agent.errors import ComposerError, ToolNotFoundError
from sui_agent.llm import LLMClient
from sui_agent.protocols import AdapterCache, ClientFactory
from sui_agent.results import StructuredResult, dumps, handle_error
from sui_agent.selector import ToolSelector
from sui_agent.tools import Primitive, ToolRegistry, ToolSpec, register_all_tools

logger = logging.getLogger(__name__)

NO_TOOL_RESPONSE = "No tool selected for the query"
PROCESS_FAILURE_REASONING = "The system encountered an issue while processing your query"
COMPOSE_FAILURE_REASONING = "The system could not read the final answer returned by the model"
REDACTED = "***"


class Agent:
    """
    Stateless per call: every public method returns a one-element list of
    ``StructuredResult`` and never raises.
    """

    def __init__(
        self,
        tools: ToolRegistry,
        composer: FinalAnswerComposer,
        adapters: Optional[AdapterCache] = None,
        selector: Optional[ToolSelector] = None,
    ) -> None:
        self.tools = tools
        self.composer = composer
        self.adapters = adapters
        self.selector = selector

    @classmethod
    def build(
        cls,
        llm: Optional[LLMClient] = None,
        factories: Optional[Mapping[str, ClientFactory]] = None,
    ) -> "Agent":
        """Wire a registry with every protocol tool, a fresh adapter cache and the LLM stages."""
        llm = llm or LLMClient()
        adapters = AdapterCache(factories)
        tools = register_all_tools(ToolRegistry(), adapters)
        return cls(
            tools=tools,
            composer=FinalAnswerComposer(llm),
            adapters=adapters,
            selector=ToolSelector(tools, llm),
        )

    # --------------------------------------------------------------------- run
    async def run(self, query: str) -> List[StructuredResult]:
        """Let the LLM pick a tool for ``query`` and process it."""
        if self.selector is None:
            return await self.process_query(query, None)
        try:
            selection = await self.selector.select(query)
        except Exception as exc:
            logger.exception("Tool selection failed")
            return [handle_error(exc, reasoning=PROCESS_FAILURE_REASONING, query=query)]
        return await self.process_query(query, selection.tool, selection.arguments)

    async def process_query(
        self,
        query: str,
        selected_tool: Optional[str],
        tool_arguments: Optional[Sequence[Primitive]] = None,
    ) -> List[StructuredResult]:
        """
        Process a query for an already selected tool.

        Parameters
        ----------
        query : str
            The user's request.
        selected_tool : Optional[str]
            Tool name, or ``None``/empty when no tool applies.
        tool_arguments : Optional[Sequence]
            Positional arguments for the tool.

        Returns
        -------
        list[StructuredResult]
            Always exactly one element.
        """
        try:
            if not selected_tool:
                return [await self._final_answer(NO_TOOL_RESPONSE, query)]
            return [await self._execute_tool(query, selected_tool, list(tool_arguments or []))]
        except ToolNotFoundError as exc:
            logger.warning("%s", exc)
            return [handle_error(exc, reasoning=str(exc), query=query)]
        except Exception as exc:
            logger.exception("Error processing query")
            return [handle_error(exc, reasoning=PROCESS_FAILURE_REASONING, query=query)]

    async def process_query_json(
        self,
        query: str,
        selected_tool: Optional[str],
        tool_arguments: Optional[Sequence[Primitive]] = None,
    ) -> str:
        """Like ``process_query`` but returns the one-element list as JSON text."""
        return dumps(await self.process_query(query, selected_tool, tool_arguments))

    # ------------------------------------------------------------ execute tool
    async def _execute_tool(self, query: str, tool_name: str, args: List[Any]) -> StructuredResult:
        spec = self.tools.require(tool_name)
        logger.info("Selected tool: %s", tool_name)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Tool arguments: %d positional", len(args))

        try:
            validated = spec.validate(args)
            result = spec.fn(*validated)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception("Error executing tool %s", tool_name)
            return handle_error(
                exc,
                reasoning=f"The system encountered an issue while executing the tool {tool_name}",
                query=f"Attempted to execute {tool_name} with arguments: {_describe_arguments(spec, args)}",
            )

        raw = result if isinstance(result, str) else json.dumps(result, default=str)
        return await self._final_answer(raw, query, tool_name)

    # -------------------------------------------------------------- finalize
    async def _final_answer(self, response: str, query: str, tools: Optional[str] = None) -> StructuredResult:
        outcome = await self.composer.compose(response, query, tools)
        if isinstance(outcome, ParseFailure):
            return handle_error(
                ComposerError(outcome.raw_text, outcome.reason),
                reasoning=COMPOSE_FAILURE_REASONING,
                query=query,
            )
        return outcome.result


def _describe_arguments(spec: ToolSpec, args: Sequence[Any]) -> str:
    """JSON list of the arguments with credential parameters masked."""
    shown: List[Any] = []
    for idx, value in enumerate(args):
        name = spec.parameters[idx].name.lower() if idx < len(spec.parameters) else ""
        shown.append(REDACTED if "key" in name else value)
    return json.dumps(shown, default=str)
