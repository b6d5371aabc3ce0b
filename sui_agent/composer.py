"""
Final-answer composition.

Turns a raw tool result plus the original query into the structured reply the
agent returns, by filling a prompt template and asking the LLM.

Known limitation: placeholders are substituted verbatim and in order (query,
response, tools), so a literal ``${response}`` or ``${tools}`` inside the
query or the tool output is substituted too.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from sui_agent.errors import ComposerError
from sui_agent.llm import LLMClient, strip_code_fence
from sui_agent.prompts import FINAL_ANSWER_PROMPT, QUERY_PLACEHOLDER, RESPONSE_PLACEHOLDER, TOOLS_PLACEHOLDER
from sui_agent.results import StructuredResult

logger = logging.getLogger(__name__)

#: A reply is one envelope, or a JSON list holding exactly one.
_FINAL_ANSWER: TypeAdapter = TypeAdapter(Union[StructuredResult, Tuple[StructuredResult]])


@dataclass(slots=True)
class Ok:
    result: StructuredResult


@dataclass(slots=True)
class ParseFailure:
    raw_text: str
    reason: str


ComposerOutcome = Union[Ok, ParseFailure]


class FinalAnswerComposer:
    """Fill the final-answer template and parse the LLM reply as a ``StructuredResult``."""

    def __init__(self, llm: Optional[LLMClient] = None, template: str = FINAL_ANSWER_PROMPT) -> None:
        self.llm = llm or LLMClient()
        self.template = template

    def build_prompt(self, query: str, response: str, tools: Optional[str] = None) -> str:
        """Substitute query, response and tools (``"null"`` when absent) into the template."""
        return (
            self.template.replace(QUERY_PLACEHOLDER, query)
            .replace(RESPONSE_PLACEHOLDER, response)
            .replace(TOOLS_PLACEHOLDER, tools or "null")
        )

    async def compose(self, response: str, query: str, tools: Optional[str] = None) -> ComposerOutcome:
        """
        Ask the LLM for the final answer.

        Parameters
        ----------
        response : str
            Raw tool output (or the no-tool placeholder).
        query : str
            The user's original request, sent as the second turn.
        tools : Optional[str]
            Name of the tool that produced ``response``.

        Returns
        -------
        Ok | ParseFailure
            ``Ok`` when the reply decodes to a valid envelope. Errors raised
            by the LLM call itself are not caught here.
        """
        prompt = self.build_prompt(query, response, tools)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Final answer prompt: %s", prompt)

        raw = await self.llm.chat(
            [
                {"role": "assistant", "content": prompt},
                {"role": "user", "content": query},
            ]
        )
        return parse_final_answer(raw)

    async def compose_or_raise(self, response: str, query: str, tools: Optional[str] = None) -> StructuredResult:
        """
        Same as ``compose`` but returns the result directly.

        Raises
        ------
        ComposerError
            When the reply is not a valid envelope.
        """
        outcome = await self.compose(response, query, tools)
        if isinstance(outcome, ParseFailure):
            raise ComposerError(outcome.raw_text, outcome.reason)
        return outcome.result


def parse_final_answer(raw: str) -> ComposerOutcome:
    """Validate an LLM reply as an envelope; a one-element list is unwrapped."""
    try:
        parsed = _FINAL_ANSWER.validate_json(strip_code_fence(raw))
    except ValidationError as exc:
        reason = _describe_failure(exc)
        logger.warning("Final answer does not match the result envelope: %s", reason)
        return ParseFailure(raw_text=raw, reason=reason)
    return Ok(parsed[0] if isinstance(parsed, tuple) else parsed)


def _describe_failure(exc: ValidationError) -> str:
    errors = exc.errors(include_url=False, include_input=False)
    if errors and errors[0]["type"] == "json_invalid":
        return f"invalid JSON: {errors[0]['msg']}"
    parts = []
    for error in errors:
        where = ".".join(str(part) for part in error["loc"]) or "reply"
        parts.append(f"{where}: {error['msg']}")
    return "; ".join(parts)
