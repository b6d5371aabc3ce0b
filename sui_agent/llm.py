"""
Thin wrapper around Groq chat completions.

Design
- Dependency injection for the Groq client and model name.
- The client is only built when a call is made, so importing never needs an API key.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from groq import AsyncGroq

from sui_agent.config import GROQ_MODEL_ENV, get_groq_api_key, require_env

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class LLMClient:
    """Sends ordered ``{role, content}`` turns and returns the first choice's text."""

    def __init__(self, client: Optional[AsyncGroq] = None, model: Optional[str] = None) -> None:
        self._client = client
        self._model = model

    @property
    def client(self) -> AsyncGroq:
        if self._client is None:
            self._client = AsyncGroq(api_key=get_groq_api_key())
        return self._client

    @property
    def model(self) -> str:
        return self._model or require_env(GROQ_MODEL_ENV)

    async def chat(self, messages: Sequence[Message], **kwargs) -> str:
        """
        Run one completion request.

        Parameters
        ----------
        messages : Sequence[dict]
            Turns sent in order.
        **kwargs
            Extra completion options (``temperature``, ``max_tokens``...).

        Returns
        -------
        str
            ``choices[0].message.content`` (empty string when the model sent none).
        """
        payload: List[Message] = [dict(message) for message in messages]
        completion = await self.client.chat.completions.create(model=self.model, messages=payload, **kwargs)
        content = completion.choices[0].message.content or ""
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("LLM reply (%d chars): %s", len(content), content)
        return content


_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", flags=re.IGNORECASE | re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Return the body of a reply wrapped in a Markdown code fence, or the reply as is."""
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text
