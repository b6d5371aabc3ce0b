"""Structured result envelope and the single error-to-envelope conversion point."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterable, List, Literal, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator

from sui_agent.errors import ProtocolError

SUCCESS = "success"
FAILURE = "failure"

UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"

T = TypeVar("T")


class StructuredResult(BaseModel):
    """
    The only shape ever returned to the agent.

    Also the schema the final-answer reply is validated against, so text
    fields are read leniently: a missing one becomes an empty string, a
    non-string ``response`` is JSON-encoded and a single error string is
    wrapped in a list. A failure carries errors and a success does not.
    """

    reasoning: str = ""
    response: str = ""
    status: Literal["success", "failure"]
    query: str = ""
    errors: List[str] = Field(default_factory=list)

    @field_validator("reasoning", "query", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("response", mode="before")
    @classmethod
    def _response_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value if isinstance(value, str) else json.dumps(value)

    @field_validator("errors", mode="before")
    @classmethod
    def _error_list(cls, value: Any) -> Any:
        if not value:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [item if isinstance(item, str) else str(item) for item in value]
        return value

    @model_validator(mode="after")
    def _status_matches_errors(self) -> "StructuredResult":
        if (self.status == FAILURE) != bool(self.errors):
            raise ValueError("A failure result must carry errors and a success result must not.")
        return self

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    @classmethod
    def success(cls, reasoning: str, response: str, query: str) -> "StructuredResult":
        return cls(reasoning=reasoning, response=response, status=SUCCESS, query=query, errors=[])

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "StructuredResult":
        """Build a result from a decoded JSON object (raises ``pydantic.ValidationError``)."""
        return cls.model_validate(payload)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


def dumps(results: Iterable[StructuredResult]) -> str:
    """Serialize results the way the tool invocation boundary expects them."""
    return json.dumps([result.to_dict() for result in results])


def handle_error(error: Optional[BaseException], *, reasoning: str, query: str) -> StructuredResult:
    """
    Convert any failure into a failure envelope.

    Parameters
    ----------
    error : BaseException | None
        The caught exception. Its message is used when it carries one.
    reasoning : str
        Why the failure happened, copied verbatim.
    query : str
        The originating request description, copied verbatim.

    Returns
    -------
    StructuredResult
        ``status="failure"`` with ``errors=[message]``.
    """
    message = str(error) if isinstance(error, BaseException) and str(error) else UNKNOWN_ERROR_MESSAGE
    return StructuredResult(
        reasoning=reasoning,
        response=message,
        status=FAILURE,
        query=query,
        errors=[message],
    )


@dataclass(slots=True)
class ProtocolResponse(Generic[T]):
    """Outcome of a single protocol connector call."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: T) -> "ProtocolResponse[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ProtocolResponse[T]":
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Return ``data`` or raise ``ProtocolError`` carrying ``error``."""
        if not self.success:
            raise ProtocolError(self.error or UNKNOWN_ERROR_MESSAGE)
        return self.data  # type: ignore[return-value]