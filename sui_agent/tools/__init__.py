"""Tool specifications and registry utilities for the agent runtime."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    Awaitable,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

from pydantic import (
    BeforeValidator,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    create_model,
)

from sui_agent.errors import ArgumentValidationError, DuplicateToolError, ToolNotFoundError

if TYPE_CHECKING:  # pragma: no cover
    from sui_agent.protocols import AdapterCache

logger = logging.getLogger(__name__)

Primitive = Union[str, int, float, bool]

STRING = "string"
NUMBER = "number"
INTEGER = "integer"
BIGINT = "bigint"
BOOLEAN = "boolean"


class ToolFn(Protocol):
    """Callable signature every tool implementation must follow."""

    def __call__(self, *args: Primitive) -> Awaitable[str]:
        ...


@dataclass(frozen=True, slots=True)
class ToolParameter:
    """One positional argument a tool expects."""

    name: str
    type: str
    description: str
    required: bool = True


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Metadata wrapper used by the agent to invoke tools in a uniform way."""

    name: str
    description: str
    fn: ToolFn
    parameters: Tuple[ToolParameter, ...] = field(default_factory=tuple)

    def validate(self, args: Sequence[Any]) -> Tuple[Primitive, ...]:
        """
        Check positional arguments against the declared parameters.

        Values are coerced only where no information is lost (``"42"`` for an
        integer, ``"true"`` for a boolean, a number for a string). Every
        declared parameter is checked, so a required one listed after an
        omitted optional one is still reported as missing.

        Raises
        ------
        ArgumentValidationError
            On too many arguments, a missing required one, or a value that
            cannot be read as the declared type.
        """
        if len(args) > len(self.parameters):
            raise ArgumentValidationError(
                self.name,
                f"expected at most {len(self.parameters)} arguments, got {len(args)}",
            )

        given = list(args)
        supplied = len(given)
        if None in given:
            supplied = given.index(None)
            # Optional arguments may only be omitted from the tail.
            if any(value is not None for value in given[supplied:]):
                param = self.parameters[supplied]
                problem = "missing required argument" if param.required else "cannot skip argument"
                raise ArgumentValidationError(self.name, f"{problem} '{param.name}'", parameter=param.name)

        payload = {param.name: value for param, value in zip(self.parameters, given[:supplied])}
        try:
            validated = _arguments_adapter(self.parameters).validate_python(payload)
        except ValidationError as exc:
            raise _argument_error(self, exc) from None
        return tuple(getattr(validated, _field_name(idx)) for idx in range(supplied))


class ToolRegistry:
    """Ordered catalogue of tools keyed by unique name. Re-registration is rejected."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolSpec] = {}

    def register(
        self,
        name: str,
        description: str,
        parameters: Sequence[ToolParameter],
        fn: ToolFn,
    ) -> ToolSpec:
        if name in self._tools:
            raise DuplicateToolError(name)
        spec = ToolSpec(name=name, description=description, fn=fn, parameters=tuple(parameters))
        self._tools[name] = spec
        logger.debug("Registered tool: %s", name)
        return spec

    def get(self, name: str) -> Optional[ToolSpec]:
        """Return the tool registered under ``name``, or ``None``."""
        return self._tools.get(name)

    def require(self, name: str) -> ToolSpec:
        """
        Return the tool registered under ``name``.

        Raises
        ------
        ToolNotFoundError
            If no tool has that name.
        """
        spec = self._tools.get(name)
        if spec is None:
            raise ToolNotFoundError(name)
        return spec

    def list_all(self) -> List[ToolSpec]:
        """All tools in registration order."""
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self.list_all())

    def describe(self) -> str:
        """Render the catalogue as plain text for tool-selection prompts."""
        blocks: List[str] = []
        for spec in self._tools.values():
            lines = [f"- {spec.name}: {spec.description}"]
            for idx, param in enumerate(spec.parameters):
                flag = "required" if param.required else "optional"
                lines.append(f"    {idx + 1}. {param.name} ({param.type}, {flag}): {param.description}")
            blocks.append("\n".join(lines))
        return "\n".join(blocks)

    def to_openai_schema(self) -> List[Dict[str, Any]]:
        """Get all tools in OpenAI function calling format."""
        schemas: List[Dict[str, Any]] = []
        for spec in self._tools.values():
            properties = {
                param.name: {"type": _json_type(param.type), "description": param.description}
                for param in spec.parameters
            }
            parameters: Dict[str, Any] = {"type": "object", "properties": properties}
            required = [param.name for param in spec.parameters if param.required]
            if required:
                parameters["required"] = required
            schemas.append(
                {
                    "type": "function",
                    "function": {
                        "name": spec.name,
                        "description": spec.description,
                        "parameters": parameters,
                    },
                }
            )
        return schemas


def register_all_tools(registry: ToolRegistry, adapters: "AdapterCache") -> ToolRegistry:
    """Let every protocol module populate its own namespace of tool names."""
    from sui_agent.tools import bluefin_tool, suilend_tool

    suilend_tool.register_tools(registry, adapters)
    bluefin_tool.register_tools(registry, adapters)
    logger.info("Tool registration complete. Total tools: %d", len(registry))
    return registry


# --------------------------------------------------------------------------- #
# Argument coercion
# --------------------------------------------------------------------------- #

def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("booleans are not numbers")
    return value


def _number_to_text(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


_NUMERIC = BeforeValidator(_reject_bool)

#: pydantic type used to read each type tag (lax mode, lossless coercion only)
_TYPE_FOR_TAG: Dict[str, Any] = {
    STRING: Annotated[str, BeforeValidator(_number_to_text)],
    NUMBER: Annotated[Union[int, float], _NUMERIC],
    INTEGER: Annotated[int, _NUMERIC],
    BIGINT: Annotated[int, _NUMERIC],
    BOOLEAN: bool,
}

# Unknown tags are documentation only.
_ANY_PRIMITIVE = Union[StrictBool, StrictInt, StrictFloat, StrictStr]


def _field_name(idx: int) -> str:
    return f"arg{idx}"


@lru_cache(maxsize=None)
def _arguments_adapter(parameters: Tuple[ToolParameter, ...]) -> TypeAdapter:
    """Build (once per parameter list) the adapter that validates a tool's arguments."""
    fields: Dict[str, Any] = {}
    for idx, param in enumerate(parameters):
        annotation = _TYPE_FOR_TAG.get(param.type.lower(), _ANY_PRIMITIVE)
        if param.required:
            fields[_field_name(idx)] = (annotation, Field(alias=param.name))
        else:
            fields[_field_name(idx)] = (Optional[annotation], Field(default=None, alias=param.name))
    return TypeAdapter(create_model("ToolArguments", **fields))


def _argument_error(spec: ToolSpec, exc: ValidationError) -> ArgumentValidationError:
    """Report the first failing parameter. Input values are left out, they may be credentials."""
    error = exc.errors(include_url=False, include_input=False)[0]
    name = str(error["loc"][0]) if error["loc"] else ""
    param = next((p for p in spec.parameters if p.name == name), None)
    if param is None:
        return ArgumentValidationError(spec.name, error["msg"])
    if error["type"] == "missing":
        return ArgumentValidationError(spec.name, f"missing required argument '{name}'", parameter=name)
    return ArgumentValidationError(
        spec.name,
        f"argument '{name}' expects {param.type}: {error['msg']}",
        parameter=name,
    )


def _json_type(tag: str) -> str:
    return {BIGINT: INTEGER}.get(tag.lower(), tag.lower())
