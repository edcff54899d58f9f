"""
Tool registry: the single gateway between MCP callers and tool handlers.

``invoke`` always returns exactly one ToolResult. Unknown tools, invalid
arguments and handler failures all come back as error results whose text is
``"Error: <message>"``; nothing raised by a handler reaches the transport.
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Union

from agentlink_errors import ToolAlreadyRegisteredError, ValidationError

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]

_NO_DEFAULT = object()


def _is_whole_number(value: Any) -> bool:
    # JSON clients may send 10.0 for 10
    if isinstance(value, float):
        return value.is_integer()
    return isinstance(value, int) and not isinstance(value, bool)


_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda value: isinstance(value, str),
    "number": lambda value: isinstance(value, (int, float)) and not isinstance(value, bool),
    "integer": _is_whole_number,
    "boolean": lambda value: isinstance(value, bool),
    "object": lambda value: isinstance(value, dict),
    "array": lambda value: isinstance(value, list),
}


@dataclass(frozen=True)
class ToolParam:
    type: str
    description: str
    required: bool = False
    default: Any = _NO_DEFAULT

    def __post_init__(self) -> None:
        if self.type not in _TYPE_CHECKS:
            raise ValueError(f"Unsupported parameter type: {self.type}")

    @property
    def has_default(self) -> bool:
        return self.default is not _NO_DEFAULT

    def to_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.has_default:
            schema["default"] = self.default
        return schema


@dataclass(frozen=True)
class ToolHints:
    """Declarative capability hints reported to MCP clients."""

    title: str
    read_only: bool = True
    destructive: bool = False
    idempotent: bool = True
    open_world: bool = False


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: Mapping[str, ToolParam] = field(default_factory=dict)
    hints: ToolHints | None = None

    def input_schema(self) -> dict[str, Any]:
        """Render the parameters as a JSON Schema object."""
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {name: param.to_schema() for name, param in self.params.items()},
        }
        required = [name for name, param in self.params.items() if param.required]
        if required:
            schema["required"] = required
        return schema


@dataclass(frozen=True)
class TextBlock:
    payload: str
    kind: str = "text"


@dataclass(frozen=True)
class ToolResult:
    content: tuple[TextBlock, ...]
    is_error: bool = False

    @classmethod
    def ok(cls, payload: str) -> ToolResult:
        return cls(content=(TextBlock(payload),), is_error=False)

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(content=(TextBlock(f"Error: {message}"),), is_error=True)

    @property
    def text(self) -> str:
        return "".join(block.payload for block in self.content)


def _json_default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return str(value)


def render_payload(value: Any) -> str:
    """Strings pass through; anything else becomes compact JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=_json_default, separators=(",", ":"))


def validate_arguments(spec: ToolSpec, arguments: Mapping[str, Any]) -> dict[str, Any]:
    """
    Check `arguments` against the tool parameters and return the normalized mapping.

    Raises ValidationError describing the first problem found. Undeclared
    arguments are dropped; absent optional ones get their default.
    """
    normalized: dict[str, Any] = {}
    for name, param in spec.params.items():
        value = arguments.get(name)
        if value is None:
            if param.required:
                raise ValidationError(f"Missing required argument '{name}'.")
            if param.has_default:
                normalized[name] = param.default
            continue
        if not _TYPE_CHECKS[param.type](value):
            raise ValidationError(
                f"Invalid argument '{name}': expected {param.type}, got {type(value).__name__}."
            )
        if param.type == "integer":
            value = int(value)
        normalized[name] = value

    ignored = set(arguments) - set(spec.params)
    if ignored:
        logger.debug("Ignoring undeclared arguments for %s: %s", spec.name, sorted(ignored))
    return normalized


class ToolRegistry:
    """Stores tool specs and handlers and runs invocations."""

    def __init__(self) -> None:
        self._tools: dict[str, tuple[ToolSpec, Handler]] = {}

    def register(self, spec: ToolSpec, handler: Handler) -> None:
        if spec.name in self._tools:
            raise ToolAlreadyRegisteredError(f"Tool '{spec.name}' already registered")
        self._tools[spec.name] = (spec, handler)

    def get(self, name: str) -> ToolSpec | None:
        entry = self._tools.get(name)
        return entry[0] if entry else None

    def specs(self) -> list[ToolSpec]:
        return [spec for spec, _handler in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(self, name: str, arguments: Any = None) -> ToolResult:
        entry = self._tools.get(name)
        if entry is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolResult.error(f"Unknown tool: {name}")
        spec, handler = entry

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            return ToolResult.error("Invalid arguments. Expected an object.")

        try:
            normalized = validate_arguments(spec, arguments)
        except ValidationError as exc:
            logger.info("Rejected %s call: %s", name, exc)
            return ToolResult.error(str(exc))

        logger.info("Invoking tool %s", name)
        try:
            value = handler(normalized)
            if inspect.isawaitable(value):
                value = await value
            return ToolResult.ok(render_payload(value))
        except Exception as exc:  # noqa: BLE001
            logger.error("Tool %s failed: %s", name, exc)
            return ToolResult.error(str(exc))


__all__ = [
    "Handler",
    "TextBlock",
    "ToolHints",
    "ToolParam",
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "render_payload",
    "validate_arguments",
]
