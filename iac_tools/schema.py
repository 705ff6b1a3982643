"""
Tool definitions, parameter schemas and the normalized tool result.

A ToolDefinition pairs a declared parameter schema with a handler. The
dispatch engine validates every call against the schema before the
handler ever runs, so handlers can rely on:

    - every required parameter being present with the declared type
    - optional parameters being either absent or of the declared type
    - declared defaults already filled in

Example:

    ToolDefinition(
        name="terraform_validate",
        description="Validate the configuration files",
        parameters={
            "path": ParameterSpec("string", "Configuration directory", required=True),
            "json": ParameterSpec("boolean", "Machine-readable output", default=False),
        },
        handler=adapter.validate,
    )
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from iac_tools.errors import InvalidArgument

PARAMETER_TYPES = ("string", "boolean", "number", "object")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _matches(type_: str, value: Any) -> bool:
    if type_ == "string":
        return isinstance(value, str)
    if type_ == "boolean":
        return isinstance(value, bool)
    if type_ == "number":
        # bool is an int subclass; a flag is never a number
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if type_ == "object":
        return isinstance(value, dict)
    return False


@dataclass(frozen=True)
class ParameterSpec:
    """Declared type, help text, required-ness and default of one parameter."""

    type: str
    description: str = ""
    required: bool = False
    default: Any = MISSING

    def __post_init__(self):
        if self.type not in PARAMETER_TYPES:
            raise ValueError(f"Unsupported parameter type: {self.type!r}")
        if self.required and self.has_default:
            raise ValueError("A required parameter cannot declare a default")
        if self.has_default and not _matches(self.type, self.default):
            raise ValueError(
                f"Default {self.default!r} does not match type {self.type!r}"
            )

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def to_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.has_default:
            schema["default"] = self.default
        return schema


@dataclass(frozen=True)
class ToolResult:
    """The shape every handler returns, whatever binary produced it."""

    success: bool
    output: str = ""
    error: str = ""
    exit_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "exitCode": self.exit_code,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def redacted(self, secrets: list[str]) -> "ToolResult":
        """Return a copy with every secret value masked in output and error."""
        if not secrets:
            return self
        return ToolResult(
            success=self.success,
            output=redact(self.output, secrets),
            error=redact(self.error, secrets),
            exit_code=self.exit_code,
        )


def redact(text: str, secrets: list[str]) -> str:
    """
    Mask each secret as ***. Only whole occurrences are masked: a secret
    glued to letters or digits on either side is part of another word.
    """
    for secret in secrets:
        if secret:
            pattern = rf"(?<![A-Za-z0-9_]){re.escape(secret)}(?![A-Za-z0-9_])"
            text = re.sub(pattern, "***", text)
    return text


Handler = Callable[[Mapping[str, Any]], ToolResult]


@dataclass(frozen=True)
class ToolDefinition:
    """A named, schema-described operation backed by a handler."""

    name: str
    description: str
    parameters: Mapping[str, ParameterSpec]
    handler: Handler = field(compare=False, repr=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("ToolDefinition has no name")
        # Freeze the parameter table; declaration order is the schema order.
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def input_schema(self) -> dict[str, Any]:
        """JSON-schema style description for tool listing."""
        return {
            "type": "object",
            "properties": {
                name: spec.to_schema() for name, spec in self.parameters.items()
            },
            "required": [name for name, spec in self.parameters.items() if spec.required],
        }

    def get_schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


def validate_arguments(
    parameters: Mapping[str, ParameterSpec],
    raw_args: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """
    Check raw call arguments against a parameter table.

    Types must match exactly (no coercion of "1" to 1). A JSON null is
    treated as an absent value. Arguments that are not declared are
    rejected.

    Returns:
        The resolved argument mapping, defaults filled in, in declaration order.

    Raises:
        InvalidArgument: on a missing required parameter, a type mismatch
            or an undeclared parameter.
    """
    if raw_args is None:
        raw_args = {}
    if not isinstance(raw_args, Mapping):
        raise InvalidArgument("arguments", "expected an object")

    for name in raw_args:
        if name not in parameters:
            raise InvalidArgument(name, "unexpected parameter")

    resolved: dict[str, Any] = {}
    for name, spec in parameters.items():
        value = raw_args.get(name)
        if value is None:
            if spec.required:
                raise InvalidArgument(name, "required parameter is missing")
            if spec.has_default:
                resolved[name] = spec.default
            continue
        if not _matches(spec.type, value):
            raise InvalidArgument(
                name, f"expected {spec.type}, got {type(value).__name__}"
            )
        resolved[name] = value
    return resolved
