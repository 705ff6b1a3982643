"""
Dispatch Engine: turns a (tool name, arguments) call into an envelope.

    lookup ─▶ validate arguments ─▶ handler ─▶ ToolResult ─▶ CallEnvelope

The envelope's isError flag is about the server, not the IaC tool:

    - unknown tool, invalid arguments, adapter not connected, timeout,
      handler crash                      → isError: true
    - the IaC tool ran and failed        → isError: false, success: false

Nothing a handler raises escapes dispatch().
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping

from iac_tools.errors import AdapterError, HandlerFault, ProcessFailure, UnknownTool
from iac_tools.registry import AdapterRegistry
from iac_tools.schema import ToolResult, validate_arguments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallEnvelope:
    """Uniform response for every dispatched call."""

    content: tuple[dict[str, str], ...]
    is_error: bool = False

    @classmethod
    def from_text(cls, text: str, is_error: bool = False) -> "CallEnvelope":
        return cls(content=({"type": "text", "text": text},), is_error=is_error)

    @classmethod
    def from_result(cls, result: ToolResult) -> "CallEnvelope":
        return cls.from_text(result.to_json())

    @classmethod
    def from_error(cls, error: AdapterError) -> "CallEnvelope":
        if isinstance(error, UnknownTool):
            return cls.from_text(str(error), is_error=True)
        return cls.from_text(f"Error: {error}", is_error=True)

    @property
    def text(self) -> str:
        return "\n".join(item["text"] for item in self.content)

    def to_dict(self) -> dict[str, Any]:
        return {"content": [dict(item) for item in self.content], "isError": self.is_error}


class Dispatcher:
    """
    Routes calls to tool handlers through the registry.

    Holds no per-call state, so any number of dispatch() calls may run
    at once from different threads.
    """

    def __init__(self, registry: AdapterRegistry):
        self.registry = registry

    def list_tools(self) -> list[dict[str, Any]]:
        """Tool listing: name, description and inputSchema per tool."""
        return [definition.get_schema() for definition in self.registry.list_tools()]

    def dispatch(self, tool_name: str, raw_args: Mapping[str, Any] | None = None) -> CallEnvelope:
        entry = self.registry.lookup(tool_name)
        if entry is None:
            logger.warning(f"Call to unknown tool: {tool_name}")
            return CallEnvelope.from_error(UnknownTool(tool_name))

        started = time.monotonic()
        try:
            result = self._invoke(entry.definition, raw_args)
        except AdapterError as e:
            logger.info(f"{tool_name} rejected: {e}")
            return CallEnvelope.from_error(e)
        except Exception as e:
            logger.exception(f"Handler for {tool_name} crashed")
            return CallEnvelope.from_error(HandlerFault(f"{type(e).__name__}: {e}"))

        elapsed = time.monotonic() - started
        logger.info(
            f"{tool_name} finished in {elapsed:.2f}s "
            f"(success={result.success}, exit={result.exit_code})"
        )
        return CallEnvelope.from_result(result)

    def _invoke(self, definition, raw_args) -> ToolResult:
        args = validate_arguments(definition.parameters, raw_args)
        try:
            result = definition.handler(args)
        except ProcessFailure as e:
            # The tool reported failure: that is data, not a server fault
            return ToolResult(success=False, error=e.stderr, exit_code=e.exit_code)

        if not isinstance(result, ToolResult):
            raise HandlerFault(
                f"Handler for {definition.name} returned {type(result).__name__}, not ToolResult"
            )
        return result
