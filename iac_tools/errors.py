"""
Error taxonomy for adapters, the process runner and the dispatch engine.

Every failure a tool call can run into is one of these. The dispatch
engine decides which of them become error envelopes and which are
reported back as ordinary (unsuccessful) tool results.
"""

from __future__ import annotations


class AdapterError(Exception):
    """Base class for all declared tool-call failures."""


class BinaryNotFound(AdapterError):
    def __init__(self, binary: str | None = None, detail: str = ""):
        self.binary = binary
        self.detail = detail
        if binary:
            message = f"Binary not found: {binary}"
        else:
            message = "No usable binary found"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class NotConnected(AdapterError):
    def __init__(self, adapter: str):
        self.adapter = adapter
        super().__init__(f"Adapter '{adapter}' is not connected")


class InvalidArgument(AdapterError):
    def __init__(self, parameter: str, reason: str):
        self.parameter = parameter
        self.reason = reason
        super().__init__(f"Invalid argument '{parameter}': {reason}")


class ProcessFailure(AdapterError):
    """The external tool ran and reported failure (non-zero exit)."""

    def __init__(self, exit_code: int, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Process exited with code {exit_code}: {stderr[:500]}")


class ProcessTimeout(AdapterError):
    def __init__(self, timeout: float, binary: str = ""):
        self.timeout = timeout
        self.binary = binary
        label = f"{binary} " if binary else ""
        super().__init__(f"Process {label}timed out after {timeout:g}s")


class UnknownTool(AdapterError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class HandlerFault(AdapterError):
    """An adapter bug: anything a handler raised that is not declared above."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ToolCollisionError(AdapterError):
    def __init__(self, tool: str, previous: str, new: str):
        self.tool = tool
        self.previous = previous
        self.new = new
        super().__init__(
            f"Tool '{tool}' from adapter '{new}' collides with adapter '{previous}'"
        )
