"""
Adapter base class.

An adapter binds one family of infrastructure-as-code binaries to a
fixed catalog of tools. To add a tool family:

    class CrossplaneAdapter(Adapter):
        name = "crossplane"
        description = "Crossplane via the crossplane CLI"
        binaries = ("crossplane",)
        version_args = ("--version",)

        def build_tools(self) -> list[ToolDefinition]:
            return [
                ToolDefinition(
                    name="crossplane_version",
                    description="Show the crossplane CLI version",
                    parameters={},
                    handler=lambda args: self.run_binary(["--version"]),
                ),
            ]

Connection state is owned by the adapter and changed only by its own
connect() and disconnect(). Handlers read it but never write it.
"""

from __future__ import annotations

import json
import logging
import shutil
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

from iac_tools.errors import AdapterError, BinaryNotFound, InvalidArgument, NotConnected
from iac_tools.runner import ProcessRunner
from iac_tools.schema import ToolDefinition, ToolResult

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 15.0


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class Adapter(ABC):
    """
    Base class for a tool family.

    Subclasses set the class attributes and implement build_tools().
    """

    # Subclasses must set these
    name: str = ""
    description: str = ""
    binaries: tuple[str, ...] = ()  # preference order
    version_args: tuple[str, ...] = ("version",)

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        search_path: str | None = None,
    ):
        """
        Args:
            runner: Process runner used for probing and for every tool call
            search_path: os.pathsep-separated directories searched for the
                         binaries instead of PATH. None runs the bare names.
        """
        if not self.name:
            raise ValueError(f"Adapter {self.__class__.__name__} has no name")
        self.runner = runner or ProcessRunner()
        self.search_path = search_path
        self.state = ConnectionState.DISCONNECTED
        self.binary: str | None = None
        self._tools: tuple[ToolDefinition, ...] | None = None

    @abstractmethod
    def build_tools(self) -> list[ToolDefinition]:
        """Return this adapter's fixed tool catalog."""
        ...

    # ── Lifecycle ──────────────────────────────────────────

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED and self.binary is not None

    def probe(self) -> str | None:
        """
        Find the first binary, in preference order, whose version check
        exits with 0. Returns the runnable binary or None.
        """
        for candidate in self.binaries:
            if self.search_path is not None:
                located = shutil.which(candidate, path=self.search_path)
                if not located:
                    logger.debug(f"[{self.name}] {candidate} not on search path")
                    continue
            else:
                located = candidate

            try:
                result = self.runner.run(located, list(self.version_args), timeout=PROBE_TIMEOUT)
            except AdapterError as e:
                logger.debug(f"[{self.name}] probe of {candidate} failed: {e}")
                continue

            if result.success:
                return located
            logger.debug(f"[{self.name}] {candidate} version check exited {result.exit_code}")
        return None

    def connect(self) -> None:
        """
        Locate the binary and mark the adapter connected.

        Raises:
            BinaryNotFound: none of the candidate binaries responded
        """
        if self.is_connected:
            return

        self.state = ConnectionState.CONNECTING
        binary = self.probe()
        if binary is None:
            self.binary = None
            self.state = ConnectionState.FAILED
            raise BinaryNotFound(detail=f"{self.name}: tried {', '.join(self.binaries)}")

        self.binary = binary
        self.state = ConnectionState.CONNECTED
        logger.info(f"Connected {self.name} adapter using {binary}")

    def disconnect(self) -> None:
        self.binary = None
        self.state = ConnectionState.DISCONNECTED

    def tools(self) -> tuple[ToolDefinition, ...]:
        if self._tools is None:
            self._tools = tuple(self.build_tools())
        return self._tools

    def status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "state": self.state.value,
            "binary": self.binary,
            "tools": len(self.tools()),
        }

    # ── Handler helpers ────────────────────────────────────

    def ensure_connected(self) -> str:
        """Return the connected binary. Handlers call this before checking arguments."""
        binary = self.binary
        if self.state is not ConnectionState.CONNECTED or binary is None:
            raise NotConnected(self.name)
        return binary

    def run_binary(
        self,
        args: Sequence[str],
        cwd: str | Path | None = None,
        stdin_text: str | None = None,
        secrets: Sequence[str] = (),
    ) -> ToolResult:
        """Run the connected binary. Fails with NotConnected instead of guessing a path."""
        binary = self.ensure_connected()
        return self.runner.run(binary, args, cwd=cwd, stdin_text=stdin_text, secrets=secrets)


def require_directory(args: dict[str, Any], parameter: str) -> Path | None:
    """Resolve a directory argument, or None when it was not supplied."""
    value = args.get(parameter)
    if value is None:
        return None
    if not value.strip():
        raise InvalidArgument(parameter, "must not be empty")
    directory = Path(value).expanduser()
    if not directory.is_dir():
        raise InvalidArgument(parameter, f"directory does not exist: {value}")
    return directory


def require_value(args: dict[str, Any], parameter: str) -> str:
    """Return a non-empty string argument; never substitute an empty one."""
    value = args.get(parameter)
    if not isinstance(value, str) or not value:
        raise InvalidArgument(parameter, "a non-empty value is required")
    return value


def format_assignments(option: str, values: dict[str, Any] | None) -> list[str]:
    """One `<option><key>=<value>` token per entry, in mapping order."""
    tokens = []
    for key, value in (values or {}).items():
        if not key:
            raise InvalidArgument("vars", "variable names must not be empty")
        if not isinstance(value, str):
            value = json.dumps(value)
        tokens.append(f"{option}{key}={value}")
    return tokens


def positional(value: str, parameter: str) -> str:
    """Guard a positional argument against being read as an option."""
    if value.startswith("-"):
        raise InvalidArgument(parameter, "must not start with '-'")
    return value
