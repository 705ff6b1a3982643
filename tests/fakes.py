"""Test doubles shared by the test modules."""

from __future__ import annotations

import os
import stat
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from iac_tools.adapters.base import Adapter
from iac_tools.errors import BinaryNotFound
from iac_tools.schema import ParameterSpec, ToolDefinition, ToolResult


@dataclass
class RecordedCall:
    binary: str
    args: list[str]
    cwd: object = None
    stdin_text: str | None = None
    secrets: list[str] = field(default_factory=list)


class FakeRunner:
    """
    Stands in for ProcessRunner. Binaries listed in `available` answer
    every call (via `responder` when given); any other binary is missing.
    """

    def __init__(
        self,
        available: tuple[str, ...] = ("tofu", "terraform", "pulumi", "stub"),
        responder: Callable[[str, list[str]], ToolResult] | None = None,
    ):
        self.available = set(available)
        self.responder = responder
        self.calls: list[RecordedCall] = []

    def run(self, binary, args, cwd=None, stdin_text=None, timeout=None, secrets=()):
        self.calls.append(RecordedCall(binary, list(args), cwd, stdin_text, list(secrets)))
        if binary not in self.available:
            raise BinaryNotFound(binary, "No such file or directory")
        if self.responder is not None:
            return self.responder(binary, list(args))
        return ToolResult(success=True, output=f"{binary} ok", error="", exit_code=0)

    def tool_calls(self) -> list[RecordedCall]:
        """Calls other than version probes."""
        return [c for c in self.calls if c.args[:1] != ["version"]]

    def last_args(self) -> list[str]:
        return self.tool_calls()[-1].args


class StubAdapter(Adapter):
    """Minimal adapter declaring tools by name, each running `<tool name>`."""

    binaries = ("stub",)

    def __init__(self, name: str, tool_names: list[str], runner=None, binaries=None):
        self.name = name
        if binaries is not None:
            self.binaries = tuple(binaries)
        self._tool_names = tool_names
        super().__init__(runner=runner or FakeRunner())

    def build_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name=tool_name,
                description=f"{self.name} tool {tool_name}",
                parameters={"target": ParameterSpec("string", "Target")},
                handler=lambda args, tool_name=tool_name: self.run_binary([tool_name]),
            )
            for tool_name in self._tool_names
        ]


def make_fake_binary(directory: Path, name: str, body: str) -> Path:
    """Write an executable Python script named `name` into `directory`."""
    path = Path(directory) / name
    path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


# Prints its arguments and working directory as JSON; `version` succeeds.
ECHO_ARGV_SCRIPT = """\
import json, os, sys
args = sys.argv[1:]
if args[:1] == ["version"]:
    print("v1.8.0")
    sys.exit(0)
print(json.dumps({"args": args, "cwd": os.getcwd(), "stdin": sys.stdin.read()}))
"""


def path_env(*directories: Path) -> dict[str, str]:
    return {"PATH": os.pathsep.join(str(d) for d in directories)}
