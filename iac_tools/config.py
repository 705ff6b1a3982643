"""
Server configuration from environment variables.

    IAC_TOOLS_ADAPTERS           comma list, default "terraform,pulumi"
    IAC_TOOLS_BINARY_MODE        "preinstalled" (PATH only) or "dynamic"
    IAC_TOOLS_BIN_DIR            extra binary directory for dynamic mode
    IAC_TOOLS_TIMEOUT            seconds per process, 0 disables (default 600)
    IAC_TOOLS_STRICT_TOOL_NAMES  fail on tool name collisions
    IAC_TOOLS_MAX_WORKERS        concurrent tool calls (default 4)
    IAC_TOOLS_LOG_LEVEL          logging level (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

BINARY_MODES = ("preinstalled", "dynamic")
DEFAULT_ADAPTERS = ["terraform", "pulumi"]


def _env(environ: Mapping[str, str], name: str, default: str = "") -> str:
    return environ.get(name, default).strip()


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = _env(environ, name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _env(environ, name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {raw!r}")
    return value


def _env_bool(environ: Mapping[str, str], name: str) -> bool:
    return _env(environ, name).lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    adapters: list[str] = field(default_factory=lambda: list(DEFAULT_ADAPTERS))
    binary_mode: str = "preinstalled"
    bin_dir: Path | None = None
    timeout: float = 600.0
    strict_tool_names: bool = False
    max_workers: int = 4
    log_level: str = "INFO"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.binary_mode not in BINARY_MODES:
            raise ValueError(
                f"Invalid binary mode: {self.binary_mode!r} (expected one of {BINARY_MODES})"
            )
        if self.binary_mode == "dynamic" and self.bin_dir is None:
            raise ValueError("Dynamic binary mode requires IAC_TOOLS_BIN_DIR")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServerConfig":
        environ = os.environ if environ is None else environ
        adapters = [
            name.strip().lower()
            for name in _env(environ, "IAC_TOOLS_ADAPTERS").split(",")
            if name.strip()
        ]
        bin_dir = _env(environ, "IAC_TOOLS_BIN_DIR")
        return cls(
            adapters=adapters or list(DEFAULT_ADAPTERS),
            binary_mode=_env(environ, "IAC_TOOLS_BINARY_MODE", "preinstalled").lower(),
            bin_dir=Path(bin_dir).expanduser() if bin_dir else None,
            timeout=_env_float(environ, "IAC_TOOLS_TIMEOUT", 600.0),
            strict_tool_names=_env_bool(environ, "IAC_TOOLS_STRICT_TOOL_NAMES"),
            max_workers=_env_int(environ, "IAC_TOOLS_MAX_WORKERS", 4),
            log_level=_env(environ, "IAC_TOOLS_LOG_LEVEL", "INFO").upper(),
        )

    def search_path(self, environ: Mapping[str, str] | None = None) -> str | None:
        """
        Directories probed for binaries. None means the bare names are
        resolved on PATH by the OS.
        """
        if self.binary_mode != "dynamic":
            return None
        environ = os.environ if environ is None else environ
        path = environ.get("PATH", os.defpath)
        return os.pathsep.join([str(self.bin_dir), path])
