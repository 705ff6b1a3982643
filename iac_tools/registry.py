"""
Adapter Registry: connects adapters and merges their tools.

The registry is the join point between the configured adapters and the
dispatch engine. It connects every adapter, keeps going when one of
them fails, and builds one flat tool table from the adapters that came
up.

Usage:
    registry = AdapterRegistry()
    report = registry.register_all([TerraformAdapter(), PulumiAdapter()])
    if report.failed:
        print(report.failed)           # {"pulumi": "No usable binary found ..."}

    entry = registry.lookup("terraform_plan")
    entry.definition.handler({"path": "./infra"})

    registry.disconnect_all()
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable

from iac_tools.adapters.base import Adapter
from iac_tools.errors import AdapterError, ToolCollisionError
from iac_tools.schema import ToolDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredTool:
    adapter: Adapter
    definition: ToolDefinition


@dataclass
class RegistryBuildReport:
    """Outcome of connecting adapters and building the tool table."""

    connected: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    # tool name -> (previous owner, new owner)
    collisions: dict[str, tuple[str, str]] = field(default_factory=dict)
    tool_count: int = 0

    @property
    def ok(self) -> bool:
        return bool(self.connected)

    def to_dict(self) -> dict[str, Any]:
        return {
            "connected": list(self.connected),
            "failed": dict(self.failed),
            "collisions": {k: list(v) for k, v in self.collisions.items()},
            "toolCount": self.tool_count,
        }


class AdapterRegistry:
    """
    Owns the adapters and the merged tool table.

    The table is rebuilt as a whole and swapped in with one assignment,
    so readers never see a partially built table. After startup it is
    only replaced when an adapter is added.
    """

    def __init__(self, strict: bool = False):
        """
        Args:
            strict: Raise ToolCollisionError when two adapters declare the
                    same tool name instead of letting the later one win.
        """
        self.strict = strict
        self._adapters: list[Adapter] = []
        self._table: dict[str, RegisteredTool] = {}
        self._lock = threading.Lock()

    def register_all(self, adapters: Iterable[Adapter]) -> RegistryBuildReport:
        """
        Connect every adapter concurrently, then build the tool table.

        A failed adapter is recorded in the report and left out of the
        table; it never stops the others. Nothing is committed when the
        build is rejected: the new adapters are disconnected and the
        registry keeps its previous adapters and table.

        Raises:
            ValueError: two adapters share a name
            ToolCollisionError: strict mode and a tool name is declared twice
        """
        adapters = list(adapters)
        with self._lock:
            self._check_names(adapters)
            report = RegistryBuildReport()
            report.failed = self._connect_all(adapters)
            candidates = self._adapters + adapters
            try:
                table = self._build_table(candidates, report)
            except ToolCollisionError:
                for adapter in adapters:
                    adapter.disconnect()
                raise
            self._adapters = candidates
            self._table = table
            report.tool_count = len(table)

        logger.info(
            f"Registry ready: {len(report.connected)} adapter(s) connected, "
            f"{len(report.failed)} failed, {report.tool_count} tools"
        )
        return report

    def add(self, adapter: Adapter) -> RegistryBuildReport:
        """Connect one more adapter after startup and merge its tools."""
        return self.register_all([adapter])

    def _check_names(self, adapters: list[Adapter]) -> None:
        seen = {a.name for a in self._adapters}
        for adapter in adapters:
            if adapter.name in seen:
                raise ValueError(f"Adapter already registered: {adapter.name}")
            seen.add(adapter.name)

    def _connect_all(self, adapters: list[Adapter]) -> dict[str, str]:
        """Connect adapters in parallel and wait for every one to settle."""
        failed: dict[str, str] = {}
        if not adapters:
            return failed

        with ThreadPoolExecutor(max_workers=len(adapters), thread_name_prefix="connect") as pool:
            futures = [(adapter, pool.submit(adapter.connect)) for adapter in adapters]
            for adapter, future in futures:
                try:
                    future.result()
                except AdapterError as e:
                    failed[adapter.name] = str(e)
                    logger.warning(f"Failed to connect {adapter.name}: {e}")
                except Exception as e:
                    failed[adapter.name] = f"{type(e).__name__}: {e}"
                    logger.exception(f"Adapter {adapter.name} crashed while connecting")
        return failed

    def _build_table(
        self, adapters: list[Adapter], report: RegistryBuildReport
    ) -> dict[str, RegisteredTool]:
        table: dict[str, RegisteredTool] = {}
        for adapter in adapters:
            if not adapter.is_connected:
                continue
            report.connected.append(adapter.name)
            for definition in adapter.tools():
                previous = table.get(definition.name)
                if previous is not None:
                    if self.strict:
                        raise ToolCollisionError(
                            definition.name, previous.adapter.name, adapter.name
                        )
                    logger.warning(
                        f"Tool {definition.name} from {adapter.name} "
                        f"overrides the one from {previous.adapter.name}"
                    )
                    report.collisions[definition.name] = (previous.adapter.name, adapter.name)
                table[definition.name] = RegisteredTool(adapter, definition)
        return table

    # ── Queries ────────────────────────────────────────────

    def lookup(self, name: str) -> RegisteredTool | None:
        return self._table.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        """Tools of currently connected adapters, in registration order."""
        return [
            entry.definition
            for entry in self._table.values()
            if entry.adapter.is_connected
        ]

    def status(self) -> list[dict[str, Any]]:
        return [adapter.status() for adapter in self._adapters]

    def disconnect_all(self) -> None:
        for adapter in self._adapters:
            adapter.disconnect()
        logger.info("Disconnected all adapters")
