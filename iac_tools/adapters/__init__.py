"""Adapters for the supported infrastructure-as-code tool families."""

from __future__ import annotations

import logging

from iac_tools.adapters.base import Adapter, ConnectionState
from iac_tools.adapters.pulumi import PulumiAdapter
from iac_tools.adapters.terraform import TerraformAdapter
from iac_tools.runner import ProcessRunner

logger = logging.getLogger(__name__)

# Registration order is tool-table precedence order
ADAPTER_CLASSES: dict[str, type[Adapter]] = {
    TerraformAdapter.name: TerraformAdapter,
    PulumiAdapter.name: PulumiAdapter,
}


def build_adapters(
    names: list[str],
    runner: ProcessRunner | None = None,
    search_path: str | None = None,
) -> list[Adapter]:
    """Instantiate adapters by name, in the given order. Unknown names are skipped."""
    adapters = []
    for name in names:
        cls = ADAPTER_CLASSES.get(name)
        if cls is None:
            logger.warning(f"Unknown adapter: {name} (available: {list(ADAPTER_CLASSES)})")
            continue
        adapters.append(cls(runner=runner, search_path=search_path))
    return adapters


__all__ = [
    "ADAPTER_CLASSES",
    "Adapter",
    "ConnectionState",
    "PulumiAdapter",
    "TerraformAdapter",
    "build_adapters",
]
