"""
IaC Tools: one tool server for several infrastructure-as-code CLIs.

Architecture:
    ┌──────────────┐   JSON-RPC    ┌──────────────┐   argv    ┌───────────┐
    │    Client    │ ──────────── │  Tool Server  │ ───────── │ tofu /    │
    │ (MCP / agent)│  stdio lines │  (dispatch)   │  process  │ pulumi .. │
    └──────────────┘              └──────────────┘            └───────────┘

Each adapter wraps one tool family (Terraform/OpenTofu, Pulumi), probes
for its binary at startup and declares a catalog of schema-described
tools. The AdapterRegistry connects the adapters and merges their tools
into one table; the Dispatcher validates each call, runs the handler
and wraps the result in a uniform envelope.

The LangChain bridge exposes the same tools as StructuredTools; it is
imported lazily so the server runs without langchain installed.
"""

__version__ = "1.2.0"

from iac_tools.adapters import Adapter, ConnectionState, PulumiAdapter, TerraformAdapter
from iac_tools.dispatch import CallEnvelope, Dispatcher
from iac_tools.registry import AdapterRegistry, RegistryBuildReport
from iac_tools.runner import ProcessRunner
from iac_tools.schema import ParameterSpec, ToolDefinition, ToolResult


# The bridge needs langchain; import it on first use only
def tool_to_langchain(*args, **kwargs):
    from iac_tools.bridge import tool_to_langchain as _impl
    return _impl(*args, **kwargs)


def register_langchain_tools(*args, **kwargs):
    from iac_tools.bridge import register_langchain_tools as _impl
    return _impl(*args, **kwargs)


__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CallEnvelope",
    "ConnectionState",
    "Dispatcher",
    "ParameterSpec",
    "ProcessRunner",
    "PulumiAdapter",
    "RegistryBuildReport",
    "TerraformAdapter",
    "ToolDefinition",
    "ToolResult",
    "register_langchain_tools",
    "tool_to_langchain",
]
