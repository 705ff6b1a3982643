"""
Bridge between the IaC tool registry and LangChain.

Converts every connected tool into a LangChain StructuredTool so an
agent can call Terraform or Pulumi directly, without going through the
stdio server. Calls still go through the dispatch engine, so argument
validation and error envelopes are identical.

Usage:
    from iac_tools.bridge import register_langchain_tools

    lc_tools = register_langchain_tools(dispatcher)
    agent = create_react_agent(model, lc_tools)
"""

from __future__ import annotations

from typing import Any

from langchain_core.tools import StructuredTool

from iac_tools.dispatch import Dispatcher
from iac_tools.schema import ToolDefinition


def tool_to_langchain(
    dispatcher: Dispatcher,
    definition: ToolDefinition,
    description_override: str | None = None,
) -> StructuredTool:
    """
    Create a LangChain StructuredTool that dispatches one registry tool.

    The tool returns the envelope text: the JSON ToolResult on success,
    or an "Error: ..." message the agent can read and react to.

    Args:
        dispatcher: The Dispatcher serving the registry
        definition: The tool to wrap
        description_override: Optional override for the tool description
    """
    tool_name = definition.name

    def _call_tool(**kwargs: Any) -> str:
        """Proxy call to the dispatch engine."""
        envelope = dispatcher.dispatch(tool_name, kwargs)
        return envelope.text

    return StructuredTool.from_function(
        func=_call_tool,
        name=tool_name,
        description=description_override or definition.description,
        args_schema=definition.input_schema(),
    )


def register_langchain_tools(
    dispatcher: Dispatcher,
    descriptions: dict[str, str] | None = None,
) -> list[StructuredTool]:
    """
    Wrap every currently listed tool.

    Args:
        dispatcher: The Dispatcher serving the registry
        descriptions: Optional {tool_name: description} overrides

    Returns:
        LangChain tools in registry order.
    """
    descriptions = descriptions or {}
    return [
        tool_to_langchain(dispatcher, definition, descriptions.get(definition.name))
        for definition in dispatcher.registry.list_tools()
    ]
