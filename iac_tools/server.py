"""
IaC tool server.

Reads JSON-RPC requests from a transport, routes them to the dispatch
engine and writes JSON-RPC responses back.

    from iac_tools.adapters import TerraformAdapter
    from iac_tools.dispatch import Dispatcher
    from iac_tools.registry import AdapterRegistry
    from iac_tools.server import StdioToolServer

    registry = AdapterRegistry()
    registry.register_all([TerraformAdapter()])
    StdioToolServer(Dispatcher(registry)).run()
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from iac_tools import __version__
from iac_tools.dispatch import Dispatcher
from iac_tools.transport import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    StdioTransport,
    Transport,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "poly-iac-tools"
PROTOCOL_VERSION = "2024-11-05"


class StdioToolServer:
    """
    JSON-RPC tool server over a line-oriented transport.

    Protocol:
    - One JSON-RPC message per line
    - Supports methods:
        - "initialize"  → server info and capabilities
        - "ping"        → health check
        - "tools/list"  → schemas of the connected adapters' tools
        - "tools/call"  → dispatch a tool by name with arguments
      Notifications (no id) are accepted and never answered.

    tools/call requests run on a worker pool so a long apply does not
    hold up other calls; everything else is answered inline.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        transport: Transport | None = None,
        max_workers: int = 4,
    ):
        self.dispatcher = dispatcher
        self.transport = transport or StdioTransport()
        self.max_workers = max_workers

    def run(self) -> None:
        """
        Main loop: read requests, dispatch, write responses.

        Blocks until the input stream is closed; in-flight calls are
        finished before returning.
        """
        tool_names = [t["name"] for t in self.dispatcher.list_tools()]
        logger.info(f"Tool server starting with {len(tool_names)} tools: {tool_names}")

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="call") as pool:
            for line in self.transport.messages():
                try:
                    request = JsonRpcRequest.from_json(line)
                except JsonRpcError as e:
                    self._write(JsonRpcResponse.failure(e.request_id, e.code, e.message))
                    continue

                if request.method == "tools/call":
                    pool.submit(self._respond, request)
                else:
                    self._respond(request)

        logger.info("Tool server stopped")

    def _respond(self, request: JsonRpcRequest) -> None:
        response = self.handle(request)
        if response is not None:
            self._write(response)

    def handle(self, request: JsonRpcRequest) -> JsonRpcResponse | None:
        """Answer one request. Returns None for notifications."""
        try:
            result = self._dispatch(request.method, request.params)
        except JsonRpcError as e:
            response = JsonRpcResponse.failure(request.id, e.code, e.message)
        except Exception as e:
            logger.exception(f"Internal error handling {request.method}")
            response = JsonRpcResponse.failure(request.id, INTERNAL_ERROR, str(e))
        else:
            response = JsonRpcResponse(id=request.id, result=result)

        if request.is_notification:
            return None
        return response

    def _dispatch(self, method: str, params: dict[str, Any]) -> Any:
        """Route a method call."""

        if method == "initialize":
            return {
                "protocolVersion": params.get("protocolVersion", PROTOCOL_VERSION),
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            }

        if method.startswith("notifications/"):
            return None

        if method == "ping":
            return {"status": "ok", "tools": len(self.dispatcher.list_tools())}

        if method == "tools/list":
            return {"tools": self.dispatcher.list_tools()}

        if method == "tools/call":
            tool_name = params.get("name")
            if not isinstance(tool_name, str) or not tool_name:
                raise JsonRpcError(INVALID_PARAMS, "tools/call requires a tool name")
            envelope = self.dispatcher.dispatch(tool_name, params.get("arguments"))
            return envelope.to_dict()

        raise JsonRpcError(METHOD_NOT_FOUND, f"Unknown method: '{method}'")

    def _write(self, response: JsonRpcResponse) -> None:
        try:
            self.transport.send(response.to_json())
        except (BrokenPipeError, ValueError) as e:
            # Peer went away or the stream was closed during shutdown
            logger.warning(f"Could not write response {response.id}: {e}")
