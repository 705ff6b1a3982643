"""
Transport layer for the tool server.

Currently implements:
  - StdioTransport: newline-delimited JSON-RPC 2.0 over stdin/stdout

One line = one message. The transport only frames messages; routing
lives in iac_tools.server.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import IO, Any, Iterator

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class JsonRpcError(Exception):
    def __init__(self, code: int, message: str, request_id: Any = None):
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(message)


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request (or notification when id is None)."""
    method: str
    params: dict[str, Any] = field(default_factory=dict)
    id: int | str | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def to_json(self) -> str:
        message: dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": self.method,
            "params": self.params,
        }
        if self.id is not None:
            message["id"] = self.id
        return json.dumps(message)

    @classmethod
    def from_json(cls, data: str) -> "JsonRpcRequest":
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as e:
            raise JsonRpcError(PARSE_ERROR, f"Parse error: {e}")

        if not isinstance(parsed, dict):
            raise JsonRpcError(INVALID_REQUEST, "Request must be a JSON object")
        request_id = parsed.get("id")
        method = parsed.get("method")
        if not isinstance(method, str) or not method:
            raise JsonRpcError(INVALID_REQUEST, "Request has no method", request_id)
        params = parsed.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise JsonRpcError(INVALID_PARAMS, "params must be an object", request_id)
        return cls(method=method, params=params, id=request_id)


@dataclass
class JsonRpcResponse:
    """JSON-RPC 2.0 response."""
    id: int | str | None
    result: Any = None
    error: dict | None = None

    @classmethod
    def failure(cls, request_id: Any, code: int, message: str) -> "JsonRpcResponse":
        return cls(id=request_id, error={"code": code, "message": message})

    @classmethod
    def from_json(cls, data: str) -> "JsonRpcResponse":
        parsed = json.loads(data)
        return cls(
            id=parsed.get("id"),
            result=parsed.get("result"),
            error=parsed.get("error"),
        )

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_json(self) -> str:
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": self.id}
        if self.error is not None:
            message["error"] = self.error
        else:
            message["result"] = self.result
        return json.dumps(message)


class Transport(ABC):
    """Abstract message framing for the tool server."""

    @abstractmethod
    def messages(self) -> Iterator[str]:
        """Yield inbound messages until the peer closes the stream."""
        ...

    @abstractmethod
    def send(self, message: str) -> None:
        """Write one outbound message."""
        ...


class StdioTransport(Transport):
    """
    JSON-RPC over stdin/stdout, one message per line.

    send() may be called from several worker threads; a lock keeps
    each message on its own line.
    """

    def __init__(self, reader: IO[str] | None = None, writer: IO[str] | None = None):
        self.reader = reader or sys.stdin
        self.writer = writer or sys.stdout
        self._write_lock = threading.Lock()

    def messages(self) -> Iterator[str]:
        for line in self.reader:
            line = line.strip()
            if line:
                yield line
        logger.info("Input stream closed")

    def send(self, message: str) -> None:
        with self._write_lock:
            self.writer.write(message + "\n")
            self.writer.flush()
