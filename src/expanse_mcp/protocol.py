"""JSON-RPC 2.0 framing for the MCP stdio transport.

One message per line, compact JSON, UTF-8. Anything that cannot be read as a
JSON-RPC object is a parse failure; the server answers it with ``id: null``.
"""

import json
from typing import Any, Dict, NamedTuple, Optional

PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000


class ProtocolError(Exception):
    """A line that is not a usable JSON-RPC 2.0 message."""


class Request(NamedTuple):
    id: Any
    method: str
    params: Any

    @property
    def is_notification(self) -> bool:
        return self.id is None


def parse_message(line: str) -> Dict[str, Any]:
    try:
        message = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Parse error: {exc.msg}") from exc
    if not isinstance(message, dict):
        raise ProtocolError("Parse error: message must be a JSON object")
    if message.get("jsonrpc") != "2.0":
        raise ProtocolError("Parse error: jsonrpc must be \"2.0\"")
    return message


def read_request(line: str) -> Request:
    """Parse ``line`` and pull out id, method and raw params."""
    message = parse_message(line)
    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise ProtocolError("Parse error: missing method")
    return Request(message.get("id"), method, message.get("params"))


def serialize_message(message: Dict[str, Any]) -> str:
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n"


def make_result(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def make_error(request_id: Any, code: int, message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}
