"""MCP tools for editing 8th Wall Desktop style AR projects and their scene documents."""

from .protocol import PROTOCOL_VERSION, make_error, make_result, parse_message, read_request, serialize_message
from .server import StdioServer
from .tools import SERVER_VERSION as __version__
from .tools import ToolError, ToolRegistry, json_result, make_tool_result

__all__ = [
    "PROTOCOL_VERSION",
    "StdioServer",
    "ToolRegistry",
    "ToolError",
    "__version__",
    "json_result",
    "make_error",
    "make_result",
    "make_tool_result",
    "parse_message",
    "read_request",
    "serialize_message",
]
