from __future__ import annotations

import json
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool

from .shared.errors import ExpanseError, ToolError
from .shared.logging import get_logger
from .tools import SERVER_NAME, ToolRegistry

logger = get_logger(__name__)


def tool_definitions(registry: ToolRegistry) -> list[Tool]:
    return [
        Tool(name=tool["name"], description=tool["description"], inputSchema=tool["inputSchema"])
        for tool in registry.list_tools()
    ]


def to_text_content(block: dict[str, Any]) -> TextContent:
    if block.get("type") == "text":
        return TextContent(type="text", text=str(block.get("text", "")))
    return TextContent(type="text", text=json.dumps(block.get("json"), indent=2, ensure_ascii=False))


def to_call_result(result: dict[str, Any]) -> CallToolResult:
    content = [to_text_content(block) for block in result.get("content") or []]
    return CallToolResult(content=content, isError=bool(result.get("isError")))


def error_result(message: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=message)], isError=True)


async def call_registry_tool(registry: ToolRegistry, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
    try:
        result = await registry.adispatch(name, arguments or {})
    except (ExpanseError, ToolError) as exc:
        logger.info("Tool %s failed: %s", name, exc)
        return error_result(str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool %s", name)
        return error_result(f"Internal error: {exc}")
    return to_call_result(result)


def create_app(registry: ToolRegistry) -> Server:
    app: Server = Server(SERVER_NAME)

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        return tool_definitions(registry)

    @app.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        return await call_registry_tool(registry, name, arguments)

    return app


async def run_sdk_server(registry: ToolRegistry) -> None:
    app = create_app(registry)
    logger.info("MCP SDK server starting (%d tools, root=%s)", len(registry), registry.context.root)
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())
