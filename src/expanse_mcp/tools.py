import asyncio
import copy
import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from jsonschema import Draft7Validator

from .paths import ProjectContext
from .project_root import get_project_root
from .shared.config import AppConfig, load_config
from .shared.errors import SchemaValidationError, ToolError, UnknownToolError
from .shared.logging import get_logger
from .tools_packs import register_all

logger = get_logger(__name__)

SERVER_NAME = "expanse-mcp"
SERVER_VERSION = "0.3.0"
SERVER_INFO = {"name": SERVER_NAME, "version": SERVER_VERSION}
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")
MODES = ("local", "docs")

ToolResult = Dict[str, Any]
Handler = Callable[[Dict[str, Any]], Union[ToolResult, Awaitable[ToolResult]]]

__all__ = [
    "SERVER_INFO",
    "SERVER_VERSION",
    "Tool",
    "ToolError",
    "ToolRegistry",
    "json_result",
    "make_tool_result",
]


def make_tool_result(text: str, is_error: bool = False) -> ToolResult:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


def json_result(value: Any, text: Optional[str] = None) -> ToolResult:
    content: List[Dict[str, Any]] = []
    if text:
        content.append({"type": "text", "text": text})
    content.append({"type": "json", "json": value})
    return {"content": content, "isError": False}


@dataclass
class Tool:
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: Handler
    validator: Draft7Validator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        Draft7Validator.check_schema(self.input_schema)
        self.validator = Draft7Validator(self.input_schema)

    def prepare_arguments(self, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Fill top-level defaults, then validate against the input schema."""
        prepared = dict(arguments or {})
        for key, prop in (self.input_schema.get("properties") or {}).items():
            if key not in prepared and isinstance(prop, dict) and "default" in prop:
                prepared[key] = copy.deepcopy(prop["default"])

        errors = sorted(self.validator.iter_errors(prepared), key=lambda e: [str(p) for p in e.path])
        if errors:
            first = errors[0]
            path = ".".join(str(p) for p in first.path) or "<root>"
            raise SchemaValidationError(f"{self.name}: {path}: {first.message}")
        return prepared


async def _resolve(awaitable: Awaitable[ToolResult]) -> ToolResult:
    return await awaitable


class ToolRegistry:
    """Name to handler map shared by every transport.

    The registry performs no error translation: unknown names raise
    ``UnknownToolError``, bad arguments raise ``SchemaValidationError`` and
    handler exceptions propagate to the transport.
    """

    def __init__(
        self,
        context: Optional[ProjectContext] = None,
        *,
        mode: Optional[str] = None,
        config: Optional[AppConfig] = None,
        register_defaults: bool = True,
    ) -> None:
        self.config = config or load_config()
        if context is None:
            project = self.config.project
            context = ProjectContext(get_project_root(project.root, desktop_root=project.desktop_root))
        self.context = context
        self.mode = (mode or self.config.server.mode or "local").lower()
        if self.mode not in MODES:
            logger.warning("Unsupported mode %r; falling back to 'local'", self.mode)
            self.mode = "local"
        self._tools: Dict[str, Tool] = {}
        if register_defaults:
            register_all(self, make_tool_result, json_result, ToolError)

    def register(self, name: str, description: str, input_schema: Dict[str, Any], handler: Handler) -> Tool:
        if not NAME_PATTERN.match(name):
            raise ValueError(f"Invalid tool name: {name}")
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        tool = Tool(name=name, description=description, input_schema=input_schema, handler=handler)
        self._tools[name] = tool
        return tool

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> Tool:
        if not isinstance(name, str) or name not in self._tools:
            raise UnknownToolError(str(name))
        return self._tools[name]

    def names(self) -> List[str]:
        return list(self._tools)

    def list_tools(self) -> List[Dict[str, Any]]:
        return [
            {"name": tool.name, "description": tool.description, "inputSchema": tool.input_schema}
            for tool in self._tools.values()
        ]

    def dispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        tool = self.get(name)
        prepared = tool.prepare_arguments(arguments)
        logger.debug("dispatch %s", name)
        result = tool.handler(prepared)
        if inspect.isawaitable(result):
            result = asyncio.run(_resolve(result))
        return result

    async def adispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        tool = self.get(name)
        prepared = tool.prepare_arguments(arguments)
        logger.debug("adispatch %s", name)
        result = tool.handler(prepared)
        if inspect.isawaitable(result):
            result = await result
        return result
