import sys
from typing import Any, Dict, Optional

from .protocol import (
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PROTOCOL_VERSION,
    SERVER_ERROR,
    ProtocolError,
    make_error,
    make_result,
    read_request,
    serialize_message,
)
from .shared.errors import ExpanseError, SchemaValidationError, ToolError, UnknownToolError
from .shared.logging import get_logger
from .tools import SERVER_INFO, ToolRegistry

logger = get_logger(__name__)


class StdioServer:
    """Line-delimited JSON-RPC 2.0 over stdin/stdout."""

    def __init__(self, tools: Optional[ToolRegistry] = None, stdin=None, stdout=None) -> None:
        self.tools = tools or ToolRegistry()
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout

    def run(self, once: bool = False) -> None:
        logger.info("stdio server ready (%d tools, root=%s)", len(self.tools), self.tools.context.root)
        while True:
            line = self._stdin.readline()
            if line == "":
                break  # EOF
            if not line.strip():
                continue
            response = self._handle_line(line)
            if response is not None:
                try:
                    self._stdout.write(serialize_message(response))
                    self._stdout.flush()
                except OSError as exc:
                    logger.error("Failed to write response: %s", exc)
                    break
            if once:
                break
        logger.info("stdio server stopped")

    def _handle_line(self, line: str) -> Optional[Dict[str, Any]]:
        try:
            request = read_request(line)
        except ProtocolError as exc:
            logger.warning("Dropping malformed line: %s", exc)
            return make_error(None, PARSE_ERROR, str(exc))

        method, request_id, raw_params = request.method, request.id, request.params
        if request.is_notification:
            logger.debug("notification %s", method)
            return None

        if raw_params is None:
            params: Dict[str, Any] = {}
        elif isinstance(raw_params, dict):
            params = raw_params
        else:
            return make_error(request_id, INVALID_PARAMS, "Invalid params")

        try:
            if method == "initialize":
                result = {
                    "protocolVersion": PROTOCOL_VERSION,
                    "serverInfo": SERVER_INFO,
                    "capabilities": {"tools": {}},
                }
                return make_result(request_id, result)

            if method == "ping":
                return make_result(request_id, {})

            if method == "tools/list":
                return make_result(request_id, {"tools": self.tools.list_tools()})

            if method == "tools/call":
                name = params.get("name")
                arguments = params.get("arguments") or {}
                if not isinstance(name, str):
                    raise ToolError("Invalid tool name", code=INVALID_PARAMS)
                if not isinstance(arguments, dict):
                    raise ToolError("Invalid arguments", code=INVALID_PARAMS)
                return make_result(request_id, self.tools.dispatch(name, arguments))

            return make_error(request_id, METHOD_NOT_FOUND, "Method not found")
        except UnknownToolError as exc:
            return make_error(request_id, METHOD_NOT_FOUND, str(exc), data={"code": exc.code})
        except SchemaValidationError as exc:
            return make_error(request_id, INVALID_PARAMS, str(exc), data={"code": exc.code})
        except ToolError as exc:
            return make_error(request_id, exc.code, str(exc), data=exc.data or None)
        except ExpanseError as exc:
            return make_error(request_id, SERVER_ERROR, exc.message, data={"code": exc.code})
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unhandled error in %s", method)
            return make_error(request_id, SERVER_ERROR, f"Internal error: {exc}")
