"""HTTP frontend for the tool registry.

``GET /`` describes the bridge, ``GET /tools`` lists tools and
``POST /tool/<name>`` invokes one. Every response carries open CORS headers.
"""

import json
import threading
from functools import partial
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Tuple

from .shared.errors import SchemaValidationError, UnknownToolError
from .shared.logging import get_logger
from .tools import ToolRegistry

logger = get_logger(__name__)

TOOL_PREFIX = "/tool/"
ENDPOINTS = ["GET /", "GET /tools", "POST /tool/:name"]


class BridgeHandler(BaseHTTPRequestHandler):
    server_version = "expanse_bridge/0.3"

    def __init__(self, *args: Any, registry: ToolRegistry, **kwargs: Any) -> None:
        self.registry = registry
        super().__init__(*args, **kwargs)

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)

    def _cors(self) -> None:
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "*")

    def _send_json(self, payload: Any, status: int = 200) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self._cors()
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _route(self) -> str:
        return self.path.split("?", 1)[0]

    def do_OPTIONS(self) -> None:  # noqa: N802
        self.send_response(204)
        self._cors()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self) -> None:  # noqa: N802
        route = self._route()
        if route == "/":
            self._send_json({"ok": True, "mode": self.registry.mode, "endpoints": ENDPOINTS})
            return
        if route == "/tools":
            tools = [{"name": t["name"], "description": t["description"]} for t in self.registry.list_tools()]
            self._send_json({"tools": tools})
            return
        self._send_json({"error": "Not found"}, status=404)

    def do_POST(self) -> None:  # noqa: N802
        route = self._route()
        name = route[len(TOOL_PREFIX):] if route.startswith(TOOL_PREFIX) else ""
        if not name or name not in self.registry:
            self._send_json({"error": "Not found"}, status=404)
            return

        try:
            length = int(self.headers.get("Content-Length", "0") or 0)
        except ValueError:
            # body size unknown; the connection cannot be reused
            self.close_connection = True
            self._send_json({"error": "Invalid JSON body"}, status=400)
            return
        raw = self.rfile.read(length) if length > 0 else b""
        try:
            body = json.loads(raw.decode("utf-8")) if raw.strip() else {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            self._send_json({"error": "Invalid JSON body"}, status=400)
            return

        args, problem = extract_arguments(body)
        if problem:
            self._send_json({"ok": False, "tool": name, "error": problem}, status=400)
            return

        try:
            result = self.registry.dispatch(name, args)
        except UnknownToolError:
            self._send_json({"error": "Not found"}, status=404)
            return
        except SchemaValidationError as exc:
            self._send_json({"ok": False, "tool": name, "error": str(exc)}, status=400)
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Tool %s failed", name)
            self._send_json({"ok": False, "tool": name, "error": str(exc)}, status=500)
            return
        self._send_json({"ok": True, "tool": name, "result": result})


def extract_arguments(body: Any) -> Tuple[Dict[str, Any], Optional[str]]:
    """Arguments from ``{"args": {...}}`` or the bare body; second item is an error message."""
    if not isinstance(body, dict):
        return {}, "Request body must be a JSON object"
    args = body["args"] if "args" in body else body
    if args is None:
        args = {}
    if not isinstance(args, dict):
        return {}, "args must be a JSON object"
    return args, None


def make_http_server(registry: ToolRegistry, host: str = "127.0.0.1", port: int = 8787) -> ThreadingHTTPServer:
    return ThreadingHTTPServer((host, port), partial(BridgeHandler, registry=registry))


def start_in_thread(registry: ToolRegistry, host: str = "127.0.0.1", port: int = 0) -> Tuple[ThreadingHTTPServer, threading.Thread]:
    httpd = make_http_server(registry, host, port)
    thread = threading.Thread(target=httpd.serve_forever, name="expanse-http-bridge", daemon=True)
    thread.start()
    return httpd, thread


def serve_http(registry: ToolRegistry, host: str = "127.0.0.1", port: int = 8787) -> None:
    httpd = make_http_server(registry, host, port)
    logger.info("HTTP bridge listening on http://%s:%s (mode=%s)", host, httpd.server_address[1], registry.mode)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("HTTP bridge interrupted")
    finally:
        httpd.server_close()
        logger.info("HTTP bridge stopped")
