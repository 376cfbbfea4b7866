"""Static file server for previewing the project in a browser.

One server per process; ``start_server`` returns the running binding instead
of failing when called twice.
"""

import mimetypes
import os
import threading
import urllib.parse
from functools import partial
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Dict, Optional

from .paths import resolve_path
from .shared.errors import PathEscapeError
from .shared.logging import get_logger

logger = get_logger(__name__)

CONTENT_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".mjs": "application/javascript; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".hdr": "application/octet-stream",
    ".exr": "application/octet-stream",
    ".gltf": "model/gltf+json",
    ".glb": "model/gltf-binary",
    ".wasm": "application/wasm",
    ".mp4": "video/mp4",
}

DEV_SERVER_STATE: Dict[str, Any] = {
    "httpd": None,
    "thread": None,
    "host": "127.0.0.1",
    "port": 0,
    "root": None,
}
_LOCK = threading.Lock()


def content_type(path: Path) -> str:
    ext = path.suffix.lower()
    if ext in CONTENT_TYPES:
        return CONTENT_TYPES[ext]
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def safe_join(root: Path, request_path: str) -> Path:
    decoded = urllib.parse.unquote(request_path.split("?", 1)[0].split("#", 1)[0])
    return resolve_path(root, decoded.lstrip("/") or ".")


def locate(root: Path, request_path: str) -> Optional[Path]:
    """File to serve for ``request_path``, falling back to ``index.html``."""
    full = safe_join(root, request_path)
    if full.is_file():
        return full
    index = full / "index.html"
    if index.is_file():
        return index
    root_index = root / "index.html"
    if full.name != "index.html" and root_index.is_file():
        return root_index
    return None


class StaticHandler(BaseHTTPRequestHandler):
    server_version = "expanse_devserver/0.3"

    def __init__(self, *args: Any, root: Path, **kwargs: Any) -> None:
        self.root = root
        super().__init__(*args, **kwargs)

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)

    def _send(self, status: int, body: bytes, ctype: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", ctype)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def do_GET(self) -> None:  # noqa: N802
        try:
            target = locate(self.root, self.path)
        except PathEscapeError:
            target = None
        if target is None:
            self._send(404, b"Not found", "text/plain; charset=utf-8")
            return
        self._send(200, target.read_bytes(), content_type(target))

    do_HEAD = do_GET  # noqa: N815


def start_server(root: Path, port: int = 5173, host: str = "127.0.0.1") -> Dict[str, Any]:
    state = DEV_SERVER_STATE
    with _LOCK:
        if state["httpd"] is not None:
            return describe()
        root = Path(os.path.abspath(root))
        root.mkdir(parents=True, exist_ok=True)
        httpd = ThreadingHTTPServer((host, port), partial(StaticHandler, root=root))
        thread = threading.Thread(target=httpd.serve_forever, name="expanse-devserver", daemon=True)
        state.update(httpd=httpd, thread=thread, host=host, port=httpd.server_address[1], root=root)
        thread.start()
    logger.info("Dev server started on %s:%s serving %s", host, state["port"], root)
    return describe()


def stop_server() -> Optional[int]:
    """Stop the server; returns the port it was bound to, or ``None`` if idle."""
    state = DEV_SERVER_STATE
    with _LOCK:
        httpd = state["httpd"]
        if httpd is None:
            return None
        httpd.shutdown()
        httpd.server_close()
        port = state["port"]
        state.update(httpd=None, thread=None, port=0, root=None)
    logger.info("Dev server on port %s stopped", port)
    return port


def describe() -> Dict[str, Any]:
    state = DEV_SERVER_STATE
    running = state["httpd"] is not None
    return {
        "url": f"http://{state['host']}:{state['port']}/" if running else None,
        "port": state["port"],
        "root": str(state["root"]) if state["root"] else None,
        "running": running,
    }
