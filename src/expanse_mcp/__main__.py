from __future__ import annotations

import argparse
import asyncio
import sys

from .paths import ProjectContext
from .project_root import get_project_root
from .shared.config import load_config
from .shared.logging import configure_logging
from .tools import SERVER_VERSION, ToolRegistry


TRANSPORTS = ("stdio", "sdk", "http")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="expanse-mcp", description="Expanse scene tools over MCP stdio or HTTP")
    parser.add_argument("--transport", choices=TRANSPORTS, default="stdio")
    parser.add_argument("--mode", help="tool set to expose (local or docs); defaults to $MODE")
    parser.add_argument("--host", help="HTTP bridge host (http transport)")
    parser.add_argument("--port", type=int, help="HTTP bridge port (http transport)")
    parser.add_argument("--project-root", help="project directory; defaults to $PROJECT_ROOT or discovery")
    parser.add_argument("--once", action="store_true", help="stdio: answer a single request and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {SERVER_VERSION}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    config = load_config()
    configure_logging(config.logging)

    root = get_project_root(args.project_root or config.project.root, desktop_root=config.project.desktop_root)
    registry = ToolRegistry(ProjectContext(root), mode=args.mode, config=config)

    if args.transport == "http":
        from .http_bridge import serve_http

        port = args.port if args.port is not None else config.http.port
        serve_http(registry, args.host or config.http.host, port)
    elif args.transport == "sdk":
        from .mcp_app import run_sdk_server

        asyncio.run(run_sdk_server(registry))
    else:
        from .server import StdioServer

        StdioServer(registry).run(once=args.once)
    return 0


def main_http(argv: list[str] | None = None) -> int:
    return main(["--transport", "http", *(sys.argv[1:] if argv is None else argv)])


if __name__ == "__main__":
    raise SystemExit(main())
