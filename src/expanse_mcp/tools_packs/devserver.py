from typing import Any, Dict

from .. import devserver


def register(registry, make_tool_result: Any, json_result: Any, _: Any) -> None:  # noqa: ANN001
    reg = registry.register
    ctx = registry.context
    defaults = registry.config.devserver

    def _tool_start(args: Dict[str, Any]) -> Dict[str, Any]:
        port = args.get("port", defaults.port)
        return json_result(devserver.start_server(ctx.root, port=port, host=defaults.host))

    def _tool_stop(_: Dict[str, Any]) -> Dict[str, Any]:
        port = devserver.stop_server()
        if port is None:
            return make_tool_result("Server not running")
        return make_tool_result(f"Stopped server on port {port}")

    reg(
        "devserver_start",
        "Start a static file server for the project root (returns the existing one if running)",
        {
            "type": "object",
            "properties": {"port": {"type": "integer", "minimum": 0, "maximum": 65535}},
            "additionalProperties": False,
        },
        _tool_start,
    )
    reg(
        "devserver_stop",
        "Stop the static file server",
        {"type": "object", "properties": {}, "additionalProperties": False},
        _tool_stop,
    )
