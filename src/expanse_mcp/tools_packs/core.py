from datetime import datetime, timezone
from typing import Any, Dict


def register(registry, make_tool_result: Any, _: Any, __: Any) -> None:  # noqa: ANN001
    reg = registry.register

    def _tool_health_ping(args: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        return make_tool_result(f"[{now}] {args.get('message', 'pong')}")

    reg(
        "health_ping",
        "Simple health check",
        {
            "type": "object",
            "properties": {"message": {"type": "string"}},
            "additionalProperties": False,
        },
        _tool_health_ping,
    )
