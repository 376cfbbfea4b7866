import json
import logging

import pytest

from expanse_mcp.protocol import ProtocolError, make_error, read_request, serialize_message
from expanse_mcp.shared.config import LoggingConfig
from expanse_mcp.shared.logging import configure_logging, get_logger


def test_read_request_splits_fields():
    req = read_request('{"jsonrpc":"2.0","id":7,"method":"tools/list","params":{}}')
    assert (req.id, req.method, req.params) == (7, "tools/list", {})
    assert not req.is_notification
    assert read_request('{"jsonrpc":"2.0","method":"notifications/initialized"}').is_notification


@pytest.mark.parametrize(
    "line",
    ["{oops", "[1,2]", '{"jsonrpc":"1.0","id":1,"method":"ping"}', '{"jsonrpc":"2.0","id":1}'],
)
def test_malformed_lines(line):
    with pytest.raises(ProtocolError):
        read_request(line)


def test_serialized_frames_are_single_lines():
    frame = serialize_message(make_error(1, -32601, "Unknown tool: x", data={"code": "unknown_tool"}))
    assert frame.endswith("\n") and frame.count("\n") == 1
    assert json.loads(frame)["error"]["data"] == {"code": "unknown_tool"}
    assert "é" in serialize_message({"text": "café"})


def test_get_logger_namespace():
    assert get_logger().name == "expanse_mcp"
    assert get_logger("expanse_mcp.store").name == "expanse_mcp.store"
    assert get_logger("catalogs").name == "expanse_mcp.catalogs"


def test_configure_logging_to_file(tmp_path):
    target = tmp_path / "logs" / "server.log"
    configure_logging(LoggingConfig(level="debug", file=str(target)))
    try:
        get_logger("probe").debug("hello file")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "expanse_mcp.probe - hello file" in target.read_text(encoding="utf-8")
        assert logging.getLogger("mcp").level == logging.WARNING
    finally:
        for handler in list(logging.getLogger().handlers):
            logging.getLogger().removeHandler(handler)
            handler.close()
