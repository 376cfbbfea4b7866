import io
import json
import os
import queue
import subprocess
import sys
import threading
from pathlib import Path

from expanse_mcp.paths import ProjectContext
from expanse_mcp.server import StdioServer
from expanse_mcp.tools import ToolRegistry

ROOT = Path(__file__).resolve().parents[1]
SERVER_CMD = [sys.executable, "-u", str(ROOT / "scripts" / "expanse_stdio_server.py")]


def _run_lines(registry, messages):
    stdin = io.StringIO("".join(m if isinstance(m, str) else json.dumps(m) + "\n" for m in messages))
    stdout = io.StringIO()
    StdioServer(registry, stdin=stdin, stdout=stdout).run()
    return [json.loads(line) for line in stdout.getvalue().splitlines()]


def test_initialize_list_and_call(registry, project_root):
    responses = _run_lines(
        registry,
        [
            {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "2024-11-05"}},
            {"jsonrpc": "2.0", "method": "notifications/initialized"},
            {"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
            {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "desktop_add_torus", "arguments": {"name": "Ring"}}},
        ],
    )
    assert [r["id"] for r in responses] == [1, 2, 3]
    assert responses[0]["result"]["protocolVersion"] == "2024-11-05"
    assert responses[0]["result"]["serverInfo"]["name"] == "expanse-mcp"
    assert any(t["name"] == "desktop_add_torus" for t in responses[1]["result"]["tools"])
    call = responses[2]["result"]
    assert call["isError"] is False
    assert (project_root / "src" / ".expanse.json").exists()


def test_error_codes(registry):
    responses = _run_lines(
        registry,
        [
            "{not json\n",
            "\n",
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "nope", "arguments": {}}},
            {"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "desktop_add_box", "arguments": {}}},
            {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "project_read_file", "arguments": {"path": "../x"}}},
            {"jsonrpc": "2.0", "id": 4, "method": "tools/call", "params": {"name": "project_set_root", "arguments": {"path": "/definitely/not/here"}}},
            {"jsonrpc": "2.0", "id": 5, "method": "resources/list"},
            {"jsonrpc": "2.0", "id": 6, "method": "tools/call", "params": {"name": "project_read_file", "arguments": {"path": "missing.txt"}}},
            {"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": ["bad"]},
        ],
    )
    codes = {r["id"]: r["error"]["code"] for r in responses}
    assert codes == {None: -32700, 1: -32601, 2: -32602, 3: -32000, 4: -32602, 5: -32601, 6: -32000, 7: -32602}
    by_id = {r["id"]: r for r in responses}
    assert by_id[3]["error"]["data"] == {"code": "path_escape"}
    assert by_id[6]["error"]["message"].startswith("Internal error")


def test_once_answers_a_single_request(project_root):
    registry = ToolRegistry(ProjectContext(project_root))
    stdin = io.StringIO(
        json.dumps({"jsonrpc": "2.0", "id": 1, "method": "ping"}) + "\n" + json.dumps({"jsonrpc": "2.0", "id": 2, "method": "ping"}) + "\n"
    )
    stdout = io.StringIO()
    StdioServer(registry, stdin=stdin, stdout=stdout).run(once=True)
    lines = stdout.getvalue().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0]) == {"jsonrpc": "2.0", "id": 1, "result": {}}


def test_subprocess_roundtrip_keeps_stdout_clean(project_root):
    env = {**os.environ, "PROJECT_ROOT": str(project_root), "EXPANSE_MCP_LOG_LEVEL": "DEBUG"}
    proc = subprocess.Popen(
        SERVER_CMD,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        cwd=ROOT,
        env=env,
    )
    out_queue: "queue.Queue[str]" = queue.Queue()

    def _reader():
        for line in proc.stdout:
            out_queue.put(line)

    reader = threading.Thread(target=_reader, daemon=True)
    reader.start()
    try:
        requests = [
            {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}},
            {"jsonrpc": "2.0", "method": "notifications/initialized", "params": {}},
            {"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "health_ping", "arguments": {}}},
        ]
        for message in requests:
            proc.stdin.write(json.dumps(message) + "\n")
        proc.stdin.flush()
        proc.stdin.close()
        proc.wait(timeout=20)
        reader.join(timeout=5)
        lines = []
        while not out_queue.empty():
            lines.append(out_queue.get_nowait())
    finally:
        if proc.poll() is None:
            proc.kill()
    responses = [json.loads(line) for line in lines]
    assert [r["id"] for r in responses] == [1, 2]
    assert responses[1]["result"]["content"][0]["text"].endswith("] pong")
    assert proc.returncode == 0
