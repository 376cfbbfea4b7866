import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from expanse_mcp import devserver  # noqa: E402
from expanse_mcp.paths import ProjectContext  # noqa: E402
from expanse_mcp.project_root import reset_cached_project_root  # noqa: E402
from expanse_mcp.tools import ToolRegistry  # noqa: E402

ENV_VARS = (
    "MODE",
    "HTTP_HOST",
    "HTTP_PORT",
    "DEVSERVER_PORT",
    "EIGHTHWALL_DESKTOP_ROOT",
    "EIGHTHWALL_DOCS_ROOT",
    "POLYHAVEN_API_BASE",
    "EXPANSE_MCP_CONFIG",
    "EXPANSE_MCP_LOG_LEVEL",
    "EXPANSE_MCP_LOG_FILE",
)


@pytest.fixture(autouse=True)
def _isolate_project_root(tmp_path, monkeypatch):
    # every test gets its own project directory and a clean environment
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.setenv("PROJECT_ROOT", str(project))
    reset_cached_project_root()
    yield project
    reset_cached_project_root()
    devserver.stop_server()


@pytest.fixture
def project_root(_isolate_project_root):
    return _isolate_project_root


@pytest.fixture
def registry(project_root):
    return ToolRegistry(ProjectContext(project_root))


def payload(result):
    """The structured value carried by a json content block."""
    for block in result["content"]:
        if block["type"] == "json":
            return block["json"]
    raise AssertionError(f"no json block in {result!r}")


def text_of(result):
    return "\n".join(block["text"] for block in result["content"] if block["type"] == "text")
