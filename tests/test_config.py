import json

from expanse_mcp.shared.config import AppConfig, load_config


def test_defaults():
    config = load_config({})
    assert config == AppConfig()
    assert config.http.port == 8787
    assert config.devserver.port == 5173
    assert config.server.mode == "local"
    assert config.catalog.docs_root == "https://www.8thwall.com/docs"


def test_environment_overrides():
    config = load_config(
        {
            "MODE": "DOCS",
            "HTTP_PORT": "9000",
            "HTTP_HOST": "0.0.0.0",
            "DEVSERVER_PORT": "6000",
            "PROJECT_ROOT": "/tmp/p",
            "EIGHTHWALL_DOCS_ROOT": "https://docs.example.com/root/",
            "POLYHAVEN_API_BASE": "http://ph.local/",
            "EXPANSE_MCP_LOG_LEVEL": "DEBUG",
        }
    )
    assert config.server.mode == "docs"
    assert config.http.port == 9000
    assert config.http.host == "0.0.0.0"
    assert config.devserver.port == 6000
    assert config.project.root == "/tmp/p"
    assert config.catalog.docs_root == "https://docs.example.com/root"
    assert config.catalog.polyhaven_base == "http://ph.local"
    assert config.logging.level == "DEBUG"


def test_malformed_port_falls_back():
    assert load_config({"HTTP_PORT": "eighty"}).http.port == 8787


def test_config_file_then_env(tmp_path):
    path = tmp_path / "expanse.config.json"
    path.write_text(json.dumps({"http": {"port": 7000}, "catalog": {"timeout": "2.5"}}), encoding="utf-8")
    config = load_config({"EXPANSE_MCP_CONFIG": str(path)})
    assert config.http.port == 7000
    assert config.catalog.timeout == 2.5

    config = load_config({"EXPANSE_MCP_CONFIG": str(path), "HTTP_PORT": "7001"})
    assert config.http.port == 7001
