from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class ServerConfig:
    mode: str = "local"


@dataclass(frozen=True)
class HttpConfig:
    host: str = "127.0.0.1"
    port: int = 8787


@dataclass(frozen=True)
class DevServerConfig:
    host: str = "127.0.0.1"
    port: int = 5173


@dataclass(frozen=True)
class ProjectConfig:
    root: str | None = None
    desktop_root: str | None = None


@dataclass(frozen=True)
class CatalogConfig:
    polyhaven_base: str = "https://api.polyhaven.com"
    timeout: float = 15.0
    docs_root: str = "https://www.8thwall.com/docs"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None


@dataclass(frozen=True)
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    devserver: DevServerConfig = field(default_factory=DevServerConfig)
    project: ProjectConfig = field(default_factory=ProjectConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _load_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _from_file(raw: Mapping[str, Any]) -> AppConfig:
    server_raw = raw.get("server", {})
    http_raw = raw.get("http", {})
    dev_raw = raw.get("devserver", {})
    project_raw = raw.get("project", {})
    catalog_raw = raw.get("catalog", {})
    logging_raw = raw.get("logging", {})
    return AppConfig(
        server=ServerConfig(mode=str(server_raw.get("mode", "local"))),
        http=HttpConfig(
            host=str(http_raw.get("host", "127.0.0.1")),
            port=_int(http_raw.get("port"), 8787),
        ),
        devserver=DevServerConfig(
            host=str(dev_raw.get("host", "127.0.0.1")),
            port=_int(dev_raw.get("port"), 5173),
        ),
        project=ProjectConfig(
            root=project_raw.get("root"),
            desktop_root=project_raw.get("desktop_root"),
        ),
        catalog=CatalogConfig(
            polyhaven_base=str(catalog_raw.get("polyhaven_base", "https://api.polyhaven.com")),
            timeout=_float(catalog_raw.get("timeout"), 15.0),
            docs_root=str(catalog_raw.get("docs_root", "https://www.8thwall.com/docs")),
        ),
        logging=LoggingConfig(
            level=str(logging_raw.get("level", "INFO")),
            file=logging_raw.get("file"),
        ),
    )


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    env = os.environ if environ is None else environ

    config = AppConfig()
    config_path = env.get("EXPANSE_MCP_CONFIG")
    if config_path:
        path = Path(config_path)
        if path.exists():
            config = _from_file(_load_json(path))

    if env.get("MODE"):
        config = replace(config, server=replace(config.server, mode=env["MODE"].lower()))
    if env.get("HTTP_HOST"):
        config = replace(config, http=replace(config.http, host=env["HTTP_HOST"]))
    if env.get("HTTP_PORT"):
        config = replace(config, http=replace(config.http, port=_int(env["HTTP_PORT"], config.http.port)))
    if env.get("DEVSERVER_PORT"):
        port = _int(env["DEVSERVER_PORT"], config.devserver.port)
        config = replace(config, devserver=replace(config.devserver, port=port))
    if env.get("PROJECT_ROOT"):
        config = replace(config, project=replace(config.project, root=env["PROJECT_ROOT"]))
    if env.get("EIGHTHWALL_DESKTOP_ROOT"):
        config = replace(config, project=replace(config.project, desktop_root=env["EIGHTHWALL_DESKTOP_ROOT"]))
    if env.get("EIGHTHWALL_DOCS_ROOT"):
        docs_root = env["EIGHTHWALL_DOCS_ROOT"].rstrip("/")
        config = replace(config, catalog=replace(config.catalog, docs_root=docs_root))
    if env.get("POLYHAVEN_API_BASE"):
        base = env["POLYHAVEN_API_BASE"].rstrip("/")
        config = replace(config, catalog=replace(config.catalog, polyhaven_base=base))
    if env.get("EXPANSE_MCP_LOG_LEVEL"):
        config = replace(config, logging=replace(config.logging, level=env["EXPANSE_MCP_LOG_LEVEL"]))
    if env.get("EXPANSE_MCP_LOG_FILE"):
        config = replace(config, logging=replace(config.logging, file=env["EXPANSE_MCP_LOG_FILE"]))
    return config
