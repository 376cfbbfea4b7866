"""Fetch and search pages of the hosted 8th Wall documentation."""

import posixpath
import re
import urllib.parse
from functools import partial
from typing import Any, Dict, List

from .. import catalogs
from ..markup import strip_html
from ..shared.config import CatalogConfig
from ..shared.errors import CatalogError, ToolError
from ..shared.logging import get_logger

logger = get_logger(__name__)


def assert_docs_url(url: str, docs_root: str) -> str:
    """Absolute form of ``url``; raises ``ToolError`` unless it sits under ``docs_root``."""
    root = docs_root.rstrip("/")
    parts = urllib.parse.urlsplit(urllib.parse.urljoin(root + "/", url))
    path = posixpath.normpath(parts.path) if parts.path else ""
    absolute = urllib.parse.urlunsplit(parts._replace(path=path))
    if absolute != root and not absolute.startswith(root + "/"):
        raise ToolError(f"URL not under docs root: {root}", code=-32602)
    return absolute


def fetch_page_text(url: str, catalog: CatalogConfig) -> str:
    return strip_html(catalogs.fetch_text(url, catalog.timeout))


def _tool_get_page(catalog: CatalogConfig, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    url = assert_docs_url(args["url"], catalog.docs_root)
    return make_tool_result(fetch_page_text(url, catalog))


def _tool_search(catalog: CatalogConfig, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    needle = re.compile(re.escape(args["query"].lower()))
    root = catalog.docs_root.rstrip("/")
    hits: List[Dict[str, Any]] = []
    for path in args["paths"]:
        url = f"{root}/{path.lstrip('/')}"
        try:
            assert_docs_url(url, catalog.docs_root)
            text = fetch_page_text(url, catalog)
        except (ToolError, CatalogError) as exc:
            logger.debug("Skipping docs page %s: %s", url, exc)
            continue
        count = len(needle.findall(text.lower()))
        if count:
            hits.append({"url": url, "count": count})
    hits.sort(key=lambda h: -h["count"])
    summary = "\n".join(f"{h['url']} ({h['count']})" for h in hits)
    return json_result({"query": args["query"], "hits": hits}, text=summary or "No matches.")


def register(registry, make_tool_result: Any, json_result: Any, _: Any) -> None:  # noqa: ANN001
    reg = registry.register
    catalog = registry.config.catalog

    reg(
        "docs_get_page",
        "Fetch a docs page and return plain text",
        {
            "type": "object",
            "properties": {"url": {"type": "string", "minLength": 1}},
            "required": ["url"],
            "additionalProperties": False,
        },
        partial(_tool_get_page, catalog, make_tool_result),
    )
    reg(
        "docs_search",
        "Search a small list of docs pages for a keyword; pages that fail to load are skipped",
        {
            "type": "object",
            "properties": {
                "query": {"type": "string", "minLength": 1},
                "paths": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["query", "paths"],
            "additionalProperties": False,
        },
        partial(_tool_search, catalog, json_result),
    )
