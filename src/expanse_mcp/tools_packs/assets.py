from functools import partial
from pathlib import Path
from typing import Any, Dict

from .. import catalogs
from ..paths import ProjectContext
from ..shared.errors import CatalogError
from ..shared.logging import get_logger

logger = get_logger(__name__)

ASSETS_DIR = "assets"


def _tool_status(client: catalogs.PolyHavenClient, json_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    return json_result({"polyhaven": {"available": True, "base": client.base_url, "info": "Public API endpoints"}})


def _tool_search_polyhaven(client: catalogs.PolyHavenClient, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    return json_result(client.search(args["query"], args.get("type", "all"), int(args.get("limit", 20))))


def _tool_categories(client: catalogs.PolyHavenClient, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    return json_result(client.categories(args.get("type", "all")))


def _tool_files(client: catalogs.PolyHavenClient, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    return json_result(client.files(args["id"]))


def _tool_download_url(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    dest_dir = ctx.resolve(ASSETS_DIR)
    target, size = catalogs.download(args["url"], dest_dir, args.get("filename"))
    logger.info("Downloaded %s (%d bytes) to %s", args["url"], size, target)
    return json_result({"path": ctx.relative(target), "bytes": size})


def _tool_unzip(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    zip_rel = args["zipPath"]
    dest_rel = args.get("destDir") or f"{ASSETS_DIR}/models/{Path(zip_rel).stem}"
    archive = ctx.resolve(zip_rel)
    dest = ctx.resolve(dest_rel)
    files = catalogs.unzip(archive, dest)
    return json_result({"dest": ctx.relative(dest), "files": files})


def _format_result(index: int, result: Dict[str, Any]) -> str:
    line = f"{index}. [{result['source']}/{result['type']}] {result['name']}"
    if result.get("description"):
        line += f"\n   {result['description']}"
    label = "Path" if result["source"] == "local" else "URL"
    if result.get("url"):
        line += f"\n   {label}: {result['url']}"
    return line


async def _tool_search_ar_assets(
    ctx: ProjectContext, client: catalogs.PolyHavenClient, json_result: Any, args: Dict[str, Any]
) -> Dict[str, Any]:
    query = args["query"]
    results = await catalogs.search_all(
        query,
        ctx.root,
        client,
        sources=args.get("sources") or ["all"],
        asset_type=args.get("type", "all"),
        limit=int(args.get("limit", 20)),
    )
    payload = {"query": query, "total": len(results), "results": results}
    if not results:
        return json_result(payload, text=f'No results found for "{query}"')
    listing = "\n\n".join(_format_result(i, r) for i, r in enumerate(results, start=1))
    return json_result(payload, text=f'Found {len(results)} result(s) for "{query}":\n\n{listing}')


def _tool_download_info(
    client: catalogs.PolyHavenClient, json_result: Any, make_tool_result: Any, args: Dict[str, Any]
) -> Dict[str, Any]:
    asset_id = args["assetId"]
    try:
        files = client.files(asset_id)
    except CatalogError as exc:
        return make_tool_result(f'Could not find asset "{asset_id}" on PolyHaven: {exc}', is_error=True)
    chosen = catalogs.pick_download(files, args.get("resolution"), args.get("format"))
    summary = f"Asset: {asset_id}\nAvailable formats: {', '.join(files) or 'none'}"
    if chosen:
        summary += f"\nSelected: {chosen['format']} at {chosen['resolution']}\nDownload URL: {chosen['url']}"
    else:
        summary += "\nNo direct download URL found; see the files JSON"
    return json_result({"assetId": asset_id, "selected": chosen, "files": files}, text=summary)


def register(registry, make_tool_result: Any, json_result: Any, _: Any) -> None:  # noqa: ANN001
    reg = registry.register
    ctx = registry.context
    catalog = registry.config.catalog
    client = catalogs.PolyHavenClient(catalog.polyhaven_base, timeout=catalog.timeout)
    polyhaven_type = {"type": "string", "enum": list(catalogs.POLYHAVEN_TYPES), "default": "all"}

    reg(
        "assets_status",
        "Report availability of PolyHaven integration",
        {"type": "object", "properties": {}, "additionalProperties": False},
        partial(_tool_status, client, json_result),
    )
    reg(
        "assets_search_polyhaven",
        "Search PolyHaven assets (hdris/textures/models) by keyword",
        {
            "type": "object",
            "properties": {
                "query": {"type": "string"},
                "type": polyhaven_type,
                "limit": {"type": "integer", "minimum": 1, "default": 20},
            },
            "required": ["query"],
            "additionalProperties": False,
        },
        partial(_tool_search_polyhaven, client, json_result),
    )
    reg(
        "assets_polyhaven_categories",
        "List PolyHaven categories for an asset type (hdris/textures/models/all)",
        {"type": "object", "properties": {"type": polyhaven_type}, "additionalProperties": False},
        partial(_tool_categories, client, json_result),
    )
    reg(
        "assets_polyhaven_files",
        "Get PolyHaven file metadata for a specific asset id",
        {
            "type": "object",
            "properties": {"id": {"type": "string", "minLength": 1}},
            "required": ["id"],
            "additionalProperties": False,
        },
        partial(_tool_files, client, json_result),
    )
    reg(
        "assets_download_url",
        "Download a file by URL into the project's assets/ folder",
        {
            "type": "object",
            "properties": {"url": {"type": "string", "pattern": "^https?://"}, "filename": {"type": "string"}},
            "required": ["url"],
            "additionalProperties": False,
        },
        partial(_tool_download_url, ctx, json_result),
    )
    reg(
        "assets_unzip",
        "Unzip a .zip file into the project assets directory",
        {
            "type": "object",
            "properties": {"zipPath": {"type": "string"}, "destDir": {"type": "string"}},
            "required": ["zipPath"],
            "additionalProperties": False,
        },
        partial(_tool_unzip, ctx, json_result),
    )
    reg(
        "search_ar_assets",
        "Search for AR assets across local assets, PolyHaven and Poly Pizza; returns ranked results",
        {
            "type": "object",
            "properties": {
                "query": {"type": "string", "minLength": 1},
                "sources": {
                    "type": "array",
                    "items": {"type": "string", "enum": list(catalogs.SOURCES) + ["all"]},
                    "default": ["all"],
                },
                "type": {"type": "string", "enum": list(catalogs.ASSET_TYPES), "default": "all"},
                "limit": {"type": "integer", "minimum": 1, "default": 20},
            },
            "required": ["query"],
            "additionalProperties": False,
        },
        partial(_tool_search_ar_assets, ctx, client, json_result),
    )
    reg(
        "get_asset_download_info",
        "Get download information for a specific PolyHaven asset",
        {
            "type": "object",
            "properties": {
                "assetId": {"type": "string", "minLength": 1},
                "resolution": {"type": "string"},
                "format": {"type": "string"},
            },
            "required": ["assetId"],
            "additionalProperties": False,
        },
        partial(_tool_download_info, client, json_result, make_tool_result),
    )
