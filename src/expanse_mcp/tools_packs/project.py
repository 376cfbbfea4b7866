import os
import re
import time
import zipfile
from functools import partial
from pathlib import Path
from typing import Any, Dict, List

from .. import markup
from ..paths import ProjectContext, resolve_path
from ..project_root import desktop_base_dir
from ..shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_BYTES = 1024 * 1024


def _walk_files(root: Path) -> List[Path]:
    out: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            out.append(Path(dirpath) / name)
    return out


def _tool_get_root(ctx: ProjectContext, json_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    return json_result({"projectRoot": str(ctx.root)})


def _tool_set_root(ctx: ProjectContext, json_result: Any, ToolError: Any, args: Dict[str, Any]) -> Dict[str, Any]:  # noqa: N803
    candidate = Path(os.path.abspath(os.path.expanduser(args["path"])))
    if not candidate.is_dir():
        raise ToolError(f"Path does not exist or is not a directory: {candidate}", code=-32602)
    ctx.set_root(candidate)
    logger.info("Project root set to %s", ctx.root)
    return json_result({"projectRoot": str(ctx.root)})


def _tool_list_desktop_projects(base: Path, json_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    projects = []
    entries = sorted(base.iterdir()) if base.is_dir() else []
    for entry in entries:
        if not entry.is_dir():
            continue
        hints = {
            "hasIndexRoot": (entry / "index.html").exists(),
            "hasIndexPublic": (entry / "public" / "index.html").exists(),
            "hasPackage": (entry / "package.json").exists(),
            "hasExpanse": (entry / ".expanse.json").exists() or (entry / "src" / ".expanse.json").exists(),
        }
        projects.append({"name": entry.name, "path": str(entry), "likely": any(hints.values()), "hints": hints})
    return json_result({"base": str(base), "projects": projects})


def _tool_set_desktop_project(
    ctx: ProjectContext, base: Path, json_result: Any, ToolError: Any, args: Dict[str, Any]  # noqa: N803
) -> Dict[str, Any]:
    chosen = resolve_path(base, args["name"])
    if chosen == Path(os.path.abspath(base)) or not chosen.is_dir():
        raise ToolError(f"Project folder not found: {chosen}", code=-32602)
    ctx.set_root(chosen)
    logger.info("Desktop project selected: %s", chosen)
    return json_result({"projectRoot": str(ctx.root)})


def _tool_get_info(ctx: ProjectContext, json_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    ctx.root.mkdir(parents=True, exist_ok=True)
    files = [{"path": ctx.relative(path), "size": path.stat().st_size} for path in _walk_files(ctx.root)]
    return json_result({"root": str(ctx.root), "files": files})


def _tool_list_files(ctx: ProjectContext, json_result: Any, ToolError: Any, args: Dict[str, Any]) -> Dict[str, Any]:  # noqa: N803
    ctx.root.mkdir(parents=True, exist_ok=True)
    rel_dir = args.get("dir") or "."
    base = ctx.resolve(rel_dir)
    if not base.is_dir():
        raise ToolError(f"Not a directory: {rel_dir}", code=-32602)
    max_depth = max(0, int(args.get("maxDepth", 1)))
    try:
        pattern = re.compile(args["pattern"]) if args.get("pattern") else None
    except re.error as exc:
        raise ToolError(f"Invalid pattern: {exc}", code=-32602) from exc
    dirs_only = bool(args.get("dirsOnly", False))

    items: List[Dict[str, Any]] = []

    def walk(current: Path, depth: int) -> None:
        for entry in sorted(current.iterdir()):
            is_dir = entry.is_dir()
            name = Path(os.path.relpath(entry, base)).as_posix()
            if (pattern is None or pattern.search(name)) and (is_dir or not dirs_only):
                items.append({"name": name, "dir": is_dir, "size": 0 if is_dir else entry.stat().st_size})
            if is_dir and depth < max_depth:
                walk(entry, depth + 1)

    walk(base, 0)
    return json_result({"dir": rel_dir, "maxDepth": max_depth, "count": len(items), "items": items})


def _tool_read_file(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    full = ctx.resolve(args["path"])
    max_bytes = int(args.get("maxBytes", DEFAULT_MAX_BYTES))
    data = full.read_bytes()
    text = data[:max_bytes].decode("utf-8", errors="replace")
    return json_result({"path": args["path"], "truncated": len(data) > max_bytes, "text": text})


def _tool_write_file(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    rel = args["path"]
    full = ctx.resolve(rel)
    if args.get("createDirs", True):
        full.parent.mkdir(parents=True, exist_ok=True)
    full.write_text(args["content"], encoding="utf-8")
    return make_tool_result(f"Wrote {rel}")


def _tool_delete_file(ctx: ProjectContext, make_tool_result: Any, ToolError: Any, args: Dict[str, Any]) -> Dict[str, Any]:  # noqa: N803
    rel = args["path"]
    full = ctx.resolve(rel)
    if full.is_dir():
        raise ToolError(f"Refusing to delete a directory: {rel}", code=-32602)
    full.unlink(missing_ok=True)
    return make_tool_result(f"Deleted {rel}")


def _tool_move_file(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    source = ctx.resolve(args["from"])
    target = ctx.resolve(args["to"])
    target.parent.mkdir(parents=True, exist_ok=True)
    os.replace(source, target)
    return make_tool_result(f"Moved {args['from']} -> {args['to']}")


def _tool_scaffold(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    ctx.root.mkdir(parents=True, exist_ok=True)
    template = args.get("template", "aframe")
    overwrite = bool(args.get("overwrite", False))
    created = []
    for rel, content in markup.scaffold_files(template).items():
        full = ctx.resolve(rel)
        if full.exists() and not overwrite:
            continue
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_text(content, encoding="utf-8")
        created.append(rel)
    return json_result({"root": str(ctx.root), "created": created, "template": template})


def _tool_export_zip(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    out = args.get("outPath") or f"project-export-{int(time.time() * 1000)}.zip"
    archive = Path(os.path.abspath(os.path.expanduser(out)))
    archive.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in _walk_files(ctx.root):
            if path == archive:
                continue
            zf.write(path, ctx.relative(path))
            count += 1
    logger.info("Exported %d files to %s", count, archive)
    return json_result({"archive": str(archive), "files": count})


def register(registry, make_tool_result: Any, json_result: Any, ToolError: Any) -> None:  # noqa: ANN001, N803
    reg = registry.register
    ctx = registry.context
    desktop_root = registry.config.project.desktop_root
    empty = {"type": "object", "properties": {}, "additionalProperties": False}

    reg(
        "project_get_root",
        "Return the project root used by tools",
        empty,
        partial(_tool_get_root, ctx, json_result),
    )
    reg(
        "project_set_root",
        "Set the project root at runtime to target another folder (e.g., an 8th Wall Desktop project)",
        {
            "type": "object",
            "properties": {"path": {"type": "string", "minLength": 1}},
            "required": ["path"],
            "additionalProperties": False,
        },
        partial(_tool_set_root, ctx, json_result, ToolError),
    )
    reg(
        "desktop_list_projects",
        "List candidate 8th Wall Desktop project folders under ~/Documents/8th Wall",
        empty,
        lambda args: _tool_list_desktop_projects(desktop_base_dir(desktop_root=desktop_root), json_result, args),
    )
    reg(
        "desktop_set_project",
        "Set the project root to a named folder under the Desktop projects directory",
        {
            "type": "object",
            "properties": {"name": {"type": "string", "minLength": 1}},
            "required": ["name"],
            "additionalProperties": False,
        },
        lambda args: _tool_set_desktop_project(
            ctx, desktop_base_dir(desktop_root=desktop_root), json_result, ToolError, args
        ),
    )
    reg(
        "project_get_info",
        "Summarize project structure (files and sizes) under the project root",
        empty,
        partial(_tool_get_info, ctx, json_result),
    )
    reg(
        "project_list_files",
        "List files under a subdirectory of the project root",
        {
            "type": "object",
            "properties": {
                "dir": {"type": "string"},
                "maxDepth": {"type": "integer", "minimum": 0, "default": 1},
                "pattern": {"type": "string"},
                "dirsOnly": {"type": "boolean", "default": False},
            },
            "additionalProperties": False,
        },
        partial(_tool_list_files, ctx, json_result, ToolError),
    )
    reg(
        "project_read_file",
        "Read a text file under the project root",
        {
            "type": "object",
            "properties": {
                "path": {"type": "string"},
                "maxBytes": {"type": "integer", "minimum": 0, "default": DEFAULT_MAX_BYTES},
            },
            "required": ["path"],
            "additionalProperties": False,
        },
        partial(_tool_read_file, ctx, json_result),
    )
    reg(
        "project_write_file",
        "Write text to a file under the project root (creates dirs if needed)",
        {
            "type": "object",
            "properties": {
                "path": {"type": "string"},
                "content": {"type": "string"},
                "createDirs": {"type": "boolean", "default": True},
            },
            "required": ["path", "content"],
            "additionalProperties": False,
        },
        partial(_tool_write_file, ctx, make_tool_result),
    )
    reg(
        "project_delete_file",
        "Delete a file under the project root",
        {
            "type": "object",
            "properties": {"path": {"type": "string"}},
            "required": ["path"],
            "additionalProperties": False,
        },
        partial(_tool_delete_file, ctx, make_tool_result, ToolError),
    )
    reg(
        "project_move_file",
        "Move/rename a file within the project root",
        {
            "type": "object",
            "properties": {"from": {"type": "string"}, "to": {"type": "string"}},
            "required": ["from", "to"],
            "additionalProperties": False,
        },
        partial(_tool_move_file, ctx, make_tool_result),
    )
    reg(
        "project_scaffold",
        "Create a minimal web XR app structure (index.html, main.js, styles.css)",
        {
            "type": "object",
            "properties": {
                "overwrite": {"type": "boolean", "default": False},
                "template": {"type": "string", "enum": sorted(markup.SCAFFOLD_TEMPLATES), "default": "aframe"},
            },
            "additionalProperties": False,
        },
        partial(_tool_scaffold, ctx, json_result),
    )
    reg(
        "project_export_zip",
        "Export the project directory to a zip archive",
        {
            "type": "object",
            "properties": {"outPath": {"type": "string"}},
            "additionalProperties": False,
        },
        partial(_tool_export_zip, ctx, json_result),
    )
