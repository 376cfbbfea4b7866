import re
from functools import partial
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from ..paths import ProjectContext
from ..shared.errors import ExpanseError
from ..shared.logging import get_logger
from ..store import find_scene_document, read_document, write_document

logger = get_logger(__name__)

COMPONENTS_DIR = "src/components"
_REGISTER_RE = re.compile(r"""AFRAME\.registerComponent\(\s*['"]([^'"]+)['"]""")
_COMMENT_RE = re.compile(r"//\s*(.+)")


def validate_component_code(code: str) -> List[str]:
    """Cheap static checks; returns a list of problems (empty when fine)."""
    errors = []
    if "AFRAME.registerComponent" not in code:
        errors.append("Component must use AFRAME.registerComponent()")
    if code.count("{") != code.count("}"):
        errors.append("Mismatched braces - check syntax")
    if code.count("(") != code.count(")"):
        errors.append("Mismatched parentheses - check syntax")
    return errors


def _js_filename(name: str) -> str:
    return name if name.endswith(".js") else f"{name}.js"


def _sync_scripts(ctx: ProjectContext, add: Optional[str] = None, remove: Optional[str] = None) -> str:
    """Keep the scene document's ``scripts`` list in step; returns a status note."""
    path = find_scene_document(ctx.root)
    if path is None:
        return "no scene document found; scripts list not updated"
    try:
        scene = read_document(path).data
    except ExpanseError as exc:
        logger.warning("Could not update scripts in %s: %s", path, exc)
        return f"could not update scripts: {exc}"
    if not isinstance(scene, dict):
        return "scene document is not an object; scripts list not updated"
    scripts = scene.get("scripts") if isinstance(scene.get("scripts"), list) else []
    if add is not None and add not in scripts:
        scripts.append(add)
    if remove is not None:
        scripts = [s for s in scripts if s != remove]
    scene["scripts"] = scripts
    write_document(path, scene)
    return f"scripts updated in {ctx.relative(path)}"


def _tool_add_custom_component(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    name = args["componentName"]
    code = args["componentCode"]
    if args.get("validate", True):
        errors = validate_component_code(code)
        if errors:
            detail = "\n".join(errors)
            return make_tool_result(
                f"Component validation failed:\n{detail}\n\nUse validate: false to skip validation.", is_error=True
            )

    file_name = _js_filename(name)
    rel = f"{COMPONENTS_DIR}/{file_name}"
    target = ctx.resolve(rel)
    target.parent.mkdir(parents=True, exist_ok=True)
    header = f"// Custom A-Frame Component: {name}\n"
    if args.get("description"):
        header += f"// {args['description']}\n"
    target.write_text(f"{header}\n{code}\n", encoding="utf-8")
    note = _sync_scripts(ctx, add=rel)
    return json_result({"component": name, "file": rel, "scripts": note}, text=f"Created component {name}")


def _tool_add_custom_script(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    directory = (args.get("directory") or "src").strip("/")
    file_name = _js_filename(args["scriptName"])
    rel = str(PurePosixPath(directory) / file_name)
    target = ctx.resolve(rel)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(args["scriptCode"], encoding="utf-8")
    note = _sync_scripts(ctx, add=rel) if args.get("addToExpanse", True) else "scripts list untouched"
    return json_result({"file": rel, "scripts": note}, text=f"Created script {file_name}")


def _tool_list_components(ctx: ProjectContext, json_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    directory = ctx.resolve(COMPONENTS_DIR)
    components = []
    if directory.is_dir():
        for path in sorted(directory.glob("*.js")):
            content = path.read_text(encoding="utf-8", errors="replace")
            match = _REGISTER_RE.search(content)
            desc = _COMMENT_RE.search(content)
            components.append(
                {
                    "file": path.name,
                    "name": match.group(1) if match else path.stem,
                    "description": desc.group(1).strip() if desc else "",
                    "path": ctx.relative(path),
                }
            )
    return json_result({"count": len(components), "components": components})


def _tool_remove_component(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    file_name = _js_filename(args["componentName"])
    rel = f"{COMPONENTS_DIR}/{file_name}"
    target = ctx.resolve(rel)
    if not target.is_file():
        return make_tool_result(f'Component "{file_name}" not found', is_error=True)
    target.unlink()
    note = _sync_scripts(ctx, remove=rel)
    return json_result({"removed": rel, "scripts": note}, text=f"Removed component {file_name}")


def register(registry, make_tool_result: Any, json_result: Any, _: Any) -> None:  # noqa: ANN001
    reg = registry.register
    ctx = registry.context

    reg(
        "desktop_add_custom_component",
        "Add a custom A-Frame component to src/components and list it in the scene's scripts",
        {
            "type": "object",
            "properties": {
                "componentName": {"type": "string", "pattern": r"^[A-Za-z0-9_.-]+$"},
                "componentCode": {"type": "string"},
                "description": {"type": "string"},
                "validate": {"type": "boolean", "default": True},
            },
            "required": ["componentName", "componentCode"],
            "additionalProperties": False,
        },
        partial(_tool_add_custom_component, ctx, json_result, make_tool_result),
    )
    reg(
        "desktop_add_custom_script",
        "Add a custom JavaScript file to the project (utilities, helpers, initialization code)",
        {
            "type": "object",
            "properties": {
                "scriptName": {"type": "string", "pattern": r"^[A-Za-z0-9_.-]+$"},
                "scriptCode": {"type": "string"},
                "directory": {"type": "string", "default": "src"},
                "addToExpanse": {"type": "boolean", "default": True},
            },
            "required": ["scriptName", "scriptCode"],
            "additionalProperties": False,
        },
        partial(_tool_add_custom_script, ctx, json_result),
    )
    reg(
        "desktop_list_components",
        "List all custom components in the project",
        {"type": "object", "properties": {}, "additionalProperties": False},
        partial(_tool_list_components, ctx, json_result),
    )
    reg(
        "desktop_remove_component",
        "Remove a custom component from the project",
        {
            "type": "object",
            "properties": {"componentName": {"type": "string", "pattern": r"^[A-Za-z0-9_.-]+$"}},
            "required": ["componentName"],
            "additionalProperties": False,
        },
        partial(_tool_remove_component, ctx, json_result, make_tool_result),
    )
