"""Scene-document tools.

Every mutating handler re-reads the document, changes it in memory and writes
it back; ``write_document`` repairs scene-shaped data on the way out, so the
entry space's ``children`` never needs to be maintained by hand here.
"""

import copy
import json
import os
import re
import time
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .. import pointer
from ..paths import ProjectContext
from ..repair import is_scene_document, repair
from ..shared.errors import NotASceneError, PointerError
from ..shared.logging import get_logger
from ..store import ensure_scene_document, read_document, serialize, write_document

logger = get_logger(__name__)

GUESS_MAX_BYTES = 3 * 1024 * 1024
GUESS_KEYS = ("scene", "scenes", "entities", "objects", "nodes", "components", "spaces", "space")
GUESS_ARRAY_KEYS = ("entities", "objects", "nodes")
GUESS_EXTENSIONS = ("", ".json", ".scene", ".space")
DEFAULT_ARRAY_KEYS = ["objects", "entities", "nodes", "children", "items"]

SHAPE_GEOMETRY: Dict[str, Dict[str, Any]] = {
    "box": {"type": "box", "width": 1, "height": 1, "depth": 1},
    "sphere": {"type": "sphere", "radius": 0.5, "widthSegments": 32, "heightSegments": 16},
    "cylinder": {"type": "cylinder", "radiusTop": 0.5, "radiusBottom": 0.5, "height": 1, "radialSegments": 16},
    "cone": {"type": "cone", "radius": 0.5, "height": 1, "radialSegments": 16},
    "plane": {"type": "plane", "width": 1, "height": 1},
    "torus": {"type": "torus", "radius": 0.5, "tube": 0.2, "radialSegments": 16, "tubularSegments": 48},
}
LIGHT_TYPES = ("directional", "ambient", "point", "spot", "hemisphere")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

_VEC3 = {"type": "array", "items": {"type": "number"}, "minItems": 3, "maxItems": 3}
_VEC4 = {"type": "array", "items": {"type": "number"}, "minItems": 4, "maxItems": 4}
_PATH = {"type": "string", "description": "Project-relative JSON path; defaults to the scene document"}


def _base36(number: int) -> str:
    if number <= 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def slugify(name: str) -> str:
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return slug or "object"


def new_object_id(name: str, existing: Dict[str, Any]) -> str:
    base = f"{slugify(name)}-{_base36(int(time.time() * 1000))}"
    candidate, n = base, 1
    while candidate in existing:
        n += 1
        candidate = f"{base}-{n}"
    return candidate


def _next_order() -> float:
    return time.time() * 1000 / 1_000_000


def _target_path(ctx: ProjectContext, args: Dict[str, Any]) -> Path:
    if args.get("path"):
        return ctx.resolve(args["path"])
    return ensure_scene_document(ctx.root)


def _json_kind(value: Any) -> str:
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    return type(value).__name__


def _load_scene(ctx: ProjectContext) -> Tuple[Path, Dict[str, Any]]:
    path = ensure_scene_document(ctx.root)
    data = read_document(path).data
    if not isinstance(data, dict):
        raise NotASceneError(ctx.relative(path), _json_kind(data))
    if not isinstance(data.get("objects"), dict):
        data["objects"] = {}
    return path, data


def _entry_space_id(scene: Dict[str, Any]) -> Optional[str]:
    entry = scene.get("entrySpaceId")
    if isinstance(entry, str) and entry:
        return entry
    spaces = scene.get("spaces")
    if isinstance(spaces, dict) and spaces:
        return next(iter(spaces))
    return None


def _describe(object_id: str, obj: Dict[str, Any]) -> Dict[str, Any]:
    kind = "group"
    if isinstance(obj.get("geometry"), dict):
        kind = obj["geometry"].get("type") or "geometry"
    elif isinstance(obj.get("light"), dict):
        kind = f"light:{obj['light'].get('type', 'unknown')}"
    elif obj.get("gltfModel"):
        kind = "model"
    elif obj.get("camera"):
        kind = "camera"
    return {
        "id": object_id,
        "name": obj.get("name", object_id),
        "type": kind,
        "parentId": obj.get("parentId"),
        "position": obj.get("position"),
    }


def _add_object(ctx: ProjectContext, json_result: Any, name: str, fields: Dict[str, Any], args: Dict[str, Any]) -> Dict[str, Any]:
    path, scene = _load_scene(ctx)
    objects = scene["objects"]
    object_id = new_object_id(name, objects)
    obj: Dict[str, Any] = {
        "id": object_id,
        "name": name,
        "components": {},
        "position": list(args.get("position") or [0, 0, 0]),
        "rotation": list(args.get("rotation") or [0, 0, 0, 1]),
        "scale": list(args.get("scale") or [1, 1, 1]),
        "order": _next_order(),
    }
    parent_id = args.get("parentId") or _entry_space_id(scene)
    if parent_id:
        obj["parentId"] = parent_id
    obj.update(fields)
    objects[object_id] = obj
    written = write_document(path, scene)
    logger.info("Added object %s to %s", object_id, path)
    return json_result(
        {"id": object_id, "path": ctx.relative(path), "object": written["objects"][object_id]},
        text=f"Added {name} ({object_id})",
    )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _tool_guess_scene(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    max_depth = max(0, int(args.get("maxDepth", 5)))
    max_files = max(1, int(args.get("maxFiles", 800)))
    root = ctx.root

    files: List[Path] = []

    def walk(directory: Path, depth: int) -> None:
        try:
            entries = sorted(directory.iterdir())
        except OSError:
            return
        for entry in entries:
            if len(files) >= max_files:
                return
            if entry.is_dir():
                if depth < max_depth:
                    walk(entry, depth + 1)
            else:
                files.append(entry)

    walk(root, 0)

    candidates = []
    for path in files:
        if os.path.splitext(path.name)[1].lower() not in GUESS_EXTENSIONS:
            continue
        try:
            size = path.stat().st_size
            if size > GUESS_MAX_BYTES:
                continue
            doc = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            continue
        if not isinstance(doc, dict):
            continue
        score = sum(2 for key in GUESS_KEYS if key in doc)
        if any(isinstance(doc.get(key), list) for key in GUESS_ARRAY_KEYS):
            score += 3
        lowered = path.name.lower()
        if "scene" in lowered or "space" in lowered:
            score += 1
        if score > 0:
            candidates.append({"path": ctx.relative(path), "size": size, "keys": list(doc)[:50], "score": score})

    candidates.sort(key=lambda c: (-c["score"], c["path"]))
    return json_result({"root": str(root), "candidates": candidates[:50]})


def _tool_get_scene(ctx: ProjectContext, json_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    path = ensure_scene_document(ctx.root)
    result = read_document(path)
    return json_result({"path": ctx.relative(path), "repaired": result.repaired, "scene": result.data})


def _tool_list_objects(ctx: ProjectContext, json_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    path, scene = _load_scene(ctx)
    objects = [_describe(oid, obj) for oid, obj in scene["objects"].items() if isinstance(obj, dict)]
    return json_result({"path": ctx.relative(path), "entrySpaceId": _entry_space_id(scene), "objects": objects})


def _tool_read_json(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    path = _target_path(ctx, args)
    data = read_document(path).data
    ptr = args.get("pointer", "")
    value = pointer.get(data, ptr)
    if value is pointer.MISSING:
        return make_tool_result(f"Pointer not found: {ptr} in {ctx.relative(path)}", is_error=True)
    return json_result({"path": ctx.relative(path), "pointer": ptr, "value": value})


def _tool_write_json(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    path = _target_path(ctx, args)
    ptr = args.get("pointer")
    if ptr:
        data = read_document(path).data if path.exists() else {}
        try:
            pointer.set(data, ptr, args.get("value"))
        except PointerError as exc:
            return make_tool_result(f"{exc} ({ctx.relative(path)})", is_error=True)
    else:
        if "data" not in args:
            return make_tool_result("Provide either data or pointer + value", is_error=True)
        data = args["data"]
    written = write_document(path, data)
    return json_result({"path": ctx.relative(path), "bytes": len(serialize(written).encode("utf-8"))})


def _tool_patch_json(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    path = _target_path(ctx, args)
    if path.exists():
        data = read_document(path).data
    elif args.get("createIfMissing", False):
        data = {}
    else:
        return make_tool_result(f"File not found: {ctx.relative(path)}", is_error=True)

    dry_run = bool(args.get("dryRun", False))
    working = copy.deepcopy(data) if dry_run else data
    results = pointer.apply_patch(working, args["operations"])
    applied = sum(1 for r in results if r["ok"])
    for r in results:
        if not r["ok"]:
            logger.debug("patch op failed on %s: %s", path, r.get("error"))
    if applied and not dry_run:
        write_document(path, working)
    payload = {"path": ctx.relative(path), "applied": applied, "failed": len(results) - applied, "dryRun": dry_run, "results": results}
    out = json_result(payload)
    out["isError"] = bool(results) and applied == 0
    return out


def _tool_find_arrays(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    path = _target_path(ctx, args)
    data = read_document(path).data
    keys = args.get("keys") or DEFAULT_ARRAY_KEYS
    return json_result({"path": ctx.relative(path), "arrays": pointer.find_arrays_by_key(data, keys)})


def _tool_insert_item(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    path = _target_path(ctx, args)
    data = read_document(path).data
    target: Optional[str] = None
    strategy = "pointer"
    ptr = args.get("pointer")
    if ptr is not None and isinstance(pointer.get(data, ptr), list):
        target = ptr
    else:
        strategy = "scan"
        found = pointer.find_arrays_by_key(data, args.get("keys") or DEFAULT_ARRAY_KEYS)
        if found:
            target = found[0]["pointer"]
    if target is None:
        return make_tool_result(f"No array found to insert into in {ctx.relative(path)}", is_error=True)
    length = pointer.push(data, target, args["item"])
    write_document(path, data)
    return json_result({"path": ctx.relative(path), "pointer": target, "strategy": strategy, "length": length})


def _tool_repair_scene(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    path = _target_path(ctx, args)
    raw_text = path.read_text(encoding="utf-8")
    data = read_document(path).data
    if not is_scene_document(data):
        return make_tool_result(f"Not a scene document: {ctx.relative(path)}", is_error=True)
    repaired = repair(copy.deepcopy(data))
    written = write_document(path, repaired)
    changed = serialize(written) != raw_text
    objects = written.get("objects") if isinstance(written.get("objects"), dict) else {}
    return json_result({"path": ctx.relative(path), "changed": changed, "objects": len(objects)})


def _tool_add_shape(ctx: ProjectContext, json_result: Any, shape: str, args: Dict[str, Any]) -> Dict[str, Any]:
    geometry = dict(SHAPE_GEOMETRY[shape])
    geometry.update(args.get("geometry") or {})
    geometry["type"] = shape
    material = {
        "color": args.get("color") or "#FFFFFF",
        "type": "Standard",
        "side": "Front",
        "opacity": 1,
        "roughness": 0.5,
        "metalness": 0,
    }
    material.update(args.get("material") or {})
    return _add_object(ctx, json_result, args["name"], {"geometry": geometry, "material": material}, args)


def _tool_add_model(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    src = args["src"]
    if not re.match(r"^[a-z]+://", src):
        # local models must live inside the project
        ctx.resolve(src)
    fields: Dict[str, Any] = {"gltfModel": {"src": src}}
    if args.get("shadow"):
        fields["shadow"] = {"castShadow": True, "receiveShadow": True}
    return _add_object(ctx, json_result, args.get("name") or Path(src).stem, fields, args)


def _tool_add_light(ctx: ProjectContext, json_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    light: Dict[str, Any] = {
        "type": args.get("kind", "directional"),
        "color": args.get("color") or "#FFFFFF",
        "intensity": args.get("intensity", 1),
    }
    for key in ("distance", "decay", "angle", "penumbra", "castShadow"):
        if key in args:
            light[key] = args[key]
    name = args.get("name") or f"{light['type'].title()} Light"
    return _add_object(ctx, json_result, name, {"light": light}, args)


def _tool_update_object(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    path, scene = _load_scene(ctx)
    object_id = args["id"]
    obj = scene["objects"].get(object_id)
    if not isinstance(obj, dict):
        return make_tool_result(f"Object not found: {object_id}", is_error=True)
    for key in ("name", "position", "rotation", "scale", "parentId"):
        if key in args:
            obj[key] = args[key]
    for key in ("material", "geometry", "light", "components"):
        if key in args:
            current = obj.get(key) if isinstance(obj.get(key), dict) else {}
            current.update(args[key])
            obj[key] = current
    written = write_document(path, scene)
    return json_result({"id": object_id, "object": written["objects"][object_id]}, text=f"Updated {object_id}")


def _tool_remove_object(ctx: ProjectContext, json_result: Any, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    path, scene = _load_scene(ctx)
    objects = scene["objects"]
    object_id = args["id"]
    removed = objects.pop(object_id, None)
    if removed is None:
        return make_tool_result(f"Object not found: {object_id}", is_error=True)
    new_parent = removed.get("parentId") if isinstance(removed, dict) else None
    reparented = []
    for oid, obj in objects.items():
        if isinstance(obj, dict) and obj.get("parentId") == object_id:
            if new_parent:
                obj["parentId"] = new_parent
            else:
                del obj["parentId"]
            reparented.append(oid)
    write_document(path, scene)
    return json_result({"removed": object_id, "reparented": reparented}, text=f"Removed {object_id}")


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def _scene_tool(make_tool_result: Any, handler: Any) -> Any:
    """Report a scene document that is not an object as an error result."""

    def run(args: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return handler(args)
        except NotASceneError as exc:
            logger.warning("%s", exc)
            return make_tool_result(str(exc), is_error=True)

    return run


def _shape_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "position": _VEC3,
            "color": {"type": "string"},
            "rotation": _VEC4,
            "scale": _VEC3,
            "geometry": {"type": "object"},
            "material": {"type": "object"},
            "parentId": {"type": "string"},
        },
        "required": ["name"],
        "additionalProperties": False,
    }


def register(registry, make_tool_result: Any, json_result: Any, _: Any) -> None:  # noqa: ANN001
    reg = registry.register
    ctx = registry.context

    reg(
        "desktop_guess_scene",
        "Heuristically find scene/config JSON files used by 8th Wall Desktop",
        {
            "type": "object",
            "properties": {
                "maxDepth": {"type": "integer", "minimum": 0, "default": 5},
                "maxFiles": {"type": "integer", "minimum": 1, "default": 800},
            },
            "additionalProperties": False,
        },
        partial(_tool_guess_scene, ctx, json_result),
    )
    reg(
        "desktop_get_scene",
        "Read the scene document (.expanse.json), scaffolding one if absent",
        {"type": "object", "properties": {}, "additionalProperties": False},
        partial(_tool_get_scene, ctx, json_result),
    )
    reg(
        "desktop_list_objects",
        "List objects in the scene document",
        {"type": "object", "properties": {}, "additionalProperties": False},
        _scene_tool(make_tool_result, partial(_tool_list_objects, ctx, json_result)),
    )
    reg(
        "desktop_read_json",
        "Read a JSON document, optionally at a pointer",
        {
            "type": "object",
            "properties": {"path": _PATH, "pointer": {"type": "string"}},
            "additionalProperties": False,
        },
        partial(_tool_read_json, ctx, json_result, make_tool_result),
    )
    reg(
        "desktop_write_json",
        "Write a whole JSON document, or a single value at a pointer",
        {
            "type": "object",
            "properties": {"path": _PATH, "data": {}, "pointer": {"type": "string"}, "value": {}},
            "additionalProperties": False,
        },
        partial(_tool_write_json, ctx, json_result, make_tool_result),
    )
    reg(
        "desktop_patch_json",
        "Apply a batch of set/remove/push/merge operations; reports per-operation results",
        {
            "type": "object",
            "properties": {
                "path": _PATH,
                "operations": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "op": {"type": "string", "enum": list(pointer.PATCH_OPS)},
                            "pointer": {"type": "string"},
                            "path": {"type": "string"},
                            "value": {},
                        },
                        "required": ["op"],
                    },
                },
                "dryRun": {"type": "boolean", "default": False},
                "createIfMissing": {"type": "boolean", "default": False},
            },
            "required": ["operations"],
            "additionalProperties": False,
        },
        partial(_tool_patch_json, ctx, json_result, make_tool_result),
    )
    reg(
        "desktop_find_arrays",
        "Find arrays whose key is one of the candidate keys",
        {
            "type": "object",
            "properties": {"path": _PATH, "keys": {"type": "array", "items": {"type": "string"}}},
            "additionalProperties": False,
        },
        partial(_tool_find_arrays, ctx, json_result),
    )
    reg(
        "desktop_insert_item",
        "Append an item to an array: exact pointer first, else the first array found by key",
        {
            "type": "object",
            "properties": {
                "path": _PATH,
                "item": {},
                "pointer": {"type": "string"},
                "keys": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["item"],
            "additionalProperties": False,
        },
        partial(_tool_insert_item, ctx, json_result, make_tool_result),
    )
    reg(
        "desktop_repair_scene",
        "Normalize a scene document (vectors, numbers, parent/child links)",
        {"type": "object", "properties": {"path": _PATH}, "additionalProperties": False},
        partial(_tool_repair_scene, ctx, json_result, make_tool_result),
    )
    for shape in SHAPE_GEOMETRY:
        reg(
            f"desktop_add_{shape}",
            f"Add a {shape} to the scene document",
            _shape_schema(),
            _scene_tool(make_tool_result, partial(_tool_add_shape, ctx, json_result, shape)),
        )
    reg(
        "desktop_add_model",
        "Add a GLB/GLTF model to the scene document",
        {
            "type": "object",
            "properties": {
                "src": {"type": "string", "minLength": 1},
                "name": {"type": "string"},
                "position": _VEC3,
                "rotation": _VEC4,
                "scale": _VEC3,
                "parentId": {"type": "string"},
                "shadow": {"type": "boolean"},
            },
            "required": ["src"],
            "additionalProperties": False,
        },
        _scene_tool(make_tool_result, partial(_tool_add_model, ctx, json_result)),
    )
    reg(
        "desktop_add_light",
        "Add a light to the scene document",
        {
            "type": "object",
            "properties": {
                "kind": {"type": "string", "enum": list(LIGHT_TYPES), "default": "directional"},
                "name": {"type": "string"},
                "color": {"type": "string"},
                "intensity": {"type": "number"},
                "position": _VEC3,
                "distance": {"type": "number"},
                "decay": {"type": "number"},
                "angle": {"type": "number"},
                "penumbra": {"type": "number"},
                "castShadow": {"type": "boolean"},
                "parentId": {"type": "string"},
            },
            "additionalProperties": False,
        },
        _scene_tool(make_tool_result, partial(_tool_add_light, ctx, json_result)),
    )
    reg(
        "desktop_update_object",
        "Update an object's transform, name, parent or merge into its material/geometry/light/components",
        {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "name": {"type": "string"},
                "position": _VEC3,
                "rotation": _VEC4,
                "scale": _VEC3,
                "parentId": {"type": "string"},
                "material": {"type": "object"},
                "geometry": {"type": "object"},
                "light": {"type": "object"},
                "components": {"type": "object"},
            },
            "required": ["id"],
            "additionalProperties": False,
        },
        _scene_tool(make_tool_result, partial(_tool_update_object, ctx, json_result, make_tool_result)),
    )
    reg(
        "desktop_remove_object",
        "Remove an object; its direct children move to its parent",
        {
            "type": "object",
            "properties": {"id": {"type": "string"}},
            "required": ["id"],
            "additionalProperties": False,
        },
        _scene_tool(make_tool_result, partial(_tool_remove_object, ctx, json_result, make_tool_result)),
    )
