from functools import partial
from typing import Any, Dict, Tuple

from .. import markup
from ..paths import ProjectContext

INDEX_HTML = "index.html"
MAIN_JS = "main.js"

_VEC3 = {"type": "array", "items": {"type": "number"}, "minItems": 3, "maxItems": 3}


def _read(ctx: ProjectContext, rel: str) -> str:
    return ctx.resolve(rel).read_text(encoding="utf-8")


def _write(ctx: ProjectContext, rel: str, text: str) -> None:
    ctx.resolve(rel).write_text(text, encoding="utf-8")


def _engine(ctx: ProjectContext) -> Tuple[str, str]:
    html = _read(ctx, INDEX_HTML)
    main_js = ctx.resolve(MAIN_JS)
    script = main_js.read_text(encoding="utf-8") if main_js.is_file() else ""
    return markup.detect_engine(html, script), html


def _insert_three(ctx: ProjectContext, snippet: str, *imports: str) -> None:
    code = _read(ctx, MAIN_JS)
    for line in imports:
        code = markup.add_three_import(code, line)[0]
    code = markup.insert_after_first(code, markup.SCENE_MARKER, snippet)[0]
    _write(ctx, MAIN_JS, code)


def _tool_detect_engine(ctx: ProjectContext, json_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    engine, _html = _engine(ctx)
    return json_result({"engine": engine})


def _tool_add_gltf_model(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    engine, html = _engine(ctx)
    src = args["src"]
    pos = args.get("position") or [0, 1, -2]
    rot = args.get("rotation") or [0, 0, 0]
    scl = args.get("scale") or [1, 1, 1]
    if engine == "aframe":
        _write(ctx, INDEX_HTML, markup.inject_aframe_entity(html, markup.aframe_gltf_entity(src, pos, rot, scl)))
        return make_tool_result(f"Added A-Frame model entity: {src}")
    if engine == "three":
        loader = markup.three_import("GLTFLoader", "examples/jsm/loaders/GLTFLoader.js")
        _insert_three(ctx, markup.three_gltf_loader(src, pos, rot, scl), loader)
        return make_tool_result(f"Added Three.js model loader: {src}")
    return make_tool_result("Unknown engine; ensure index.html uses A-Frame or Three.js template.", is_error=True)


def _tool_set_background_color(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    color = args["color"]
    engine, html = _engine(ctx)
    if engine == "aframe":
        _write(ctx, INDEX_HTML, markup.set_aframe_background(html, color))
        return make_tool_result(f"A-Frame background set to {color}")
    if engine == "three":
        _write(ctx, MAIN_JS, markup.set_three_background(_read(ctx, MAIN_JS), color))
        return make_tool_result(f"Three.js background set to {color}")
    return make_tool_result("Unknown engine; cannot set background.", is_error=True)


def _tool_add_primitive(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    engine, html = _engine(ctx)
    kind = args["type"]
    color = args.get("color") or "#FFD166"
    pos = args.get("position") or [0, 1, -2]
    rot = args.get("rotation") or [0, 0, 0]
    scl = args.get("scale") or [1, 1, 1]
    size = list(args.get("size") or [1, 1, 1])
    size += [1] * (3 - len(size))
    if engine == "aframe":
        entity = markup.aframe_primitive(kind, color, size, pos, rot, scl)
        _write(ctx, INDEX_HTML, markup.inject_aframe_entity(html, entity))
        return make_tool_result(f"Added A-Frame {kind}")
    if engine == "three":
        _insert_three(ctx, markup.three_primitive(kind, color, size, pos, rot, scl))
        return make_tool_result(f"Added Three.js {kind}")
    return make_tool_result("Unknown engine; cannot add primitive.", is_error=True)


def _tool_add_light(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    engine, html = _engine(ctx)
    kind = args["kind"]
    color = args.get("color") or "#ffffff"
    intensity = args.get("intensity", 1.0)
    pos = args.get("position") or [2, 3, 2]
    if engine == "aframe":
        _write(ctx, INDEX_HTML, markup.inject_aframe_entity(html, markup.aframe_light(kind, color, intensity, pos)))
        return make_tool_result(f"Added A-Frame {kind} light")
    if engine == "three":
        _insert_three(ctx, markup.three_light(kind, color, intensity, pos))
        return make_tool_result(f"Added Three.js {kind} light")
    return make_tool_result("Unknown engine; cannot add light.", is_error=True)


def _tool_set_environment_hdr(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    engine, html = _engine(ctx)
    url = args["url"]
    if engine == "aframe":
        _write(ctx, INDEX_HTML, markup.inject_aframe_entity(html, f'<a-sky src="{url}"></a-sky>'))
        return make_tool_result(f"A-Frame sky set to {url}")
    if engine == "three":
        loader = markup.three_import("RGBELoader", "examples/jsm/loaders/RGBELoader.js")
        _insert_three(ctx, markup.three_hdr_environment(url, args.get("applyBackground", True)), loader)
        return make_tool_result(f"Three.js environment set from {url}")
    return make_tool_result("Unknown engine; cannot set environment.", is_error=True)


def _tool_add_animation(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    engine, html = _engine(ctx)
    speed = args.get("speed", 0.01)
    if engine == "aframe":
        _write(ctx, INDEX_HTML, markup.inject_aframe_entity(html, markup.aframe_spin(speed)))
        return make_tool_result("A-Frame spin animation added")
    if engine == "three":
        code, injected = markup.inject_into_animation_loop(_read(ctx, MAIN_JS), markup.three_spin_statement(speed))
        if not injected:
            code += markup.three_spin_fallback(speed)
        _write(ctx, MAIN_JS, code)
        return make_tool_result("Three.js spin animation added")
    return make_tool_result("Unknown engine; cannot add animation.", is_error=True)


def _tool_add_textured_plane(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    engine, html = _engine(ctx)
    url = args["url"]
    width = args.get("width", 2)
    height = args.get("height", 2)
    pos = args.get("position") or [0, 1, -2]
    rot = args.get("rotation") or [0, 0, 0]
    if engine == "aframe":
        entity = markup.aframe_textured_plane(url, width, height, pos, rot)
        _write(ctx, INDEX_HTML, markup.inject_aframe_entity(html, entity))
        return make_tool_result(f"A-Frame textured plane added ({url})")
    if engine == "three":
        _insert_three(ctx, markup.three_textured_plane(url, width, height, pos, rot))
        return make_tool_result(f"Three.js textured plane added ({url})")
    return make_tool_result("Unknown engine; cannot add textured plane.", is_error=True)


def _tool_add_orbit_controls(ctx: ProjectContext, make_tool_result: Any, _: Dict[str, Any]) -> Dict[str, Any]:
    engine, _html = _engine(ctx)
    if engine != "three":
        return make_tool_result("OrbitControls only available for Three.js template.", is_error=True)
    code = _read(ctx, MAIN_JS)
    code = markup.add_three_import(code, markup.three_import("OrbitControls", "examples/jsm/controls/OrbitControls.js"))[0]
    snippet = "const _controls = new OrbitControls(camera, renderer.domElement);"
    code = markup.insert_after_first(code, markup.CAMERA_MARKER, snippet)[0]
    code = markup.inject_into_animation_loop(code, "_controls.update();")[0]
    _write(ctx, MAIN_JS, code)
    return make_tool_result("OrbitControls added")


def _tool_add_grid_helper(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    engine, _html = _engine(ctx)
    if engine != "three":
        return make_tool_result("GridHelper only for Three.js template.", is_error=True)
    _insert_three(ctx, markup.three_grid_helper(args.get("size", 10), args.get("divisions", 10)))
    return make_tool_result("GridHelper added")


def _tool_add_floor(ctx: ProjectContext, make_tool_result: Any, args: Dict[str, Any]) -> Dict[str, Any]:
    engine, _html = _engine(ctx)
    if engine != "three":
        return make_tool_result("Floor only for Three.js template.", is_error=True)
    _insert_three(ctx, markup.three_floor(args.get("size", 10), args.get("color") or "#888888"))
    return make_tool_result("Floor added")


def register(registry, make_tool_result: Any, json_result: Any, _: Any) -> None:  # noqa: ANN001
    reg = registry.register
    ctx = registry.context

    reg(
        "scene_detect_engine",
        "Detect whether the project uses A-Frame or Three.js",
        {"type": "object", "properties": {}, "additionalProperties": False},
        partial(_tool_detect_engine, ctx, json_result),
    )
    reg(
        "scene_add_gltf_model",
        "Add a GLTF/GLB model to the scene (A-Frame or Three.js)",
        {
            "type": "object",
            "properties": {"src": {"type": "string"}, "position": _VEC3, "rotation": _VEC3, "scale": _VEC3},
            "required": ["src"],
            "additionalProperties": False,
        },
        partial(_tool_add_gltf_model, ctx, make_tool_result),
    )
    reg(
        "scene_set_background_color",
        "Set scene background color",
        {
            "type": "object",
            "properties": {"color": {"type": "string"}},
            "required": ["color"],
            "additionalProperties": False,
        },
        partial(_tool_set_background_color, ctx, make_tool_result),
    )
    reg(
        "scene_add_primitive",
        "Add a primitive shape to the scene",
        {
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": list(markup.PRIMITIVE_KINDS)},
                "color": {"type": "string"},
                "size": {"type": "array", "items": {"type": "number"}, "minItems": 1, "maxItems": 3},
                "position": _VEC3,
                "rotation": _VEC3,
                "scale": _VEC3,
            },
            "required": ["type"],
            "additionalProperties": False,
        },
        partial(_tool_add_primitive, ctx, make_tool_result),
    )
    reg(
        "scene_add_light",
        "Add a light to the scene",
        {
            "type": "object",
            "properties": {
                "kind": {"type": "string", "enum": list(markup.LIGHT_KINDS)},
                "color": {"type": "string"},
                "intensity": {"type": "number"},
                "position": _VEC3,
            },
            "required": ["kind"],
            "additionalProperties": False,
        },
        partial(_tool_add_light, ctx, make_tool_result),
    )
    reg(
        "scene_set_environment_hdr",
        "Set environment using an HDR/EXR URL",
        {
            "type": "object",
            "properties": {"url": {"type": "string"}, "applyBackground": {"type": "boolean"}},
            "required": ["url"],
            "additionalProperties": False,
        },
        partial(_tool_set_environment_hdr, ctx, make_tool_result),
    )
    reg(
        "scene_add_animation",
        "Add a simple spin animation to meshes (Three) or an A-Frame animation entity",
        {
            "type": "object",
            "properties": {"type": {"type": "string", "enum": ["spin"]}, "speed": {"type": "number"}},
            "additionalProperties": False,
        },
        partial(_tool_add_animation, ctx, make_tool_result),
    )
    reg(
        "scene_add_textured_plane",
        "Add a textured plane (e.g., for backgrounds/posters)",
        {
            "type": "object",
            "properties": {
                "url": {"type": "string"},
                "width": {"type": "number"},
                "height": {"type": "number"},
                "position": _VEC3,
                "rotation": _VEC3,
            },
            "required": ["url"],
            "additionalProperties": False,
        },
        partial(_tool_add_textured_plane, ctx, make_tool_result),
    )
    reg(
        "scene_add_orbit_controls",
        "Add OrbitControls to Three.js scene",
        {"type": "object", "properties": {}, "additionalProperties": False},
        partial(_tool_add_orbit_controls, ctx, make_tool_result),
    )
    reg(
        "scene_add_grid_helper",
        "Add a GridHelper to the scene (Three.js)",
        {
            "type": "object",
            "properties": {"size": {"type": "number"}, "divisions": {"type": "integer", "minimum": 1}},
            "additionalProperties": False,
        },
        partial(_tool_add_grid_helper, ctx, make_tool_result),
    )
    reg(
        "scene_add_floor",
        "Add a simple floor plane (Three.js)",
        {
            "type": "object",
            "properties": {"size": {"type": "number"}, "color": {"type": "string"}},
            "additionalProperties": False,
        },
        partial(_tool_add_floor, ctx, make_tool_result),
    )
