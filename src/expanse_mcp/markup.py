"""Text generators for A-Frame ``index.html`` and Three.js ``main.js`` projects.

Everything here is string in, string out; the ``scene`` tool pack does the
file I/O.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Optional, Sequence, Tuple

THREE_VERSION = "0.160.0"
THREE_CDN = f"https://unpkg.com/three@{THREE_VERSION}"
AFRAME_SRC = "https://aframe.io/releases/1.5.0/aframe.min.js"

ENGINES = ("aframe", "three", "unknown")

SCENE_MARKER = re.compile(r"const\s+scene\s*=\s*new\s+THREE\.Scene\s*\([^)]*\)\s*;?")
CAMERA_MARKER = re.compile(r"const\s+camera\s*=\s*new\s+THREE\.PerspectiveCamera[\s\S]*?;\s*", re.MULTILINE)
ANIMATION_LOOP = re.compile(r"renderer\.setAnimationLoop\s*\(\s*\(\)\s*=>\s*\{([\s\S]*?)\}\s*\)\s*;?", re.MULTILINE)
_SCENE_CLOSE = re.compile(r"</a-scene\s*>", re.IGNORECASE)
_BODY_CLOSE = re.compile(r"</body>", re.IGNORECASE)
_SCENE_OPEN = re.compile(r"<a-scene([^>]*)>", re.IGNORECASE)
_BACKGROUND_ATTR = re.compile(r'background="[^"]*"', re.IGNORECASE)
_THREE_BACKGROUND = re.compile(r"scene\.background\s*=\s*new\s+THREE\.Color\([^)]*\)\s*;?")


def fmt(value: float) -> str:
    """Format a number the way it would read in JavaScript source."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fmt_vec(values: Iterable[float], sep: str = " ") -> str:
    return sep.join(fmt(v) for v in values)


def detect_engine(html: str, script: str = "") -> str:
    """Engine named by ``index.html``; ``script`` (main.js) is consulted only for Three.js."""
    lowered = html.lower()
    if "aframe.min.js" in lowered or "<a-scene" in lowered:
        return "aframe"
    for text in (lowered, script.lower()):
        if "three.module.js" in text or "vrbutton.js" in text:
            return "three"
    return "unknown"


# ---------------------------------------------------------------------------
# Injection primitives
# ---------------------------------------------------------------------------

def inject_aframe_entity(html: str, entity: str) -> str:
    """Insert ``entity`` before ``</a-scene>``, else before ``</body>``."""
    if _SCENE_CLOSE.search(html):
        return _SCENE_CLOSE.sub(lambda _m: f"  {entity}\n</a-scene>", html, count=1)
    return _BODY_CLOSE.sub(lambda _m: f"{entity}\n</body>", html, count=1)


def set_aframe_background(html: str, color: str) -> str:
    def _replace(match: "re.Match[str]") -> str:
        tag = match.group(0)
        if _BACKGROUND_ATTR.search(tag):
            return _BACKGROUND_ATTR.sub(f'background="color: {color}"', tag, count=1)
        return f'<a-scene{match.group(1)} background="color: {color}">'

    return _SCENE_OPEN.sub(_replace, html, count=1)


def add_three_import(code: str, import_line: str) -> Tuple[str, bool]:
    if import_line in code:
        return code, False
    return f"{import_line}\n{code}", True


def insert_after_first(code: str, marker: "re.Pattern[str]", insert: str) -> Tuple[str, bool]:
    """Insert after the first ``marker`` match; appends when there is none."""
    match = marker.search(code)
    if match is None:
        return f"{code}\n{insert}\n", False
    idx = match.end()
    return code[:idx] + "\n" + insert + "\n" + code[idx:], True


def inject_into_animation_loop(code: str, statement: str) -> Tuple[str, bool]:
    match = ANIMATION_LOOP.search(code)
    if match is None:
        return code, False
    body_start = match.start(1)
    return code[:body_start] + statement + "\n" + code[body_start:], True


def set_three_background(code: str, color: str) -> str:
    line = f"scene.background = new THREE.Color('{color}');"
    if re.search(r"scene\.background\s*=", code):
        return _THREE_BACKGROUND.sub(lambda _m: line, code)
    return insert_after_first(code, SCENE_MARKER, line)[0]


def three_import(name: str, module: str) -> str:
    return f"import {{ {name} }} from '{THREE_CDN}/{module}';"


# ---------------------------------------------------------------------------
# A-Frame entities
# ---------------------------------------------------------------------------

def aframe_gltf_entity(src: str, position: Sequence[float], rotation: Sequence[float], scale: Sequence[float]) -> str:
    return (
        f'<a-entity gltf-model="url({src})" position="{fmt_vec(position)}" '
        f'rotation="{fmt_vec(rotation)}" scale="{fmt_vec(scale)}"></a-entity>'
    )


def aframe_primitive(
    kind: str,
    color: str,
    size: Sequence[float],
    position: Sequence[float],
    rotation: Sequence[float],
    scale: Sequence[float],
) -> str:
    pos, rot, scl = fmt_vec(position), fmt_vec(rotation), fmt_vec(scale)
    if kind == "box":
        return (
            f'<a-box color="{color}" position="{pos}" rotation="{rot}" depth="{fmt(size[2])}" '
            f'height="{fmt(size[1])}" width="{fmt(size[0])}" scale="{scl}"></a-box>'
        )
    if kind == "sphere":
        return f'<a-sphere color="{color}" position="{pos}" radius="{fmt(size[0] / 2)}" scale="{scl}"></a-sphere>'
    if kind == "cylinder":
        return (
            f'<a-cylinder color="{color}" position="{pos}" radius="{fmt(size[0] / 2)}" '
            f'height="{fmt(size[1])}" rotation="{rot}" scale="{scl}"></a-cylinder>'
        )
    if kind == "plane":
        return (
            f'<a-plane color="{color}" position="{pos}" rotation="{rot}" width="{fmt(size[0])}" '
            f'height="{fmt(size[1])}" scale="{scl}"></a-plane>'
        )
    raise ValueError(f"Unsupported primitive: {kind}")


def aframe_light(kind: str, color: str, intensity: float, position: Sequence[float]) -> str:
    return (
        f'<a-entity light="type: {kind}; color: {color}; intensity: {fmt(intensity)}" '
        f'position="{fmt_vec(position)}"></a-entity>'
    )


def aframe_spin(speed: float) -> str:
    duration = max(100, int(628 / speed)) if speed else 100
    return f'<a-entity animation="property: rotation; to: 0 360 0; loop: true; dur: {duration}"></a-entity>'


def aframe_textured_plane(
    url: str, width: float, height: float, position: Sequence[float], rotation: Sequence[float]
) -> str:
    return (
        f'<a-plane width="{fmt(width)}" height="{fmt(height)}" position="{fmt_vec(position)}" '
        f'rotation="{fmt_vec(rotation)}" material="src: url({url}); side: double"></a-plane>'
    )


# ---------------------------------------------------------------------------
# Three.js snippets
# ---------------------------------------------------------------------------

def three_gltf_loader(src: str, position: Sequence[float], rotation: Sequence[float], scale: Sequence[float]) -> str:
    return (
        "const _loader = new GLTFLoader();\n"
        f"_loader.load('{src}', (gltf)=>{{\n"
        "  const _model = gltf.scene;\n"
        f"  _model.position.set({fmt_vec(position, ', ')});\n"
        f"  _model.rotation.set({fmt_vec(rotation, ', ')});\n"
        f"  _model.scale.set({fmt_vec(scale, ', ')});\n"
        "  scene.add(_model);\n"
        "}, undefined, (e)=>{ console.error('GLTF load error', e); });"
    )


def three_geometry(kind: str, size: Sequence[float]) -> str:
    if kind == "box":
        return f"new THREE.BoxGeometry({fmt(size[0])}, {fmt(size[1])}, {fmt(size[2])})"
    if kind == "sphere":
        return f"new THREE.SphereGeometry({fmt(max(size[0], size[1], size[2]) / 2)}, 32, 16)"
    if kind == "cylinder":
        radius = fmt(size[0] / 2)
        return f"new THREE.CylinderGeometry({radius}, {radius}, {fmt(size[1])}, 32)"
    if kind == "plane":
        return f"new THREE.PlaneGeometry({fmt(size[0])}, {fmt(size[1])})"
    raise ValueError(f"Unsupported primitive: {kind}")


def three_primitive(
    kind: str,
    color: str,
    size: Sequence[float],
    position: Sequence[float],
    rotation: Sequence[float],
    scale: Sequence[float],
) -> str:
    lines = [
        "{",
        f"  const _geo = {three_geometry(kind, size)};",
        f"  const _mat = new THREE.MeshStandardMaterial({{ color: '{color}' }});",
        "  const _mesh = new THREE.Mesh(_geo, _mat);",
        f"  _mesh.position.set({fmt_vec(position, ', ')});",
        f"  _mesh.rotation.set({fmt_vec(rotation, ', ')});",
        f"  _mesh.scale.set({fmt_vec(scale, ', ')});",
    ]
    if kind == "plane":
        lines.append("  _mesh.rotateX(-Math.PI/2);")
    lines += ["  scene.add(_mesh);", "}"]
    return "\n".join(lines)


_THREE_LIGHTS = {
    "ambient": "new THREE.AmbientLight('{color}', {intensity})",
    "hemisphere": "new THREE.HemisphereLight('{color}', '#444444', {intensity})",
    "directional": "new THREE.DirectionalLight('{color}', {intensity})",
    "point": "new THREE.PointLight('{color}', {intensity})",
}
LIGHT_KINDS = tuple(_THREE_LIGHTS)
PRIMITIVE_KINDS = ("box", "sphere", "cylinder", "plane")


def three_light(kind: str, color: str, intensity: float, position: Sequence[float]) -> str:
    expr = _THREE_LIGHTS[kind].format(color=color, intensity=fmt(intensity))
    return "\n".join(
        [
            "{",
            f"  const _light = {expr};",
            f"  _light.position.set({fmt_vec(position, ', ')});",
            "  scene.add(_light);",
            "}",
        ]
    )


def three_hdr_environment(url: str, apply_background: bool) -> str:
    background = "scene.background = tex;" if apply_background else ""
    return (
        "{\n"
        "  const _hdrLoader = new RGBELoader();\n"
        f"  _hdrLoader.load('{url}', (tex)=>{{\n"
        "    tex.mapping = THREE.EquirectangularReflectionMapping;\n"
        "    scene.environment = tex;\n"
        f"    {background}\n"
        "  }, undefined, (e)=>console.error('HDR load error', e));\n"
        "}"
    )


def three_spin_statement(speed: float) -> str:
    return f"scene.traverse(o=>{{ if(o.isMesh) o.rotation.y += {fmt(speed)}; }});"


def three_spin_fallback(speed: float) -> str:
    return (
        "\n// spin animation\n"
        f"const __spin = ()=>{{ {three_spin_statement(speed)} }};\n"
        "renderer.setAnimationLoop(()=>{ __spin(); renderer.render(scene, camera); });\n"
    )


def three_textured_plane(
    url: str, width: float, height: float, position: Sequence[float], rotation: Sequence[float]
) -> str:
    return "\n".join(
        [
            "{",
            f"  const _tex = new THREE.TextureLoader().load('{url}');",
            "  const _mat = new THREE.MeshBasicMaterial({ map: _tex, side: THREE.DoubleSide });",
            f"  const _geo = new THREE.PlaneGeometry({fmt(width)}, {fmt(height)});",
            "  const _mesh = new THREE.Mesh(_geo, _mat);",
            f"  _mesh.position.set({fmt_vec(position, ', ')});",
            f"  _mesh.rotation.set({fmt_vec(rotation, ', ')});",
            "  scene.add(_mesh);",
            "}",
        ]
    )


def three_grid_helper(size: float, divisions: int) -> str:
    return f"{{\n  const _grid = new THREE.GridHelper({fmt(size)}, {fmt(divisions)});\n  scene.add(_grid);\n}}"


def three_floor(size: float, color: str) -> str:
    return "\n".join(
        [
            "{",
            f"  const _geo = new THREE.PlaneGeometry({fmt(size)}, {fmt(size)});",
            f"  const _mat = new THREE.MeshStandardMaterial({{ color: '{color}' }});",
            "  const _floor = new THREE.Mesh(_geo, _mat);",
            "  _floor.rotation.x = -Math.PI/2;",
            "  scene.add(_floor);",
            "}",
        ]
    )


# ---------------------------------------------------------------------------
# Project scaffolds
# ---------------------------------------------------------------------------

_STYLES = "html,body{height:100%}body{margin:0;font-family:system-ui,sans-serif}"

_AFRAME_INDEX = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>XR App (A-Frame)</title>
  <link rel="stylesheet" href="styles.css" />
  <script src="{AFRAME_SRC}"></script>
</head>
<body>
  <a-scene background="color: #ECECEC">
    <a-entity position="0 1.6 0"></a-entity>
    <a-box position="-1 0.5 -3" rotation="0 45 0" color="#4CC3D9" shadow></a-box>
    <a-sphere position="0 1.25 -5" radius="1.25" color="#EF2D5E" shadow></a-sphere>
    <a-cylinder position="1 0.75 -3" radius="0.5" height="1.5" color="#FFC65D" shadow></a-cylinder>
    <a-plane position="0 0 -4" rotation="-90 0 0" width="4" height="4" color="#7BC8A4" shadow></a-plane>
    <a-sky color="#ECECEC"></a-sky>
  </a-scene>
  <script type="module" src="main.js"></script>
</body>
</html>
"""

_THREE_INDEX = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>XR App (Three.js)</title>
  <link rel="stylesheet" href="styles.css" />
</head>
<body>
  <canvas id="app"></canvas>
  <script type="module" src="main.js"></script>
</body>
</html>
"""

_THREE_MAIN = f"""import * as THREE from '{THREE_CDN}/build/three.module.js';
import {{ VRButton }} from '{THREE_CDN}/examples/jsm/webxr/VRButton.js';

const canvas = document.querySelector('#app');
const renderer = new THREE.WebGLRenderer({{ canvas, antialias: true }});
renderer.setSize(window.innerWidth, window.innerHeight);
renderer.setPixelRatio(Math.min(2, window.devicePixelRatio));
renderer.xr.enabled = true;
document.body.appendChild(VRButton.createButton(renderer));

const scene = new THREE.Scene();
scene.background = new THREE.Color(0xececec);
const camera = new THREE.PerspectiveCamera(70, window.innerWidth/window.innerHeight, 0.01, 100);
camera.position.set(0, 1.6, 3);

const light = new THREE.HemisphereLight(0xffffff, 0x444444, 1.0);
scene.add(light);

const geo = new THREE.BoxGeometry(1,1,1);
const mat = new THREE.MeshStandardMaterial({{ color: 0x4CC3D9 }});
const cube = new THREE.Mesh(geo, mat);
cube.position.set(0, 1.5, -2);
scene.add(cube);

function onResize(){{
  camera.aspect = window.innerWidth/window.innerHeight;
  camera.updateProjectionMatrix();
  renderer.setSize(window.innerWidth, window.innerHeight);
}}
window.addEventListener('resize', onResize);

function animate(){{
  cube.rotation.y += 0.01;
}}

renderer.setAnimationLoop(()=>{{
  animate();
  renderer.render(scene, camera);
}});
"""

SCAFFOLD_TEMPLATES: Dict[str, Dict[str, str]] = {
    "aframe": {
        "index.html": _AFRAME_INDEX,
        "main.js": "console.log('A-Frame scene ready');",
        "styles.css": _STYLES,
    },
    "three": {
        "index.html": _THREE_INDEX,
        "main.js": _THREE_MAIN,
        "styles.css": _STYLES + "#app{display:block;width:100%;height:100%}",
    },
}


def scaffold_files(template: str) -> Dict[str, str]:
    try:
        return dict(SCAFFOLD_TEMPLATES[template])
    except KeyError as exc:
        raise ValueError(f"Unknown template: {template}") from exc


def strip_html(html: str, *, limit: Optional[int] = None) -> str:
    """Crude HTML to text: drop script/style blocks, turn tags into newlines."""
    text = re.sub(r"<script[\s\S]*?</script>", " ", html, flags=re.IGNORECASE)
    text = re.sub(r"<style[\s\S]*?</style>", " ", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "\n", text)
    text = re.sub(r"\n{2,}", "\n", text).strip()
    return text[:limit] if limit else text
