import pytest

from conftest import payload, text_of
from expanse_mcp import markup


@pytest.fixture
def aframe(registry, project_root):
    registry.dispatch("project_scaffold", {"template": "aframe"})
    return project_root / "index.html"


@pytest.fixture
def three(registry, project_root):
    registry.dispatch("project_scaffold", {"template": "three"})
    return project_root / "main.js"


def test_detect_engine(registry, aframe):
    assert payload(registry.dispatch("scene_detect_engine", {})) == {"engine": "aframe"}


def test_detect_three_from_main_js(registry, three):
    assert payload(registry.dispatch("scene_detect_engine", {})) == {"engine": "three"}


def test_unknown_engine_is_an_error_result(registry, project_root):
    (project_root / "index.html").write_text("<html><body></body></html>", encoding="utf-8")
    result = registry.dispatch("scene_add_primitive", {"type": "box"})
    assert result["isError"] is True


def test_aframe_model_and_background(registry, aframe):
    registry.dispatch("scene_add_gltf_model", {"src": "assets/duck.glb", "position": [0, 0.5, -1]})
    registry.dispatch("scene_set_background_color", {"color": "#112233"})
    html = aframe.read_text(encoding="utf-8")
    entity = '<a-entity gltf-model="url(assets/duck.glb)" position="0 0.5 -1" rotation="0 0 0" scale="1 1 1"></a-entity>'
    assert f"  {entity}\n</a-scene>" in html
    assert '<a-scene background="color: #112233">' in html


def test_aframe_primitive_light_and_plane(registry, aframe):
    registry.dispatch("scene_add_primitive", {"type": "sphere", "size": [2], "color": "#fff"})
    registry.dispatch("scene_add_light", {"kind": "point", "intensity": 0.5})
    registry.dispatch("scene_add_textured_plane", {"url": "poster.png"})
    html = aframe.read_text(encoding="utf-8")
    assert '<a-sphere color="#fff" position="0 1 -2" radius="1" scale="1 1 1"></a-sphere>' in html
    assert 'light="type: point; color: #ffffff; intensity: 0.5" position="2 3 2"' in html
    assert 'material="src: url(poster.png); side: double"' in html


def test_three_insertions_follow_scene_marker(registry, three):
    registry.dispatch("scene_add_gltf_model", {"src": "duck.glb"})
    code = three.read_text(encoding="utf-8")
    assert code.startswith(markup.three_import("GLTFLoader", "examples/jsm/loaders/GLTFLoader.js"))
    marker = code.index("const scene = new THREE.Scene();")
    assert code.index("_loader.load('duck.glb'") > marker

    registry.dispatch("scene_add_gltf_model", {"src": "other.glb"})
    assert three.read_text(encoding="utf-8").count("GLTFLoader.js") == 1


def test_three_background_replaces_existing(registry, three):
    registry.dispatch("scene_set_background_color", {"color": "#000000"})
    code = three.read_text(encoding="utf-8")
    assert "scene.background = new THREE.Color('#000000');" in code
    assert "0xececec" not in code


def test_three_animation_and_orbit_controls(registry, three):
    registry.dispatch("scene_add_animation", {"speed": 0.02})
    registry.dispatch("scene_add_orbit_controls", {})
    code = three.read_text(encoding="utf-8")
    assert "o.rotation.y += 0.02;" in code
    assert "const _controls = new OrbitControls(camera, renderer.domElement);" in code
    loop = code[code.index("renderer.setAnimationLoop"):]
    assert "_controls.update();" in loop


def test_three_only_helpers_reject_aframe(registry, aframe):
    for name in ("scene_add_orbit_controls", "scene_add_grid_helper", "scene_add_floor"):
        result = registry.dispatch(name, {})
        assert result["isError"] is True, name
        assert "Three.js" in text_of(result)


def test_three_grid_floor_and_hdr(registry, three):
    registry.dispatch("scene_add_grid_helper", {"size": 20, "divisions": 4})
    registry.dispatch("scene_add_floor", {})
    registry.dispatch("scene_set_environment_hdr", {"url": "sky.hdr", "applyBackground": False})
    code = three.read_text(encoding="utf-8")
    assert "new THREE.GridHelper(20, 4)" in code
    assert "new THREE.MeshStandardMaterial({ color: '#888888' })" in code
    assert "_hdrLoader.load('sky.hdr'" in code
    assert "RGBELoader.js" in code


def test_insert_after_first_appends_without_marker():
    code, found = markup.insert_after_first("console.log(1);", markup.SCENE_MARKER, "x();")
    assert found is False
    assert code == "console.log(1);\nx();\n"


def test_fmt_matches_javascript_numbers():
    assert markup.fmt(1.0) == "1"
    assert markup.fmt(0.5) == "0.5"
    assert markup.fmt_vec([1, 2.0, -3.5]) == "1 2 -3.5"
