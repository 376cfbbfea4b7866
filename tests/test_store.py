import json

import pytest

from expanse_mcp.shared.errors import InvalidJsonError
from expanse_mcp.store import (
    ensure_scene_document,
    find_scene_document,
    loads_loose,
    read_document,
    serialize,
    write_document,
)


def _scene():
    return {
        "entrySpaceId": "main",
        "spaces": {"main": {"id": "main", "name": "Main"}},
        "objects": {"a": {"id": "a", "position": ["1", 2, 3]}},
    }


def test_loads_loose_unwraps_double_encoding():
    inner = {"objects": {}}
    assert loads_loose(json.dumps(json.dumps(inner))) == inner
    assert loads_loose('"plain"') == "plain"
    with pytest.raises(InvalidJsonError):
        loads_loose("{nope", "x.json")


def test_read_self_heals_scene_file(tmp_path):
    path = tmp_path / ".expanse.json"
    path.write_text(json.dumps(_scene()), encoding="utf-8")
    first = read_document(path)
    assert first.repaired is True
    assert first.data["objects"]["a"]["position"] == [1.0, 2, 3]
    assert first.data["spaces"]["main"]["children"] == ["a"]
    on_disk = path.read_text(encoding="utf-8")
    assert on_disk == serialize(first.data)

    second = read_document(path)
    assert second.repaired is False
    assert path.read_text(encoding="utf-8") == on_disk


def test_read_does_not_rewrite_other_json(tmp_path):
    path = tmp_path / "settings.json"
    raw = json.dumps(_scene())
    path.write_text(raw, encoding="utf-8")
    result = read_document(path)
    assert result.repaired is False
    assert path.read_text(encoding="utf-8") == raw


def test_invalid_json_raises(tmp_path):
    path = tmp_path / ".expanse.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(InvalidJsonError) as excinfo:
        read_document(path)
    assert excinfo.value.code == "invalid_json"


def test_write_document_repairs_copy_and_indents(tmp_path):
    data = _scene()
    path = tmp_path / "nested" / "scene.json"
    written = write_document(path, data)
    assert data["objects"]["a"]["position"] == ["1", 2, 3]
    assert written["objects"]["a"]["position"] == [1.0, 2, 3]
    text = path.read_text(encoding="utf-8")
    assert text.startswith('{\n  "entrySpaceId"')

    raw = write_document(tmp_path / "raw.json", data, repair_scene=False)
    assert raw["objects"]["a"]["position"] == ["1", 2, 3]


def test_ensure_scene_document_scaffolds_once(tmp_path):
    assert find_scene_document(tmp_path) is None
    path = ensure_scene_document(tmp_path)
    assert path == tmp_path / "src" / ".expanse.json"
    scene = json.loads(path.read_text(encoding="utf-8"))
    assert scene["entrySpaceId"] == "default-space"
    assert scene["spaces"]["default-space"]["children"] == ["camera"]
    assert ensure_scene_document(tmp_path) == path

    (tmp_path / ".expanse.json").write_text("{}", encoding="utf-8")
    assert find_scene_document(tmp_path) == tmp_path / ".expanse.json"


def test_string_encoded_object_round_trips_as_object(tmp_path):
    path = tmp_path / ".expanse.json"
    scene = _scene()
    scene["objects"]["a"] = '{"name":"X"}'
    write_document(path, scene)
    assert scene["objects"]["a"] == '{"name":"X"}'

    read = read_document(path)
    assert read.data["objects"]["a"]["name"] == "X"
    assert read.data["objects"]["a"]["parentId"] == "main"
    assert json.loads(path.read_text(encoding="utf-8"))["objects"]["a"]["name"] == "X"
