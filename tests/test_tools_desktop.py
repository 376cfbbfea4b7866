import json

from conftest import payload, text_of


def _scene_path(project_root):
    return project_root / "src" / ".expanse.json"


def _load(project_root):
    return json.loads(_scene_path(project_root).read_text(encoding="utf-8"))


def test_add_box_to_fresh_project(registry, project_root):
    result = registry.dispatch("desktop_add_box", {"name": "Red Box", "position": [1, 2, 3], "color": "#ff0000"})
    assert result["isError"] is False
    data = payload(result)
    assert data["path"] == "src/.expanse.json"
    assert data["id"].startswith("red-box-")

    scene = _load(project_root)
    box = scene["objects"][data["id"]]
    assert box["geometry"] == {"type": "box", "width": 1, "height": 1, "depth": 1}
    assert box["material"]["color"] == "#ff0000"
    assert box["position"] == [1, 2, 3]
    assert box["rotation"] == [0, 0, 0, 1]
    assert box["parentId"] == "default-space"
    assert scene["spaces"]["default-space"]["children"] == ["camera", data["id"]]


def test_object_ids_are_unique(registry, project_root):
    first = payload(registry.dispatch("desktop_add_sphere", {"name": "Ball"}))["id"]
    second = payload(registry.dispatch("desktop_add_sphere", {"name": "Ball"}))["id"]
    assert first != second
    assert set(_load(project_root)["objects"]) >= {first, second}


def test_shape_schema_rejects_bad_vector(registry):
    from expanse_mcp.shared.errors import SchemaValidationError

    try:
        registry.dispatch("desktop_add_box", {"name": "x", "position": [1, 2]})
    except SchemaValidationError as exc:
        assert "position" in str(exc)
    else:
        raise AssertionError("expected a schema error")


def test_add_light_and_model(registry, project_root):
    light = payload(registry.dispatch("desktop_add_light", {"kind": "point", "intensity": 2, "distance": 5}))
    assert light["object"]["light"] == {"type": "point", "color": "#FFFFFF", "intensity": 2, "distance": 5}
    assert light["object"]["name"] == "Point Light"

    model = payload(registry.dispatch("desktop_add_model", {"src": "assets/models/duck.glb", "shadow": True}))
    assert model["object"]["gltfModel"] == {"src": "assets/models/duck.glb"}
    assert model["object"]["name"] == "duck"

    escaped = None
    try:
        registry.dispatch("desktop_add_model", {"src": "../../outside.glb"})
    except Exception as exc:  # noqa: BLE001
        escaped = exc
    assert getattr(escaped, "code", None) == "path_escape"


def test_list_update_remove(registry, project_root):
    parent = payload(registry.dispatch("desktop_add_box", {"name": "Parent"}))["id"]
    child = payload(registry.dispatch("desktop_add_cone", {"name": "Child", "parentId": parent}))["id"]

    listed = payload(registry.dispatch("desktop_list_objects", {}))
    kinds = {o["id"]: o["type"] for o in listed["objects"]}
    assert kinds == {"camera": "camera", parent: "box", child: "cone"}

    updated = registry.dispatch("desktop_update_object", {"id": parent, "material": {"color": "#00FF00"}, "position": [0, 5, 0]})
    obj = payload(updated)["object"]
    assert obj["material"]["color"] == "#00FF00"
    assert obj["material"]["roughness"] == 0.5
    assert obj["position"] == [0, 5, 0]

    missing = registry.dispatch("desktop_update_object", {"id": "ghost"})
    assert missing["isError"] is True

    removed = payload(registry.dispatch("desktop_remove_object", {"id": parent}))
    assert removed["reparented"] == [child]
    scene = _load(project_root)
    assert parent not in scene["objects"]
    assert scene["objects"][child]["parentId"] == "default-space"
    assert scene["spaces"]["default-space"]["children"] == ["camera", child]
    assert registry.dispatch("desktop_remove_object", {"id": parent})["isError"] is True


def test_get_scene_heals_broken_document(registry, project_root):
    broken = {
        "entrySpaceId": "main",
        "spaces": {"main": {"id": "main", "children": ["gone"]}},
        "objects": {"a": json.dumps({"id": "a", "position": ["4", "5", "6"]})},
    }
    path = project_root / ".expanse.json"
    path.write_text(json.dumps(json.dumps(broken)), encoding="utf-8")
    data = payload(registry.dispatch("desktop_get_scene", {}))
    assert data["path"] == ".expanse.json"
    assert data["repaired"] is True
    assert data["scene"]["objects"]["a"]["position"] == [4.0, 5.0, 6.0]
    assert data["scene"]["spaces"]["main"]["children"] == ["a"]
    assert json.loads(path.read_text(encoding="utf-8")) == data["scene"]


def test_read_and_write_json_with_pointer(registry, project_root):
    registry.dispatch("desktop_write_json", {"path": "config/app.json", "data": {"name": "demo", "list": []}})
    assert payload(registry.dispatch("desktop_read_json", {"path": "config/app.json", "pointer": "/name"}))["value"] == "demo"

    registry.dispatch("desktop_write_json", {"path": "config/app.json", "pointer": "/list/-", "value": 7})
    on_disk = json.loads((project_root / "config" / "app.json").read_text(encoding="utf-8"))
    assert on_disk == {"name": "demo", "list": [7]}

    missing = registry.dispatch("desktop_read_json", {"path": "config/app.json", "pointer": "/nope"})
    assert missing["isError"] is True
    assert "Pointer not found" in text_of(missing)

    root_write = registry.dispatch("desktop_write_json", {"path": "config/app.json", "pointer": "", "value": 1})
    assert root_write["isError"] is True


def test_patch_reports_partial_failure(registry, project_root):
    target = project_root / "data.json"
    target.write_text(json.dumps({"a": {"b": 1}, "arr": []}), encoding="utf-8")
    result = registry.dispatch(
        "desktop_patch_json",
        {
            "path": "data.json",
            "operations": [
                {"op": "set", "pointer": "/a/c", "value": 2},
                {"op": "push", "pointer": "/a", "value": 3},
                {"op": "push", "pointer": "/arr", "value": "x"},
            ],
        },
    )
    data = payload(result)
    assert result["isError"] is False
    assert data["applied"] == 2
    assert data["failed"] == 1
    assert [r["ok"] for r in data["results"]] == [True, False, True]
    assert json.loads(target.read_text(encoding="utf-8")) == {"a": {"b": 1, "c": 2}, "arr": ["x"]}


def test_patch_dry_run_and_total_failure(registry, project_root):
    target = project_root / "data.json"
    target.write_text(json.dumps({"a": 1}), encoding="utf-8")
    before = target.read_text(encoding="utf-8")

    dry = registry.dispatch("desktop_patch_json", {"path": "data.json", "dryRun": True, "operations": [{"op": "set", "pointer": "/b", "value": 2}]})
    assert payload(dry)["applied"] == 1
    assert target.read_text(encoding="utf-8") == before

    failed = registry.dispatch("desktop_patch_json", {"path": "data.json", "operations": [{"op": "push", "pointer": "/a", "value": 1}]})
    assert failed["isError"] is True
    assert target.read_text(encoding="utf-8") == before

    missing = registry.dispatch("desktop_patch_json", {"path": "new.json", "operations": []})
    assert missing["isError"] is True
    created = registry.dispatch(
        "desktop_patch_json",
        {"path": "new.json", "createIfMissing": True, "operations": [{"op": "set", "pointer": "/k", "value": True}]},
    )
    assert created["isError"] is False
    assert json.loads((project_root / "new.json").read_text(encoding="utf-8")) == {"k": True}


def test_patch_json_out_of_range_index(registry, project_root):
    target = project_root / "data.json"
    target.write_text(json.dumps({"arr": []}), encoding="utf-8")
    result = registry.dispatch(
        "desktop_patch_json",
        {
            "path": "data.json",
            "operations": [
                {"op": "set", "pointer": "/a", "value": 2},
                {"op": "set", "pointer": "/arr/100000000000000", "value": 1},
            ],
        },
    )
    assert result["isError"] is False
    assert [r["ok"] for r in payload(result)["results"]] == [True, False]
    assert json.loads(target.read_text(encoding="utf-8")) == {"arr": [], "a": 2}


def test_find_arrays_and_insert_item(registry, project_root):
    doc = {"scene": {"entities": [{"id": 1}]}, "items": []}
    (project_root / "scene.json").write_text(json.dumps(doc), encoding="utf-8")

    arrays = payload(registry.dispatch("desktop_find_arrays", {"path": "scene.json"}))["arrays"]
    assert {"pointer": "/items", "length": 0} in arrays

    exact = payload(registry.dispatch("desktop_insert_item", {"path": "scene.json", "pointer": "/items", "item": "a"}))
    assert exact == {"path": "scene.json", "pointer": "/items", "strategy": "pointer", "length": 1}

    scanned = payload(
        registry.dispatch("desktop_insert_item", {"path": "scene.json", "pointer": "/nope", "keys": ["entities"], "item": {"id": 2}})
    )
    assert scanned["strategy"] == "scan"
    assert scanned["pointer"] == "/scene/entities"
    saved = json.loads((project_root / "scene.json").read_text(encoding="utf-8"))
    assert saved["scene"]["entities"] == [{"id": 1}, {"id": 2}]

    nothing = registry.dispatch("desktop_insert_item", {"path": "scene.json", "keys": ["absent"], "item": 1})
    assert nothing["isError"] is True


def test_repair_scene_tool(registry, project_root):
    path = project_root / "custom.json"
    path.write_text(json.dumps({"spaces": {"s": {"id": "s"}}, "objects": {"o": {"scale": "big"}}}), encoding="utf-8")
    result = payload(registry.dispatch("desktop_repair_scene", {"path": "custom.json"}))
    assert result["changed"] is True
    assert result["objects"] == 1
    repaired = json.loads(path.read_text(encoding="utf-8"))
    assert repaired["objects"]["o"]["scale"] == [1, 1, 1]
    assert repaired["spaces"]["s"]["children"] == ["o"]

    again = payload(registry.dispatch("desktop_repair_scene", {"path": "custom.json"}))
    assert again["changed"] is False

    (project_root / "plain.json").write_text("[1, 2]", encoding="utf-8")
    assert registry.dispatch("desktop_repair_scene", {"path": "plain.json"})["isError"] is True


def test_guess_scene_ranks_candidates(registry, project_root):
    (project_root / "spaces").mkdir()
    (project_root / "spaces" / "main.space").write_text(json.dumps({"objects": [], "space": {}}), encoding="utf-8")
    (project_root / "package.json").write_text(json.dumps({"name": "x"}), encoding="utf-8")
    (project_root / "notes.txt").write_text("objects", encoding="utf-8")
    found = payload(registry.dispatch("desktop_guess_scene", {}))["candidates"]
    assert [c["path"] for c in found] == ["spaces/main.space"]
    assert found[0]["score"] == 2 + 2 + 3 + 1


def test_non_object_scene_is_left_alone(registry, project_root):
    legacy = project_root / ".expanse.json"
    raw = json.dumps([{"legacy": "entity"}])
    legacy.write_text(raw, encoding="utf-8")

    result = registry.dispatch("desktop_add_box", {"name": "Cube"})
    assert result["isError"] is True
    assert "array" in text_of(result)
    assert legacy.read_text(encoding="utf-8") == raw
    assert registry.dispatch("desktop_list_objects", {})["isError"] is True


def test_scene_without_spaces_gets_no_null_parent(registry, project_root):
    path = project_root / ".expanse.json"
    path.write_text(json.dumps({"objects": {}}), encoding="utf-8")
    object_id = payload(registry.dispatch("desktop_add_box", {"name": "Cube"}))["id"]
    stored = json.loads(path.read_text(encoding="utf-8"))["objects"][object_id]
    assert "parentId" not in stored

    child = payload(registry.dispatch("desktop_add_sphere", {"name": "Ball", "parentId": object_id}))["id"]
    registry.dispatch("desktop_remove_object", {"id": object_id})
    assert "parentId" not in json.loads(path.read_text(encoding="utf-8"))["objects"][child]


def test_colors_are_stored_as_given(registry, project_root):
    green = payload(registry.dispatch("desktop_add_box", {"name": "Green Cube", "position": [1, 0.5, -2], "color": "#00ff00"}))["id"]
    red = payload(registry.dispatch("desktop_add_plane", {"name": "Mat", "color": "red"}))["id"]
    objects = _load(project_root)["objects"]
    assert objects[green]["material"]["color"] == "#00ff00"
    assert objects[red]["material"]["color"] == "red"
