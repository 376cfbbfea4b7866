import asyncio

import pytest

from expanse_mcp.paths import ProjectContext
from expanse_mcp.shared.errors import SchemaValidationError, UnknownToolError
from expanse_mcp.tools import ToolRegistry, json_result, make_tool_result

EXPECTED_LOCAL = {
    "health_ping",
    "project_get_root",
    "project_set_root",
    "desktop_list_projects",
    "desktop_set_project",
    "project_get_info",
    "project_list_files",
    "project_read_file",
    "project_write_file",
    "project_delete_file",
    "project_move_file",
    "project_scaffold",
    "project_export_zip",
    "desktop_guess_scene",
    "desktop_get_scene",
    "desktop_list_objects",
    "desktop_read_json",
    "desktop_write_json",
    "desktop_patch_json",
    "desktop_find_arrays",
    "desktop_insert_item",
    "desktop_repair_scene",
    "desktop_add_box",
    "desktop_add_sphere",
    "desktop_add_cylinder",
    "desktop_add_cone",
    "desktop_add_plane",
    "desktop_add_torus",
    "desktop_add_model",
    "desktop_add_light",
    "desktop_update_object",
    "desktop_remove_object",
    "desktop_add_custom_component",
    "desktop_add_custom_script",
    "desktop_list_components",
    "desktop_remove_component",
    "scene_detect_engine",
    "scene_add_gltf_model",
    "scene_set_background_color",
    "scene_add_primitive",
    "scene_add_light",
    "scene_set_environment_hdr",
    "scene_add_animation",
    "scene_add_textured_plane",
    "scene_add_orbit_controls",
    "scene_add_grid_helper",
    "scene_add_floor",
    "assets_status",
    "assets_search_polyhaven",
    "assets_polyhaven_categories",
    "assets_polyhaven_files",
    "assets_download_url",
    "assets_unzip",
    "search_ar_assets",
    "get_asset_download_info",
    "devserver_start",
    "devserver_stop",
    "prompts_asset_strategy",
    "docs_get_page",
    "docs_search",
}


def test_local_mode_registers_every_pack(registry):
    assert set(registry.names()) == EXPECTED_LOCAL
    listed = registry.list_tools()
    assert all(set(t) == {"name", "description", "inputSchema"} for t in listed)


def test_docs_mode_is_limited(project_root):
    registry = ToolRegistry(ProjectContext(project_root), mode="docs")
    assert set(registry.names()) == {"health_ping", "docs_get_page", "docs_search"}


def test_unknown_mode_falls_back_to_local(project_root):
    registry = ToolRegistry(ProjectContext(project_root), mode="api")
    assert registry.mode == "local"
    assert "desktop_add_box" in registry


def test_context_defaults_to_project_root_env(project_root):
    registry = ToolRegistry()
    assert registry.context.root == project_root


def test_register_rejects_bad_and_duplicate_names(project_root):
    registry = ToolRegistry(ProjectContext(project_root), register_defaults=False)
    schema = {"type": "object"}
    registry.register("one", "first", schema, lambda args: make_tool_result("1"))
    with pytest.raises(ValueError):
        registry.register("one", "again", schema, lambda args: make_tool_result("1"))
    with pytest.raises(ValueError):
        registry.register("has space", "bad", schema, lambda args: make_tool_result("1"))
    assert len(registry) == 1


def test_dispatch_unknown_tool(registry):
    with pytest.raises(UnknownToolError) as excinfo:
        registry.dispatch("nope", {})
    assert excinfo.value.code == "unknown_tool"


def test_schema_defaults_and_validation(project_root):
    registry = ToolRegistry(ProjectContext(project_root), register_defaults=False)
    seen = {}

    def handler(args):
        seen.update(args)
        return json_result(args)

    registry.register(
        "echo",
        "echo",
        {
            "type": "object",
            "properties": {"n": {"type": "integer", "default": 3}, "s": {"type": "string"}},
            "required": ["s"],
            "additionalProperties": False,
        },
        handler,
    )
    registry.dispatch("echo", {"s": "x"})
    assert seen == {"n": 3, "s": "x"}
    with pytest.raises(SchemaValidationError) as excinfo:
        registry.dispatch("echo", {"s": 1})
    assert "echo: s:" in str(excinfo.value)
    with pytest.raises(SchemaValidationError):
        registry.dispatch("echo", {})


def test_async_handlers_run_from_sync_and_async_dispatch(project_root):
    registry = ToolRegistry(ProjectContext(project_root), register_defaults=False)

    async def handler(args):
        await asyncio.sleep(0)
        return make_tool_result(f"hello {args['who']}")

    registry.register("greet", "greet", {"type": "object", "properties": {"who": {"type": "string"}}}, handler)
    assert registry.dispatch("greet", {"who": "sync"})["content"][0]["text"] == "hello sync"
    result = asyncio.run(registry.adispatch("greet", {"who": "async"}))
    assert result["content"][0]["text"] == "hello async"


def test_health_ping(registry):
    result = registry.dispatch("health_ping", {"message": "hi"})
    assert result["isError"] is False
    assert result["content"][0]["text"].endswith("] hi")
    assert registry.dispatch("health_ping", {})["content"][0]["text"].endswith("] pong")


def test_result_helpers():
    assert make_tool_result("x", is_error=True) == {"content": [{"type": "text", "text": "x"}], "isError": True}
    assert json_result({"a": 1}) == {"content": [{"type": "json", "json": {"a": 1}}], "isError": False}
    assert json_result([], text="t")["content"][0] == {"type": "text", "text": "t"}
