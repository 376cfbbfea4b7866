from typing import Any, Dict

ASSET_STRATEGY = """When building a web-based XR app:

1. Inspect the project structure with project_get_info and review the relevant files.
2. Prefer existing libraries and CDNs over large local bundles when possible.
3. Asset source priority:
   - Generic props, materials and HDRIs: use PolyHaven. Download into assets/ with assets_download_url.
   - Quick low-poly props: search_ar_assets with sources ["poly-pizza"].
4. Keep models lightweight (optimize meshes and textures); consider DRACO or meshopt at runtime.
5. Organize assets under assets/{models,textures,hdris} and reference them with relative paths.
6. After importing assets, wire them into the scene (desktop_add_model, scene_add_gltf_model) and check performance on mobile.
7. Commit small, test iteratively.
"""


def register(registry, make_tool_result: Any, json_result: Any, _: Any) -> None:  # noqa: ANN001
    def _tool_asset_strategy(_: Dict[str, Any]) -> Dict[str, Any]:
        return make_tool_result(ASSET_STRATEGY)

    registry.register(
        "prompts_asset_strategy",
        "Guidance for choosing and importing assets, textures and HDRIs for web XR apps",
        {"type": "object", "properties": {}, "additionalProperties": False},
        _tool_asset_strategy,
    )
