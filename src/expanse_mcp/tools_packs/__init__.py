from . import assets, components, core, desktop, devserver, docs, project, prompts, scene


def register_all(registry, make_tool_result, json_result, ToolError) -> None:  # noqa: ANN001, N803
    core.register(registry, make_tool_result, json_result, ToolError)
    if registry.mode == "docs":
        docs.register(registry, make_tool_result, json_result, ToolError)
        return
    project.register(registry, make_tool_result, json_result, ToolError)
    assets.register(registry, make_tool_result, json_result, ToolError)
    prompts.register(registry, make_tool_result, json_result, ToolError)
    devserver.register(registry, make_tool_result, json_result, ToolError)
    scene.register(registry, make_tool_result, json_result, ToolError)
    desktop.register(registry, make_tool_result, json_result, ToolError)
    components.register(registry, make_tool_result, json_result, ToolError)
    # docs stay available in local mode too
    docs.register(registry, make_tool_result, json_result, ToolError)
