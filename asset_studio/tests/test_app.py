import importlib

from asset_studio.logging import LogLevels


def test_workspace_module_imports():
    """The workspace module and its registries load on every supported Python."""
    workspace = importlib.import_module("asset_studio.workspace")

    assert callable(workspace.FolderRegistry.all)
    assert callable(workspace.StyleProfileRegistry.all)


def test_app_registers_routes():
    """Importing the app configures logging and mounts every router."""
    main = importlib.import_module("asset_studio.main")

    paths = {route.path for route in main.app.routes}

    assert {"/me", "/history", "/gallery", "/detail", "/edits/replace", "/folders", "/profiles", "/settings"} <= paths
    assert main.app.state.limiter is not None


def test_log_level_members():
    assert LogLevels.info.value == "INFO"
    assert LogLevels("ERROR") is LogLevels.error
