from fastapi import FastAPI
from asset_studio.edits.controller import router as edits_router
from asset_studio.folders.controller import router as folders_router
from asset_studio.gallery.controller import router as gallery_router
from asset_studio.generation.controller import router as prompt_router
from asset_studio.history.controller import router as history_router
from asset_studio.identity.controller import router as identity_router
from asset_studio.profiles.controller import router as profiles_router
from asset_studio.profiles.controller import settings_router
from asset_studio.sync.controller import router as views_router


def register_routes(app: FastAPI) -> None:
    """Register all routes for the FastAPI application."""
    app.include_router(identity_router)
    app.include_router(history_router)
    app.include_router(gallery_router)
    app.include_router(views_router)
    app.include_router(edits_router)
    app.include_router(folders_router)
    app.include_router(profiles_router)
    app.include_router(settings_router)
    app.include_router(prompt_router)
