import logging
from typing import Annotated, Any

from fastapi import Depends

from .assets.model import GenerationSettings
from .database.core import Base, SessionLocal, engine
from .edits.service import EditCoordinator
from .folders.service import FolderRegistry
from .gallery.service import GALLERY_LIMIT, GalleryStore
from .generation.service import GenerationClient
from .history.service import HISTORY_LIMIT, HistoryStore
from .identity.service import get_or_create_user_id, load_theme, save_theme
from .profiles.service import StyleProfileRegistry
from .storage.backend import RecordBackend
from .storage.service import Persister
from .sync.service import Synchronizer


class Workspace:
    """One user's stores, wired to a single persister.

    Every reader goes through these stores; nothing keeps its own copy of a
    persisted collection.
    """

    def __init__(
        self,
        backend: RecordBackend,
        client: GenerationClient | None = None,
        history_limit: int = HISTORY_LIMIT,
        gallery_limit: int = GALLERY_LIMIT,
    ):
        self.persister = Persister(backend)
        self.user_id = get_or_create_user_id(self.persister)
        self.persister.bind_user(self.user_id)

        self.history = HistoryStore(self.persister, limit=history_limit)
        self.gallery = GalleryStore(self.persister, limit=gallery_limit)
        self.sync = Synchronizer(self.history, self.gallery)
        self.folders = FolderRegistry(self.persister, self.history)
        self.profiles = StyleProfileRegistry(self.persister)

        self.settings = GenerationSettings()
        self.theme: str | None = None
        self.client = client or GenerationClient()
        self.edits = EditCoordinator(
            self.client, self.history, self.sync, settings=lambda: self.settings
        )

    def load(self) -> "Workspace":
        self.profiles.load()
        self.history.load()
        self.folders.load()
        self.gallery.load()
        self.theme = load_theme(self.persister)
        logging.info(
            f"Loaded workspace for {self.user_id}: {len(self.history)} run(s), "
            f"{len(self.gallery)} gallery item(s)"
        )
        return self

    def update_settings(self, changes: dict[str, Any]) -> GenerationSettings:
        """Merge ``changes`` (snake_case or camelCase keys) into the live settings."""
        merged = self.settings.model_dump(by_alias=True)
        fields = GenerationSettings.model_fields
        for key, value in changes.items():
            field = fields.get(key)
            merged[field.alias if field is not None and field.alias else key] = value
        self.settings = GenerationSettings.model_validate(merged)
        return self.settings

    def apply_profile(self, profile_id: str) -> GenerationSettings:
        self.settings = self.profiles.apply(profile_id, self.settings)
        return self.settings

    def set_theme(self, theme: str) -> bool:
        saved = save_theme(self.persister, theme)
        self.theme = theme
        return saved


_workspace: Workspace | None = None


def get_workspace() -> Workspace:
    global _workspace
    if _workspace is None:
        Base.metadata.create_all(bind=engine)
        _workspace = Workspace(RecordBackend(SessionLocal)).load()
    return _workspace


CurrentWorkspace = Annotated[Workspace, Depends(get_workspace)]
