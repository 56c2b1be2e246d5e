import logging

from pydantic import TypeAdapter, ValidationError

from ..assets.model import Folder, HistoryItem
from ..exceptions import BadRequestError, NotFoundError, StorageError
from ..history.service import HistoryStore
from ..storage.service import FOLDERS_COLLECTION, Persister

_folders_adapter = TypeAdapter(list[Folder])


class FolderRegistry:
    """Named groups of history runs."""

    def __init__(self, persister: Persister, history: HistoryStore):
        self.persister = persister
        self.history = history
        self._folders: list[Folder] = []

    def load(self) -> list[Folder]:
        raw = self.persister.load(FOLDERS_COLLECTION)
        folders: list[Folder] = []
        if isinstance(raw, list):
            try:
                folders = _folders_adapter.validate_python(raw)
            except ValidationError as e:
                logging.error(f"Stored folders are malformed, starting fresh: {e}")
        self._folders = folders
        return self.all()

    def all(self) -> list[Folder]:
        return list(self._folders)

    def get(self, folder_id: str) -> Folder:
        folder = next((f for f in self._folders if f.id == folder_id), None)
        if folder is None:
            raise NotFoundError("Folder")
        return folder

    def create(self, name: str) -> Folder:
        name = name.strip()
        if not name:
            raise BadRequestError("Folder name cannot be empty.")
        folder = Folder(name=name)
        self._commit(self._folders + [folder])
        return folder

    def rename(self, folder_id: str, name: str) -> Folder:
        name = name.strip()
        if not name:
            raise BadRequestError("Folder name cannot be empty.")
        renamed = self.get(folder_id).model_copy(update={"name": name})
        self._commit([renamed if f.id == folder_id else f for f in self._folders])
        return renamed

    def delete(self, folder_id: str) -> None:
        """Delete a folder; its runs stay in history without a folder."""
        self.get(folder_id)
        self._commit([f for f in self._folders if f.id != folder_id])
        cleared = self.history.clear_folder(folder_id)
        logging.info(f"Deleted folder {folder_id}, detached {cleared} run(s)")

    def move_item(self, history_id: str, folder_id: str | None) -> HistoryItem:
        if folder_id:
            self.get(folder_id)
        return self.history.set_folder(history_id, folder_id)

    def _commit(self, folders: list[Folder]) -> None:
        if not self.persister.save(FOLDERS_COLLECTION, folders):
            raise StorageError("Failed to save folders.")
        self._folders = folders
