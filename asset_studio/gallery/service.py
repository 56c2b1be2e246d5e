import logging
from typing import Any, Sequence

from pydantic import TypeAdapter, ValidationError

from ..assets.model import GalleryImage, GeneratedImage, HistoryItem
from ..exceptions import StorageError
from ..storage.service import GALLERY_COLLECTION, Persister

GALLERY_LIMIT = 25

# GeneratedImage fields mirrored into the gallery snapshot.
SNAPSHOT_FIELDS = ("src", "generation_time")

_gallery_adapter = TypeAdapter(list[GalleryImage])


class GalleryStore:
    """User-curated references into History, at most one per image id."""

    def __init__(self, persister: Persister, limit: int = GALLERY_LIMIT):
        self.persister = persister
        self.limit = limit
        self._entries: list[GalleryImage] = []

    def load(self) -> list[GalleryImage]:
        raw = self.persister.load(GALLERY_COLLECTION)
        entries: list[GalleryImage] = []
        if isinstance(raw, list):
            try:
                entries = _gallery_adapter.validate_python(raw)
            except ValidationError as e:
                logging.error(f"Stored gallery is malformed, starting fresh: {e}")
        self._entries = self._dedupe(entries)
        return self.entries

    @property
    def entries(self) -> list[GalleryImage]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get_by_image(self, image_id: str) -> GalleryImage | None:
        return next((entry for entry in self._entries if entry.image_id == image_id), None)

    def contains(self, image_id: str) -> bool:
        return self.get_by_image(image_id) is not None

    def toggle(self, image: GeneratedImage, run: HistoryItem) -> bool:
        """Add the image to the gallery, or remove it if already there.

        Returns the new membership state.
        """
        if self.contains(image.id):
            self._commit([entry for entry in self._entries if entry.image_id != image.id])
            return False

        entry = GalleryImage(
            image_id=image.id,
            history_id=run.id,
            src=image.src,
            prompt=run.prompt,
            negative_prompt=run.negative_prompt,
            settings=run.settings,
            generation_time=image.generation_time,
        )
        # FIFO: the oldest saved entries fall off first.
        self._commit((self._entries + [entry])[-self.limit :], protect=[run.id])
        return True

    def refresh(self, image_id: str, updates: dict[str, Any]) -> bool:
        """Refresh the cached snapshot for ``image_id``; persists only on change."""
        snapshot = {key: updates[key] for key in SNAPSHOT_FIELDS if key in updates}
        changed = []
        entries = []
        for entry in self._entries:
            if entry.image_id == image_id and any(
                getattr(entry, key) != value for key, value in snapshot.items()
            ):
                entry = entry.model_copy(update=snapshot)
                changed.append(entry.history_id)
            entries.append(entry)

        if changed:
            self._commit(entries, protect=changed)
        return bool(changed)

    def remove_image(self, image_id: str) -> bool:
        if not self.contains(image_id):
            return False
        self._commit([entry for entry in self._entries if entry.image_id != image_id])
        return True

    def _commit(self, entries: list[GalleryImage], protect: Sequence[str] = ()) -> None:
        if not self.persister.save(GALLERY_COLLECTION, entries, protect=protect):
            raise StorageError("Failed to save gallery.")
        self._entries = entries

    @staticmethod
    def _dedupe(entries: list[GalleryImage]) -> list[GalleryImage]:
        seen: set[str] = set()
        unique = []
        for entry in entries:
            if entry.image_id in seen:
                continue
            seen.add(entry.image_id)
            unique.append(entry)
        return unique
