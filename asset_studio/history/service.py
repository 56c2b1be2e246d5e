import logging
from typing import Any, Sequence

from pydantic import TypeAdapter, ValidationError

from ..assets.model import FavoriteImage, GeneratedImage, HistoryItem
from ..exceptions import BadRequestError, StorageError
from ..storage.service import HISTORY_COLLECTION, Persister, SaveResult

HISTORY_LIMIT = 20

IMAGE_UPDATE_FIELDS = frozenset({"src", "is_favorite", "generation_time", "tags"})

_history_adapter = TypeAdapter(list[HistoryItem])


class HistoryStore:
    """Owned copy of the generation history, oldest run first.

    Keeps an ``image_id -> (history_id, index)`` index so callers resolve
    an image without scanning every run.
    """

    def __init__(self, persister: Persister, limit: int = HISTORY_LIMIT):
        self.persister = persister
        self.limit = limit
        self._items: list[HistoryItem] = []
        self._index: dict[str, tuple[str, int]] = {}
        persister.on_evict(self._forget)

    def load(self) -> list[HistoryItem]:
        raw = self.persister.load(HISTORY_COLLECTION)
        items: list[HistoryItem] = []
        if isinstance(raw, list):
            try:
                items = _history_adapter.validate_python(raw)
            except ValidationError as e:
                logging.error(f"Stored history is malformed, starting fresh: {e}")
        elif raw is not None:
            logging.error("Stored history is not a list, starting fresh")
        self._items = items
        self._rebuild_index()
        return self.items

    @property
    def items(self) -> list[HistoryItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, history_id: str) -> HistoryItem | None:
        return next((item for item in self._items if item.id == history_id), None)

    def locate(self, image_id: str) -> tuple[str, int] | None:
        return self._index.get(image_id)

    def find_image(self, history_id: str, image_id: str) -> GeneratedImage | None:
        location = self._index.get(image_id)
        if location is None or location[0] != history_id:
            return None
        item = self.get(history_id)
        if item is None:
            return None
        return item.generated_images[location[1]]

    def add(self, item: HistoryItem) -> HistoryItem:
        """Append a completed run, pruning the oldest runs past the limit."""
        items = self._items + [item]
        pruned: list[HistoryItem] = []
        while len(items) > self.limit:
            victim = next(
                (old for old in items[:-1] if not old.has_favorite), items[0]
            )
            items.remove(victim)
            pruned.append(victim)

        self._commit(items, touched=[item], dropped=pruned)
        for old in pruned:
            logging.info(f"History limit reached, dropped run {old.id}")
        return item

    def update_image(
        self, history_id: str, image_id: str, updates: dict[str, Any]
    ) -> GeneratedImage | None:
        """Overwrite fields of one image; unresolved pairs are a no-op."""
        unknown = set(updates) - IMAGE_UPDATE_FIELDS
        if unknown:
            raise BadRequestError(f"Cannot update image fields: {sorted(unknown)}")

        image = self.find_image(history_id, image_id)
        if image is None:
            logging.info(f"Image {image_id} in run {history_id} not found, skipping update")
            return None

        _, index = self._index[image_id]
        item = self.get(history_id)
        updated_image = image.model_copy(update=updates)
        images = list(item.generated_images)  # type: ignore[union-attr]
        images[index] = updated_image
        self._replace(item.model_copy(update={"generated_images": images}))  # type: ignore[union-attr]
        return updated_image

    def remove_image(self, history_id: str, image_id: str) -> bool:
        """Delete one image; a run losing its last image is deleted too."""
        image = self.find_image(history_id, image_id)
        if image is None:
            return False

        item = self.get(history_id)
        images = [img for img in item.generated_images if img.id != image_id]  # type: ignore[union-attr]
        if not images:
            return self.remove(history_id)
        self._replace(item.model_copy(update={"generated_images": images}))  # type: ignore[union-attr]
        return True

    def remove(self, history_id: str) -> bool:
        target = self.get(history_id)
        if target is None:
            return False
        self._commit(
            [item for item in self._items if item.id != history_id], dropped=[target]
        )
        return True

    def set_folder(self, history_id: str, folder_id: str | None) -> HistoryItem:
        item = self.get(history_id)
        if item is None:
            raise BadRequestError(f"History item {history_id} does not exist.")
        updated = item.model_copy(update={"folder_id": folder_id or None})
        self._replace(updated)
        return updated

    def clear_folder(self, folder_id: str) -> int:
        """Detach every run from a folder; returns how many were changed."""
        members = [item for item in self._items if item.folder_id == folder_id]
        if not members:
            return 0
        self._commit(
            [
                item.model_copy(update={"folder_id": None})
                if item.folder_id == folder_id
                else item
                for item in self._items
            ]
        )
        return len(members)

    def favorites(self) -> list[FavoriteImage]:
        """All favorited images, most recent first, with their location."""
        flattened = [
            FavoriteImage(
                **image.model_dump(),
                history_id=item.id,
                index=index,
                prompt=item.prompt,
            )
            for item in self._items
            for index, image in enumerate(item.generated_images)
            if image.is_favorite
        ]
        flattened.reverse()
        return flattened

    def search(self, term: str = "", folder_id: str | None = None) -> list[HistoryItem]:
        """Runs newest first, filtered by folder and by prompt or tag text."""
        needle = term.strip().lower()
        results = []
        for item in reversed(self._items):
            if folder_id and item.folder_id != folder_id:
                continue
            if needle and not (
                needle in item.prompt.lower()
                or any(needle in tag.lower() for tag in item.tags)
            ):
                continue
            results.append(item)
        return results

    def _replace(self, updated: HistoryItem) -> None:
        previous = self.get(updated.id)
        self._commit(
            [updated if item.id == updated.id else item for item in self._items],
            touched=[updated],
            dropped=[previous] if previous else [],
        )

    def _commit(
        self,
        items: list[HistoryItem],
        touched: Sequence[HistoryItem] = (),
        dropped: Sequence[HistoryItem] = (),
    ) -> SaveResult:
        result = self.persister.save(
            HISTORY_COLLECTION, items, protect=[item.id for item in touched]
        )
        if not result:
            raise StorageError("Failed to save generation history.")
        self._items = list(items)
        for item in dropped:
            self._unindex(item)
        for item in touched:
            self._index_item(item)
        if result.evicted_history_id:
            self._forget(result.evicted_history_id)
        return result

    def _forget(self, history_id: str) -> None:
        """Drop a run the persister evicted from storage."""
        item = self.get(history_id)
        if item is None:
            return
        self._items = [old for old in self._items if old.id != history_id]
        self._unindex(item)

    def _index_item(self, item: HistoryItem) -> None:
        for index, image in enumerate(item.generated_images):
            self._index[image.id] = (item.id, index)

    def _unindex(self, item: HistoryItem) -> None:
        for image in item.generated_images:
            if self._index.get(image.id, (None,))[0] == item.id:
                del self._index[image.id]

    def _rebuild_index(self) -> None:
        self._index = {
            image.id: (item.id, index)
            for item in self._items
            for index, image in enumerate(item.generated_images)
        }
