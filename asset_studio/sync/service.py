import logging
from typing import Any

from ..assets.model import FavoriteImage, GalleryImage, GeneratedImage
from ..exceptions import NotFoundError
from ..gallery.service import GalleryStore
from ..history.service import HistoryStore


class Synchronizer:
    """Applies one logical image change to every view that shows the image.

    History is written first, then any gallery entry caching the same image,
    then the open detail view. This is the only path that changes an
    image's ``src`` after it was created.
    """

    def __init__(self, history: HistoryStore, gallery: GalleryStore):
        self.history = history
        self.gallery = gallery
        self.detail: GalleryImage | None = None

    def update_image(
        self, history_id: str, image_id: str, updates: dict[str, Any]
    ) -> GeneratedImage | None:
        updated = self.history.update_image(history_id, image_id, updates)
        if updated is None:
            # The image was deleted while the change was in flight.
            return None

        snapshot = {"src": updated.src, "generation_time": updated.generation_time}
        self.gallery.refresh(image_id, snapshot)
        if self.detail is not None and self.detail.image_id == image_id:
            self.detail = self.detail.model_copy(update=snapshot)
        return updated

    def toggle_favorite(self, history_id: str, image_id: str) -> GeneratedImage | None:
        image = self.history.find_image(history_id, image_id)
        if image is None:
            return None
        return self.update_image(history_id, image_id, {"is_favorite": not image.is_favorite})

    def toggle_gallery(self, history_id: str, image_id: str) -> bool:
        """Flip gallery membership; returns True when the image is now a member."""
        if self.gallery.contains(image_id):
            self.gallery.remove_image(image_id)
            return False

        image = self.history.find_image(history_id, image_id)
        run = self.history.get(history_id)
        if image is None or run is None:
            raise NotFoundError("Image")
        return self.gallery.toggle(image, run)

    def delete_image(self, history_id: str, image_id: str) -> bool:
        if not self.history.remove_image(history_id, image_id):
            return False
        self.gallery.remove_image(image_id)
        if self.detail is not None and self.detail.image_id == image_id:
            self.detail = None
        logging.info(f"Deleted image {image_id} from run {history_id}")
        return True

    def delete_history_item(self, history_id: str) -> bool:
        run = self.history.get(history_id)
        if run is None or not self.history.remove(history_id):
            return False
        image_ids = {image.id for image in run.generated_images}
        if self.detail is not None and self.detail.image_id in image_ids:
            self.detail = None
        return True

    def open_detail(self, image_id: str) -> GalleryImage:
        """Open the detail view for an image from the gallery or history."""
        entry = self.gallery.get_by_image(image_id)
        if entry is None:
            location = self.history.locate(image_id)
            if location is None:
                raise NotFoundError("Image")
            history_id, index = location
            run = self.history.get(history_id)
            image = run.generated_images[index]  # type: ignore[union-attr]
            entry = GalleryImage(
                id=f"detail-{image_id}",
                image_id=image_id,
                history_id=history_id,
                src=image.src,
                prompt=run.prompt,  # type: ignore[union-attr]
                negative_prompt=run.negative_prompt,  # type: ignore[union-attr]
                settings=run.settings,  # type: ignore[union-attr]
                generation_time=image.generation_time,
            )
        self.detail = entry
        return entry

    def close_detail(self) -> None:
        self.detail = None

    def favorites(self) -> list[FavoriteImage]:
        return self.history.favorites()
