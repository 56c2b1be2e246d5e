from fastapi import APIRouter
from pydantic import BaseModel
from typing import List

from ..assets.model import GalleryImage
from ..exceptions import StudioError, http_error
from ..workspace import CurrentWorkspace

router = APIRouter(prefix="/gallery", tags=["Gallery"])


class GalleryToggleResponse(BaseModel):
    in_gallery: bool


@router.get("", response_model=List[GalleryImage])
async def list_gallery(workspace: CurrentWorkspace) -> List[GalleryImage]:
    return workspace.gallery.entries


@router.post("/{history_id}/images/{image_id}", response_model=GalleryToggleResponse)
async def toggle_gallery(
    history_id: str, image_id: str, workspace: CurrentWorkspace
) -> GalleryToggleResponse:
    """Adds the image to the gallery, or removes it if it is already saved."""
    try:
        return GalleryToggleResponse(
            in_gallery=workspace.sync.toggle_gallery(history_id, image_id)
        )
    except StudioError as e:
        raise http_error(e)
