from fastapi import APIRouter, status
from typing import List

from ..assets.model import FavoriteImage, GalleryImage
from ..exceptions import StudioError, http_error
from ..workspace import CurrentWorkspace

router = APIRouter(tags=["Views"])


@router.get("/favorites", response_model=List[FavoriteImage])
async def list_favorites(workspace: CurrentWorkspace) -> List[FavoriteImage]:
    """Favorited images across all runs, newest run first."""
    return workspace.sync.favorites()


@router.get("/detail", response_model=GalleryImage | None)
async def current_detail(workspace: CurrentWorkspace) -> GalleryImage | None:
    return workspace.sync.detail


@router.post("/detail/{image_id}", response_model=GalleryImage)
async def open_detail(image_id: str, workspace: CurrentWorkspace) -> GalleryImage:
    try:
        return workspace.sync.open_detail(image_id)
    except StudioError as e:
        raise http_error(e)


@router.delete("/detail", status_code=status.HTTP_204_NO_CONTENT)
async def close_detail(workspace: CurrentWorkspace) -> None:
    workspace.sync.close_detail()
