from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel
from typing import List

from ..assets.model import GeneratedImage, HistoryItem
from ..exceptions import StudioError, http_error
from ..workspace import CurrentWorkspace

router = APIRouter(prefix="/history", tags=["History"])


class MoveToFolderRequest(BaseModel):
    folder_id: str | None = None


@router.get("", response_model=List[HistoryItem])
async def list_history(
    workspace: CurrentWorkspace, q: str = "", folder_id: str | None = None
) -> List[HistoryItem]:
    """Lists generation runs, newest first, optionally filtered."""
    return workspace.history.search(q, folder_id)


@router.delete("/{history_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_history_item(history_id: str, workspace: CurrentWorkspace) -> None:
    try:
        deleted = workspace.sync.delete_history_item(history_id)
    except StudioError as e:
        raise http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="History item not found")


@router.delete(
    "/{history_id}/images/{image_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_image(history_id: str, image_id: str, workspace: CurrentWorkspace) -> None:
    try:
        deleted = workspace.sync.delete_image(history_id, image_id)
    except StudioError as e:
        raise http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Image not found")


@router.post("/{history_id}/images/{image_id}/favorite", response_model=GeneratedImage)
async def toggle_favorite(
    history_id: str, image_id: str, workspace: CurrentWorkspace
) -> GeneratedImage:
    try:
        image = workspace.sync.toggle_favorite(history_id, image_id)
    except StudioError as e:
        raise http_error(e)
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return image


@router.put("/{history_id}/folder", response_model=HistoryItem)
async def move_to_folder(
    history_id: str, move: MoveToFolderRequest, workspace: CurrentWorkspace
) -> HistoryItem:
    try:
        return workspace.folders.move_item(history_id, move.folder_id)
    except StudioError as e:
        raise http_error(e)
