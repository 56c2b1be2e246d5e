from fastapi import APIRouter, status
from pydantic import BaseModel, Field
from typing import List

from ..assets.model import Folder
from ..exceptions import StudioError, http_error
from ..workspace import CurrentWorkspace

router = APIRouter(prefix="/folders", tags=["Folders"])


class FolderRequest(BaseModel):
    name: str = Field(..., description="Display name of the folder.")


@router.get("", response_model=List[Folder])
async def list_folders(workspace: CurrentWorkspace) -> List[Folder]:
    return workspace.folders.all()


@router.post("", response_model=Folder, status_code=status.HTTP_201_CREATED)
async def create_folder(folder: FolderRequest, workspace: CurrentWorkspace) -> Folder:
    try:
        return workspace.folders.create(folder.name)
    except StudioError as e:
        raise http_error(e)


@router.put("/{folder_id}", response_model=Folder)
async def rename_folder(
    folder_id: str, folder: FolderRequest, workspace: CurrentWorkspace
) -> Folder:
    try:
        return workspace.folders.rename(folder_id, folder.name)
    except StudioError as e:
        raise http_error(e)


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(folder_id: str, workspace: CurrentWorkspace) -> None:
    """Deletes the folder; its runs stay in history, unfiled."""
    try:
        workspace.folders.delete(folder_id)
    except StudioError as e:
        raise http_error(e)
