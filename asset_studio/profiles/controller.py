from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, List

from ..assets.model import GenerationSettings, StyleProfile
from ..exceptions import StudioError, http_error
from ..workspace import CurrentWorkspace

router = APIRouter(prefix="/profiles", tags=["Profiles"])
settings_router = APIRouter(prefix="/settings", tags=["Settings"])


class ProfileRequest(BaseModel):
    name: str


@router.get("", response_model=List[StyleProfile])
async def list_profiles(workspace: CurrentWorkspace) -> List[StyleProfile]:
    return workspace.profiles.all()


@router.post("", response_model=StyleProfile, status_code=status.HTTP_201_CREATED)
async def save_profile(profile: ProfileRequest, workspace: CurrentWorkspace) -> StyleProfile:
    """Saves the current generation settings under a name."""
    try:
        return workspace.profiles.save_from(profile.name, workspace.settings)
    except StudioError as e:
        raise http_error(e)


@router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile(profile_id: str, workspace: CurrentWorkspace) -> None:
    try:
        workspace.profiles.delete(profile_id)
    except StudioError as e:
        raise http_error(e)


@router.post("/{profile_id}/apply", response_model=GenerationSettings)
async def apply_profile(profile_id: str, workspace: CurrentWorkspace) -> GenerationSettings:
    try:
        return workspace.apply_profile(profile_id)
    except StudioError as e:
        raise http_error(e)


@settings_router.get("", response_model=GenerationSettings)
async def read_settings(workspace: CurrentWorkspace) -> GenerationSettings:
    return workspace.settings


@settings_router.patch("", response_model=GenerationSettings)
async def update_settings(
    changes: Dict[str, Any], workspace: CurrentWorkspace
) -> GenerationSettings:
    try:
        return workspace.update_settings(changes)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
