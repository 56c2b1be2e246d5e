from fastapi import APIRouter
from pydantic import BaseModel
from typing import Literal

from ..exceptions import StudioError, http_error
from ..workspace import CurrentWorkspace

router = APIRouter(prefix="/me", tags=["Identity"])


class IdentityResponse(BaseModel):
    user_id: str
    theme: str | None = None


class ThemeRequest(BaseModel):
    theme: Literal["light", "dark"]


@router.get("", response_model=IdentityResponse)
async def read_identity(workspace: CurrentWorkspace) -> IdentityResponse:
    """The anonymous identity this installation stores its data under."""
    return IdentityResponse(user_id=workspace.user_id, theme=workspace.theme)


@router.put("/theme", response_model=IdentityResponse)
async def update_theme(theme: ThemeRequest, workspace: CurrentWorkspace) -> IdentityResponse:
    try:
        workspace.set_theme(theme.theme)
    except StudioError as e:
        raise http_error(e)
    return IdentityResponse(user_id=workspace.user_id, theme=workspace.theme)
