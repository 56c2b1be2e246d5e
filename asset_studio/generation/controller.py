from fastapi import APIRouter, Request
import logging

from ..exceptions import StudioError, http_error
from ..rate_limiting import limiter
from ..workspace import CurrentWorkspace
from .model import ImagePart, NarrateRequest, RefineRequest, TextResponse

router = APIRouter(prefix="/prompt", tags=["Prompt"])


@router.post("/refine", response_model=TextResponse)
@limiter.limit("30/hour")
async def refine_prompt(
    request: Request, refine: RefineRequest, workspace: CurrentWorkspace
) -> TextResponse:
    """Expands a short prompt into a detailed one."""
    try:
        text = await workspace.client.refine(refine.prompt, refine.locale)
    except StudioError as e:
        logging.error(f"Error refining prompt '{refine.prompt}': {e}")
        raise http_error(e)
    return TextResponse(text=text)


@router.post("/narrate", response_model=TextResponse)
@limiter.limit("30/hour")
async def narrate_images(
    request: Request, narrate: NarrateRequest, workspace: CurrentWorkspace
) -> TextResponse:
    """Writes a short story connecting the given images."""
    try:
        images = [ImagePart.from_data_uri(src) for src in narrate.images]
        text = await workspace.client.narrate(images, narrate.locale)
    except StudioError as e:
        raise http_error(e)
    return TextResponse(text=text)
