from fastapi import APIRouter, Request
from pydantic import BaseModel
import logging

from ..exceptions import StudioError, http_error
from ..rate_limiting import limiter
from ..workspace import CurrentWorkspace
from .model import (
    CreateRequest,
    CreateResponse,
    EditState,
    ReplaceRequest,
    ReplaceResponse,
    SeriesRequest,
)

router = APIRouter(prefix="/edits", tags=["Edits"])


class EditStatusResponse(BaseModel):
    state: EditState
    action: str | None = None
    series_step: int | None = None
    series_total: int | None = None


@router.post("/create", response_model=CreateResponse)
@limiter.limit("20/hour")
async def create_images(
    request: Request, create: CreateRequest, workspace: CurrentWorkspace
) -> CreateResponse:
    """Generates a new run from a prompt and optional reference images."""
    try:
        item = await workspace.edits.create(create)
    except StudioError as e:
        logging.error(f"Error generating images for prompt '{create.prompt}': {e}")
        raise http_error(e)
    return CreateResponse(history_item=item)


@router.post("/series", response_model=CreateResponse)
@limiter.limit("5/hour")
async def create_series(
    request: Request, series: SeriesRequest, workspace: CurrentWorkspace
) -> CreateResponse:
    """Generates one image per change, in order, as a single run."""
    try:
        item = await workspace.edits.create_series(series)
    except StudioError as e:
        logging.error(f"Error generating series '{series.base_prompt}': {e}")
        raise http_error(e)
    return CreateResponse(history_item=item)


@router.post("/replace", response_model=ReplaceResponse)
@limiter.limit("30/hour")
async def replace_image(
    request: Request, edit: ReplaceRequest, workspace: CurrentWorkspace
) -> ReplaceResponse:
    """Applies crop, upscale or an in-place edit to an existing image.

    ``applied`` is false when the image was deleted before the result arrived.
    """
    try:
        image = await workspace.edits.replace(edit)
    except StudioError as e:
        raise http_error(e)
    return ReplaceResponse(applied=image is not None, image=image)


@router.get("/status", response_model=EditStatusResponse)
async def edit_status(
    workspace: CurrentWorkspace, history_id: str | None = None, image_id: str | None = None
) -> EditStatusResponse:
    """Reports what is running for an image, plus any series in progress."""
    edits = workspace.edits
    response = EditStatusResponse(state=EditState.idle)
    if history_id and image_id:
        image = workspace.history.find_image(history_id, image_id)
        if image is not None:
            action = edits.processing.get(image.src)
            response.state = edits.state_of(image.src)
            response.action = action.value if action else None
    if edits.series_progress is not None:
        response.series_step, response.series_total = edits.series_progress
    return response
