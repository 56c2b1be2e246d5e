from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from ..assets.model import GeneratedImage, HistoryItem

Locale = Literal["en", "vi"]

Point = tuple[float, float]


class EditAction(str, Enum):
    crop = "crop"
    upscale = "upscale"
    remix = "remix"
    expand = "expand"
    fix = "fix"
    add_object = "add_object"
    add_person = "add_person"
    adjust = "adjust"


# Actions whose instruction is the user's text, sent as-is.
FREE_TEXT_ACTIONS = frozenset({EditAction.remix, EditAction.expand, EditAction.fix})

# Actions rendered with Pillow, without calling the generation service.
LOCAL_ACTIONS = frozenset({EditAction.crop, EditAction.adjust})


class EditState(str, Enum):
    idle = "idle"
    requesting = "requesting"
    applying = "applying"
    failed = "failed"


class CropBox(BaseModel):
    """Pixel region of the current image to keep."""

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class Adjustments(BaseModel):
    """Tone adjustments in percent; 100 leaves the image unchanged."""

    brightness: int = Field(100, ge=0, le=200)
    contrast: int = Field(100, ge=0, le=200)
    saturation: int = Field(100, ge=0, le=200)


class CreateRequest(BaseModel):
    kind: Literal["create"] = "create"
    prompt: str = Field(..., description="The prompt used to generate the images.")
    negative_prompt: str = ""
    reference_images: list[str] = Field(
        default_factory=list, description="Reference image data URIs."
    )
    structure_image: str | None = None
    structure_mode: Literal["none", "canny", "depth", "pose"] = "none"
    seed: int | None = None


class SeriesRequest(BaseModel):
    kind: Literal["series"] = "series"
    base_prompt: str
    changes: list[str] = Field(
        ..., description="One change per step, applied to the base prompt in order."
    )
    negative_prompt: str = ""
    reference_images: list[str] = Field(default_factory=list)

    def steps(self) -> list[str]:
        return [change.strip() for change in self.changes if change.strip()]


class ReplaceRequest(BaseModel):
    kind: Literal["replace"] = "replace"
    action: EditAction
    history_id: str
    image_id: str
    instruction: str = Field(
        "",
        description=(
            "Free text for remix, expand and fix; the object name for "
            "add_object; an optional caption for add_person."
        ),
    )
    auxiliary_image: str | None = Field(
        None, description="Sketch mask (add_object) or subject photo (add_person)."
    )
    strokes: list[list[Point]] | None = Field(
        None, description="Sketch strokes in image pixels, rendered into a mask."
    )
    crop_box: CropBox | None = None
    adjustments: Adjustments | None = None
    locale: Locale = "en"


EditRequest = Annotated[
    Union[CreateRequest, SeriesRequest, ReplaceRequest], Field(discriminator="kind")
]


class CreateResponse(BaseModel):
    history_item: HistoryItem


class ReplaceResponse(BaseModel):
    applied: bool
    image: GeneratedImage | None = None
