import time
import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_last_timestamp = 0


def new_image_id() -> str:
    return str(uuid.uuid4())


def next_timestamp_id() -> str:
    """Millisecond timestamp id, strictly increasing within the process."""
    global _last_timestamp
    now = int(time.time() * 1000)
    if now <= _last_timestamp:
        now = _last_timestamp + 1
    _last_timestamp = now
    return str(now)


class StudioModel(BaseModel):
    """Base for persisted records; stored JSON uses camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GeneratedImage(StudioModel):
    id: str = Field(default_factory=new_image_id)
    src: str
    tags: list[str] = Field(default_factory=list)
    is_favorite: bool = False
    generation_time: int | None = None

    # Records written before images carried ids get one minted on load.
    @field_validator("id", mode="before")
    @classmethod
    def _mint_missing_id(cls, value: Any) -> str:
        return value or new_image_id()

    @field_validator("is_favorite", mode="before")
    @classmethod
    def _favorite_default(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value: Any) -> list:
        return value or []


class HistoryItem(StudioModel):
    id: str = Field(default_factory=next_timestamp_id)
    prompt: str = ""
    negative_prompt: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)
    uploaded_images: list[str] = Field(default_factory=list)
    generated_images: list[GeneratedImage] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    folder_id: str | None = None

    # The browser edition stored uploads as {"file": {}, "base64": "data:..."}.
    @field_validator("uploaded_images", mode="before")
    @classmethod
    def _flatten_uploads(cls, value: Any) -> list:
        if not value:
            return []
        return [
            item.get("base64", "") if isinstance(item, dict) else item
            for item in value
        ]

    @field_validator("folder_id", mode="before")
    @classmethod
    def _blank_folder(cls, value: Any) -> str | None:
        return value or None

    @property
    def has_favorite(self) -> bool:
        return any(image.is_favorite for image in self.generated_images)


class GalleryImage(StudioModel):
    """Curated reference to a GeneratedImage.

    ``src`` and the other snapshot fields are a display cache of the
    referenced image; they are refreshed by the synchronizer on every write.
    """

    id: str = Field(default_factory=lambda: f"gallery-{next_timestamp_id()}")
    image_id: str
    history_id: str
    src: str
    prompt: str = ""
    negative_prompt: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)
    generation_time: int | None = None


class Folder(StudioModel):
    id: str = Field(default_factory=next_timestamp_id)
    name: str


ControlNetType = Literal["OpenPose", "Depth Map", "Canny Edge"]


class ProfileFields(StudioModel):
    prompt: str = ""
    negative_prompt: str = ""
    base_model: str = "Photorealism V3"
    camera_sensor: str = "Default"
    stylistic_budget: int = 10
    consistency_lock: bool = True
    aspect_ratio: str = "2160x3840 Vertical Frame"
    face_lock_intensity: float = 1.0
    preserve_glasses: bool = True
    control_net_type: ControlNetType = "OpenPose"
    simulated_force: int = 0


PROFILE_FIELDS = tuple(ProfileFields.model_fields)


class StyleProfile(ProfileFields):
    id: str = Field(default_factory=next_timestamp_id)
    name: str


class GenerationSettings(ProfileFields):
    """The live generation configuration a run snapshots into its HistoryItem."""

    character_ids: str = ""
    series_changes: str | None = None


class FavoriteImage(GeneratedImage):
    history_id: str
    index: int
    prompt: str = ""
