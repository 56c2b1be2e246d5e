import logging
import time
from typing import Callable

from ..assets.model import GeneratedImage, GenerationSettings, HistoryItem
from ..exceptions import BadRequestError, GenerationError, ImageBusyError, NotFoundError
from ..generation.model import ImagePart
from ..generation.service import GenerationClient
from ..history.service import HistoryStore
from ..sync.service import Synchronizer
from .imaging import adjust_image, crop_image, render_sketch_mask
from .model import (
    FREE_TEXT_ACTIONS,
    LOCAL_ACTIONS,
    CreateRequest,
    EditAction,
    EditRequest,
    EditState,
    ReplaceRequest,
    SeriesRequest,
)

ADD_OBJECT_TEMPLATES = {
    "en": 'In the original image, add a "{name}" in the area sketched in the second image.',
    "vi": 'Trong ảnh gốc, thêm "{name}" vào khu vực được phác thảo trong ảnh thứ hai.',
}

ADD_PERSON_DEFAULTS = {
    "en": "Add this person into the scene naturally.",
    "vi": "Thêm người này vào cảnh một cách tự nhiên.",
}


def _elapsed_ms(started: float, runs: int = 1) -> int:
    return round((time.monotonic() - started) * 1000 / max(runs, 1))


def _with_negative(prompt: str, negative_prompt: str) -> str:
    if not negative_prompt.strip():
        return prompt
    return f"{prompt}\n\n--- Negative Prompt ---\nAvoid the following: {negative_prompt}"


class EditCoordinator:
    """Turns every generation or edit action into one of two shapes.

    Create runs add a new HistoryItem. Replace actions derive exactly one
    new ``src`` for an existing image and hand it to the synchronizer;
    the image keeps its id.
    """

    def __init__(
        self,
        client: GenerationClient,
        history: HistoryStore,
        sync: Synchronizer,
        settings: Callable[[], GenerationSettings] = GenerationSettings,
    ):
        self.client = client
        self.history = history
        self.sync = sync
        self._settings = settings
        # Keyed by the image's current src.
        self._states: dict[str, EditState] = {}
        self.processing: dict[str, EditAction] = {}
        self.series_progress: tuple[int, int] | None = None

    def state_of(self, src: str) -> EditState:
        return self._states.get(src, EditState.idle)

    async def submit(self, request: EditRequest) -> HistoryItem | GeneratedImage | None:
        if isinstance(request, CreateRequest):
            return await self.create(request)
        if isinstance(request, SeriesRequest):
            return await self.create_series(request)
        return await self.replace(request)

    async def create(self, request: CreateRequest) -> HistoryItem:
        if not request.prompt.strip():
            raise BadRequestError("Please provide a prompt.")

        settings = self._settings()
        started = time.monotonic()
        sources = await self.client.generate(
            _with_negative(request.prompt, request.negative_prompt),
            [ImagePart.from_data_uri(src) for src in request.reference_images],
            seed=request.seed,
            structure_image=(
                ImagePart.from_data_uri(request.structure_image)
                if request.structure_image
                else None
            ),
            structure_mode=request.structure_mode,
        )
        generation_time = _elapsed_ms(started)

        item = HistoryItem(
            prompt=request.prompt,
            negative_prompt=request.negative_prompt,
            settings=settings.to_record(),
            uploaded_images=request.reference_images,
            generated_images=[
                GeneratedImage(src=src, generation_time=generation_time)
                for src in sources
            ],
        )
        self.history.add(item)
        logging.info(f"Created run {item.id} with {len(sources)} image(s)")
        return item

    async def create_series(self, request: SeriesRequest) -> HistoryItem:
        """Run the steps one after another; a failed step persists nothing."""
        steps = request.steps()
        if not request.base_prompt.strip() or not steps:
            raise BadRequestError(
                "Please provide a base prompt and at least one sequential change for the series."
            )

        settings = self._settings().model_copy(update={"series_changes": "\n".join(steps)})
        references = [ImagePart.from_data_uri(src) for src in request.reference_images]
        started = time.monotonic()
        sources: list[str] = []
        try:
            for step, change in enumerate(steps, start=1):
                self.series_progress = (step, len(steps))
                prompt = f"{request.base_prompt}\n\nStep {step}/{len(steps)}: {change}"
                try:
                    sources.extend(
                        await self.client.generate(
                            _with_negative(prompt, request.negative_prompt), references
                        )
                    )
                except GenerationError as e:
                    logging.warning(f"Series aborted at step {step}/{len(steps)}: {e.message}")
                    raise type(e)(e.message, step=step) from e
        finally:
            self.series_progress = None

        generation_time = _elapsed_ms(started, len(steps))
        item = HistoryItem(
            prompt=f"Series: {request.base_prompt}",
            negative_prompt=request.negative_prompt,
            settings=settings.to_record(),
            uploaded_images=request.reference_images,
            generated_images=[
                GeneratedImage(src=src, generation_time=generation_time)
                for src in sources
            ],
            tags=["series"],
        )
        self.history.add(item)
        return item

    async def replace(self, request: ReplaceRequest) -> GeneratedImage | None:
        """Derive a new src for an existing image and propagate it.

        Returns the updated image, or None when the image was deleted
        while the request was in flight.
        """
        image = self.history.find_image(request.history_id, request.image_id)
        if image is None:
            raise NotFoundError("Image")
        self._validate(request)

        key = image.src
        if self.state_of(key) is not EditState.idle:
            raise ImageBusyError()

        self._states[key] = EditState.requesting
        self.processing[key] = request.action
        started = time.monotonic()
        try:
            try:
                new_src = await self._derive(request, image)
            except Exception as e:
                self._states[key] = EditState.failed
                logging.warning(
                    f"{request.action.value} failed for image {request.image_id}: {e}"
                )
                raise

            self._states[key] = EditState.applying
            updates: dict = {"src": new_src}
            if request.action not in LOCAL_ACTIONS:
                updates["generation_time"] = _elapsed_ms(started)
            return self.sync.update_image(request.history_id, request.image_id, updates)
        finally:
            self._states.pop(key, None)
            self.processing.pop(key, None)

    def _validate(self, request: ReplaceRequest) -> None:
        action = request.action
        if action is EditAction.crop and request.crop_box is None:
            raise BadRequestError("Select an area to crop.")
        if action is EditAction.adjust and request.adjustments is None:
            raise BadRequestError("Provide brightness, contrast or saturation values.")
        if action in FREE_TEXT_ACTIONS and not request.instruction.strip():
            raise BadRequestError("Please describe the change to make.")
        if action is EditAction.add_object:
            if not request.instruction.strip():
                raise BadRequestError("Please name the object to add.")
            if not request.auxiliary_image and not request.strokes:
                raise BadRequestError("Draw the area where the object should appear.")
        if action is EditAction.add_person and not request.auxiliary_image:
            raise BadRequestError("Provide a photo of the person to add.")

    async def _derive(self, request: ReplaceRequest, image: GeneratedImage) -> str:
        action = request.action
        if action is EditAction.crop:
            return crop_image(image.src, request.crop_box)  # type: ignore[arg-type]
        if action is EditAction.adjust:
            return adjust_image(image.src, request.adjustments)  # type: ignore[arg-type]
        if action is EditAction.upscale:
            return (await self.client.upscale(image.src))[0]

        base = ImagePart.from_data_uri(image.src)
        if action in FREE_TEXT_ACTIONS:
            return await self.client.edit_in_place(request.instruction.strip(), base)

        if action is EditAction.add_object:
            mask = request.auxiliary_image or render_sketch_mask(
                image.src, request.strokes or []
            )
            prompt = ADD_OBJECT_TEMPLATES[request.locale].format(
                name=request.instruction.strip()
            )
            return await self.client.edit_in_place(
                prompt, base, [ImagePart.from_data_uri(mask)]
            )

        prompt = request.instruction.strip() or ADD_PERSON_DEFAULTS[request.locale]
        return await self.client.edit_in_place(
            prompt, base, [ImagePart.from_data_uri(request.auxiliary_image)]  # type: ignore[arg-type]
        )
