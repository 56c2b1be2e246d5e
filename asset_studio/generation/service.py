from google import genai
from google.genai import types
import base64
import os
import logging
from dotenv import load_dotenv

from .model import ImagePart
from ..exceptions import GenerationError, GenerationRefusedError

load_dotenv()

# Docs: https://ai.google.dev/gemini-api/docs/image-generation
IMAGE_MODEL = os.getenv("STUDIO_IMAGE_MODEL", "gemini-2.5-flash-image")
TEXT_MODEL = os.getenv("STUDIO_TEXT_MODEL", "gemini-2.5-flash")

UPSCALE_FACTOR = 2
UPSCALE_FOCUS = "fine textures, crisp edges and natural skin detail"

STRUCTURE_MODES = ("canny", "depth", "pose")

REFINE_INSTRUCTIONS = {
    "en": (
        "You are an expert prompt engineer for AI image generation models. "
        "Rewrite and expand the following user's prompt to be highly detailed "
        "and optimized. Add specifics about lighting, camera angles, art style, "
        "composition, and technical parameters like lens type and resolution. "
        "The output should be only the refined prompt, without any "
        'conversational text or preamble. User prompt: "{prompt}"'
    ),
    "vi": (
        "Bạn là một kỹ sư prompt chuyên nghiệp cho các mô hình tạo ảnh AI. "
        "Hãy viết lại và mở rộng prompt sau của người dùng để nó trở nên cực kỳ "
        "chi tiết và được tối ưu hóa. Thêm các chi tiết cụ thể về ánh sáng, góc "
        "máy, phong cách nghệ thuật, bố cục và các thông số kỹ thuật như loại "
        "ống kính và độ phân giải. Đầu ra chỉ nên là prompt đã được tinh chỉnh "
        "bằng tiếng Việt, không có bất kỳ văn bản trò chuyện hay lời nói đầu nào. "
        'Prompt của người dùng: "{prompt}"'
    ),
}

NARRATE_INSTRUCTIONS = {
    "en": (
        "Based on the following image(s), write a short, evocative, and artistic "
        "story or description. Capture the mood, setting, and potential "
        "narrative behind the visuals."
    ),
    "vi": (
        "Dựa trên (các) hình ảnh sau, hãy viết một câu chuyện hoặc mô tả ngắn, "
        "gợi cảm và nghệ thuật bằng tiếng Việt. Nắm bắt tâm trạng, bối cảnh và "
        "câu chuyện tiềm ẩn đằng sau hình ảnh."
    ),
}


def friendly_message(error: Exception, action: str = "Image generation") -> str:
    """Reduce an SDK error to one human-readable sentence."""
    text = str(error)
    lowered = text.lower()
    if "api_key_invalid" in lowered or "permission_denied" in lowered:
        return (
            f"{action} failed: The API key is invalid or has been revoked. "
            "Please verify your API key."
        )
    if "safety" in lowered or "blocked" in lowered:
        return (
            f"{action} failed: The request was blocked due to safety settings. "
            "Please modify your prompt and try again."
        )
    if "404" in text:
        return f"{action} failed: The model name could not be found."
    return f"{action} failed: {text}"


def _to_part(image: ImagePart) -> types.Part:
    return types.Part.from_bytes(data=image.to_bytes(), mime_type=image.mime_type)


class GenerationClient:
    """Async wrapper over the Gemini generate_content endpoint."""

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if not self.api_key:
            raise GenerationError("The GOOGLE_API_KEY environment variable is not set.")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        images: list[ImagePart] | None = None,
        seed: int | None = None,
        structure_image: ImagePart | None = None,
        structure_mode: str = "none",
    ) -> list[str]:
        """Generate images for a prompt plus reference images.

        Returns data URIs. Raises ``GenerationRefusedError`` when the model
        answers without any image.
        """
        contents: list = []
        if structure_image is not None and structure_mode in STRUCTURE_MODES:
            contents.append(
                "Use the provided image as a structural reference. Extract the "
                f"{structure_mode} map (edges for canny, depth for depth, skeleton "
                "for pose) to control the composition and pose of the output "
                "image. The style should follow the main text prompt."
            )
            contents.append(_to_part(structure_image))
        contents.append(prompt)
        contents.extend(_to_part(image) for image in images or [])

        config = types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            seed=seed,
        )
        logging.info(f"Generating image(s) with {len(images or [])} reference image(s)")
        try:
            response = await self._get_client().aio.models.generate_content(
                model=IMAGE_MODEL, contents=contents, config=config
            )
        except GenerationError:
            raise
        except Exception as e:
            logging.error(f"Error during generate_content call: {e}", exc_info=True)
            raise GenerationError(friendly_message(e)) from e

        results = self._extract_images(response)
        if not results:
            logging.warning("No inline_data found in response parts.")
            raise GenerationRefusedError()
        return results

    async def edit_in_place(
        self,
        prompt: str,
        base_image: ImagePart,
        auxiliary_images: list[ImagePart] | None = None,
    ) -> str:
        """Edit ``base_image``; it is sent as the first input image."""
        results = await self.generate(prompt, [base_image, *(auxiliary_images or [])])
        return results[0]

    async def upscale(self, src: str) -> list[str]:
        instruction = (
            f"Upscale this image by {UPSCALE_FACTOR}x and add high-frequency "
            f"details. Focus on {UPSCALE_FOCUS}."
        )
        try:
            return await self.generate(instruction, [ImagePart.from_data_uri(src)])
        except GenerationRefusedError as e:
            raise GenerationRefusedError("Upscale model did not return an image.") from e

    async def refine(self, prompt: str, locale: str = "en") -> str:
        instruction = REFINE_INSTRUCTIONS.get(locale, REFINE_INSTRUCTIONS["en"])
        return await self._generate_text(
            [instruction.format(prompt=prompt)], "Prompt refinement"
        )

    async def narrate(self, images: list[ImagePart], locale: str = "en") -> str:
        instruction = NARRATE_INSTRUCTIONS.get(locale, NARRATE_INSTRUCTIONS["en"])
        return await self._generate_text(
            [instruction, *(_to_part(image) for image in images)],
            "Narrative generation",
        )

    async def _generate_text(self, contents: list, action: str) -> str:
        try:
            response = await self._get_client().aio.models.generate_content(
                model=TEXT_MODEL, contents=contents
            )
        except GenerationError:
            raise
        except Exception as e:
            logging.error(f"Error during {action.lower()}: {e}", exc_info=True)
            raise GenerationError(friendly_message(e, action)) from e

        text = (response.text or "").strip()
        if not text:
            raise GenerationRefusedError(f"{action} failed: the model returned no text.")
        return text

    @staticmethod
    def _extract_images(response) -> list[str]:
        if not response.candidates:
            logging.warning("No candidates found in the response.")
            return []
        content = response.candidates[0].content
        results = []
        for part in (content.parts if content else None) or []:
            if part.inline_data is not None and part.inline_data.data:
                data = base64.b64encode(part.inline_data.data).decode("utf-8")
                mime_type = part.inline_data.mime_type or "image/png"
                results.append(f"data:{mime_type};base64,{data}")
        return results
