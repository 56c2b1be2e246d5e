from io import BytesIO
from typing import Sequence

from PIL import Image, ImageDraw, ImageEnhance, UnidentifiedImageError

from ..exceptions import BadRequestError
from ..generation.model import ImagePart
from .model import Adjustments, CropBox, Point

STROKE_COLOR = (255, 255, 255, 230)
FILL_COLOR = (255, 255, 255, 128)


def decode_image(src: str) -> Image.Image:
    try:
        image = Image.open(BytesIO(ImagePart.from_data_uri(src).to_bytes()))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise BadRequestError("Invalid image data format.") from e
    return image


def encode_image(image: Image.Image, format: str = "PNG", **params) -> str:
    buffer = BytesIO()
    image.save(buffer, format=format, **params)
    return ImagePart.from_bytes(
        buffer.getvalue(), Image.MIME.get(format, "image/png")
    ).to_data_uri()


def crop_image(src: str, box: CropBox) -> str:
    """Extract a pixel region, clamped to the image bounds, as a PNG data URI."""
    image = decode_image(src)
    left = min(box.x, image.width)
    top = min(box.y, image.height)
    right = min(box.x + box.width, image.width)
    bottom = min(box.y + box.height, image.height)
    if right <= left or bottom <= top:
        raise BadRequestError("Crop area is empty.")
    return encode_image(image.crop((left, top, right, bottom)))


def brush_width(image_width: int) -> int:
    return max(8, image_width // 50)


def render_sketch_mask(base_src: str, strokes: Sequence[Sequence[Point]]) -> str:
    """Draw sketch strokes over the base image.

    Every stroke is drawn as a thick polyline; strokes of three or more
    points are also closed and filled, so a loosely drawn outline marks the
    whole enclosed area.
    """
    if not any(strokes):
        raise BadRequestError("Draw the area where the object should appear.")

    base = decode_image(base_src).convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    width = brush_width(base.width)

    for stroke in strokes:
        points = [(float(x), float(y)) for x, y in stroke]
        if not points:
            continue
        if len(points) >= 3:
            draw.polygon(points, fill=FILL_COLOR)
        if len(points) >= 2:
            draw.line(points, fill=STROKE_COLOR, width=width, joint="curve")
        else:
            x, y = points[0]
            radius = width / 2
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=STROKE_COLOR)

    return encode_image(Image.alpha_composite(base, overlay))


def adjust_image(src: str, adjustments: Adjustments) -> str:
    """Apply brightness, contrast and saturation, in that order, as a JPEG."""
    image = decode_image(src).convert("RGB")
    image = ImageEnhance.Brightness(image).enhance(adjustments.brightness / 100)
    image = ImageEnhance.Contrast(image).enhance(adjustments.contrast / 100)
    image = ImageEnhance.Color(image).enhance(adjustments.saturation / 100)
    return encode_image(image, "JPEG", quality=95)
