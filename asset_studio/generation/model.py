import base64
import binascii

from pydantic import BaseModel, Field

from ..exceptions import BadRequestError


class ImagePart(BaseModel):
    """An inline image as sent to the generation service."""

    mime_type: str = Field("image/png", description="MIME type of the image.")
    data: str = Field(..., description="Base64 image data without the data URI prefix.")

    @classmethod
    def from_data_uri(cls, src: str) -> "ImagePart":
        if src.startswith("data:"):
            header, _, data = src.partition(",")
            mime_type = header[len("data:") :].split(";")[0] or "image/png"
            return cls(mime_type=mime_type, data=data)
        return cls(data=src)

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str = "image/png") -> "ImagePart":
        return cls(mime_type=mime_type, data=base64.b64encode(raw).decode("utf-8"))

    def to_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except binascii.Error as e:
            raise BadRequestError("Invalid image data format.") from e

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class RefineRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="The prompt to expand.")
    locale: str = Field("en", description="Language of the refined prompt (en or vi).")


class NarrateRequest(BaseModel):
    images: list[str] = Field(..., min_length=1, description="Image data URIs.")
    locale: str = Field("en", description="Language of the narrative (en or vi).")


class TextResponse(BaseModel):
    text: str
