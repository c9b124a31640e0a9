"""Base provider interface."""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from menu_lens.exceptions import ImageError
from menu_lens.schema import TokenUsage

_MIME_BY_FORMAT = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


@dataclass(frozen=True)
class EncodedImage:
    """Base64 image payload with its declared MIME type."""

    data: str
    mime_type: str = "image/jpeg"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    @classmethod
    def from_bytes(cls, payload: bytes, mime_type: str = "image/jpeg") -> "EncodedImage":
        if not payload:
            raise ImageError("Image payload is empty")
        return cls(data=base64.b64encode(payload).decode("ascii"), mime_type=mime_type)

    @classmethod
    def from_base64(cls, value: str, mime_type: str = "image/jpeg") -> "EncodedImage":
        """Build from raw base64 or a ``data:<mime>;base64,<payload>`` URL."""
        value = (value or "").strip()
        if value.startswith("data:"):
            header, sep, value = value.partition(",")
            if not sep:
                raise ImageError("Invalid image data URL")
            declared = header[len("data:") :].split(";")[0].strip()
            if declared:
                mime_type = declared
        elif "," in value:
            value = value.split(",", 1)[1]
        value = value.strip()
        if not value:
            raise ImageError("Image payload is empty")
        return cls(data=value, mime_type=mime_type)


ImageInput = str | Path | bytes | Image.Image | EncodedImage


def encode_image(image: ImageInput) -> EncodedImage:
    """Load an image input and encode it for a vision request.

    Raises:
        ImageError: If the image cannot be found or decoded.
    """
    if isinstance(image, EncodedImage):
        return image

    if isinstance(image, bytes):
        try:
            with Image.open(BytesIO(image)) as opened:
                fmt = (opened.format or "JPEG").upper()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageError(f"Failed to open image: {e}") from e
        return EncodedImage.from_bytes(image, _MIME_BY_FORMAT.get(fmt, "image/jpeg"))

    pil_image = _load_image(image)
    fmt = (pil_image.format or "PNG").upper()
    if fmt not in _MIME_BY_FORMAT:
        fmt = "PNG"
    try:
        with BytesIO() as buffer:
            pil_image.save(buffer, format=fmt)
            content = buffer.getvalue()
    except (OSError, ValueError) as e:
        raise ImageError(f"Failed to encode image: {e}") from e
    return EncodedImage.from_bytes(content, _MIME_BY_FORMAT[fmt])


def _load_image(image: str | Path | Image.Image) -> Image.Image:
    """Load image from various input types."""
    if isinstance(image, Image.Image):
        return image

    path = Path(image) if isinstance(image, str) else image
    if not path.exists():
        raise ImageError(f"Image file not found: {path}")

    try:
        return Image.open(path)
    except Exception as e:
        raise ImageError(f"Failed to open image: {e}") from e


@dataclass(frozen=True)
class ModelRequest:
    """A single vision request: prompt, image and the expected JSON schema."""

    prompt: str
    image: EncodedImage
    schema_name: str
    schema: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ModelResponse:
    """Raw response envelope plus the counters the provider could read."""

    envelope: Any
    variant: str
    model: str | None = None
    usage: TokenUsage | None = None
    truncated: bool = False


class BaseProvider(ABC):
    """Abstract base class for vision model providers.

    A provider exposes an ordered list of request variants. Each variant is a
    structurally different request to the same model family; callers try
    them in order until one yields usable output.
    """

    name: str = "base"

    def __init__(self):
        self._last_variant: str | None = None

    @abstractmethod
    def variants(self) -> Sequence[str]:
        """Return request variant labels in the order they should be tried."""
        pass

    @abstractmethod
    def complete(self, request: ModelRequest, variant: str) -> ModelResponse:
        """Send one request using the given variant.

        Raises:
            ModelCallError: If the request fails.
        """
        pass

    def single_pass_variant(self) -> str | None:
        """Variant used for the one-shot sectioned request, if supported."""
        return None

    def get_extraction_metadata(self) -> dict[str, str]:
        """Return provider-specific extraction metadata."""
        metadata = {"provider": self.name}
        if self._last_variant:
            metadata["variant"] = self._last_variant
        return metadata
