"""Raster decoding and re-encoding on top of Pillow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import List, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError

LOGGER = logging.getLogger("silkpdf.images")

JPEG = "JPEG"
PNG = "PNG"
_ALTERNATE = {JPEG: PNG, PNG: JPEG}
_JPEG_SUFFIXES = (".jpg", ".jpeg")


@dataclass(frozen=True)
class DecodedImage:
    """A validated JPEG or PNG ready to be embedded in a page."""

    data: bytes
    format: str
    width: int
    height: int
    has_alpha: bool

    def stream(self) -> BytesIO:
        return BytesIO(self.data)


def infer_format(name: str = "", mime_type: str | None = None) -> str:
    """Guess JPEG from the MIME type or file extension, PNG otherwise."""
    if mime_type == "image/jpeg" or name.lower().endswith(_JPEG_SUFFIXES):
        return JPEG
    return PNG


def decode_attempts(inferred: str) -> Tuple[str, str, str]:
    """Order of formats to try: the inferred one, the alternate, the inferred again."""
    return (inferred, _ALTERNATE[inferred], inferred)


def _decode_as(data: bytes, image_format: str) -> DecodedImage:
    with Image.open(BytesIO(data), formats=[image_format]) as image:
        image.load()
        has_alpha = image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info
        return DecodedImage(
            data=data,
            format=image_format,
            width=image.width,
            height=image.height,
            has_alpha=has_alpha,
        )


def decode_image(data: bytes, name: str = "", mime_type: str | None = None) -> DecodedImage:
    """
    Decode an image by walking the format cascade until one attempt succeeds.

    Raises:
        DecodeError: If every attempt fails; lists the formats tried in order.
    """
    attempts: List[str] = []
    causes: List[BaseException] = []
    for image_format in decode_attempts(infer_format(name, mime_type)):
        attempts.append(image_format.lower())
        try:
            return _decode_as(data, image_format)
        except (UnidentifiedImageError, OSError, ValueError) as error:
            LOGGER.debug("Decoding %s as %s failed: %s", name or "image", image_format, error)
            causes.append(error)
    raise DecodeError(attempts, causes, name)


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    """Encode a rendered page as a lossy JPEG."""
    if image.mode != "RGB":
        image = image.convert("RGB")
    buffer = BytesIO()
    image.save(buffer, format=JPEG, quality=quality)
    return buffer.getvalue()


def encode_png(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=PNG)
    return buffer.getvalue()
