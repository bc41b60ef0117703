"""Typed operation options, inputs and results."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from .errors import ValidationError

PDF_MIME = "application/pdf"
ZIP_MIME = "application/zip"
WORD_MIME = "application/msword"
PNG_MIME = "image/png"

# A4 in points
A4_WIDTH = 595.28
A4_HEIGHT = 841.89


class OperationKind(str, Enum):
    """Operations the engine can dispatch."""

    MERGE = "merge"
    SPLIT = "split"
    COMPRESS = "compress"
    IMAGES_TO_PDF = "jpg-to-pdf"
    SIGN = "sign"
    WATERMARK = "edit"
    PDF_TO_WORD = "pdf-to-word"
    IMAGE_PREVIEW = "jpg-preview"
    PAGE_PREVIEW = "page-preview"


class SplitMode(str, Enum):
    RANGE = "range"
    ALL = "all"


class CompressionLevel(str, Enum):
    STANDARD = "standard"
    STRONG = "strong"
    EXTREME = "extreme"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class Margin(str, Enum):
    NONE = "none"
    SMALL = "small"
    BIG = "big"

    @property
    def points(self) -> float:
        return {"none": 0.0, "small": 20.0, "big": 50.0}[self.value]


@dataclass(frozen=True)
class NormalizedPosition:
    """A point in [0, 1] x [0, 1] relative to a page, origin at the top-left."""

    x: float = 0.35
    y: float = 0.35

    def __post_init__(self) -> None:
        for axis, value in (("x", self.x), ("y", self.y)):
            if not 0.0 <= value <= 1.0:
                raise ValidationError(f"Position {axis} must be between 0 and 1")


@dataclass(frozen=True)
class MergeOptions:
    pass


@dataclass(frozen=True)
class SplitOptions:
    mode: SplitMode = SplitMode.RANGE
    page_range: str = ""


@dataclass(frozen=True)
class CompressOptions:
    level: CompressionLevel = CompressionLevel.STANDARD


@dataclass(frozen=True)
class ImagesToPdfOptions:
    orientation: Orientation = Orientation.PORTRAIT
    margin: Margin = Margin.NONE

    @property
    def page_size(self) -> tuple[float, float]:
        """Reference page size in points for the chosen orientation."""
        if self.orientation is Orientation.LANDSCAPE:
            return (A4_HEIGHT, A4_WIDTH)
        return (A4_WIDTH, A4_HEIGHT)


@dataclass(frozen=True)
class SignOptions:
    """Signature placement; a missing image makes the operation a pass-through."""

    signature_image: bytes | None = None
    position: NormalizedPosition = field(default_factory=NormalizedPosition)
    width_ratio: float = 0.3
    target_page_index: int = 0

    def __post_init__(self) -> None:
        if not 0.0 < self.width_ratio <= 1.0:
            raise ValidationError("Signature width ratio must be between 0 and 1")


@dataclass(frozen=True)
class WatermarkOptions:
    text: str = ""
    font_size: float = 48

    def __post_init__(self) -> None:
        if self.font_size <= 0:
            raise ValidationError("Font size must be positive")


@dataclass(frozen=True)
class PdfToWordOptions:
    pass


@dataclass(frozen=True)
class PagePreviewOptions:
    page_index: int = 0
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ValidationError("Preview scale must be positive")


OperationOptions = Union[
    MergeOptions,
    SplitOptions,
    CompressOptions,
    ImagesToPdfOptions,
    SignOptions,
    WatermarkOptions,
    PdfToWordOptions,
    PagePreviewOptions,
]

OPTIONS_BY_KIND: dict[OperationKind, type] = {
    OperationKind.MERGE: MergeOptions,
    OperationKind.SPLIT: SplitOptions,
    OperationKind.COMPRESS: CompressOptions,
    OperationKind.IMAGES_TO_PDF: ImagesToPdfOptions,
    OperationKind.SIGN: SignOptions,
    OperationKind.WATERMARK: WatermarkOptions,
    OperationKind.PDF_TO_WORD: PdfToWordOptions,
    OperationKind.IMAGE_PREVIEW: ImagesToPdfOptions,
    OperationKind.PAGE_PREVIEW: PagePreviewOptions,
}


@dataclass(frozen=True)
class InputFile:
    """Source bytes plus the name and MIME type used to guess image formats."""

    data: bytes
    name: str = ""
    mime_type: str | None = None

    @classmethod
    def from_path(cls, path: Path) -> "InputFile":
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(data=path.read_bytes(), name=path.name, mime_type=mime_type)


@dataclass(frozen=True)
class ResultArtifact:
    """The single named output of an operation."""

    name: str
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)
