"""Document operations: one function per tool, each returning the output bytes."""

from __future__ import annotations

import base64
import html
import logging
from typing import Callable, List, Optional, Sequence, Tuple

import img2pdf

from . import documents, rasterizer
from .archive import ArchivePacker
from .errors import ValidationError
from .geometry import Placement, fit_box, flip_vertical, parse_page_range, to_absolute
from .images import DecodedImage, decode_image, encode_jpeg, encode_png
from .options import (
    CompressionLevel,
    ImagesToPdfOptions,
    InputFile,
    NormalizedPosition,
    SignOptions,
)
from .settings import Settings, load_settings

LOGGER = logging.getLogger("silkpdf.tools")

Progress = Optional[Callable[[int, int], None]]

# level -> (render scale, JPEG quality)
RASTER_COMPRESSION = {
    CompressionLevel.STRONG: (1.5, 70),
    CompressionLevel.EXTREME: (1.0, 50),
}

WATERMARK_ROWS = 4
WATERMARK_COLUMNS = 3
WATERMARK_OFFSET = 20.0
WATERMARK_COLOR = (0.8, 0.8, 0.8)
WATERMARK_OPACITY = 0.3
WATERMARK_ANGLE = 45.0

EXPORT_FONT_FAMILY = "Times New Roman, serif"


def _report(progress: Progress, completed: int, total: int) -> None:
    LOGGER.debug("Step %d/%d", completed, total)
    if progress is not None:
        progress(completed, total)


def _require_inputs(inputs: Sequence, label: str) -> None:
    if not inputs:
        raise ValidationError(f"At least one {label} is required")


def merge_pdfs(
    inputs: Sequence[bytes],
    progress: Progress = None,
    settings: Settings | None = None,
) -> bytes:
    """
    Merge PDFs into one document.

    Files are taken in the given order and each keeps its own page order.
    """
    _require_inputs(inputs, "PDF file")
    merged = documents.create_empty(settings)
    for position, data in enumerate(inputs, start=1):
        source = documents.load(data, settings)
        documents.copy_pages(merged, source, range(source.page_count))
        _report(progress, position, len(inputs))
    return documents.serialize(merged)


def split_pdf_range(
    data: bytes,
    page_range: str,
    settings: Settings | None = None,
) -> bytes:
    """Extract the pages selected by ``page_range`` (1-based, e.g. "1-3,8") into a new PDF."""
    source = documents.load(data, settings)
    indices = parse_page_range(page_range, source.page_count)
    if not indices:
        raise ValidationError("Invalid page range or no pages selected.")
    extracted = documents.create_empty(settings)
    documents.copy_pages(extracted, source, indices)
    return documents.serialize(extracted)


def split_page_name(index: int, total_pages: int) -> str:
    """Archive entry name for the page at 0-based ``index``."""
    width = max(3, len(str(total_pages)))
    return f"page_{index + 1:0{width}d}.pdf"


def split_pdf_pages(
    data: bytes,
    progress: Progress = None,
    settings: Settings | None = None,
) -> bytes:
    """Split every page into its own PDF and zip the results."""
    source = documents.load(data, settings)
    total = source.page_count
    packer = ArchivePacker()
    for index in range(total):
        single = documents.create_empty(settings)
        documents.copy_pages(single, source, [index])
        packer.add(split_page_name(index, total), documents.serialize(single))
        _report(progress, index + 1, total)
    return packer.finalize()


def _raster_page(jpeg: bytes, width: float, height: float, settings: Settings | None):
    """Wrap a JPEG into a one-page PDF whose page it fills exactly."""

    def _layout(_width_px: int, _height_px: int, _dpi) -> Tuple[float, float, float, float]:
        return (width, height, width, height)

    pdf_bytes = img2pdf.convert(jpeg, layout_fun=_layout)
    return documents.load(pdf_bytes, settings)


def compress_pdf(
    data: bytes,
    level: CompressionLevel = CompressionLevel.STANDARD,
    progress: Progress = None,
    settings: Settings | None = None,
) -> bytes:
    """
    Compress a PDF.

    ``standard`` only rewrites the document structure. ``strong`` and ``extreme``
    replace every page with a JPEG snapshot of it, keeping the page size; all
    vector and text content is lost.
    """
    if level is CompressionLevel.STANDARD:
        return documents.serialize(documents.load(data, settings))

    scale, quality = RASTER_COMPRESSION[level]
    compressed = documents.create_empty(settings)
    with rasterizer.open_document(data) as source:
        total = source.page_count
        for index in range(total):
            width, height = rasterizer.page_size(source, index)
            image = rasterizer.render_page(source, index, scale)
            try:
                jpeg = encode_jpeg(image, quality)
            finally:
                image.close()
            raster = _raster_page(jpeg, width, height, settings)
            documents.add_page(compressed, raster.page(0))
            _report(progress, index + 1, total)
    return documents.serialize(compressed)


def image_placement(image: DecodedImage, options: ImagesToPdfOptions) -> Placement:
    """Center the image inside the page margins at the largest aspect-preserving size."""
    page_width, page_height = options.page_size
    margin = options.margin.points
    return fit_box(
        image.width,
        image.height,
        page_width - 2 * margin,
        page_height - 2 * margin,
        origin=(margin, margin),
    )


def images_to_pdf(
    images: Sequence[InputFile],
    options: ImagesToPdfOptions,
    progress: Progress = None,
    settings: Settings | None = None,
) -> bytes:
    """Place each JPEG/PNG on its own reference-size page."""
    _require_inputs(images, "image")
    page_width, page_height = options.page_size
    document = documents.create_empty(settings)
    for position, item in enumerate(images, start=1):
        image = decode_image(item.data, item.name, item.mime_type)
        placement = image_placement(image, options)
        page = documents.add_blank_page(document, page_width, page_height)
        page.draw_image(image, placement.x, placement.y, placement.width, placement.height)
        _report(progress, position, len(images))
    return documents.serialize(document)


def signature_placement(
    page_width: float,
    page_height: float,
    image_width: int,
    image_height: int,
    position: NormalizedPosition,
    width_ratio: float,
) -> Placement:
    """
    Size and position a signature on a page.

    The width is a fraction of the page width and the height follows the image's
    own aspect ratio; ``position`` is the signature's top-left corner.
    """
    width = width_ratio * page_width
    height = width * (image_height / image_width)
    x, y = to_absolute(position.x, position.y, page_width, page_height, height)
    return Placement(x=x, y=y, width=width, height=height, scale=width / image_width)


def sign_pdf(
    data: bytes,
    options: SignOptions,
    settings: Settings | None = None,
) -> bytes:
    """Stamp the signature image on one page; without an image the PDF is returned re-saved."""
    document = documents.load(data, settings)
    if options.signature_image is None:
        return documents.serialize(document)
    if document.page_count == 0:
        raise ValidationError("PDF has no pages to sign")
    signature = decode_image(options.signature_image, "signature.png", "image/png")
    index = options.target_page_index
    if not 0 <= index < document.page_count:
        LOGGER.info("Signature page %d out of range, using the first page", index + 1)
        index = 0
    page = document.page(index)
    placement = signature_placement(
        page.width,
        page.height,
        signature.width,
        signature.height,
        options.position,
        options.width_ratio,
    )
    page.draw_image(signature, placement.x, placement.y, placement.width, placement.height)
    return documents.serialize(document)


def watermark_positions(width: float, height: float) -> List[Tuple[float, float]]:
    """Baseline origins of the tiled watermark grid for a page of the given size."""
    x_step = width / WATERMARK_COLUMNS
    y_step = height / WATERMARK_ROWS
    return [
        (column * x_step + WATERMARK_OFFSET, row * y_step + WATERMARK_OFFSET)
        for row in range(WATERMARK_ROWS)
        for column in range(WATERMARK_COLUMNS)
    ]


def watermark_pdf(
    data: bytes,
    text: str,
    font_size: float = 48,
    progress: Progress = None,
    settings: Settings | None = None,
) -> bytes:
    """Tile rotated, translucent gray text over every page; blank text leaves the pages untouched."""
    document = documents.load(data, settings)
    if not text.strip():
        LOGGER.info("No watermark text given; returning the document unchanged")
        return documents.serialize(document)
    total = document.page_count
    for index, page in enumerate(document.pages, start=1):
        for x, y in watermark_positions(page.width, page.height):
            page.draw_text(
                text,
                x,
                y,
                font_size,
                color=WATERMARK_COLOR,
                opacity=WATERMARK_OPACITY,
                rotate=WATERMARK_ANGLE,
            )
        _report(progress, index, total)
    return documents.serialize(document)


_MARKUP_HEAD = """<html xmlns:o='urn:schemas-microsoft-com:office:office' xmlns:w='urn:schemas-microsoft-com:office:word' xmlns='http://www.w3.org/TR/REC-html40'>
<head>
<meta charset="utf-8">
<title>Converted Document</title>
</head>
<body>
"""
_MARKUP_TAIL = "</body></html>"


def _page_markup(
    width: float,
    height: float,
    background: str,
    runs: Sequence[rasterizer.TextRun],
) -> str:
    parts = [
        f'<div style="position: relative; width: {width:.2f}px; height: {height:.2f}px; '
        'page-break-after: always; margin-bottom: 20px; border: 1px solid #eee;">\n',
        f'<img src="data:image/jpeg;base64,{background}" style="position: absolute; '
        'left: 0; top: 0; width: 100%; height: 100%; z-index: -1;" />\n',
    ]
    for run in runs:
        top = flip_vertical(run.y, height, run.font_size)
        parts.append(
            f'<div style="position: absolute; left: {run.x:.2f}px; top: {top:.2f}px; '
            f"font-size: {run.font_size:.2f}px; font-family: {EXPORT_FONT_FAMILY}; "
            f'white-space: nowrap; pointer-events: none;">{html.escape(run.text)}</div>\n'
        )
    parts.append("</div>\n")
    return "".join(parts)


def pdf_to_word(
    data: bytes,
    progress: Progress = None,
    settings: Settings | None = None,
) -> bytes:
    """
    Convert a PDF into Word-compatible HTML.

    Every page becomes a block holding a full-page background snapshot with
    absolutely positioned text nodes on top, so text stays selectable where it
    appeared on the page.
    """
    settings = settings or load_settings()
    parts = [_MARKUP_HEAD]
    with rasterizer.open_document(data) as document:
        total = document.page_count
        for index in range(total):
            width, height = rasterizer.page_size(document, index)
            image = rasterizer.render_page(document, index, 1.0)
            try:
                jpeg = encode_jpeg(image, settings.export_jpeg_quality)
            finally:
                image.close()
            background = base64.b64encode(jpeg).decode("ascii")
            runs = rasterizer.extract_text_runs(document, index)
            parts.append(_page_markup(width, height, background, runs))
            _report(progress, index + 1, total)
    parts.append(_MARKUP_TAIL)
    return "".join(parts).encode("utf-8")


def render_page_preview(data: bytes, page_index: int = 0, scale: float = 1.0) -> bytes:
    """Render one page to PNG; an out-of-range index falls back to the first page."""
    with rasterizer.open_document(data) as document:
        if document.page_count == 0:
            raise ValidationError("PDF has no pages to preview")
        index = page_index if 0 <= page_index < document.page_count else 0
        image = rasterizer.render_page(document, index, scale)
        try:
            return encode_png(image)
        finally:
            image.close()
