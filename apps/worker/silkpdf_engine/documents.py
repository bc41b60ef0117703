"""Load, copy, draw on and serialize PDF documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, List, Sequence, Tuple, Union

from fpdf import FPDF
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

from .errors import ContainerError, ContainerLoadError, DependencyUnavailableError, ValidationError
from .images import DecodedImage
from .settings import Settings, load_settings

LOGGER = logging.getLogger("silkpdf.documents")

UNICODE_FONT_FAMILY = "DejaVuSans"
Color = Tuple[float, float, float]


@dataclass(frozen=True)
class _ImageOp:
    image: DecodedImage
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class _TextOp:
    text: str
    x: float
    y: float
    size: float
    color: Color
    opacity: float
    rotate: float


_DrawOp = Union[_ImageOp, _TextOp]


def _set_overlay_font(pdf: FPDF, text: str, size: float, settings: Settings) -> None:
    """
    Select a font able to render ``text`` on the overlay.

    Prefers a Unicode TrueType font when one is configured or installed, otherwise
    falls back to Helvetica for Latin-1 text.

    Raises:
        DependencyUnavailableError: If the text needs a Unicode font and none is available.
    """
    font_path = settings.resolve_unicode_font_path()
    if font_path:
        if UNICODE_FONT_FAMILY.lower() not in pdf.fonts:
            pdf.add_font(UNICODE_FONT_FAMILY, fname=str(font_path))
        pdf.set_font(UNICODE_FONT_FAMILY, size=size)
        return
    try:
        text.encode("latin-1")
    except UnicodeEncodeError as error:
        raise DependencyUnavailableError(
            "Unicode font unavailable. Set SILKPDF_TTF_PATH to a DejaVuSans.ttf path."
        ) from error
    pdf.set_font("Helvetica", size=size)


def _build_overlay_page(
    width: float,
    height: float,
    draw_fn: Callable[[FPDF, float, float], None],
) -> PageObject:
    """
    Create a single-page PDF overlay of the given size in points.

    ``draw_fn`` receives the FPDF instance (top-left origin, point units) and the
    page width and height.
    """
    pdf = FPDF(orientation="P", unit="pt", format=(width, height))
    pdf.set_margins(0, 0, 0)
    pdf.set_auto_page_break(auto=False)
    pdf.add_page()
    draw_fn(pdf, width, height)
    overlay_reader = PdfReader(BytesIO(bytes(pdf.output())))
    return overlay_reader.pages[0]


def _detach_page(writer: PdfWriter, page: PageObject) -> None:
    """
    Give a freshly added page its own content stream and resource dictionaries.

    Adding the same source page twice makes pypdf reuse the already cloned
    objects, and merging an overlay rewrites them in place.
    """
    contents = page.get_contents()
    if contents is not None:
        stream = DecodedStreamObject()
        stream.set_data(contents.get_data())
        page[NameObject("/Contents")] = writer._add_object(stream)
    resources = page.get("/Resources")
    if resources is None:
        return
    detached = DictionaryObject()
    for key, value in resources.get_object().items():
        resolved = value.get_object()
        detached[key] = DictionaryObject(resolved) if isinstance(resolved, DictionaryObject) else value
    page[NameObject("/Resources")] = detached


class Page:
    """A page owned by one document; drawing uses bottom-left absolute points."""

    def __init__(self, document: "DocumentHandle", page: PageObject, index: int) -> None:
        self._document = document
        self._page = page
        self.index = index
        self._operations: List[_DrawOp] = []

    @property
    def document(self) -> "DocumentHandle":
        return self._document

    @property
    def width(self) -> float:
        return float(self._page.mediabox.width)

    @property
    def height(self) -> float:
        return float(self._page.mediabox.height)

    @property
    def pending_operations(self) -> int:
        return len(self._operations)

    def draw_image(
        self,
        image: DecodedImage,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        """Queue an image whose lower-left corner is at (x, y)."""
        self._operations.append(_ImageOp(image, x, y, width, height))
        self._document._mark_dirty(self)

    def draw_text(
        self,
        text: str,
        x: float,
        y: float,
        size: float,
        color: Color = (0.0, 0.0, 0.0),
        opacity: float = 1.0,
        rotate: float = 0.0,
    ) -> None:
        """Queue text whose baseline starts at (x, y), rotated counter-clockwise in degrees."""
        self._operations.append(_TextOp(text, x, y, size, color, opacity, rotate))
        self._document._mark_dirty(self)

    def _draw(self, pdf: FPDF, width: float, height: float) -> None:
        settings = self._document.settings
        for operation in self._operations:
            if isinstance(operation, _ImageOp):
                top = height - operation.y - operation.height
                pdf.image(
                    operation.image.stream(),
                    x=operation.x,
                    y=top,
                    w=operation.width,
                    h=operation.height,
                )
                continue
            _set_overlay_font(pdf, operation.text, operation.size, settings)
            pdf.set_text_color(*(round(channel * 255) for channel in operation.color))
            baseline = height - operation.y
            with pdf.local_context(fill_opacity=operation.opacity):
                with pdf.rotation(operation.rotate, x=operation.x, y=baseline):
                    pdf.text(operation.x, baseline, operation.text)

    def _flush(self) -> None:
        """Merge queued drawing into the page content, in the order it was queued."""
        if not self._operations:
            return
        overlay = _build_overlay_page(self.width, self.height, self._draw)
        self._page.merge_translated_page(
            overlay,
            float(self._page.mediabox.left),
            float(self._page.mediabox.bottom),
        )
        self._operations.clear()


class DocumentHandle:
    """In-memory, mutable PDF; serialized exactly once."""

    def __init__(
        self,
        writer: PdfWriter,
        reader: PdfReader | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._writer = writer
        self._reader = reader
        self.settings = settings or load_settings()
        self._pages: dict[int, Page] = {}
        self._dirty: List[Page] = []
        self._modified = False
        self._serialized = False

    @property
    def page_count(self) -> int:
        return len(self._writer.pages)

    def page(self, index: int) -> Page:
        if not 0 <= index < self.page_count:
            raise ValidationError(f"Page {index + 1} is out of range")
        wrapper = self._pages.get(index)
        if wrapper is None:
            wrapper = Page(self, self._writer.pages[index], index)
            self._pages[index] = wrapper
        return wrapper

    @property
    def pages(self) -> List[Page]:
        return [self.page(index) for index in range(self.page_count)]

    def _source_page(self, index: int) -> PageObject:
        if self._reader is not None and not self._modified:
            return self._reader.pages[index]
        self._flush()
        return self._writer.pages[index]

    def _append(self, source: PageObject) -> Page:
        added = self._writer.add_page(source)
        _detach_page(self._writer, added)
        self._modified = True
        index = self.page_count - 1
        wrapper = Page(self, added, index)
        self._pages[index] = wrapper
        return wrapper

    def _mark_dirty(self, page: Page) -> None:
        self._modified = True
        if page not in self._dirty:
            self._dirty.append(page)

    def _flush(self) -> None:
        for page in self._dirty:
            page._flush()
        self._dirty.clear()


def load(data: bytes, settings: Settings | None = None) -> DocumentHandle:
    """
    Load PDF bytes into a mutable handle.

    Raises:
        ContainerLoadError: If the bytes are empty, malformed or encrypted.
    """
    if not data:
        raise ContainerLoadError("PDF file is empty.")
    try:
        reader = PdfReader(BytesIO(data))
        encrypted = reader.is_encrypted
        if not encrypted:
            _ = len(reader.pages)
            writer = PdfWriter(clone_from=reader)
    except (PyPdfError, ValueError, KeyError, IndexError, TypeError, OSError) as error:
        raise ContainerLoadError() from error
    if encrypted:
        raise ContainerLoadError("PDF is encrypted")
    return DocumentHandle(writer, reader, settings)


def create_empty(settings: Settings | None = None) -> DocumentHandle:
    return DocumentHandle(PdfWriter(), None, settings)


def page_count(handle: DocumentHandle) -> int:
    return handle.page_count


def copy_pages(
    destination: DocumentHandle,
    source: DocumentHandle,
    indices: Sequence[int],
) -> List[Page]:
    """
    Append copies of ``source`` pages to ``destination``.

    Indices are 0-based and may repeat; output order follows ``indices`` and
    every copy is an independent page of the destination.
    """
    total = source.page_count
    copied: List[Page] = []
    for index in indices:
        if not 0 <= index < total:
            raise ValidationError(f"Page {index + 1} is out of range")
        copied.append(destination._append(source._source_page(index)))
    return copied


def add_page(handle: DocumentHandle, page: Page) -> Page:
    """Append ``page`` to ``handle``, copying it when it belongs to another document."""
    if page.document is handle:
        return page
    return handle._append(page.document._source_page(page.index))


def add_blank_page(handle: DocumentHandle, width: float, height: float) -> Page:
    handle._writer.add_blank_page(width=width, height=height)
    handle._modified = True
    return handle.page(handle.page_count - 1)


def serialize(handle: DocumentHandle) -> bytes:
    """Write queued drawing into the pages and return the PDF bytes."""
    if handle._serialized:
        raise ContainerError("Document was already serialized")
    handle._flush()
    for page in handle._writer.pages:
        page.compress_content_streams()
    buffer = BytesIO()
    handle._writer.write(buffer)
    handle._serialized = True
    LOGGER.debug("Serialized %d page(s), %d bytes", handle.page_count, buffer.tell())
    return buffer.getvalue()
