"""Page rendering and positioned text extraction through PyMuPDF."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import List, Tuple

import fitz
from PIL import Image

from .errors import DependencyUnavailableError, RenderError
from .settings import Settings, load_settings

LOGGER = logging.getLogger("silkpdf.rasterizer")

_INIT_LOCK = threading.Lock()
_STATE = {"initialized": False}

Transform = Tuple[float, float, float, float, float, float]


@dataclass(frozen=True)
class TextRun:
    """A run of text and its affine transform in PDF space (bottom-left origin)."""

    text: str
    transform: Transform

    @property
    def x(self) -> float:
        return self.transform[4]

    @property
    def y(self) -> float:
        return self.transform[5]

    @property
    def font_size(self) -> float:
        a, b = self.transform[0], self.transform[1]
        return math.sqrt(a * a + b * b)


def initialize(settings: Settings | None = None) -> None:
    """Configure MuPDF once per process; later calls are no-ops."""
    if _STATE["initialized"]:
        return
    with _INIT_LOCK:
        if _STATE["initialized"]:
            return
        settings = settings or load_settings()
        if settings.render_quiet:
            fitz.TOOLS.mupdf_display_errors(False)
            fitz.TOOLS.mupdf_display_warnings(False)
        _STATE["initialized"] = True
        LOGGER.debug("Renderer initialized (PyMuPDF %s)", fitz.VersionBind)


def is_initialized() -> bool:
    return _STATE["initialized"]


def _require_renderer() -> None:
    if not _STATE["initialized"]:
        raise DependencyUnavailableError("PDF renderer is not initialized.")


def open_document(data: bytes) -> fitz.Document:
    """Open PDF bytes for rendering; close the result (or use it as a context manager)."""
    _require_renderer()
    try:
        document = fitz.open(stream=data, filetype="pdf")
    except Exception as error:  # noqa: BLE001
        raise RenderError("PDF appears to be corrupted or unreadable.") from error
    if document.needs_pass:
        document.close()
        raise RenderError("PDF is encrypted")
    return document


def _load_page(document: fitz.Document, page_index: int) -> fitz.Page:
    try:
        return document.load_page(page_index)
    except Exception as error:  # noqa: BLE001
        raise RenderError(f"Failed to load page {page_index + 1}") from error


def page_size(document: fitz.Document, page_index: int) -> Tuple[float, float]:
    """Visual page size in points at scale 1.0."""
    _require_renderer()
    rect = _load_page(document, page_index).rect
    return rect.width, rect.height


def render_page(document: fitz.Document, page_index: int, scale: float) -> Image.Image:
    """
    Rasterize one page to an RGB image of page size times ``scale`` pixels.

    The caller owns the returned image and should close it once consumed.
    """
    _require_renderer()
    page = _load_page(document, page_index)
    try:
        pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        return Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
    except Exception as error:  # noqa: BLE001
        raise RenderError(f"Failed to render page {page_index + 1}") from error


def extract_text_runs(document: fitz.Document, page_index: int) -> List[TextRun]:
    """Return each text span on the page with a transform whose scale encodes the font size."""
    _require_renderer()
    page = _load_page(document, page_index)
    try:
        content = page.get_text("dict")
    except Exception as error:  # noqa: BLE001
        raise RenderError(f"Failed to read text on page {page_index + 1}") from error
    height = page.rect.height
    runs: List[TextRun] = []
    for block in content.get("blocks", []):
        for line in block.get("lines", []):
            cos, sin = line.get("dir", (1.0, 0.0))
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text.strip():
                    continue
                size = float(span.get("size", 0))
                origin_x, origin_y = span.get("origin", (0.0, 0.0))
                # MuPDF reports a y-down direction vector; PDF space is y-up.
                a = size * cos
                b = -size * sin
                runs.append(
                    TextRun(
                        text=text,
                        transform=(a, b, -b, a, float(origin_x), height - float(origin_y)),
                    )
                )
    return runs
