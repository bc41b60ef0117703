from io import BytesIO
from typing import Iterable, Tuple

import fitz
import pytest
from fpdf import FPDF
from PIL import Image
from pypdf import PdfReader, PdfWriter

from silkpdf_engine import rasterizer


def make_pdf(sizes: Iterable[Tuple[float, float]]) -> bytes:
    """Create a blank PDF with one page per (width, height)."""
    writer = PdfWriter()
    for width, height in sizes:
        writer.add_blank_page(width=width, height=height)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def make_text_pdf(pages: int = 1, text: str = "Hello Silk") -> bytes:
    """Create 300x300pt pages with ``text`` at (50, 100) from the top-left, 24pt."""
    pdf = FPDF(unit="pt", format=(300, 300))
    pdf.set_auto_page_break(auto=False)
    for _ in range(pages):
        pdf.add_page()
        pdf.set_font("Helvetica", size=24)
        pdf.text(50, 100, text)
    return bytes(pdf.output())


def make_image(size: Tuple[int, int], image_format: str = "PNG", mode: str = "RGB") -> bytes:
    """Create an image in memory."""
    color = (120, 140, 180, 200) if mode == "RGBA" else (120, 140, 180)
    image = Image.new(mode, size, color=color)
    buffer = BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


def page_widths(data: bytes) -> list:
    """Width of every page, used to identify pages across documents."""
    return [float(page.mediabox.width) for page in PdfReader(BytesIO(data)).pages]


def image_boxes(data: bytes, page_index: int = 0) -> list:
    """Bounding boxes (top-left origin) of images drawn on a page."""
    with fitz.open(stream=data, filetype="pdf") as document:
        return [fitz.Rect(info["bbox"]) for info in document[page_index].get_image_info()]


@pytest.fixture
def renderer() -> None:
    """Make sure the renderer is initialized for tests that rasterize."""
    rasterizer.initialize()
