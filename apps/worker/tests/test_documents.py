from io import BytesIO

import fitz
import pytest
from pypdf import PdfWriter

from conftest import image_boxes, make_image, make_pdf, make_text_pdf, page_widths
from silkpdf_engine import documents
from silkpdf_engine.errors import ContainerError, ContainerLoadError, ValidationError
from silkpdf_engine.images import decode_image


def _page_texts(data: bytes) -> list:
    with fitz.open(stream=data, filetype="pdf") as document:
        return [page.get_text() for page in document]


def test_copy_pages_keeps_index_order_with_repeats() -> None:
    """Copies follow the requested order, repeated indices included."""
    source = documents.load(make_pdf([(101, 100), (102, 100), (103, 100)]))
    destination = documents.create_empty()

    copied = documents.copy_pages(destination, source, [2, 0, 2])
    assert [page.index for page in copied] == [0, 1, 2]
    assert documents.page_count(destination) == 3
    assert page_widths(documents.serialize(destination)) == [103, 101, 103]


def test_copy_pages_rejects_out_of_range_index() -> None:
    """Indices outside the source document are refused."""
    source = documents.load(make_pdf([(100, 100)]))
    with pytest.raises(ValidationError):
        documents.copy_pages(documents.create_empty(), source, [0, 1])


def test_repeated_copies_draw_independently() -> None:
    """Drawing on one copy of a page leaves the other copies untouched."""
    source = documents.load(make_text_pdf(pages=2))
    destination = documents.create_empty()
    copies = documents.copy_pages(destination, source, [1, 0, 1])

    copies[0].draw_image(decode_image(make_image((40, 20))), 10, 10, 80, 40)
    copies[2].draw_text("STAMP", 20, 200, 18)
    output = documents.serialize(destination)

    assert [len(image_boxes(output, index)) for index in range(3)] == [1, 0, 0]
    texts = _page_texts(output)
    assert ["STAMP" in text for text in texts] == [False, False, True]
    assert all("Hello Silk" in text for text in texts)


def test_copy_from_drawn_source_carries_drawing() -> None:
    """Pending drawing on the source is part of the copied page."""
    source = documents.load(make_pdf([(300, 300)]))
    source.page(0).draw_text("MARK", 50, 50, 20)
    destination = documents.create_empty()

    documents.copy_pages(destination, source, [0, 0])
    assert ["MARK" in text for text in _page_texts(documents.serialize(destination))] == [True, True]


def test_add_page_from_another_document() -> None:
    """A page from another handle is copied in; the source keeps its own."""
    source = documents.load(make_pdf([(150, 100)]))
    destination = documents.load(make_pdf([(101, 100)]))

    added = documents.add_page(destination, source.page(0))
    assert added.document is destination
    assert added.index == 1
    assert (added.width, added.height) == (150, 100)
    assert page_widths(documents.serialize(destination)) == [101, 150]
    assert page_widths(documents.serialize(source)) == [150]


def test_add_page_from_same_document_is_a_no_op() -> None:
    """A page already owned by the handle is returned as is."""
    handle = documents.load(make_pdf([(100, 100)]))
    page = handle.page(0)
    assert documents.add_page(handle, page) is page
    assert documents.page_count(handle) == 1


def test_add_blank_page() -> None:
    """Blank pages are appended with the requested size."""
    handle = documents.create_empty()
    page = documents.add_blank_page(handle, 595.28, 841.89)
    assert page.index == 0
    assert page.width == pytest.approx(595.28)
    assert page.height == pytest.approx(841.89)
    assert documents.page_count(handle) == 1


def test_serialize_only_once() -> None:
    """A handle is consumed by serialization."""
    handle = documents.load(make_pdf([(100, 100)]))
    documents.serialize(handle)
    with pytest.raises(ContainerError):
        documents.serialize(handle)


def test_page_index_out_of_range() -> None:
    """Asking for a page the document does not have is a validation error."""
    handle = documents.load(make_pdf([(100, 100)]))
    with pytest.raises(ValidationError):
        handle.page(1)


@pytest.mark.parametrize("data", [b"", b"%PDF-1.7 not really"])
def test_load_rejects_malformed_bytes(data: bytes) -> None:
    """Empty or malformed bytes fail to load."""
    with pytest.raises(ContainerLoadError):
        documents.load(data)


def test_load_rejects_encrypted_pdf() -> None:
    """Encrypted documents are refused."""
    writer = PdfWriter()
    writer.add_blank_page(width=100, height=100)
    writer.encrypt("secret", algorithm="RC4-128")
    buffer = BytesIO()
    writer.write(buffer)

    with pytest.raises(ContainerLoadError, match="encrypted"):
        documents.load(buffer.getvalue())
