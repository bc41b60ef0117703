import re
import zipfile
from io import BytesIO
from unittest.mock import patch

import pytest

from conftest import make_image, make_pdf, make_text_pdf, page_widths
from silkpdf_engine import rasterizer
from silkpdf_engine.engine import HANDLERS, build_artifact_name, process
from silkpdf_engine.errors import (
    ContainerError,
    ContainerLoadError,
    DependencyUnavailableError,
    ValidationError,
)
from silkpdf_engine.options import (
    CompressionLevel,
    CompressOptions,
    ImagesToPdfOptions,
    InputFile,
    MergeOptions,
    OperationKind,
    PagePreviewOptions,
    SplitMode,
    SplitOptions,
    WatermarkOptions,
)
from silkpdf_engine.settings import Settings


def test_every_operation_has_a_handler() -> None:
    """The dispatch table covers every operation kind."""
    assert set(HANDLERS) == set(OperationKind)


def test_process_merge_artifact() -> None:
    """Return a named PDF artifact for merge."""
    artifact = process(
        OperationKind.MERGE,
        [make_pdf([(101, 100)]), InputFile(make_pdf([(102, 100)]), "b.pdf")],
    )
    assert re.fullmatch(r"merged_silk_\d+\.pdf", artifact.name)
    assert artifact.mime_type == "application/pdf"
    assert page_widths(artifact.data) == [101, 102]
    assert artifact.size == len(artifact.data)


def test_process_accepts_operation_string() -> None:
    """Operation kinds may be given by value."""
    artifact = process("split", [make_pdf([(100, 100)] * 3)], SplitOptions(page_range="2"))
    assert artifact.name.startswith("split_range_silk_")


def test_process_watermark_with_default_options() -> None:
    """Without watermark text the document comes back unchanged."""
    artifact = process("edit", [make_pdf([(120, 100), (130, 100)])])
    assert re.fullmatch(r"watermarked_silk_\d+\.pdf", artifact.name)
    assert page_widths(artifact.data) == [120, 130]


def test_process_split_all_returns_archive() -> None:
    """Split-all produces a zip with one entry per page."""
    artifact = process(
        OperationKind.SPLIT,
        [make_pdf([(100, 100)] * 4)],
        SplitOptions(mode=SplitMode.ALL),
    )
    assert artifact.mime_type == "application/zip"
    assert re.fullmatch(r"split_all_pages_silk_\d+\.zip", artifact.name)
    with zipfile.ZipFile(BytesIO(artifact.data)) as bundle:
        assert len(bundle.namelist()) == 4


def test_process_empty_split_range_is_validation_error() -> None:
    """The message is meant to be shown to the user as is."""
    with pytest.raises(ValidationError) as raised:
        process(OperationKind.SPLIT, [make_pdf([(100, 100)])], SplitOptions(page_range="abc"))
    assert raised.value.message == "Invalid page range or no pages selected."


@pytest.mark.parametrize("kind", list(OperationKind))
def test_process_requires_files(kind: OperationKind) -> None:
    """Every operation needs at least one input."""
    with pytest.raises(ValidationError):
        process(kind, [])


def test_process_rejects_mismatched_options() -> None:
    """Options must match the operation kind."""
    with pytest.raises(ValidationError):
        process(OperationKind.MERGE, [make_pdf([(100, 100)])], SplitOptions())


def test_process_rejects_unknown_operation() -> None:
    """Unknown operations fail validation."""
    with pytest.raises(ValidationError):
        process("rotate", [make_pdf([(100, 100)])])


def test_process_malformed_pdf() -> None:
    """Malformed input surfaces as a load error."""
    with pytest.raises(ContainerLoadError):
        process(OperationKind.COMPRESS, [b"%PDF-1.7 broken"], CompressOptions())


def test_process_wraps_unexpected_errors() -> None:
    """Library errors are summarized with the generic message and chained."""
    with patch("silkpdf_engine.tools.merge_pdfs", side_effect=RuntimeError("")):
        with pytest.raises(ContainerError) as raised:
            process(OperationKind.MERGE, [make_pdf([(100, 100)])], MergeOptions())
    assert raised.value.message == "Failed to process file."
    assert isinstance(raised.value.__cause__, RuntimeError)


def test_process_initializes_renderer(monkeypatch: pytest.MonkeyPatch) -> None:
    """Raster operations initialize the renderer on demand."""
    monkeypatch.setitem(rasterizer._STATE, "initialized", False)
    artifact = process(
        OperationKind.COMPRESS,
        [make_text_pdf()],
        CompressOptions(CompressionLevel.EXTREME),
    )
    assert rasterizer.is_initialized()
    assert len(page_widths(artifact.data)) == 1


def test_renderer_must_be_initialized(monkeypatch: pytest.MonkeyPatch) -> None:
    """Using the renderer before initialization is a dependency error."""
    monkeypatch.setitem(rasterizer._STATE, "initialized", False)
    with pytest.raises(DependencyUnavailableError):
        rasterizer.open_document(make_pdf([(100, 100)]))


def test_process_reports_progress() -> None:
    """The progress callback fires at each page boundary."""
    steps = []
    process(
        OperationKind.WATERMARK,
        [make_pdf([(300, 300)] * 3)],
        WatermarkOptions(text="COPY"),
        progress=lambda done, total: steps.append((done, total)),
    )
    assert steps == [(1, 3), (2, 3), (3, 3)]


def test_process_pdf_to_word_artifact() -> None:
    """Markup export is served as a legacy Word document."""
    artifact = process(OperationKind.PDF_TO_WORD, [make_text_pdf()])
    assert artifact.mime_type == "application/msword"
    assert re.fullmatch(r"converted_silk_\d+\.doc", artifact.name)
    assert b"Hello Silk" in artifact.data


def test_process_image_preview_uses_first_image() -> None:
    """The preview lays out only the first image."""
    images = [InputFile(make_image((50, 50)), "a.png"), InputFile(make_image((60, 60)), "b.png")]
    artifact = process(OperationKind.IMAGE_PREVIEW, images, ImagesToPdfOptions())
    assert artifact.name.startswith("preview_silk_")
    assert page_widths(artifact.data) == [pytest.approx(595.28)]


def test_process_page_preview() -> None:
    """Page preview returns a PNG."""
    artifact = process(
        OperationKind.PAGE_PREVIEW,
        [make_pdf([(120, 80)])],
        PagePreviewOptions(scale=0.5),
    )
    assert artifact.mime_type == "image/png"
    assert artifact.data.startswith(b"\x89PNG")


def test_build_artifact_name() -> None:
    """Names follow operation, tag and timestamp."""
    assert build_artifact_name(OperationKind.SIGN, None, "silk", 1700000000000) == (
        "signed_silk_1700000000000.pdf",
        "application/pdf",
    )
    assert build_artifact_name(
        OperationKind.SPLIT, SplitOptions(mode=SplitMode.ALL), "acme", 5
    ) == ("split_all_pages_acme_5.zip", "application/zip")


def test_process_uses_configured_tag() -> None:
    """The artifact tag comes from settings."""
    artifact = process(
        OperationKind.COMPRESS,
        [make_pdf([(100, 100)])],
        settings=Settings(artifact_tag="acme"),
    )
    assert artifact.name.startswith("compressed_acme_")
