"""Engine entry point: dispatch an operation and wrap the result as a named artifact."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Sequence, Tuple, Union

from . import rasterizer, tools
from .errors import ContainerError, SilkPdfError, ValidationError
from .options import (
    OPTIONS_BY_KIND,
    PDF_MIME,
    PNG_MIME,
    WORD_MIME,
    ZIP_MIME,
    CompressionLevel,
    InputFile,
    OperationKind,
    OperationOptions,
    ResultArtifact,
    SplitMode,
)
from .settings import Settings, load_settings

LOGGER = logging.getLogger("silkpdf.engine")

# kind -> (name stem, extension, MIME type)
OUTPUT_NAMES: Dict[OperationKind, Tuple[str, str, str]] = {
    OperationKind.MERGE: ("merged", "pdf", PDF_MIME),
    OperationKind.SPLIT: ("split_range", "pdf", PDF_MIME),
    OperationKind.COMPRESS: ("compressed", "pdf", PDF_MIME),
    OperationKind.IMAGES_TO_PDF: ("images", "pdf", PDF_MIME),
    OperationKind.SIGN: ("signed", "pdf", PDF_MIME),
    OperationKind.WATERMARK: ("watermarked", "pdf", PDF_MIME),
    OperationKind.PDF_TO_WORD: ("converted", "doc", WORD_MIME),
    OperationKind.IMAGE_PREVIEW: ("preview", "pdf", PDF_MIME),
    OperationKind.PAGE_PREVIEW: ("preview_page", "png", PNG_MIME),
}

Handler = Callable[[List[InputFile], OperationOptions, Settings, tools.Progress], bytes]


def _needs_renderer(kind: OperationKind, options: OperationOptions) -> bool:
    if kind in (OperationKind.PDF_TO_WORD, OperationKind.PAGE_PREVIEW):
        return True
    return kind is OperationKind.COMPRESS and options.level is not CompressionLevel.STANDARD


def _merge(files, options, settings, progress) -> bytes:
    return tools.merge_pdfs([item.data for item in files], progress, settings)


def _split(files, options, settings, progress) -> bytes:
    if options.mode is SplitMode.ALL:
        return tools.split_pdf_pages(files[0].data, progress, settings)
    return tools.split_pdf_range(files[0].data, options.page_range, settings)


def _compress(files, options, settings, progress) -> bytes:
    return tools.compress_pdf(files[0].data, options.level, progress, settings)


def _images(files, options, settings, progress) -> bytes:
    return tools.images_to_pdf(files, options, progress, settings)


def _image_preview(files, options, settings, progress) -> bytes:
    return tools.images_to_pdf(files[:1], options, progress, settings)


def _sign(files, options, settings, progress) -> bytes:
    return tools.sign_pdf(files[0].data, options, settings)


def _watermark(files, options, settings, progress) -> bytes:
    return tools.watermark_pdf(files[0].data, options.text, options.font_size, progress, settings)


def _pdf_to_word(files, options, settings, progress) -> bytes:
    return tools.pdf_to_word(files[0].data, progress, settings)


def _page_preview(files, options, settings, progress) -> bytes:
    return tools.render_page_preview(files[0].data, options.page_index, options.scale)


HANDLERS: Dict[OperationKind, Handler] = {
    OperationKind.MERGE: _merge,
    OperationKind.SPLIT: _split,
    OperationKind.COMPRESS: _compress,
    OperationKind.IMAGES_TO_PDF: _images,
    OperationKind.SIGN: _sign,
    OperationKind.WATERMARK: _watermark,
    OperationKind.PDF_TO_WORD: _pdf_to_word,
    OperationKind.IMAGE_PREVIEW: _image_preview,
    OperationKind.PAGE_PREVIEW: _page_preview,
}

_MISSING = set(OperationKind) - set(HANDLERS)
if _MISSING:  # pragma: no cover - guards the dispatch table at import time
    raise RuntimeError(f"No handler for: {sorted(kind.value for kind in _MISSING)}")


def build_artifact_name(
    kind: OperationKind,
    options: OperationOptions,
    tag: str,
    timestamp_ms: int | None = None,
) -> Tuple[str, str]:
    """Return ``(file name, MIME type)`` following ``{operation}_{tag}_{timestamp}.{ext}``."""
    stem, extension, mime_type = OUTPUT_NAMES[kind]
    if kind is OperationKind.SPLIT and options.mode is SplitMode.ALL:
        stem, extension, mime_type = "split_all_pages", "zip", ZIP_MIME
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{stem}_{tag}_{timestamp_ms}.{extension}", mime_type


def _normalize_files(files: Sequence[Union[InputFile, bytes]]) -> List[InputFile]:
    normalized: List[InputFile] = []
    for item in files:
        if isinstance(item, InputFile):
            normalized.append(item)
        elif isinstance(item, (bytes, bytearray, memoryview)):
            normalized.append(InputFile(data=bytes(item)))
        else:
            raise ValidationError(f"Unsupported input of type {type(item).__name__}")
    return normalized


def _resolve_options(kind: OperationKind, options: OperationOptions | None) -> OperationOptions:
    expected = OPTIONS_BY_KIND[kind]
    if options is None:
        return expected()
    if not isinstance(options, expected):
        raise ValidationError(
            f"Options for {kind.value} must be {expected.__name__}, got {type(options).__name__}"
        )
    return options


def process(
    operation: OperationKind | str,
    files: Sequence[Union[InputFile, bytes]],
    options: OperationOptions | None = None,
    progress: tools.Progress = None,
    settings: Settings | None = None,
) -> ResultArtifact:
    """
    Run one operation over the input files and return its single artifact.

    Parameters:
        operation: Operation kind or its string value (e.g. ``"merge"``).
        files: Inputs as :class:`InputFile` or raw bytes, in the order they should be used.
        options: The options record matching ``operation``; defaults apply when omitted.
        progress: Optional ``(completed, total)`` callback fired at each page/file boundary.
        settings: Configuration; read from the environment when omitted.

    Raises:
        ValidationError: For bad input, before any document is opened.
        ContainerError: When an input cannot be processed. Errors raised by the
            underlying libraries are summarized into this type.
        DependencyUnavailableError: When a required library is unavailable.
    """
    try:
        kind = OperationKind(operation)
    except ValueError as error:
        raise ValidationError(f"Unsupported operation: {operation}") from error
    resolved = _resolve_options(kind, options)
    inputs = _normalize_files(files)
    if not inputs:
        raise ValidationError("At least one input file is required")
    settings = settings or load_settings()
    LOGGER.info("Running %s on %d file(s)", kind.value, len(inputs))

    try:
        if _needs_renderer(kind, resolved):
            rasterizer.initialize(settings)
        data = HANDLERS[kind](inputs, resolved, settings, progress)
    except SilkPdfError as error:
        LOGGER.error("%s failed: %s", kind.value, error.message)
        raise
    except Exception as error:  # noqa: BLE001
        LOGGER.error("%s failed", kind.value, exc_info=True)
        raise ContainerError(str(error)) from error

    name, mime_type = build_artifact_name(kind, resolved, settings.artifact_tag)
    return ResultArtifact(name=name, data=data, mime_type=mime_type)
