"""
Command-line interface for the SilkPDF engine.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import click

from .engine import process
from .errors import SilkPdfError
from .options import (
    CompressionLevel,
    CompressOptions,
    ImagesToPdfOptions,
    InputFile,
    Margin,
    MergeOptions,
    NormalizedPosition,
    OperationKind,
    OperationOptions,
    Orientation,
    PagePreviewOptions,
    PdfToWordOptions,
    SignOptions,
    SplitMode,
    SplitOptions,
    WatermarkOptions,
)

INPUT_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


def _run(
    ctx: click.Context,
    kind: OperationKind,
    paths: Sequence[Path],
    options: OperationOptions,
) -> None:
    output_dir: Path = ctx.obj["output_dir"]
    try:
        artifact = process(kind, [InputFile.from_path(path) for path in paths], options)
    except SilkPdfError as error:
        raise click.ClickException(error.message) from error
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / artifact.name
    target.write_bytes(artifact.data)
    click.echo(str(target))


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--output-dir", "-o",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory the result is written to",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every processing step")
@click.pass_context
def cli(ctx: click.Context, output_dir: Path, verbose: bool) -> None:
    """
    SilkPDF - merge, split, compress, sign, watermark and convert PDFs.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["output_dir"] = output_dir


@cli.command()
@click.argument("inputs", nargs=-1, required=True, type=INPUT_FILE)
@click.pass_context
def merge(ctx: click.Context, inputs: Sequence[Path]) -> None:
    """Merge PDFs in the order given."""
    _run(ctx, OperationKind.MERGE, inputs, MergeOptions())


@cli.command()
@click.argument("input_pdf", type=INPUT_FILE)
@click.option("--range", "-r", "page_range", default="", help='Pages to extract, e.g. "1-5,8"')
@click.option("--all", "all_pages", is_flag=True, help="Write every page to its own PDF (zipped)")
@click.pass_context
def split(ctx: click.Context, input_pdf: Path, page_range: str, all_pages: bool) -> None:
    """
    Extract a page range, or split every page.

    Examples:

        silkpdf split report.pdf -r "1-3,7"

        silkpdf split report.pdf --all
    """
    mode = SplitMode.ALL if all_pages else SplitMode.RANGE
    _run(ctx, OperationKind.SPLIT, [input_pdf], SplitOptions(mode=mode, page_range=page_range))


@cli.command()
@click.argument("input_pdf", type=INPUT_FILE)
@click.option(
    "--level", "-l",
    type=click.Choice([level.value for level in CompressionLevel]),
    default=CompressionLevel.STANDARD.value,
    show_default=True,
)
@click.pass_context
def compress(ctx: click.Context, input_pdf: Path, level: str) -> None:
    """Compress a PDF; strong and extreme rasterize every page."""
    _run(ctx, OperationKind.COMPRESS, [input_pdf], CompressOptions(CompressionLevel(level)))


@cli.command()
@click.argument("images", nargs=-1, required=True, type=INPUT_FILE)
@click.option(
    "--orientation",
    type=click.Choice([item.value for item in Orientation]),
    default=Orientation.PORTRAIT.value,
    show_default=True,
)
@click.option(
    "--margin",
    type=click.Choice([item.value for item in Margin]),
    default=Margin.NONE.value,
    show_default=True,
)
@click.option("--preview", is_flag=True, help="Only lay out the first image")
@click.pass_context
def images(
    ctx: click.Context,
    images: Sequence[Path],
    orientation: str,
    margin: str,
    preview: bool,
) -> None:
    """Put JPG/PNG images on A4 pages, one per page."""
    options = ImagesToPdfOptions(Orientation(orientation), Margin(margin))
    kind = OperationKind.IMAGE_PREVIEW if preview else OperationKind.IMAGES_TO_PDF
    _run(ctx, kind, images, options)


@cli.command()
@click.argument("input_pdf", type=INPUT_FILE)
@click.option("--signature", "-s", "signature", type=INPUT_FILE, help="Signature image (PNG)")
@click.option("--x", "x_ratio", default=0.35, show_default=True, help="Left edge, 0-1 of page width")
@click.option("--y", "y_ratio", default=0.35, show_default=True, help="Top edge, 0-1 of page height")
@click.option("--width-ratio", default=0.3, show_default=True, help="Signature width, 0-1 of page width")
@click.option("--page", "page_number", default=1, show_default=True, help="1-based page to sign")
@click.pass_context
def sign(
    ctx: click.Context,
    input_pdf: Path,
    signature: Path | None,
    x_ratio: float,
    y_ratio: float,
    width_ratio: float,
    page_number: int,
) -> None:
    """Place a signature image on one page."""
    try:
        options = SignOptions(
            signature_image=signature.read_bytes() if signature else None,
            position=NormalizedPosition(x_ratio, y_ratio),
            width_ratio=width_ratio,
            target_page_index=page_number - 1,
        )
    except SilkPdfError as error:
        raise click.BadParameter(error.message) from error
    _run(ctx, OperationKind.SIGN, [input_pdf], options)


@cli.command()
@click.argument("input_pdf", type=INPUT_FILE)
@click.option("--text", "-t", required=True, help="Watermark text")
@click.option("--font-size", default=48.0, show_default=True)
@click.pass_context
def watermark(ctx: click.Context, input_pdf: Path, text: str, font_size: float) -> None:
    """Tile a diagonal text watermark over every page."""
    try:
        options = WatermarkOptions(text=text, font_size=font_size)
    except SilkPdfError as error:
        raise click.BadParameter(error.message) from error
    _run(ctx, OperationKind.WATERMARK, [input_pdf], options)


@cli.command(name="to-word")
@click.argument("input_pdf", type=INPUT_FILE)
@click.pass_context
def to_word(ctx: click.Context, input_pdf: Path) -> None:
    """Convert a PDF to a Word-compatible .doc."""
    _run(ctx, OperationKind.PDF_TO_WORD, [input_pdf], PdfToWordOptions())


@cli.command()
@click.argument("input_pdf", type=INPUT_FILE)
@click.option("--page", "page_number", default=1, show_default=True, help="1-based page to render")
@click.option("--scale", default=1.0, show_default=True)
@click.pass_context
def preview(ctx: click.Context, input_pdf: Path, page_number: int, scale: float) -> None:
    """Render one page to PNG."""
    try:
        options = PagePreviewOptions(page_index=page_number - 1, scale=scale)
    except SilkPdfError as error:
        raise click.BadParameter(error.message) from error
    _run(ctx, OperationKind.PAGE_PREVIEW, [input_pdf], options)


def main() -> None:
    """Entrypoint for the ``silkpdf`` console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
