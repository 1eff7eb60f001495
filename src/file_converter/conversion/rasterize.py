"""
Multi-page document to raster conversion.

A single-page document is rendered straight to `<base>.<fmt>`. A multi-page
document is split into one-page PDFs which are rendered one at a time, so a
page the renderer chokes on only drops that page; the surviving images are
bundled, in page order, into `<base>-<fmt>.zip`. All intermediate files live
in a scratch directory that is removed on every exit path.
"""

import logging
import shutil
from pathlib import Path

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from .archive import write_archive
from .errors import RenderingFailed
from .interfaces import RendererGateway
from .storage import scratch_dir

logger = logging.getLogger(__name__)


def pdf_to_images(
    pdf_path: Path,
    base_name: str,
    out_dir: Path,
    renderer: RendererGateway,
    *,
    fmt: str = "png",
) -> Path:
    """Render every page of `pdf_path`; return one image (1 page) or one archive."""
    reader = PdfReader(pdf_path)
    page_count = len(reader.pages)
    if page_count == 0:
        raise RenderingFailed(f"{base_name} has no pages to render")

    with scratch_dir(out_dir, prefix=f".{fmt}-") as work:
        if page_count == 1:
            return _render_single_page(pdf_path, base_name, out_dir, work, renderer, fmt)

        images: list[Path] = []
        for index, page in enumerate(reader.pages, start=1):
            page_pdf = work / f"{base_name}-page-{index}.pdf"
            try:
                writer = PdfWriter()
                writer.add_page(page)
                writer.write(page_pdf)
                image = renderer.render(page_pdf, fmt, work)
                if not image.is_file():
                    raise RenderingFailed(f"renderer produced no output for page {index}")
            except (RenderingFailed, PyPdfError, OSError) as e:
                logger.warning("skipping page %d/%d of %s: %s", index, page_count, base_name, e)
                continue
            images.append(image)

        if not images:
            raise RenderingFailed(f"none of the {page_count} pages of {base_name} could be rendered")
        if len(images) < page_count:
            logger.info("rendered %d of %d pages of %s", len(images), page_count, base_name)

        return write_archive(images, out_dir / f"{base_name}-{fmt}.zip")


def _render_single_page(
    pdf_path: Path,
    base_name: str,
    out_dir: Path,
    work: Path,
    renderer: RendererGateway,
    fmt: str,
) -> Path:
    renderer.render(pdf_path, fmt, work)
    produced = list(work.glob(f"*.{fmt}"))
    if len(produced) != 1:
        raise RenderingFailed(f"expected one .{fmt} output for {base_name}, found {len(produced)}")
    output = out_dir / f"{base_name}.{fmt}"
    shutil.move(str(produced[0]), str(output))
    return output
