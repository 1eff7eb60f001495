"""
Conversion strategies.

Each strategy takes existing input artifact(s), a base name and an output
directory, writes new artifact(s) there and returns their path(s). Inputs are
never modified or deleted. Strategies that need an external engine receive it
as a gateway argument; the dispatcher binds them.
"""

import re
import shutil
from pathlib import Path
from typing import Sequence

from PIL import Image
from pypdf import PdfReader, PdfWriter

from .errors import NoExtractableImages, NoExtractableText
from .interfaces import CompletionGateway, MarkdownGateway, OcrGateway, RendererGateway
from .storage import scratch_dir


NO_TEXT_SENTINEL = "No text found (scanned PDF?)"

SUMMARY_PROMPT = "Summarize this document:\n{text}"
TABLES_PROMPT = "Extract all tabular data from the following text. Return in JSON format:\n\n{text}"

# Characters XML 1.0 (and therefore .docx) cannot carry
_XML_INVALID = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _write_text(path: Path, text: str) -> Path:
    with path.open("w", encoding="utf-8") as f:
        f.write(text)
    return path


def image_to_pdf(image_path: Path, base_name: str, out_dir: Path) -> Path:
    """Wrap one raster image as a single PDF page sized to its pixel dimensions."""
    output = out_dir / f"{base_name}.pdf"
    with Image.open(image_path) as img:
        page = img.convert("RGB")
    # At 72 dpi one pixel is one PDF point, so the page matches the image size
    page.save(output, "PDF", resolution=72.0)
    return output


def office_to_pdf(input_path: Path, base_name: str, out_dir: Path, renderer: RendererGateway) -> Path:
    output = out_dir / f"{base_name}.pdf"
    # The renderer names its output after the stored upload; render aside and rename
    with scratch_dir(out_dir, prefix=".office-") as work:
        rendered = renderer.render(input_path, "pdf", work)
        shutil.move(str(rendered), str(output))
    return output


def extract_text(pdf_path: Path) -> str:
    """Concatenate per-page text in page order, or return NO_TEXT_SENTINEL."""
    reader = PdfReader(pdf_path)
    parts = [(page.extract_text() or "").strip() for page in reader.pages]
    text = "\n".join(p for p in parts if p)
    return text or NO_TEXT_SENTINEL


def extract_text_to_file(pdf_path: Path, base_name: str, out_dir: Path) -> Path:
    return _write_text(out_dir / f"{base_name}.txt", extract_text(pdf_path))


def pdf_to_word(pdf_path: Path, base_name: str, out_dir: Path) -> Path:
    """Plain-text rewrap into a single-paragraph .docx; layout is not preserved."""
    from docx import Document
    from docx.shared import Pt

    output = out_dir / f"{base_name}.docx"
    text = _XML_INVALID.sub("", extract_text(pdf_path))
    document = Document()
    run = document.add_paragraph().add_run(text)
    run.font.size = Pt(11)
    document.save(str(output))
    return output


def compress_pdf(pdf_path: Path, base_name: str, out_dir: Path) -> Path:
    """Re-serialize with compressed content streams and de-duplicated objects.

    Embedded images are left untouched; no downsampling happens here.
    """
    output = out_dir / f"{base_name}-compressed.pdf"
    writer = PdfWriter(clone_from=pdf_path)
    for page in writer.pages:
        page.compress_content_streams(level=9)
    writer.compress_identical_objects(remove_identicals=True, remove_orphans=True)
    writer.write(output)
    return output


def merge_pdfs(pdf_paths: Sequence[Path], base_name: str, out_dir: Path) -> Path:
    output = out_dir / f"{base_name}-merged.pdf"
    writer = PdfWriter()
    for path in pdf_paths:
        writer.append(str(path))
    writer.write(output)
    return output


def split_pdf(pdf_path: Path, base_name: str, out_dir: Path) -> list[Path]:
    reader = PdfReader(pdf_path)
    outputs: list[Path] = []
    for index, page in enumerate(reader.pages, start=1):
        writer = PdfWriter()
        writer.add_page(page)
        out = out_dir / f"{base_name}-page-{index}.pdf"
        writer.write(out)
        outputs.append(out)
    return outputs


def extract_images(pdf_path: Path, base_name: str, out_dir: Path) -> list[Path]:
    """Write every embedded image, numbered across the whole document in encounter order."""
    reader = PdfReader(pdf_path)
    outputs: list[Path] = []
    for page in reader.pages:
        for image in page.images:
            ext = Path(image.name).suffix or ".png"
            out = out_dir / f"{base_name}-img-{len(outputs) + 1}{ext}"
            out.write_bytes(image.data)
            outputs.append(out)
    if not outputs:
        raise NoExtractableImages(f"no embedded images found in {base_name}")
    return outputs


def ocr_to_text(input_path: Path, base_name: str, out_dir: Path, ocr: OcrGateway) -> Path:
    return _write_text(out_dir / f"{base_name}-ocr.txt", ocr.recognize(input_path))


def _require_text(pdf_path: Path) -> str:
    text = extract_text(pdf_path)
    if text == NO_TEXT_SENTINEL:
        raise NoExtractableText("document contains no extractable text; try OCR first")
    return text


def summarize_pdf(pdf_path: Path, base_name: str, out_dir: Path, completion: CompletionGateway) -> Path:
    text = _require_text(pdf_path)
    summary = completion.complete(SUMMARY_PROMPT.format(text=text))
    return _write_text(out_dir / f"{base_name}-summary.txt", summary)


def extract_tables(pdf_path: Path, base_name: str, out_dir: Path, completion: CompletionGateway) -> Path:
    text = _require_text(pdf_path)
    tables = completion.complete(TABLES_PROMPT.format(text=text))
    return _write_text(out_dir / f"{base_name}-tables.txt", tables)


def pdf_to_markdown(input_path: Path, base_name: str, out_dir: Path, markdown: MarkdownGateway) -> Path:
    md = markdown.convert_to_markdown(str(input_path))
    return _write_text(out_dir / f"{base_name}.md", md)
