import logging
from pathlib import Path
from typing import Callable, Sequence

from . import strategies
from .errors import UnsupportedConversion
from .interfaces import CompletionGateway, MarkdownGateway, OcrGateway, RendererGateway
from .models import ConversionKind
from .rasterize import pdf_to_images
from .storage import ArtifactStore

logger = logging.getLogger(__name__)


def base_name_of(original_filename: str) -> str:
    """Base name outputs are named after: the client filename without directory or suffix."""
    return Path(original_filename).stem or "document"


# (input path, base name, output dir, additional inputs) -> output path(s)
Strategy = Callable[[Path, str, Path, Sequence[Path]], "Path | list[Path]"]


class ConversionDispatcher:
    """Route a conversion kind to its strategy and run it.

    Holds no mutable state; safe to call concurrently for independent jobs.
    Strategy failures propagate unchanged apart from a note naming the kind.
    """

    def __init__(
        self,
        artifacts: ArtifactStore,
        *,
        renderer: RendererGateway,
        ocr: OcrGateway,
        completion: CompletionGateway,
        markdown: MarkdownGateway,
    ) -> None:
        self._artifacts = artifacts
        self._strategies = _strategy_table(renderer, ocr, completion, markdown)
        missing = [k.value for k in ConversionKind if k not in self._strategies]
        if missing:
            raise RuntimeError(f"no strategy registered for: {', '.join(missing)}")

    @staticmethod
    def resolve(conversion_type: ConversionKind | str) -> ConversionKind:
        try:
            return ConversionKind(conversion_type)
        except ValueError:
            raise UnsupportedConversion(str(conversion_type)) from None

    def convert(
        self,
        input_path: str | Path,
        conversion_type: ConversionKind | str,
        original_filename: str,
        additional_inputs: Sequence[str | Path] | None = None,
        *,
        output_dir: Path | None = None,
    ) -> Path | list[Path]:
        kind = self.resolve(conversion_type)
        base_name = base_name_of(original_filename)
        out_dir = output_dir if output_dir is not None else self._artifacts.converted_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        extra = [Path(p) for p in additional_inputs or ()]

        logger.info("running %s on %s", kind.value, original_filename)
        try:
            return self._strategies[kind](Path(input_path), base_name, out_dir, extra)
        except Exception as e:
            e.add_note(f"conversion kind: {kind.value}")
            logger.warning("%s failed for %s: %s", kind.value, original_filename, e)
            raise


def _strategy_table(
    renderer: RendererGateway,
    ocr: OcrGateway,
    completion: CompletionGateway,
    markdown: MarkdownGateway,
) -> dict[ConversionKind, Strategy]:
    K = ConversionKind

    def to_pdf(src, base, out, extra):
        return strategies.image_to_pdf(src, base, out)

    def office(src, base, out, extra):
        return strategies.office_to_pdf(src, base, out, renderer)

    def ocr_text(src, base, out, extra):
        return strategies.ocr_to_text(src, base, out, ocr)

    return {
        K.JPG_TO_PDF: to_pdf,
        K.PNG_TO_PDF: to_pdf,
        K.PDF_TO_JPG: lambda src, base, out, extra: pdf_to_images(src, base, out, renderer, fmt="jpg"),
        K.PDF_TO_PNG: lambda src, base, out, extra: pdf_to_images(src, base, out, renderer, fmt="png"),
        K.WORD_TO_PDF: office,
        K.EXCEL_TO_PDF: office,
        K.PPT_TO_PDF: office,
        K.PDF_TO_WORD: lambda src, base, out, extra: strategies.pdf_to_word(src, base, out),
        K.PDF_COMPRESS: lambda src, base, out, extra: strategies.compress_pdf(src, base, out),
        K.PDF_MERGE: lambda src, base, out, extra: strategies.merge_pdfs([src, *extra], base, out),
        K.PDF_SPLIT: lambda src, base, out, extra: strategies.split_pdf(src, base, out),
        K.PDF_TEXT: lambda src, base, out, extra: strategies.extract_text_to_file(src, base, out),
        K.PDF_IMAGES: lambda src, base, out, extra: strategies.extract_images(src, base, out),
        K.OCR: ocr_text,
        K.PDF_EDITABLE_TEXT: ocr_text,
        K.PDF_SUMMARY: lambda src, base, out, extra: strategies.summarize_pdf(src, base, out, completion),
        K.PDF_TABLE_EXTRACT: lambda src, base, out, extra: strategies.extract_tables(src, base, out, completion),
        K.PDF_TO_MARKDOWN: lambda src, base, out, extra: strategies.pdf_to_markdown(src, base, out, markdown),
    }
