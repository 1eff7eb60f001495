from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum

PENDING_FORMAT = "pending"


class JobStatus:
    UPLOADED = "uploaded"
    CONVERTING = "converting"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = frozenset({UPLOADED, CONVERTING, COMPLETED, FAILED})
    # States from which a conversion request is accepted
    CONVERTIBLE = frozenset({UPLOADED, CONVERTING})


class ConversionKind(str, Enum):
    """Closed set of conversion kinds; the value is the public string tag."""

    JPG_TO_PDF = "jpg-to-pdf"
    PNG_TO_PDF = "png-to-pdf"
    PDF_TO_JPG = "pdf-to-jpg"
    PDF_TO_PNG = "pdf-to-png"
    WORD_TO_PDF = "word-to-pdf"
    EXCEL_TO_PDF = "excel-to-pdf"
    PPT_TO_PDF = "ppt-to-pdf"
    PDF_TO_WORD = "pdf-to-word"
    PDF_COMPRESS = "pdf-compress"
    PDF_MERGE = "pdf-merge"
    PDF_SPLIT = "pdf-split"
    PDF_TEXT = "pdf-text"
    PDF_IMAGES = "pdf-images"
    OCR = "ocr"
    PDF_EDITABLE_TEXT = "pdf-editable-text"
    PDF_SUMMARY = "pdf-summary"
    PDF_TABLE_EXTRACT = "pdf-table-extract"
    PDF_TO_MARKDOWN = "pdf-to-markdown"

    @property
    def target_format(self) -> str:
        return _TARGET_FORMATS[self]


_TARGET_FORMATS: dict[ConversionKind, str] = {
    ConversionKind.JPG_TO_PDF: "pdf",
    ConversionKind.PNG_TO_PDF: "pdf",
    ConversionKind.PDF_TO_JPG: "jpg",
    ConversionKind.PDF_TO_PNG: "png",
    ConversionKind.WORD_TO_PDF: "pdf",
    ConversionKind.EXCEL_TO_PDF: "pdf",
    ConversionKind.PPT_TO_PDF: "pdf",
    ConversionKind.PDF_TO_WORD: "docx",
    ConversionKind.PDF_COMPRESS: "pdf",
    ConversionKind.PDF_MERGE: "pdf",
    ConversionKind.PDF_SPLIT: "zip",
    ConversionKind.PDF_TEXT: "txt",
    ConversionKind.PDF_IMAGES: "zip",
    ConversionKind.OCR: "txt",
    ConversionKind.PDF_EDITABLE_TEXT: "txt",
    ConversionKind.PDF_SUMMARY: "txt",
    ConversionKind.PDF_TABLE_EXTRACT: "txt",
    ConversionKind.PDF_TO_MARKDOWN: "md",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Job:
    """One upload-through-cleanup lifecycle for a single input artifact.

    Records are immutable; the registry replaces them wholesale on update,
    so every revision goes through ``__post_init__`` and the output/status
    invariant is checked on each transition.
    """

    id: str
    original_filename: str
    original_format: str
    input_path: str
    file_size: int
    target_format: str = PENDING_FORMAT
    status: str = JobStatus.UPLOADED
    output_path: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    conversion_type: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.status not in JobStatus.ALL:
            raise ValueError(f"unknown job status: {self.status}")
        if (self.output_path is not None) != (self.status == JobStatus.COMPLETED):
            raise ValueError("output_path must be set exactly when the job is completed")

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat().replace("+00:00", "Z")
        return data
