"""
Domain layer for document conversion.

Provides the job registry, the conversion dispatcher and its strategies, the
lifecycle service and the retention sweeper, plus gateway interfaces so the
external engines (LibreOffice, Tesseract, OpenAI, Docling) and front-ends
(HTTP or others) can be swapped without touching the core.
"""

from .dispatcher import ConversionDispatcher
from .errors import (
    ArchivingFailed,
    ArtifactMissing,
    ConversionError,
    JobNotFound,
    JobStateConflict,
    NoExtractableImages,
    NoExtractableText,
    RenderingFailed,
    UnsupportedConversion,
    UploadTooLarge,
    UpstreamServiceFailed,
)
from .interfaces import CompletionGateway, JobStore, MarkdownGateway, OcrGateway, RendererGateway
from .models import ConversionKind, Job, JobStatus
from .registry import InMemoryJobStore, JobRegistry
from .service import ConversionService
from .storage import ArtifactStore
from .sweeper import RetentionSweeper
