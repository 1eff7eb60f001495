import logging
import os
from pathlib import Path

from fastapi import FastAPI, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from file_converter import __version__
from file_converter.config import DATA_DIR, MAX_UPLOAD_MB
from file_converter.conversion import (
    ArchivingFailed,
    ArtifactMissing,
    ArtifactStore,
    ConversionDispatcher,
    ConversionService,
    InMemoryJobStore,
    JobNotFound,
    JobRegistry,
    JobStateConflict,
    NoExtractableImages,
    NoExtractableText,
    RenderingFailed,
    UnsupportedConversion,
    UploadTooLarge,
    UpstreamServiceFailed,
)
from file_converter.conversion.adapters import DoclingConverter, LibreOfficeRenderer, OpenAICompletion, TesseractOcr
from file_converter.logging_config import configure_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="File Conversion Service",
    version=os.getenv("FILE_CONVERTER_VERSION", __version__),
    description=(
        "RESTful API for converting uploaded documents between formats and "
        "extracting text, images, summaries and tables from them."
    ),
)

SERVICE: ConversionService | None = None

# Domain error -> (HTTP status, error code). Anything else is a 500.
_ERRORS: dict[type[Exception], tuple[int, str]] = {
    JobNotFound: (404, "not_found"),
    ArtifactMissing: (404, "not_ready"),
    UnsupportedConversion: (400, "unsupported_conversion"),
    JobStateConflict: (409, "conflict"),
    UploadTooLarge: (413, "payload_too_large"),
    NoExtractableText: (422, "no_extractable_text"),
    NoExtractableImages: (422, "no_extractable_images"),
    RenderingFailed: (500, "rendering_failed"),
    ArchivingFailed: (500, "archiving_failed"),
    UpstreamServiceFailed: (502, "upstream_failed"),
}


class ConvertRequest(BaseModel):
    conversion_type: str
    additional_job_ids: list[str] = Field(default_factory=list)


def _http_error(e: Exception) -> HTTPException:
    status_code, code = _ERRORS.get(type(e), (500, "conversion_failed"))
    return HTTPException(status_code=status_code, detail={"code": code, "message": str(e)})


def _service() -> ConversionService:
    if SERVICE is None:
        raise HTTPException(status_code=503, detail={"code": "unavailable", "message": "service not started"})
    return SERVICE


def build_service(data_dir: str | Path = DATA_DIR) -> ConversionService:
    artifacts = ArtifactStore(data_dir)
    registry = JobRegistry(InMemoryJobStore())
    dispatcher = ConversionDispatcher(
        artifacts,
        renderer=LibreOfficeRenderer(),
        ocr=TesseractOcr(),
        completion=OpenAICompletion(),
        markdown=DoclingConverter(),
    )
    return ConversionService(registry, artifacts, dispatcher)


@app.on_event("startup")
async def _startup() -> None:
    configure_logging()
    global SERVICE
    SERVICE = build_service()
    await SERVICE.start()
    logger.info("conversion service started, data dir %s", DATA_DIR)


@app.on_event("shutdown")
async def _shutdown() -> None:
    global SERVICE
    if SERVICE is not None:
        await SERVICE.stop()


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.post("/jobs", status_code=status.HTTP_201_CREATED)
async def create_job(file: UploadFile = File(...)) -> JSONResponse:
    """Create a new conversion job from an uploaded document.

    Accepts multipart/form-data with a single required part named "file".
    The upload is streamed to DATA_DIR/uploads/ with a size limit of
    MAX_UPLOAD_MB; the job starts in the `uploaded` state.
    """
    service = _service()

    async def read_chunk(n: int) -> bytes:
        return await file.read(n)

    try:
        job = await service.create_job_from_upload(file.filename or "upload", read_chunk, max_upload_mb=MAX_UPLOAD_MB)
    except UploadTooLarge as e:
        raise _http_error(e)

    body = {
        "id": job.id,
        "filename": job.original_filename,
        "file_size": job.file_size,
        "format": job.original_format,
        "status": job.status,
        "links": {
            "self": f"/jobs/{job.id}",
            "convert": f"/jobs/{job.id}/convert",
            "result": f"/jobs/{job.id}/result",
        },
    }
    headers = {"Location": f"/jobs/{job.id}"}
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=body, headers=headers)


@app.post("/jobs/{job_id}/convert")
async def convert_job(job_id: str, request: ConvertRequest) -> JSONResponse:
    """Run a conversion for an uploaded job and wait for its outcome."""
    service = _service()
    try:
        job = await service.convert(job_id, request.conversion_type, request.additional_job_ids)
    except Exception as e:
        # Surface the original failure message; the job record already says `failed`
        raise _http_error(e)
    return JSONResponse(content={"job": job.to_dict()})


@app.get("/jobs/{job_id}")
async def get_job(job_id: str) -> JSONResponse:
    try:
        job = _service().get_job(job_id)
    except JobNotFound as e:
        raise _http_error(e)
    return JSONResponse(content=job.to_dict())


@app.get("/jobs/{job_id}/result")
async def get_result(job_id: str) -> FileResponse:
    """Stream the job's output; cleanup is armed once the response is sent."""
    service = _service()
    try:
        path = service.open_result(job_id)
    except (JobNotFound, ArtifactMissing) as e:
        raise _http_error(e)
    return FileResponse(
        path,
        filename=path.name,
        background=BackgroundTask(service.finish_download, job_id),
    )


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    configure_logging()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    # Enable reload in dev unless explicitly disabled
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("file_converter.webapi:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
