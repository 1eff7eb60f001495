import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Iterable

from .archive import write_archive
from .dispatcher import ConversionDispatcher, base_name_of
from .errors import ArtifactMissing, JobNotFound, JobStateConflict, UploadTooLarge
from .models import ConversionKind, Job, JobStatus
from .registry import JobRegistry
from .storage import ArtifactStore, remove_path
from .sweeper import RetentionSweeper

logger = logging.getLogger(__name__)

CHUNK = 1024 * 1024


class ConversionService:
    """Core domain service driving conversion jobs through their lifecycle.

    This service is framework-agnostic and is the only writer of job records.
    Conversions are offloaded to worker threads, so a long-running render for
    one job never blocks requests for another.

        uploaded -> converting -> completed
                              \\-> failed
    """

    def __init__(
        self,
        registry: JobRegistry,
        artifacts: ArtifactStore,
        dispatcher: ConversionDispatcher,
        *,
        sweeper: RetentionSweeper | None = None,
    ) -> None:
        self._registry = registry
        self._artifacts = artifacts
        self._dispatcher = dispatcher
        self._sweeper = sweeper or RetentionSweeper(registry, artifacts)

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def sweeper(self) -> RetentionSweeper:
        return self._sweeper

    async def start(self) -> None:
        self._artifacts.ensure_dirs()
        await self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()

    def register_upload(self, input_path: str | Path, original_filename: str, file_size: int) -> Job:
        """Create a job for an artifact that is already fully written to disk."""
        job = self._registry.create(
            original_filename=original_filename,
            original_format=Path(original_filename).suffix.lstrip(".").lower(),
            input_path=str(input_path),
            file_size=file_size,
        )
        logger.info("job %s created for %s (%d bytes)", job.id, original_filename, file_size)
        return job

    async def create_job_from_upload(
        self,
        filename: str,
        reader: Callable[[int], Awaitable[bytes]],
        *,
        max_upload_mb: int,
    ) -> Job:
        """Stream an upload to the artifact store, then register it as a job."""
        original_name = filename or "upload"
        input_path = self._artifacts.new_upload_path(original_name)

        size_bytes = 0
        max_bytes = max_upload_mb * 1024 * 1024
        with input_path.open("wb") as f_out:
            while True:
                chunk = await reader(CHUNK)
                if not chunk:
                    break
                size_bytes += len(chunk)
                if size_bytes > max_bytes:
                    f_out.close()
                    remove_path(input_path)
                    raise UploadTooLarge(f"upload exceeds {max_upload_mb} MB")
                f_out.write(chunk)

        return self.register_upload(input_path, original_name, size_bytes)

    def get_job(self, job_id: str) -> Job:
        job = self._registry.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    async def convert(
        self,
        job_id: str,
        conversion_type: ConversionKind | str,
        additional_job_ids: Iterable[str] = (),
    ) -> Job:
        """Run one conversion for a job and record its outcome.

        Validation failures (unknown job or kind, wrong state, missing input)
        raise before the record is touched. Once the job is `converting`, any
        error or cancellation marks it `failed`, drops whatever output was
        already written, and is re-raised unchanged.
        """
        job = self.get_job(job_id)
        kind = ConversionDispatcher.resolve(conversion_type)
        if job.status not in JobStatus.CONVERTIBLE:
            raise JobStateConflict(f"job {job_id} is {job.status}; upload the file again to convert it")
        if not Path(job.input_path).is_file():
            raise ArtifactMissing(f"input file for job {job_id} is no longer available")
        extra_inputs = [self.get_job(other).input_path for other in additional_job_ids]

        self._registry.update(
            job_id,
            status=JobStatus.CONVERTING,
            target_format=kind.target_format,
            conversion_type=kind.value,
            error=None,
        )
        out_dir = self._artifacts.job_output_dir(job_id)
        try:
            result = await asyncio.to_thread(
                self._dispatcher.convert,
                job.input_path,
                kind,
                job.original_filename,
                extra_inputs,
                output_dir=out_dir,
            )
            if isinstance(result, list):
                bundle = out_dir / f"{base_name_of(job.original_filename)}-{kind.value}.zip"
                result = await asyncio.to_thread(_bundle, result, bundle)
        except BaseException as e:
            # cancellation included: the job must not stay `converting`
            reason = str(e) or type(e).__name__
            self._registry.update(job_id, status=JobStatus.FAILED, output_path=None, error=reason)
            self._artifacts.remove_job_outputs(job_id)
            logger.warning("job %s failed (%s): %s", job_id, kind.value, reason)
            raise

        updated = self._registry.update(job_id, status=JobStatus.COMPLETED, output_path=str(result))
        if updated is None:
            # purged while converting
            remove_path(result)
            raise JobNotFound(job_id)
        logger.info("job %s completed (%s) -> %s", job_id, kind.value, Path(result).name)
        return updated

    def open_result(self, job_id: str) -> Path:
        """Path of a completed job's output; ArtifactMissing if there is none on disk."""
        job = self.get_job(job_id)
        if not job.output_path:
            raise ArtifactMissing(f"result for job {job_id} is not available")
        path = Path(job.output_path)
        if not path.is_file():
            raise ArtifactMissing(f"result file for job {job_id} is no longer on the server")
        return path

    async def finish_download(self, job_id: str) -> None:
        """Called once a result finished streaming; arms delayed cleanup."""
        self._sweeper.schedule(job_id)


def _bundle(files: list[Path], dest: Path) -> Path:
    write_archive(files, dest)
    for f in files:
        remove_path(f)
    return dest
