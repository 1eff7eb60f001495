import logging
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


def remove_path(path: str | Path | None) -> None:
    """Delete a file or directory tree; cleanup is best-effort and never raises."""
    if not path:
        return
    p = Path(path)
    try:
        if p.is_dir():
            shutil.rmtree(p)
        else:
            p.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("cleanup of %s failed: %s", p, e)


@contextmanager
def scratch_dir(parent: Path, prefix: str = "work-") -> Iterator[Path]:
    """Yield a uniquely named working directory under `parent`, removed on exit."""
    parent.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    try:
        yield path
    finally:
        remove_path(path)


class ArtifactStore:
    """Filesystem layout for uploaded inputs and produced outputs.

    DATA_DIR/uploads/<random><ext>   uploaded artifacts
    DATA_DIR/converted/<job id>/     everything a job's conversion produced
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._base = Path(data_dir).resolve()

    @property
    def uploads_dir(self) -> Path:
        return self._base / "uploads"

    @property
    def converted_dir(self) -> Path:
        return self._base / "converted"

    def ensure_dirs(self) -> None:
        for d in (self.uploads_dir, self.converted_dir):
            d.mkdir(parents=True, exist_ok=True)

    def new_upload_path(self, original_filename: str) -> Path:
        # Keep the last suffix only; the stored name never contains client text
        ext = Path(original_filename).suffix.lower()
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        return self.uploads_dir / f"{uuid.uuid4().hex}{ext}"

    def job_output_dir(self, job_id: str) -> Path:
        d = self.converted_dir / job_id
        d.mkdir(parents=True, exist_ok=True)
        return d

    def remove(self, path: str | Path | None) -> None:
        remove_path(path)

    def remove_job_outputs(self, job_id: str) -> None:
        remove_path(self.converted_dir / job_id)
