from pathlib import Path
from typing import Callable, Protocol

from .models import Job


class JobStore(Protocol):
    """Backing store for job records; single-record operations must be atomic."""

    def get(self, job_id: str) -> Job | None:
        ...

    def put(self, job: Job) -> None:
        ...

    def update(self, job_id: str, fn: Callable[[Job], Job]) -> Job | None:
        """Replace the record with `fn(record)` in one step; None if it is absent."""
        ...

    def delete(self, job_id: str) -> None:
        ...

    def values(self) -> list[Job]:
        ...


class RendererGateway(Protocol):
    def render(self, source: Path, target_format: str, out_dir: Path) -> Path:
        """Render `source` into exactly one `<source stem>.<ext>` file in `out_dir`.

        This is a blocking call; callers should offload to threads if needed.
        Raises RenderingFailed when the engine fails or produces nothing.
        """


class OcrGateway(Protocol):
    def recognize(self, path: Path) -> str:
        ...


class CompletionGateway(Protocol):
    def complete(self, prompt: str) -> str:
        """Send a single prompt and return the text response.

        Raises UpstreamServiceFailed on any request failure or empty answer.
        """


class MarkdownGateway(Protocol):
    def convert_to_markdown(self, input_uri: str) -> str:
        ...
