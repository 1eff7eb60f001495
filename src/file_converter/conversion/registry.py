import threading
import uuid
from dataclasses import replace
from typing import Callable

from .interfaces import JobStore
from .models import Job


class InMemoryJobStore(JobStore):
    """Process-local job store. State is lost on restart."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            return self._jobs.get(job_id)

    def put(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def update(self, job_id: str, fn: Callable[[Job], Job]) -> Job | None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            updated = fn(job)
            self._jobs[job_id] = updated
            return updated

    def delete(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)

    def values(self) -> list[Job]:
        with self._lock:
            return list(self._jobs.values())


class JobRegistry:
    """Job lifecycle records on top of a pluggable JobStore."""

    def __init__(self, store: JobStore | None = None) -> None:
        self._store = store if store is not None else InMemoryJobStore()

    def get(self, job_id: str) -> Job | None:
        return self._store.get(job_id)

    def create(self, **fields: object) -> Job:
        """Create a record with a fresh id; status defaults to uploaded."""
        fields.pop("id", None)
        job = Job(id=str(uuid.uuid4()), **fields)  # type: ignore[arg-type]
        self._store.put(job)
        return job

    def update(self, job_id: str, **fields: object) -> Job | None:
        """Merge `fields` into the existing record; None if there is no such job."""
        return self._store.update(job_id, lambda job: replace(job, **fields))  # type: ignore[arg-type]

    def delete(self, job_id: str) -> None:
        self._store.delete(job_id)

    def all_jobs(self) -> list[Job]:
        return self._store.values()
