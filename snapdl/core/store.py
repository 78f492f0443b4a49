from __future__ import annotations

import asyncio
import threading
from typing import Any

from snapdl.core.errors import InvalidTransition, JobNotFound
from snapdl.core.logging import logger
from snapdl.core.state import can_transition
from snapdl.schemas.models import Job


class JobStore:
    """
    In-memory job table owned by one app instance.

    Readers always get copies. Each job has a single writer (its runner), and
    the lock keeps the map itself consistent when it is touched from worker
    threads. Entries are never evicted.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def create(self, job: Job) -> str:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"duplicate job id: {job.id}")
            self._jobs[job.id] = job.model_copy()
        logger.debug("[STORE] created %s url=%s", job.id, job.url)
        return job.id

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def update(self, job_id: str, **fields: Any) -> Job:
        unknown = set(fields) - set(Job.model_fields)
        if unknown:
            raise ValueError(f"unknown job field(s): {', '.join(sorted(unknown))}")
        if "id" in fields and fields["id"] != job_id:
            raise InvalidTransition("job id is immutable")
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise JobNotFound(job_id)
            if current.status.is_terminal:
                raise InvalidTransition(f"job {job_id} is already {current.status.value}")
            merged = Job.model_validate({**current.model_dump(), **fields})
            if not can_transition(current.status, merged.status):
                raise InvalidTransition(
                    f"job {job_id}: {current.status.value} -> {merged.status.value}"
                )
            self._jobs[job_id] = merged
            return merged.model_copy()

    def recent(self, n: int) -> list[Job]:
        """Last `n` jobs in insertion order."""
        with self._lock:
            jobs = list(self._jobs.values())
        if n <= 0:
            return []
        return [j.model_copy() for j in jobs[-n:]]

    # ---------- runner tasks ----------

    def track(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(job_id, None))

    def pending(self) -> list[asyncio.Task]:
        return [t for t in self._tasks.values() if not t.done()]

    async def drain(self) -> None:
        """Wait until every tracked runner task has finished."""
        while True:
            tasks = self.pending()
            if not tasks:
                return
            logger.info("[STORE] waiting for %d running job(s)", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)
