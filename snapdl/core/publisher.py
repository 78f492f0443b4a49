from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

from snapdl.core.store import JobStore
from snapdl.schemas.models import Job

SNAPSHOT_FIELDS = ("status", "progress", "file", "error", "title", "gif")


def snapshot(job: Job) -> dict[str, Any]:
    data = job.model_dump(mode="json", include=set(SNAPSHOT_FIELDS))
    return {k: data.get(k) for k in SNAPSHOT_FIELDS}


async def watch(store: JobStore, job_id: str, interval: float = 1.0) -> AsyncIterator[dict[str, Any]]:
    """
    Poll the job every `interval` seconds and yield its snapshot whenever it
    changed. Ends after the first terminal snapshot, or when the job is gone.
    """
    last: dict[str, Any] | None = None
    while True:
        job = store.get(job_id)
        if job is None:
            return
        snap = snapshot(job)
        if snap != last:
            yield snap
            last = snap
        if job.status.is_terminal:
            return
        await asyncio.sleep(interval)


def sse_event(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"
