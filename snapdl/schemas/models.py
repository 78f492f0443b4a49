from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from snapdl.core.state import JobStatus


def new_job_id() -> str:
    return uuid.uuid4().hex


class DownloadOptions(BaseModel):
    audio_only: bool = False
    to_gif: bool = False
    format_id: str | None = None
    selection: str | None = None  # passed verbatim to --playlist-items


class Job(BaseModel):
    id: str = Field(default_factory=new_job_id)
    status: JobStatus = JobStatus.QUEUED
    progress: str = "0%"
    title: str | None = None
    file: str | None = None
    gif: str | None = None
    error: str | None = None
    last_line: str | None = None

    url: str = ""
    platform: str = "unknown"
    audio_only: bool = False
    to_gif: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _file_iff_done(self) -> Job:
        if self.status == JobStatus.DONE and not self.file:
            raise ValueError("a done job must name its file")
        if self.file and self.status != JobStatus.DONE:
            raise ValueError("only a done job may carry a file")
        return self
