"""
Exceptions raised by the job store, the runner and the preview probe.
"""


class SnapError(Exception):
    """Base class for every MediaSnap error."""


class JobNotFound(SnapError, KeyError):
    """No job is registered under the given id."""

    def __init__(self, job_id: str):
        super().__init__(job_id)
        self.job_id = job_id

    def __str__(self) -> str:
        return f"job not found: {self.job_id}"


class InvalidTransition(SnapError):
    """An update would move a job backwards or out of a terminal state."""


class PreviewError(SnapError):
    """yt-dlp could not describe the requested URL."""
