from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from pathlib import Path

from snapdl.adapters import ffmpeg, ytdlp
from snapdl.config.settings import Settings, settings as default_settings
from snapdl.core.logging import logger
from snapdl.core.progress import format_progress, parse_destination, parse_progress
from snapdl.core.state import JobStatus
from snapdl.core.store import JobStore
from snapdl.schemas.models import DownloadOptions, Job
from snapdl.utils.paths import ensure_dir, latest_file
from snapdl.utils.urls import platform_from_url

NO_FILE = "no file produced"
DOWNLOAD_FAILED = "Download failed."


class JobRunner:
    """
    Drives one job per call to `run`: yt-dlp, then the optional GIF, writing
    every state change to the store. Nothing is retried.
    """

    def __init__(self, store: JobStore, cfg: Settings | None = None) -> None:
        self.store = store
        self.cfg = cfg or default_settings

    @property
    def download_dir(self) -> Path:
        return ensure_dir(self.cfg.DOWNLOAD_DIR)

    def submit(self, url: str, opts: DownloadOptions | None = None) -> str:
        """Register a queued job and schedule its runner on the current loop."""
        opts = opts or DownloadOptions()
        job = Job(
            url=url,
            platform=platform_from_url(url),
            audio_only=opts.audio_only,
            to_gif=opts.to_gif,
        )
        job_id = self.store.create(job)
        task = asyncio.create_task(self.run(job_id, url, opts), name=f"job-{job_id}")
        self.store.track(job_id, task)
        logger.info("[RUN] queued %s platform=%s", job_id, job.platform)
        return job_id

    async def _stream(self, cmd: list[str], on_line: Callable[[str], None] | None = None) -> int:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(self.download_dir),
        )
        try:
            while True:
                chunk = await proc.stdout.readline()
                if not chunk:
                    break
                line = chunk.decode("utf-8", "ignore").strip()
                if not line:
                    continue
                if on_line:
                    on_line(line)
            return await proc.wait()
        finally:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()

    def _on_extractor_line(self, job_id: str, line: str) -> None:
        fields: dict[str, str] = {"last_line": line}
        pct = parse_progress(line)
        if pct is not None:
            fields["progress"] = format_progress(pct)
        dest = parse_destination(line)
        if dest:
            fields["title"] = dest
        self.store.update(job_id, **fields)

    async def _make_gif(self, job_id: str, src: Path) -> str | None:
        dst = ffmpeg.gif_path_for(src)
        cmd = ffmpeg.build_gif_cmd(src, dst, self.cfg)
        try:
            rc = await self._stream(cmd, lambda ln: logger.debug("[GIF] %s %s", job_id, ln))
        except Exception as e:
            logger.warning("[GIF] %s skipped: %r", job_id, e)
            return None
        if rc != 0 or not dst.exists():
            logger.warning("[GIF] %s ffmpeg rc=%s, no gif", job_id, rc)
            return None
        return dst.name

    async def run(self, job_id: str, url: str, opts: DownloadOptions) -> None:
        self.store.update(job_id, status=JobStatus.RUNNING, progress="0%")
        try:
            cmd = ytdlp.build_download_cmd(
                url,
                opts,
                self.download_dir,
                self.cfg,
                user_agent=ytdlp.pick_user_agent(),
                proxy=ytdlp.pick_proxy(self.cfg),
            )
            logger.info("[YTDLP][exec] %s audio_only=%s fmt=%s", job_id, opts.audio_only, opts.format_id)
            rc = await self._stream(cmd, lambda ln: self._on_extractor_line(job_id, ln))
            if rc != 0:
                job = self.store.get(job_id)
                last = job.last_line if job else None
                logger.error("[YTDLP][done] %s rc=%s last=%r", job_id, rc, last)
                self.store.update(job_id, status=JobStatus.ERROR, error=last or DOWNLOAD_FAILED)
                return

            f = latest_file(self.download_dir)
            if not f:
                logger.error("[RUN] %s rc=0 but %s is empty", job_id, self.download_dir)
                self.store.update(job_id, status=JobStatus.ERROR, error=NO_FILE)
                return

            gif = None
            if opts.to_gif and not ffmpeg.is_audio(f):
                gif = await self._make_gif(job_id, f)

            self.store.update(
                job_id, status=JobStatus.DONE, progress="100.0%", file=f.name, gif=gif
            )
            logger.info("[RUN] %s done file=%s gif=%s", job_id, f.name, gif, extra={"job": job_id})
        except Exception as e:
            logger.exception("[RUN] %s failed", job_id, extra={"job": job_id})
            current = self.store.get(job_id)
            if current is not None and not current.status.is_terminal:
                self.store.update(job_id, status=JobStatus.ERROR, error=str(e) or type(e).__name__)
