from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, StreamingResponse

from snapdl.adapters import ytdlp
from snapdl.config.settings import Settings, settings as default_settings
from snapdl.core.errors import PreviewError
from snapdl.core.history import history as history_view
from snapdl.core.logging import logger
from snapdl.core.publisher import sse_event, watch
from snapdl.core.runner import JobRunner
from snapdl.core.store import JobStore
from snapdl.schemas.models import DownloadOptions
from snapdl.utils.paths import ensure_dir, safe_child
from snapdl.utils.ratelimit import SlidingWindowLimiter
from snapdl.utils.urls import is_http_url
from snapdl.web.page import render_page


def client_address(request: Request, trusted: set[str] | frozenset[str] = frozenset()) -> str:
    """
    Address used for rate limiting. Forwarded headers count only when the
    peer is a trusted proxy; nginx sets X-Real-IP from $remote_addr and
    appends the real peer as the last X-Forwarded-For entry.
    """
    peer = request.client.host if request.client else "unknown"
    if peer not in trusted:
        return peer
    real = request.headers.get("x-real-ip", "").strip()
    if real:
        return real
    hops = [h.strip() for h in request.headers.get("x-forwarded-for", "").split(",") if h.strip()]
    return hops[-1] if hops else peer


def get_store(request: Request) -> JobStore:
    return request.app.state.store


def get_runner(request: Request) -> JobRunner:
    return request.app.state.runner


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def rate_limit(request: Request) -> None:
    limiter: SlidingWindowLimiter = request.app.state.limiter
    ip = client_address(request, request.app.state.settings.trusted_proxies)
    if not limiter.allow(ip):
        logger.warning("[API] rate limit hit for %s", ip)
        raise HTTPException(status_code=429, detail="Too many requests, slow down.")


def _require_http_url(url: str) -> str:
    url = (url or "").strip()
    if not is_http_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL")
    return url


def create_app(
    cfg: Settings | None = None,
    store: JobStore | None = None,
    runner: JobRunner | None = None,
    limiter: SlidingWindowLimiter | None = None,
) -> FastAPI:
    cfg = cfg or default_settings
    store = store if store is not None else JobStore()
    runner = runner or JobRunner(store, cfg)

    app = FastAPI(title=cfg.APP_NAME, version="1.0.0")
    app.state.settings = cfg
    app.state.store = store
    app.state.runner = runner
    app.state.limiter = limiter or SlidingWindowLimiter(cfg.RATE_LIMIT_RPM, window=60.0)

    @app.on_event("startup")
    async def _startup():
        ensure_dir(cfg.DOWNLOAD_DIR)
        logger.info("[API] %s serving %s", cfg.APP_NAME, cfg.DOWNLOAD_DIR)

    @app.on_event("shutdown")
    async def _shutdown():
        await store.drain()

    # ---------- UI ----------

    @app.get("/", response_class=HTMLResponse)
    async def home():
        return render_page(cfg.APP_NAME)

    # ---------- API JSON ----------

    @app.get("/health")
    async def health():
        return {"ok": True, "time": datetime.now().isoformat()}

    @app.post("/api/download")
    async def api_download(
        url: Annotated[str, Form()],
        _: Annotated[None, Depends(rate_limit)] = None,
        audio_only: Annotated[bool, Form(alias="audioOnly")] = False,
        to_gif: Annotated[bool, Form(alias="toGif")] = False,
        format_id: Annotated[str | None, Form(alias="formatId")] = None,
        selection: Annotated[str | None, Form()] = None,
        jobs: Annotated[JobRunner, Depends(get_runner)] = None,
    ):
        url = _require_http_url(url)
        opts = DownloadOptions(
            audio_only=audio_only,
            to_gif=to_gif,
            format_id=(format_id or "").strip() or None,
            selection=(selection or "").strip() or None,
        )
        job_id = jobs.submit(url, opts)
        return JSONResponse({"job_id": job_id})

    @app.post("/api/preview")
    async def api_preview(
        url: Annotated[str, Form()],
        conf: Annotated[Settings, Depends(get_settings)] = None,
    ):
        url = _require_http_url(url)
        try:
            return await ytdlp.preview(url, conf)
        except PreviewError as e:
            logger.warning("[API] preview failed for %s: %s", url, e)
            raise HTTPException(status_code=502, detail=str(e)) from e

    @app.get("/api/status/{job_id}")
    async def api_status(job_id: str, jobs: Annotated[JobStore, Depends(get_store)] = None):
        job = jobs.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found.")
        return JSONResponse(job.model_dump(mode="json"))

    @app.get("/api/stream/{job_id}")
    async def api_stream(job_id: str, jobs: Annotated[JobStore, Depends(get_store)] = None):
        if job_id not in jobs:
            raise HTTPException(status_code=404, detail="Job not found.")

        async def gen():
            async for snap in watch(jobs, job_id, interval=cfg.STREAM_INTERVAL_SECS):
                yield sse_event(snap)

        return StreamingResponse(
            gen(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.get("/api/history")
    async def api_history(jobs: Annotated[JobStore, Depends(get_store)] = None):
        return JSONResponse(history_view(jobs, window=cfg.HISTORY_WINDOW))

    @app.get("/d/{filename}")
    async def download_file(filename: str):
        p = safe_child(cfg.DOWNLOAD_DIR, filename)
        if p is None:
            raise HTTPException(status_code=404, detail="File not found.")
        return FileResponse(str(p), filename=p.name)

    return app


app = create_app()
