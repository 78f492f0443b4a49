from __future__ import annotations

import asyncio
import contextlib
import json
import random
import shutil
import sys
from pathlib import Path
from typing import Any

from snapdl.config.settings import Settings, settings as default_settings
from snapdl.core.errors import PreviewError
from snapdl.core.logging import logger
from snapdl.schemas.models import DownloadOptions
from snapdl.utils.urls import platform_from_url

UA_POOL = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/126 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/125 Safari/537.36",
]


def pick_user_agent() -> str:
    return random.choice(UA_POOL)


def pick_proxy(cfg: Settings) -> str | None:
    proxies = cfg.proxies
    return random.choice(proxies) if proxies else None


def resolve_yt_dlp(cfg: Settings) -> str:
    """
    Explicit path from settings if it exists, then the yt-dlp next to the
    running interpreter (venv), then PATH, then the bare name.
    """
    configured = cfg.YTDLP_BIN
    if configured and Path(configured).is_file():
        return configured
    exe = Path(sys.executable)
    for name in ("yt-dlp", "yt-dlp.exe"):
        cand = exe.with_name(name)
        if cand.exists():
            return str(cand)
    return shutil.which(configured or "yt-dlp") or configured or "yt-dlp"


def _network_args(user_agent: str | None, proxy: str | None) -> list[str]:
    args: list[str] = []
    if user_agent:
        args += ["--user-agent", user_agent]
    if proxy:
        args += ["--proxy", proxy]
    return args


def build_download_cmd(
    url: str,
    opts: DownloadOptions,
    outdir: Path,
    cfg: Settings | None = None,
    *,
    user_agent: str | None = None,
    proxy: str | None = None,
) -> list[str]:
    cfg = cfg or default_settings
    outtmpl = str(Path(outdir) / cfg.YTDLP_OUTTMPL)
    cmd = [
        resolve_yt_dlp(cfg),
        "-o",
        outtmpl,
        "--restrict-filenames",
        "--newline",
        "--no-warnings",
        "--no-color",
        *_network_args(user_agent, proxy),
    ]
    if opts.audio_only:
        cmd += ["-x", "--audio-format", "mp3", "--audio-quality", "0"]
    elif opts.format_id:
        cmd += ["-f", opts.format_id]
    else:
        cmd += ["-f", cfg.YTDLP_DEFAULT_FORMAT]
    if opts.selection:
        cmd += ["--playlist-items", opts.selection]
    cmd.append(url)
    return cmd


# ================= Preview =================


def _format_row(f: dict[str, Any]) -> dict[str, Any]:
    return {
        "format_id": f.get("format_id"),
        "ext": f.get("ext"),
        "resolution": f.get("resolution") or f.get("format_note"),
        "filesize": f.get("filesize") or f.get("filesize_approx"),
        "vcodec": f.get("vcodec"),
        "acodec": f.get("acodec"),
    }


def summarize_info(url: str, data: dict[str, Any]) -> dict[str, Any]:
    """Reduce a `yt-dlp -J` document to what the UI needs."""
    entries = []
    for i, ent in enumerate(data.get("entries") or [], start=1):
        if not isinstance(ent, dict):
            continue
        entries.append(
            {
                "index": ent.get("playlist_index") or i,
                "id": ent.get("id"),
                "title": ent.get("title"),
                "duration": ent.get("duration"),
            }
        )
    formats = [_format_row(f) for f in (data.get("formats") or []) if isinstance(f, dict)]
    return {
        "url": url,
        "platform": platform_from_url(url),
        "title": data.get("title"),
        "thumbnail": data.get("thumbnail"),
        "duration": data.get("duration"),
        "uploader": data.get("uploader") or data.get("channel"),
        "is_playlist": bool(entries),
        "entries": entries,
        "formats": formats,
    }


async def preview(url: str, cfg: Settings | None = None) -> dict[str, Any]:
    """Probe `url` with `yt-dlp -J --flat-playlist`; raises PreviewError."""
    cfg = cfg or default_settings
    cmd = [
        resolve_yt_dlp(cfg),
        "-J",
        "--flat-playlist",
        "--no-warnings",
        "--no-color",
        *_network_args(pick_user_agent(), pick_proxy(cfg)),
        url,
    ]
    logger.info("[YTDLP][preview] %s", url)
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise PreviewError(f"cannot run yt-dlp: {e}") from e

    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=cfg.PREVIEW_TIMEOUT_SECS)
    except TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise PreviewError(f"preview timed out after {cfg.PREVIEW_TIMEOUT_SECS:.0f}s") from None

    if proc.returncode != 0:
        lines = (err or b"").decode("utf-8", "ignore").strip().splitlines()
        raise PreviewError(lines[-1] if lines else f"yt-dlp exited with {proc.returncode}")

    text = (out or b"").decode("utf-8", "ignore").strip()
    try:
        data = json.loads(text.splitlines()[-1]) if text else None
    except json.JSONDecodeError as e:
        raise PreviewError(f"unreadable yt-dlp output: {e}") from e
    if not isinstance(data, dict):
        raise PreviewError("empty yt-dlp output")
    return summarize_info(url, data)
