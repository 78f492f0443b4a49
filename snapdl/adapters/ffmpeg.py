from __future__ import annotations

import shutil
from pathlib import Path

from snapdl.config.settings import Settings, settings as default_settings

AUDIO_EXTS = {".mp3", ".m4a", ".aac", ".wav", ".ogg", ".opus", ".flac"}


def is_audio(path: Path) -> bool:
    return path.suffix.lower() in AUDIO_EXTS


def resolve_ffmpeg(cfg: Settings) -> str:
    return shutil.which(cfg.FFMPEG_BIN) or cfg.FFMPEG_BIN


def gif_path_for(src: Path) -> Path:
    return src.with_suffix(".gif")


def build_gif_cmd(src: Path, dst: Path, cfg: Settings | None = None) -> list[str]:
    """Short, scaled-down animated GIF of the first GIF_MAX_SECS seconds."""
    cfg = cfg or default_settings
    vf = f"fps={cfg.GIF_FPS},scale='min({cfg.GIF_MAX_WIDTH},iw)':-1:flags=lanczos"
    return [
        resolve_ffmpeg(cfg),
        "-y",
        "-i",
        str(src),
        "-vf",
        vf,
        "-t",
        str(cfg.GIF_MAX_SECS),
        str(dst),
    ]
