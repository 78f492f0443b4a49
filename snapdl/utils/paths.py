from __future__ import annotations

from pathlib import Path

# yt-dlp sidecars of unfinished downloads
PARTIAL_SUFFIXES = {".part", ".ytdl", ".temp"}


def ensure_dir(p: str | Path) -> Path:
    path = Path(p).expanduser().resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def safe_child(root: Path, name: str) -> Path | None:
    """`root/name` if it is an existing regular file directly inside `root`."""
    if not name or name in {".", ".."} or "/" in name or "\\" in name:
        return None
    base = Path(root).resolve()
    cand = (base / name).resolve()
    if cand.parent != base or not cand.is_file():
        return None
    return cand


def latest_file(d: Path) -> Path | None:
    """Most recently modified finished file in `d` (not recursive)."""
    files = [p for p in Path(d).glob("*") if p.is_file() and p.suffix.lower() not in PARTIAL_SUFFIXES]
    return max(files, key=lambda p: p.stat().st_mtime) if files else None
