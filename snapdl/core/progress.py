from __future__ import annotations

import re

# "[download]  45.3% of 10.00MiB at 1.2MiB/s ETA 00:05"
PROGRESS_RE = re.compile(r"\[download\]\s+(\d{1,3}(?:\.\d+)?)%")
# "[download] Destination: Some_Title-abc123.mp4", "[ExtractAudio] Destination: x.mp3"
DESTINATION_RE = re.compile(r"^\[(?:download|ExtractAudio)\]\s+Destination:\s*(.+)$")


def parse_progress(line: str | None) -> float | None:
    """Percentage announced by a yt-dlp progress line, or None."""
    if not line:
        return None
    m = PROGRESS_RE.search(line)
    if not m:
        return None
    try:
        return float(m.group(1))
    except ValueError:
        return None


def format_progress(pct: float) -> str:
    return f"{min(max(pct, 0.0), 100.0):.1f}%"


def parse_destination(line: str | None) -> str | None:
    """
    Destination path announced by yt-dlp, used as a best-effort title.
    Literal output templates (unexpanded "%(...)s") are ignored.
    """
    if not line:
        return None
    m = DESTINATION_RE.search(line.strip())
    if not m:
        return None
    dest = m.group(1).strip()
    if not dest or "%(" in dest:
        return None
    return dest
