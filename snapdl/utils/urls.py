from __future__ import annotations

import re
from urllib.parse import urlparse

PLATFORM_PATTERNS: dict[str, re.Pattern[str]] = {
    "instagram": re.compile(r"(^|\.)(instagram\.com)$"),
    "tiktok": re.compile(r"(^|\.)(tiktok\.com)$"),
    "twitter": re.compile(r"(^|\.)(twitter\.com|x\.com)$"),
    "pinterest": re.compile(r"(^|\.)(pinterest\.com|pin\.it)$"),
    "facebook": re.compile(r"(^|\.)(facebook\.com|fb\.watch)$"),
    "youtube": re.compile(r"(^|\.)(youtube\.com|youtu\.be)$"),
}


def is_http_url(url: str | None) -> bool:
    if not url:
        return False
    u = url.strip()
    if not u.lower().startswith(("http://", "https://")):
        return False
    try:
        return bool(urlparse(u).netloc)
    except ValueError:
        return False


def platform_from_url(url: str) -> str:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return "unknown"
    for name, pat in PLATFORM_PATTERNS.items():
        if pat.search(host):
            return name
    return "unknown"
