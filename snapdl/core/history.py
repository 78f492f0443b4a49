from __future__ import annotations

from typing import Any

from snapdl.core.store import JobStore

PUBLIC_FIELDS = ("id", "status", "title", "file", "gif", "platform")


def history(store: JobStore, window: int = 100) -> list[dict[str, Any]]:
    """Finished jobs among the last `window` submitted, newest first."""
    items = []
    for job in store.recent(window):
        if not job.status.is_terminal:
            continue
        data = job.model_dump(mode="json")
        items.append({k: data.get(k) for k in PUBLIC_FIELDS})
    items.reverse()
    return items
