from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from snapdl.config.settings import settings

LOG_NAME = "snapdl"
CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; `job` is included when passed via `extra`."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": f"{self.formatTime(record, '%Y-%m-%dT%H:%M:%S')}.{int(record.msecs):03d}",
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        job = getattr(record, "job", None)
        if job:
            entry["job"] = job
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    log_dir: Path | None = None,
    max_bytes: int = 2_000_000,
    backups: int = 5,
    name: str = LOG_NAME,
) -> logging.Logger:
    log = logging.getLogger(name)
    if log.handlers:
        return log
    log.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    log.addHandler(console)

    target = "-"
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / f"{name}.log"
        rotating = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
        rotating.setFormatter(JsonLineFormatter())
        log.addHandler(rotating)
        target = str(path)

    log.propagate = False
    log.debug("log level=%s, json file=%s", logging.getLevelName(log.level), target)
    return log


logger = setup_logging(settings.LOG_LEVEL, settings.LOG_DIR, settings.LOG_MAX_BYTES, settings.LOG_BACKUPS)
