import asyncio
from pathlib import Path

import pytest

from snapdl.config.settings import Settings
from snapdl.core.store import JobStore


class FakeStdout:
    def __init__(self, lines):
        self._lines = [(ln + "\n").encode("utf-8") for ln in lines]
        self._i = 0

    async def readline(self):
        await asyncio.sleep(0)
        if self._i >= len(self._lines):
            return b""
        v = self._lines[self._i]
        self._i += 1
        return v


class FakeProc:
    def __init__(self, lines, rc=0):
        self.stdout = FakeStdout(lines)
        self._rc = rc
        self.returncode = None
        self.killed = False
        self.waited = False

    async def wait(self):
        self.waited = True
        if self.returncode is None:
            self.returncode = self._rc
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9


@pytest.fixture
def cfg(tmp_path: Path) -> Settings:
    return Settings(
        DOWNLOAD_DIR=tmp_path / "downloads",
        LOG_DIR=tmp_path / "logs",
        STREAM_INTERVAL_SECS=0.01,
        RATE_LIMIT_RPM=0,
        PROXY_LIST="",
        YTDLP_BIN="yt-dlp",
        FFMPEG_BIN="ffmpeg",
    )


@pytest.fixture
def store() -> JobStore:
    return JobStore()


@pytest.fixture
def fake_exec(monkeypatch):
    """
    Replace asyncio.create_subprocess_exec with scripted processes.

    Each scenario is (lines, returncode, files_to_create), a ready FakeProc,
    or an exception to raise. Files are written into the cwd the process was started in.
    Returns the list of recorded (argv, kwargs) calls.
    """
    calls = []

    def install(*scenarios):
        it = iter(scenarios)

        async def _create(*args, **kwargs):
            calls.append((list(args), kwargs))
            sc = next(it)
            if isinstance(sc, BaseException):
                raise sc
            if isinstance(sc, FakeProc):
                return sc
            lines, rc, files = sc
            cwd = Path(kwargs.get("cwd") or ".")
            for name in files:
                (cwd / name).write_bytes(b"x")
            return FakeProc(lines, rc)

        monkeypatch.setattr(asyncio, "create_subprocess_exec", _create)
        return calls

    return install
