from pathlib import Path

import pytest

from conftest import FakeProc
from snapdl.core.runner import NO_FILE, JobRunner
from snapdl.core.state import JobStatus
from snapdl.schemas.models import DownloadOptions


def _spy_updates(monkeypatch, store):
    seen = []
    orig = store.update

    def spy(job_id, **fields):
        seen.append(fields)
        return orig(job_id, **fields)

    monkeypatch.setattr(store, "update", spy)
    return seen


async def _run(runner: JobRunner, url="https://example.com/video", **opts):
    jid = runner.submit(url, DownloadOptions(**opts))
    await runner.store.drain()
    return runner.store.get(jid)


@pytest.mark.asyncio
async def test_download_reaches_done(cfg, store, fake_exec, monkeypatch):
    calls = fake_exec(
        (
            [
                "[youtube] abc: Downloading webpage",
                "[download] Destination: /dl/My_Clip-abc.mp4",
                "[download]  45.0% of 10.00MiB at 1.00MiB/s ETA 00:05",
                "",
                "[download] 100% of 10.00MiB in 00:09",
            ],
            0,
            ["My_Clip-abc.mp4"],
        )
    )
    seen = _spy_updates(monkeypatch, store)
    job = await _run(JobRunner(store, cfg), audio_only=False)

    assert job.status == JobStatus.DONE
    assert job.progress == "100.0%"
    assert job.file == "My_Clip-abc.mp4"
    assert job.gif is None
    assert job.title == "/dl/My_Clip-abc.mp4"
    assert job.platform == "unknown"

    progress = [f["progress"] for f in seen if "progress" in f]
    assert progress[:2] == ["0%", "45.0%"]
    # blank lines never reach the store
    assert all(f.get("last_line") != "" for f in seen)

    argv, kwargs = calls[0]
    assert Path(kwargs["cwd"]) == Path(cfg.DOWNLOAD_DIR).resolve()
    assert "-f" in argv and argv[argv.index("-f") + 1] == "bv*+ba/b"
    assert argv[-1] == "https://example.com/video"


@pytest.mark.asyncio
async def test_progress_is_clamped(cfg, store, fake_exec, monkeypatch):
    fake_exec((["[download] 150.5% of 1MiB"], 0, ["a.mp4"]))
    seen = _spy_updates(monkeypatch, store)
    await _run(JobRunner(store, cfg))
    assert "100.0%" in [f.get("progress") for f in seen]


@pytest.mark.asyncio
async def test_nonzero_exit_reports_last_line(cfg, store, fake_exec):
    fake_exec((["[youtube] abc: Downloading webpage", "ERROR: geoblocked"], 1, []))
    job = await _run(JobRunner(store, cfg))
    assert job.status == JobStatus.ERROR
    assert job.error == "ERROR: geoblocked"
    assert job.file is None


@pytest.mark.asyncio
async def test_nonzero_exit_without_output(cfg, store, fake_exec):
    fake_exec(([], 2, []))
    job = await _run(JobRunner(store, cfg))
    assert job.status == JobStatus.ERROR
    assert job.error == "Download failed."


@pytest.mark.asyncio
async def test_success_without_file(cfg, store, fake_exec):
    fake_exec((["[download] 100%"], 0, []))
    job = await _run(JobRunner(store, cfg))
    assert job.status == JobStatus.ERROR
    assert job.error == NO_FILE == "no file produced"
    assert job.file is None


@pytest.mark.asyncio
async def test_partial_sidecars_do_not_count(cfg, store, fake_exec):
    fake_exec((["[download]  50.0%"], 0, ["clip.mp4.part", "clip.mp4.ytdl"]))
    job = await _run(JobRunner(store, cfg))
    assert job.error == NO_FILE


@pytest.mark.asyncio
async def test_gif_failure_is_not_fatal(cfg, store, fake_exec):
    calls = fake_exec(
        (["[download] 100%"], 0, ["clip.mp4"]),
        (["Error opening input"], 1, []),
    )
    job = await _run(JobRunner(store, cfg), to_gif=True)
    assert job.status == JobStatus.DONE
    assert job.file == "clip.mp4"
    assert job.gif is None
    assert len(calls) == 2
    gif_argv = calls[1][0]
    assert gif_argv[-1].endswith("clip.gif")
    assert "-t" in gif_argv and gif_argv[gif_argv.index("-t") + 1] == "30"


@pytest.mark.asyncio
async def test_missing_ffmpeg_is_not_fatal(cfg, store, fake_exec):
    fake_exec(
        (["[download] 100%"], 0, ["clip.mp4"]),
        FileNotFoundError("ffmpeg"),
    )
    job = await _run(JobRunner(store, cfg), to_gif=True)
    assert job.status == JobStatus.DONE
    assert job.gif is None


@pytest.mark.asyncio
async def test_gif_recorded_on_success(cfg, store, fake_exec):
    fake_exec(
        (["[download] 100%"], 0, ["clip.mp4"]),
        ([], 0, ["clip.gif"]),
    )
    job = await _run(JobRunner(store, cfg), to_gif=True)
    assert job.status == JobStatus.DONE
    assert job.file == "clip.mp4"
    assert job.gif == "clip.gif"


@pytest.mark.asyncio
async def test_audio_result_skips_gif(cfg, store, fake_exec):
    calls = fake_exec((["[ExtractAudio] Destination: song.mp3"], 0, ["song.mp3"]))
    job = await _run(JobRunner(store, cfg), audio_only=True, to_gif=True)
    assert job.status == JobStatus.DONE
    assert job.file == "song.mp3"
    assert len(calls) == 1
    argv = calls[0][0]
    assert "-x" in argv and "mp3" in argv
    assert "-f" not in argv


@pytest.mark.asyncio
async def test_format_and_selection_passed_through(cfg, store, fake_exec):
    calls = fake_exec(([], 0, ["v.mp4"]))
    await _run(
        JobRunner(store, cfg),
        url="https://www.youtube.com/playlist?list=PL1",
        format_id="137+140",
        selection="1-3,7",
    )
    argv = calls[0][0]
    assert argv[argv.index("-f") + 1] == "137+140"
    assert argv[argv.index("--playlist-items") + 1] == "1-3,7"


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_error(cfg, store, fake_exec):
    fake_exec(FileNotFoundError("yt-dlp not installed"))
    job = await _run(JobRunner(store, cfg))
    assert job.status == JobStatus.ERROR
    assert job.error == "yt-dlp not installed"
    assert job.file is None


@pytest.mark.asyncio
async def test_submit_records_platform(cfg, store, fake_exec):
    fake_exec(([], 0, ["x.mp4"]))
    job = await _run(JobRunner(store, cfg), url="https://www.tiktok.com/@a/video/1")
    assert job.platform == "tiktok"
    assert job.url == "https://www.tiktok.com/@a/video/1"


class _OverlongStdout:
    """Second readline fails like StreamReader does past its line limit."""

    def __init__(self):
        self._n = 0

    async def readline(self):
        self._n += 1
        if self._n == 1:
            return b"[download]  10.0% of 1MiB\n"
        raise ValueError("Separator is not found, and chunk exceed the limit")


@pytest.mark.asyncio
async def test_read_failure_kills_and_reaps_child(cfg, store, fake_exec):
    proc = FakeProc([], rc=0)
    proc.stdout = _OverlongStdout()
    fake_exec(proc)
    job = await _run(JobRunner(store, cfg))
    assert job.status == JobStatus.ERROR
    assert "chunk exceed the limit" in job.error
    assert proc.killed and proc.waited


@pytest.mark.asyncio
async def test_line_handler_failure_kills_and_reaps_child(cfg, store, fake_exec, monkeypatch):
    proc = FakeProc(["[download]  10.0%", "[download]  20.0%"], rc=0)
    fake_exec(proc)
    runner = JobRunner(store, cfg)

    def boom(job_id, line):
        raise RuntimeError("store went away")

    monkeypatch.setattr(runner, "_on_extractor_line", boom)
    job = await _run(runner)
    assert job.status == JobStatus.ERROR
    assert job.error == "store went away"
    assert proc.killed and proc.waited


@pytest.mark.asyncio
async def test_clean_exit_is_not_killed(cfg, store, fake_exec):
    proc = FakeProc(["[download] 100%"], rc=0)
    fake_exec(proc)
    (Path(cfg.DOWNLOAD_DIR)).mkdir(parents=True, exist_ok=True)
    (Path(cfg.DOWNLOAD_DIR) / "done.mp4").write_bytes(b"x")
    job = await _run(JobRunner(store, cfg))
    assert job.status == JobStatus.DONE
    assert proc.waited and not proc.killed
