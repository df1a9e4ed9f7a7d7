import random
import shutil
import uuid
from types import SimpleNamespace

import pytest

from fakes import CONTENT, FakeFetcher, FakeStorage, FakeTranscoder
from shorts_pipeline.services.assembly import (
    AssemblyEngine,
    frame_duration,
    save_debug_video,
    scratch_directory,
    video_object_key,
)
from shorts_pipeline.services.errors import FrameFetchError, JobDataError, TranscodeTimeout
from shorts_pipeline.services.transcoder import run_transcoder

FRAMES = ["https://cdn.test/f1.png", "https://cdn.test/f2.png", "https://cdn.test/f3.png"]


def _job(**kw):
    values = {
        "id": uuid.uuid4(),
        "account_id": "acct-1",
        "persona": "english",
        "data": {"content": CONTENT, "frameUrls": FRAMES, "themeName": "neon"},
    }
    values.update(kw)
    return SimpleNamespace(**values)


@pytest.fixture
def audio_dir(tmp_path):
    d = tmp_path / "audio"
    d.mkdir()
    for name in ("1.mp3", "2.mp3", "3.mp3"):
        (d / name).write_bytes(b"mp3")
    return d


@pytest.mark.parametrize("n,expected", [(1, 1.5), (2, 3), (3, 2), (4, 2), (5, 2), (6, 2), (12, 2)])
def test_standard_durations(n, expected):
    assert frame_duration(n, CONTENT) == expected


def test_simplified_layout():
    assert frame_duration(1, CONTENT, "simplified") == 15
    assert frame_duration(1, CONTENT, "simplified-dark") == 15
    assert frame_duration(2, CONTENT, "simplified") == 0


def test_invalid_content():
    assert frame_duration(1, None) == 5
    assert frame_duration(3, "text") == 5


def test_durations_are_deterministic():
    assert [frame_duration(i, CONTENT, "standard") for i in range(1, 6)] == [
        frame_duration(i, CONTENT, "standard") for i in range(1, 6)
    ]


def test_scratch_directory_removed_on_success_and_failure(tmp_path):
    with scratch_directory("job-1", tmp_path) as workdir:
        (workdir / "frame-001.png").write_bytes(b"x")
        assert workdir.name.startswith("video-job-1-")

    with pytest.raises(RuntimeError):
        with scratch_directory("job-2", tmp_path) as workdir:
            (workdir / "clip-001.mp4").write_bytes(b"x")
            raise RuntimeError("boom")

    assert list(tmp_path.iterdir()) == []


def test_scratch_directory_removal_failure_is_logged(tmp_path, monkeypatch, caplog):
    def broken_rmtree(path):
        raise OSError("busy")

    monkeypatch.setattr(shutil, "rmtree", broken_rmtree)
    with scratch_directory("job-3", tmp_path):
        pass
    assert "Failed to cleanup temp dir" in caplog.text


def test_video_object_key():
    assert video_object_key("abc", "Acct 1", "english", None) == "quiz-videos/Acct-1/english-default-abc.mp4"


def test_happy_path(tmp_path, audio_dir):
    transcoder = FakeTranscoder()
    storage = FakeStorage()
    engine = AssemblyEngine(
        FakeFetcher(), storage, transcode=transcoder, audio_dir=audio_dir, rng=random.Random(1), debug_mode=False
    )
    job = _job()

    result = engine.assemble(job, FRAMES, tmp_path)

    assert transcoder.clip_durations() == ["1.5", "3", "2"]
    assert [c["label"] for c in transcoder.calls] == [
        "Frame 0 processing",
        "Frame 1 processing",
        "Frame 2 processing",
        "Final concatenation",
    ]
    assert [c["timeout"] for c in transcoder.calls] == [40, 40, 40, 30]

    concat = transcoder.calls[-1]["args"]
    assert "[1:a]volume=0.3[aout]" in concat
    assert (tmp_path / "concat.txt").read_text() == "file 'clip-001.mp4'\nfile 'clip-002.mp4'\nfile 'clip-003.mp4'\n"

    key, content_type, size = storage.uploads[0]
    assert key == f"quiz-videos/acct-1/english-neon-{job.id}.mp4"
    assert content_type == "video/mp4"
    assert result.video_url == f"https://cdn.test/{key}"
    assert result.video_size == size
    assert result.audio_file in {"1.mp3", "2.mp3", "3.mp3"}


def test_missing_audio_builds_silent_video(tmp_path):
    transcoder = FakeTranscoder()
    engine = AssemblyEngine(FakeFetcher(), FakeStorage(), transcode=transcoder, audio_dir=tmp_path / "none")

    result = engine.assemble(_job(), FRAMES, tmp_path)

    assert result.audio_file is None
    assert "-filter_complex" not in transcoder.calls[-1]["args"]


def test_simplified_layout_uses_fallback_for_zero(tmp_path):
    transcoder = FakeTranscoder()
    engine = AssemblyEngine(FakeFetcher(), FakeStorage(), transcode=transcoder, audio_dir=tmp_path)
    job = _job(data={"content": CONTENT, "layoutType": "simplified"})

    engine.assemble(job, FRAMES[:2], tmp_path)

    assert transcoder.clip_durations() == ["15", "4"]


def test_timeout_on_second_frame_skips_upload(tmp_path):
    if shutil.which("sleep") is None:
        pytest.skip("sleep not available")

    recorder = FakeTranscoder()

    def transcode(args, *, timeout, label, binary=None, cwd=None):
        if label == "Frame 1 processing":
            run_transcoder(["5"], timeout=0.2, label=label, binary="sleep")
        recorder(args, timeout=timeout, label=label, cwd=cwd)

    storage = FakeStorage()
    engine = AssemblyEngine(FakeFetcher(), storage, transcode=transcode, audio_dir=tmp_path)

    with pytest.raises(TranscodeTimeout, match="Frame 1 processing timed out"):
        engine.assemble(_job(), FRAMES, tmp_path)
    assert [c["label"] for c in recorder.calls] == ["Frame 0 processing"]
    assert storage.uploads == []


def test_fetch_failure_propagates(tmp_path):
    transcoder = FakeTranscoder()
    engine = AssemblyEngine(
        FakeFetcher(error=FrameFetchError("Failed to download image x: 404 Not Found")),
        FakeStorage(),
        transcode=transcoder,
    )
    with pytest.raises(FrameFetchError):
        engine.assemble(_job(), FRAMES, tmp_path)
    assert transcoder.calls == []


def test_requires_frames_and_account(tmp_path):
    engine = AssemblyEngine(FakeFetcher(), FakeStorage(), transcode=FakeTranscoder())
    with pytest.raises(JobDataError):
        engine.assemble(_job(), [], tmp_path)
    with pytest.raises(JobDataError):
        engine.assemble(_job(account_id=""), FRAMES, tmp_path)


def test_debug_copy(tmp_path):
    engine = AssemblyEngine(
        FakeFetcher(), FakeStorage(), transcode=FakeTranscoder(), audio_dir=tmp_path, debug_mode=True,
        debug_dir=tmp_path / "debug",
    )
    job = _job()
    engine.assemble(job, FRAMES, tmp_path)
    assert (tmp_path / "debug" / f"video-english-neon-{job.id}.mp4").is_file()


def test_debug_copy_failure_is_not_raised(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    assert save_debug_video(b"v", "id", "english", "neon", blocker / "sub") is None
