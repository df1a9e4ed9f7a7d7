import shutil
from pathlib import Path

import pytest

from shorts_pipeline.services.errors import TranscodeError, TranscodeTimeout
from shorts_pipeline.services.transcoder import build_clip_args, build_concat_args, run_transcoder, stderr_tail

needs_sleep = pytest.mark.skipif(shutil.which("sleep") is None, reason="sleep not available")
needs_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="sh not available")


def test_clip_args():
    args = build_clip_args(Path("/w/frame-001.png"), Path("/w/clip-001.mp4"), 1.5)

    assert args[:6] == ["-y", "-loop", "1", "-i", "/w/frame-001.png", "-t"]
    assert args[6] == "1.5"
    vf = args[args.index("-vf") + 1]
    assert "scale=1080:1920:force_original_aspect_ratio=decrease" in vf
    assert "pad=1080:1920:(ow-iw)/2:(oh-ih)/2:color=black" in vf
    assert args[args.index("-preset") + 1] == "ultrafast"
    assert args[args.index("-crf") + 1] == "28"
    assert args[args.index("-pix_fmt") + 1] == "yuv420p"
    assert args[args.index("-r") + 1] == "25"
    assert args[-1] == "/w/clip-001.mp4"


def test_concat_args_with_and_without_audio():
    with_audio = build_concat_args(Path("concat.txt"), Path("out.mp4"), Path("/audio/2.mp3"))
    assert with_audio[:7] == ["-y", "-f", "concat", "-safe", "0", "-i", "concat.txt"]
    assert "[1:a]volume=0.3[aout]" in with_audio
    assert "-shortest" in with_audio
    assert with_audio[with_audio.index("-c:a") + 1] == "aac"

    silent = build_concat_args(Path("concat.txt"), Path("out.mp4"))
    assert "-filter_complex" not in silent
    assert silent[-3:] == ["-c:v", "copy", "out.mp4"]


def test_stderr_tail_keeps_the_end():
    assert stderr_tail(b"a" * 600 + b"END").endswith("END")
    assert len(stderr_tail("x" * 1000)) == 500
    assert stderr_tail(None) == ""


@needs_sleep
def test_timeout_kills_and_reports():
    with pytest.raises(TranscodeTimeout) as exc:
        run_transcoder(["5"], timeout=0.2, label="Frame 1 processing", binary="sleep")
    assert str(exc.value).startswith("Frame 1 processing timed out after 0.2 seconds")


@needs_sh
def test_nonzero_exit_reports_stderr_tail():
    with pytest.raises(TranscodeError) as exc:
        run_transcoder(["-c", "echo 'Invalid data found' >&2; exit 3"], timeout=5, label="Final concatenation", binary="sh")
    msg = str(exc.value)
    assert msg.startswith("Final concatenation failed with exit code 3")
    assert "Invalid data found" in msg
    assert not isinstance(exc.value, TranscodeTimeout)


def test_missing_binary(tmp_path):
    with pytest.raises(TranscodeError, match="could not start"):
        run_transcoder([], timeout=1, label="Frame 0 processing", binary=str(tmp_path / "no-ffmpeg"))
