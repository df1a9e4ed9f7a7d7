from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from shorts_pipeline import config
from shorts_pipeline.services.errors import TranscodeError, TranscodeTimeout

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 500


def stderr_tail(stderr: bytes | str | None, limit: int = STDERR_TAIL_CHARS) -> str:
    if not stderr:
        return ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="ignore")
    return stderr[-limit:].strip()


def _scale_pad_filter(width: int, height: int) -> str:
    # fit inside the frame, keep aspect ratio, centre on black
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color=black,"
        "setsar=1"
    )


def build_clip_args(image: Path, output: Path, duration: float) -> list[str]:
    """Still image looped for `duration` seconds as a 1080x1920 H.264 clip."""
    return [
        "-y",
        "-loop", "1",
        "-i", str(image),
        "-t", f"{duration:g}",
        "-vf", _scale_pad_filter(config.VIDEO_WIDTH, config.VIDEO_HEIGHT),
        "-c:v", "libx264",
        "-preset", "ultrafast",
        "-crf", "28",
        "-pix_fmt", "yuv420p",
        "-r", str(config.VIDEO_FPS),
        str(output),
    ]


def build_concat_args(concat_list: Path, output: Path, audio: Path | None = None) -> list[str]:
    """Concat-demuxer remux of the clips, optionally mixed with a quieter audio track."""
    args = ["-y", "-f", "concat", "-safe", "0", "-i", str(concat_list)]

    if audio is not None:
        args += [
            "-i", str(audio),
            "-filter_complex", f"[1:a]volume={config.AUDIO_VOLUME}[aout]",
            "-map", "0:v",
            "-map", "[aout]",
            "-c:v", "copy",
            "-c:a", "aac",
            "-shortest",
        ]
    else:
        args += ["-map", "0:v", "-c:v", "copy"]

    args.append(str(output))
    return args


def run_transcoder(
    args: list[str],
    *,
    timeout: float,
    label: str,
    binary: str | None = None,
    cwd: Path | None = None,
) -> None:
    """
    Run one ffmpeg invocation. On timeout the child is killed and
    TranscodeTimeout is raised; a non-zero exit raises TranscodeError.
    Both messages carry the tail of stderr.
    """
    cmd = [binary or config.FFMPEG_BIN, *args]
    logger.debug("Running %s", " ".join(cmd))

    try:
        subprocess.run(
            cmd,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            cwd=str(cwd) if cwd else None,
        )
    except subprocess.TimeoutExpired as e:
        raise TranscodeTimeout(
            f"{label} timed out after {timeout:g} seconds. Stderr: {stderr_tail(e.stderr)}"
        ) from e
    except subprocess.CalledProcessError as e:
        raise TranscodeError(
            f"{label} failed with exit code {e.returncode}. Stderr: {stderr_tail(e.stderr)}"
        ) from e
    except OSError as e:
        raise TranscodeError(f"{label} could not start {cmd[0]}: {e}") from e
