from __future__ import annotations

import logging
import random
import re
import shutil
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

from shorts_pipeline import config
from shorts_pipeline.services.errors import JobDataError, TranscodeError
from shorts_pipeline.services.frame_fetcher import FrameFetcher
from shorts_pipeline.services.storage import ObjectStorage
from shorts_pipeline.services.transcoder import build_clip_args, build_concat_args, run_transcoder

logger = logging.getLogger(__name__)

HOOK_SECONDS = 1.5
SIMPLIFIED_FRAME_SECONDS = 15
INVALID_CONTENT_SECONDS = 5
FALLBACK_FRAME_SECONDS = 4
# frame number (1-based) -> seconds; anything past the table gets DEFAULT_FRAME_SECONDS
FRAME_SECONDS = {1: HOOK_SECONDS, 2: 3, 3: 2, 4: 2, 5: 2}
DEFAULT_FRAME_SECONDS = 2


def frame_duration(frame_number: int, content: Any, layout_hint: str | None = None) -> float:
    """
    Seconds frame `frame_number` (1-based) stays on screen.

    Short hook first, longer payoff second. Single-frame ("simplified") layouts
    show frame 1 for the whole video and have no other frames.
    """
    if not isinstance(content, dict):
        return INVALID_CONTENT_SECONDS

    if layout_hint and layout_hint.startswith("simplified"):
        return SIMPLIFIED_FRAME_SECONDS if frame_number == 1 else 0

    return FRAME_SECONDS.get(frame_number, DEFAULT_FRAME_SECONDS)


@contextmanager
def scratch_directory(job_id, root: str | Path | None = None) -> Iterator[Path]:
    """Fresh per-job working directory, removed on every exit path."""
    path = Path(tempfile.mkdtemp(prefix=f"video-{job_id}-", dir=root))
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.warning("Failed to cleanup temp dir %s: %s", path, e)


def pick_audio_track(audio_dir: Path, rng: random.Random | None = None) -> Path | None:
    name = (rng or random).choice(config.AUDIO_TRACKS)
    path = Path(audio_dir) / name
    if not path.is_file():
        logger.warning("Audio file not found at %s, continuing without audio", path)
        return None
    return path


def _slug(value: str | None, default: str = "unk") -> str:
    s = re.sub(r"[^A-Za-z0-9_-]+", "-", (value or "").strip()).strip("-")
    return s or default


def video_object_key(job_id, account_id: str, persona: str, theme: str | None) -> str:
    return f"{config.VIDEOS_PREFIX}/{_slug(account_id)}/{_slug(persona)}-{_slug(theme, 'default')}-{job_id}.mp4"


def save_debug_video(video: bytes, job_id, persona: str | None, theme: str | None, debug_dir: Path) -> Path | None:
    try:
        debug_dir.mkdir(parents=True, exist_ok=True)
        dest = debug_dir / f"video-{_slug(persona)}-{_slug(theme)}-{job_id}.mp4"
        dest.write_bytes(video)
    except OSError as e:
        logger.error("[DEBUG] Failed to save debug video for job %s: %s", job_id, e)
        return None
    logger.info("[DEBUG] Video for job %s saved to: %s", job_id, dest)
    return dest


@dataclass
class AssemblyResult:
    video_url: str
    video_size: int
    audio_file: str | None
    duration: float


class AssemblyEngine:
    def __init__(
        self,
        fetcher: FrameFetcher,
        storage: ObjectStorage,
        transcode: Callable[..., None] = run_transcoder,
        audio_dir: Path | None = None,
        rng: random.Random | None = None,
        debug_mode: bool | None = None,
        debug_dir: Path | None = None,
    ):
        self.fetcher = fetcher
        self.storage = storage
        self.transcode = transcode
        self.audio_dir = audio_dir or config.AUDIO_DIR
        self.rng = rng or random.Random()
        self.debug_mode = config.DEBUG_MODE if debug_mode is None else debug_mode
        self.debug_dir = debug_dir or config.DEBUG_VIDEO_DIR

    def render_clips(self, frames: list[Path], content: Any, layout_hint: str | None, workdir: Path) -> list[Path]:
        """One clip per frame, strictly in frame order."""
        clips = []
        for index, frame in enumerate(frames):
            duration = frame_duration(index + 1, content, layout_hint) or FALLBACK_FRAME_SECONDS
            clip = workdir / f"clip-{index + 1:03d}.mp4"
            started = time.monotonic()
            self.transcode(
                build_clip_args(frame, clip, duration),
                timeout=config.CLIP_TIMEOUT_SECONDS,
                label=f"Frame {index} processing",
                cwd=workdir,
            )
            logger.debug("Rendered clip %d (%.1fs) in %.3fs", index + 1, duration, time.monotonic() - started)
            clips.append(clip)
        return clips

    def concatenate(self, clips: list[Path], output: Path, audio: Path | None, workdir: Path) -> Path:
        concat_list = workdir / "concat.txt"
        concat_list.write_text("".join(f"file '{clip.name}'\n" for clip in clips), encoding="utf-8")

        self.transcode(
            build_concat_args(concat_list, output, audio),
            timeout=config.CONCAT_TIMEOUT_SECONDS,
            label="Final concatenation",
            cwd=workdir,
        )
        if not output.is_file():
            raise TranscodeError(f"Final concatenation produced no output at {output.name}")
        return output

    def assemble(self, job, frame_urls: list[str], workdir: Path) -> AssemblyResult:
        started = time.monotonic()
        data = job.data or {}

        if not frame_urls:
            raise JobDataError("No frame URLs found in job data")
        if not job.account_id:
            raise JobDataError(f"Job {job.id} is missing account_id")

        frames = self.fetcher.fetch_all(frame_urls, workdir)
        logger.info("[Job %s] Downloaded %d frames", job.id, len(frames))

        clips = self.render_clips(frames, data.get("content") or {}, data.get("layoutType"), workdir)

        audio = pick_audio_track(self.audio_dir, self.rng)
        output = self.concatenate(clips, workdir / f"quiz-{job.id}.mp4", audio, workdir)

        video = output.read_bytes()
        theme = data.get("themeName")
        if self.debug_mode:
            save_debug_video(video, job.id, job.persona, theme, self.debug_dir)

        key = video_object_key(job.id, job.account_id, job.persona, theme)
        stored = self.storage.upload(video, key, "video/mp4")

        duration = time.monotonic() - started
        logger.info("[Job %s] Video assembled and uploaded in %.2fs (%d bytes)", job.id, duration, stored.size)
        return AssemblyResult(
            video_url=stored.url,
            video_size=stored.size,
            audio_file=audio.name if audio else None,
            duration=round(duration, 3),
        )
