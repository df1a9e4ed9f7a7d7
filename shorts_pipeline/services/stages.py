from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from shorts_pipeline.services.assembly import AssemblyEngine, scratch_directory
from shorts_pipeline.services.errors import JobDataError, PlaylistError
from shorts_pipeline.services.playlists import PlaylistResolver, playlist_key_for_job
from shorts_pipeline.services.state_machine import ContentReady, FramesReady, VideoReady, parse_artifact
from shorts_pipeline.services.video_metadata import (
    VideoMetadata,
    build_playlist_description,
    build_playlist_title,
    build_video_metadata,
)
from shorts_pipeline.utils.constants import (
    STAGE_ASSEMBLY,
    STAGE_DONE,
    STAGE_FRAMES,
    STAGE_UPLOAD,
    STATUS_ASSEMBLY_PENDING,
    STATUS_COMPLETED,
    STATUS_FRAMES_PENDING,
    STATUS_UPLOAD_PENDING,
)

logger = logging.getLogger(__name__)


@dataclass
class UploadOutcome:
    youtube_video_id: str
    metadata: VideoMetadata


@dataclass
class StageResult:
    """What a stage produced. Workers never write to the job store themselves."""

    stage: int
    status: str
    data: dict[str, Any] = field(default_factory=dict)
    upload: UploadOutcome | None = None


def generate_content(job, *, content_source) -> StageResult:
    content = content_source.generate(job.persona, job.topic, job.content_format)
    return StageResult(STAGE_FRAMES, STATUS_FRAMES_PENDING, {"content": content})


def render_frames(job, *, frame_renderer) -> StageResult:
    if parse_artifact(ContentReady, job.data) is None:
        raise JobDataError("No content found in job data")
    rendered = frame_renderer.render(job)
    return StageResult(STAGE_ASSEMBLY, STATUS_ASSEMBLY_PENDING, rendered)


def assemble_video(job, *, engine: AssemblyEngine, scratch_root: str | Path | None = None) -> StageResult:
    frames = parse_artifact(FramesReady, job.data)
    if frames is None:
        raise JobDataError("No frame URLs found in job data")

    with scratch_directory(job.id, scratch_root) as workdir:
        result = engine.assemble(job, frames.frame_urls, workdir)

    return StageResult(
        STAGE_UPLOAD,
        STATUS_UPLOAD_PENDING,
        {
            "videoUrl": result.video_url,
            "videoSize": result.video_size,
            "audioFile": result.audio_file,
            "assembleDuration": result.duration,
        },
    )


def _resolve_playlist(job, playlists: PlaylistResolver) -> str | None:
    try:
        if not playlists.loaded:
            playlists.load_snapshot()
        return playlists.resolve(playlist_key_for_job(job), build_playlist_title(job), build_playlist_description(job))
    except Exception as e:
        # never fails the upload; the next run resolves the playlist again
        logger.warning("[Job %s] Continuing without playlist: %s", job.id, e, exc_info=not isinstance(e, PlaylistError))
        return None


def upload_video(job, *, storage, platform, playlists: PlaylistResolver) -> StageResult:
    video = parse_artifact(VideoReady, job.data)
    if video is None:
        raise JobDataError("Video URL not found in job data")

    video_bytes = storage.download(video.video_url)

    playlist_id = _resolve_playlist(job, playlists)
    metadata = build_video_metadata(job, playlist_id)
    youtube_video_id = platform.upload_video(video_bytes, metadata)
    logger.info("[Job %s] Uploaded https://www.youtube.com/watch?v=%s", job.id, youtube_video_id)

    frames = parse_artifact(FramesReady, job.data)
    if frames is not None:
        try:
            platform.set_thumbnail(youtube_video_id, storage.download(frames.frame_urls[0]))
        except Exception as e:
            logger.warning("[Job %s] Failed to upload thumbnail: %s", job.id, e, exc_info=True)

    if playlist_id:
        try:
            platform.add_to_collection(playlist_id, youtube_video_id)
            logger.info("[Job %s] Added video to playlist %s", job.id, playlist_id)
        except Exception as e:
            logger.warning("[Job %s] Failed to add video to playlist: %s", job.id, e, exc_info=True)

    return StageResult(
        STAGE_DONE,
        STATUS_COMPLETED,
        {"playlistId": playlist_id} if playlist_id else {},
        upload=UploadOutcome(youtube_video_id, metadata),
    )


def cleanup_remote_assets(storage, data: dict[str, Any]) -> int:
    """Best-effort removal of the CDN copies once the video lives on YouTube."""
    urls = []
    if data.get("videoUrl"):
        urls.append(data["videoUrl"])
    if isinstance(data.get("frameUrls"), list):
        urls.extend(data["frameUrls"])

    deleted = 0
    for url in urls:
        try:
            if storage.delete(url):
                deleted += 1
        except Exception as e:
            logger.warning("Failed to delete %s: %s", url, e)
    return deleted
