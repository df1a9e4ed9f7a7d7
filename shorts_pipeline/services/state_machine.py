from __future__ import annotations

from typing import Any, ClassVar, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shorts_pipeline.utils.constants import (
    STAGE_ASSEMBLY,
    STAGE_FRAMES,
    STAGE_UPLOAD,
    STATUS_ASSEMBLY_PENDING,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_FRAMES_PENDING,
    STATUS_PENDING,
    STATUS_UPLOAD_PENDING,
    STATUSES,
)

ALLOWED_TRANSITIONS = {
    STATUS_PENDING: [STATUS_FRAMES_PENDING, STATUS_FAILED],
    STATUS_FRAMES_PENDING: [STATUS_ASSEMBLY_PENDING, STATUS_FAILED],
    STATUS_ASSEMBLY_PENDING: [STATUS_UPLOAD_PENDING, STATUS_FAILED],
    STATUS_UPLOAD_PENDING: [STATUS_COMPLETED, STATUS_FAILED],
    STATUS_COMPLETED: [],
    # failed jobs at stage > 1 are picked up again directly or re-queued by auto-retry
    STATUS_FAILED: [
        STATUS_FRAMES_PENDING,
        STATUS_ASSEMBLY_PENDING,
        STATUS_UPLOAD_PENDING,
        STATUS_COMPLETED,
        STATUS_FAILED,
    ],
}


def ensure_transition(current: str, target: str) -> None:
    if current not in STATUSES:
        raise ValueError(f"Unknown state: {current}")
    if target not in STATUSES:
        raise ValueError(f"Unknown target state: {target}")

    allowed = ALLOWED_TRANSITIONS.get(current, [])
    if target not in allowed:
        raise ValueError(f"Invalid transition: {current} -> {target}")


# ---------- Typed views over Job.data ----------


class _Artifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ContentReady(_Artifact):
    kind: ClassVar[str] = "content"
    content: Any

    @field_validator("content")
    @classmethod
    def _present(cls, v):
        if v is None or v == "" or v is False:
            raise ValueError("content is empty")
        return v


class FramesReady(_Artifact):
    kind: ClassVar[str] = "frames"
    frame_urls: list[str] = Field(alias="frameUrls", min_length=1)


class VideoReady(_Artifact):
    kind: ClassVar[str] = "video"
    video_url: str = Field(alias="videoUrl", min_length=1)
    video_size: int | None = Field(default=None, alias="videoSize")
    audio_file: str | None = Field(default=None, alias="audioFile")


class Uploaded(_Artifact):
    kind: ClassVar[str] = "uploaded"
    youtube_video_id: str = Field(alias="youtubeVideoId", min_length=1)
    playlist_id: str | None = Field(default=None, alias="playlistId")


Artifact = ContentReady | FramesReady | VideoReady | Uploaded


def parse_artifact(model: type[_Artifact], data: dict[str, Any] | None):
    """Return the typed view if `data` carries that stage's output, else None."""
    if not isinstance(data, dict):
        return None
    try:
        return model.model_validate(data)
    except ValidationError:
        return None


class Checkpoint(NamedTuple):
    stage: int
    status: str


# Most advanced first: the first artifact present decides where a job resumes.
RESUME_CHECKPOINTS: list[tuple[type[_Artifact], Checkpoint]] = [
    (VideoReady, Checkpoint(STAGE_UPLOAD, STATUS_UPLOAD_PENDING)),
    (FramesReady, Checkpoint(STAGE_ASSEMBLY, STATUS_ASSEMBLY_PENDING)),
    (ContentReady, Checkpoint(STAGE_FRAMES, STATUS_FRAMES_PENDING)),
]


def infer_checkpoint(data: dict[str, Any] | None) -> Checkpoint | None:
    for model, checkpoint in RESUME_CHECKPOINTS:
        if parse_artifact(model, data) is not None:
            return checkpoint
    return None


def latest_artifact(data: dict[str, Any] | None) -> Artifact | None:
    for model in (Uploaded, VideoReady, FramesReady, ContentReady):
        artifact = parse_artifact(model, data)
        if artifact is not None:
            return artifact
    return None
