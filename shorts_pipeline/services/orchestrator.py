from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from sqlalchemy.orm import Session

from shorts_pipeline import config
from shorts_pipeline.database import SessionLocal
from shorts_pipeline.models.job import Job
from shorts_pipeline.schemas.pipeline import RunOutcome
from shorts_pipeline.services import stages
from shorts_pipeline.services.assembly import AssemblyEngine
from shorts_pipeline.services.content_source import ContentSource
from shorts_pipeline.services.errors import PipelineError
from shorts_pipeline.services.frame_fetcher import FrameFetcher
from shorts_pipeline.services.frame_renderer import FrameRenderer
from shorts_pipeline.services.job_store import (
    auto_retry_failed_jobs,
    fetch_oldest_pending,
    mark_completed,
    mark_failed,
    truncate_error,
    update_job,
)
from shorts_pipeline.services.playlists import PlaylistResolver
from shorts_pipeline.services.storage import ObjectStorage
from shorts_pipeline.services.youtube_client import YouTubeClient
from shorts_pipeline.utils.constants import (
    STAGE_ASSEMBLY,
    STAGE_FRAMES,
    STAGE_GENERATE,
    STAGE_LABELS,
    STAGE_UPLOAD,
    STATUS_COMPLETED,
)

logger = logging.getLogger(__name__)

RUNNABLE_STAGES = (STAGE_GENERATE, STAGE_FRAMES, STAGE_ASSEMBLY, STAGE_UPLOAD)


class PipelineDeps:
    """
    Collaborators for the stage workers. Anything not passed in is built on
    first use, so a run only needs the credentials of the stage it executes.
    """

    def __init__(
        self,
        content_source=None,
        frame_renderer=None,
        storage=None,
        engine=None,
        platform=None,
        scratch_root: str | Path | None = None,
    ):
        self._content_source = content_source
        self._frame_renderer = frame_renderer
        self._storage = storage
        self._engine = engine
        self._platform = platform
        self.scratch_root = scratch_root if scratch_root is not None else config.SCRATCH_ROOT

    @property
    def content_source(self):
        if self._content_source is None:
            self._content_source = ContentSource()
        return self._content_source

    @property
    def frame_renderer(self):
        if self._frame_renderer is None:
            self._frame_renderer = FrameRenderer()
        return self._frame_renderer

    @property
    def storage(self):
        if self._storage is None:
            self._storage = ObjectStorage()
        return self._storage

    @property
    def engine(self):
        if self._engine is None:
            self._engine = AssemblyEngine(FrameFetcher(), self.storage)
        return self._engine

    @property
    def platform(self):
        if self._platform is None:
            self._platform = YouTubeClient()
        return self._platform


def supports_concurrent_claims(bind) -> bool:
    """SKIP LOCKED row claims; SQLite ignores FOR UPDATE, so concurrent runs could share a job."""
    return bind.dialect.name != "sqlite"


def _run_stage(job: Job, stage: int, deps: PipelineDeps, playlists: PlaylistResolver | None) -> stages.StageResult:
    if stage == STAGE_GENERATE:
        return stages.generate_content(job, content_source=deps.content_source)
    if stage == STAGE_FRAMES:
        return stages.render_frames(job, frame_renderer=deps.frame_renderer)
    if stage == STAGE_ASSEMBLY:
        return stages.assemble_video(job, engine=deps.engine, scratch_root=deps.scratch_root)
    return stages.upload_video(
        job,
        storage=deps.storage,
        platform=deps.platform,
        playlists=playlists or PlaylistResolver(deps.platform),
    )


def _persist(db: Session, job: Job, result: stages.StageResult) -> None:
    if result.upload is not None:
        mark_completed(db, job, result.upload.youtube_video_id, result.upload.metadata, extra_data=result.data)
    else:
        update_job(db, job, status=result.status, stage=result.stage, data=result.data, error_message=None)


def _after_completion(job: Job, deps: PipelineDeps) -> None:
    if not config.CLEANUP_REMOTE_ASSETS:
        return
    try:
        deleted = stages.cleanup_remote_assets(deps.storage, job.data or {})
        logger.info("[Job %s] Cleaned up %d remote assets", job.id, deleted)
    except Exception as e:
        logger.warning("[Job %s] Remote asset cleanup failed: %s", job.id, e)


def run_pipeline(
    db: Session,
    stage: int,
    *,
    account_id: str | None = None,
    personas: list[str] | None = None,
    deps: PipelineDeps | None = None,
    playlists: PlaylistResolver | None = None,
    retry_failed: bool = True,
) -> RunOutcome:
    """
    Advance at most one job by one stage.

    This is the only place a stage failure is turned into a persisted
    `failed` status; workers and the store just raise.
    """
    if stage not in RUNNABLE_STAGES:
        raise ValueError(f"Stage {stage} is not runnable")

    deps = deps or PipelineDeps()
    label = STAGE_LABELS[stage]
    started = time.monotonic()

    if retry_failed:
        auto_retry_failed_jobs(db)

    job = fetch_oldest_pending(db, stage, account_id=account_id, personas=personas)
    if job is None:
        db.rollback()
        message = f"No jobs pending stage {stage} ({label}) for account: {account_id or 'all'}"
        logger.info(message)
        return RunOutcome(success=True, status="noop", stage=stage, message=message)

    job_id = job.id
    logger.info("[Job %s] %s started (status=%s)", job_id, label, job.status)

    try:
        result = _run_stage(job, stage, deps, playlists)
        _persist(db, job, result)
    except Exception as exc:
        db.rollback()
        message = truncate_error(f"{label} failed: {exc}")
        if isinstance(exc, PipelineError):
            logger.error("[Job %s] %s", job_id, message)
        else:
            logger.exception("[Job %s] Unexpected error during %s", job_id, label.lower())

        job = db.get(Job, job_id)
        if job is not None and job.status != STATUS_COMPLETED:
            mark_failed(db, job, message)
        return RunOutcome(success=False, status="failed", stage=stage, job_id=str(job_id), message=message)

    if result.upload is not None:
        _after_completion(job, deps)

    duration = time.monotonic() - started
    message = f"{label} succeeded in {duration:.2f}s"
    logger.info("[Job %s] %s", job_id, message)
    return RunOutcome(success=True, status="processed", stage=stage, job_id=str(job_id), message=message)


def run_pipeline_batch(
    stage: int,
    *,
    size: int,
    session_factory=SessionLocal,
    account_id: str | None = None,
    personas: list[str] | None = None,
    deps: PipelineDeps | None = None,
) -> list[RunOutcome]:
    """
    Up to `size` concurrent single-job runs sharing one deps set and one
    PlaylistResolver. Each worker thread uses its own session; on PostgreSQL
    SKIP LOCKED hands every worker a different job. On SQLite only one run
    is started.
    """
    deps = deps or PipelineDeps()
    playlists = PlaylistResolver(deps.platform) if stage == STAGE_UPLOAD else None

    with session_factory() as db:
        auto_retry_failed_jobs(db)
        if size > 1 and not supports_concurrent_claims(db.get_bind()):
            logger.warning("%s cannot skip claimed rows, running one job instead of %d", db.get_bind().dialect.name, size)
            size = 1

    def _one(_: int) -> RunOutcome:
        with session_factory() as db:
            return run_pipeline(
                db,
                stage,
                account_id=account_id,
                personas=personas,
                deps=deps,
                playlists=playlists,
                retry_failed=False,
            )

    with ThreadPoolExecutor(max_workers=max(1, size)) as pool:
        return list(pool.map(_one, range(max(1, size))))
