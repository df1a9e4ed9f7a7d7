from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import and_, asc, case, desc, func, or_, select
from sqlalchemy.orm import Session

from shorts_pipeline import config
from shorts_pipeline.models.job import Job
from shorts_pipeline.models.uploaded_video import UploadedVideo
from shorts_pipeline.services.state_machine import ensure_transition, infer_checkpoint
from shorts_pipeline.services.video_metadata import VideoMetadata
from shorts_pipeline.utils.constants import (
    STAGE_DONE,
    STAGE_GENERATE,
    STAGES,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
)

logger = logging.getLogger(__name__)

_KEEP = object()


def truncate_error(message: str) -> str:
    return (message or "")[: config.MAX_ERROR_MESSAGE_LENGTH]


def create_job(
    db: Session,
    *,
    account_id: str,
    persona: str,
    topic: str,
    topic_display_name: str | None = None,
    content_format: str = "multiple_choice",
    data: dict[str, Any] | None = None,
) -> Job:
    job = Job(
        account_id=account_id,
        persona=persona,
        topic=topic,
        topic_display_name=topic_display_name,
        content_format=content_format,
        stage=STAGE_GENERATE,
        status=STATUS_PENDING,
        data=dict(data or {}),
    )
    db.add(job)
    db.commit()
    return job


def get_job(db: Session, job_id: uuid.UUID | str) -> Job | None:
    if isinstance(job_id, str):
        job_id = uuid.UUID(job_id)
    return db.get(Job, job_id)


def fetch_oldest_pending(
    db: Session,
    stage: int,
    account_id: str | None = None,
    personas: list[str] | None = None,
    lock: bool = True,
    retry_limit: int | None = None,
) -> Job | None:
    """
    Oldest job waiting for `stage`: a *pending* status, or `failed` past stage 1.
    Failed jobs that used up the retry limit are skipped.

    With lock=True the row is claimed FOR UPDATE SKIP LOCKED; the claim lasts
    until the caller's next commit/rollback (PostgreSQL only, ignored by SQLite).
    """
    q = (
        select(Job)
        .where(Job.stage == stage)
        .where(
            or_(
                Job.status.like("%pending%"),
                and_(Job.status == STATUS_FAILED, Job.stage > 1),
            )
        )
    )

    if personas:
        q = q.where(Job.persona.in_(personas))
    if account_id:
        q = q.where(Job.account_id == account_id)

    limit = config.JOB_RETRY_LIMIT if retry_limit is None else retry_limit
    if limit:
        # exhausted failed jobs stay failed and do not block the queue
        q = q.where(or_(Job.status != STATUS_FAILED, Job.attempts < limit))

    q = q.order_by(asc(Job.created_at)).limit(1)
    if lock:
        q = q.with_for_update(skip_locked=True)

    return db.execute(q).scalars().first()


def update_job(
    db: Session,
    job: Job,
    *,
    status: str | None = None,
    stage: int | None = None,
    data: dict[str, Any] | None = None,
    error_message: Any = _KEEP,
) -> Job:
    """Partial update. `data` is merged into what the job already has."""
    if status is not None and status != job.status:
        ensure_transition(job.status, status)
        job.status = status

    if stage is not None:
        if stage not in STAGES:
            raise ValueError(f"Invalid stage: {stage}")
        job.stage = stage

    if data:
        job.data = {**(job.data or {}), **data}

    if error_message is not _KEEP:
        job.error_message = truncate_error(error_message) if error_message else None

    job.updated_at = datetime.utcnow()
    db.commit()
    return job


def mark_failed(db: Session, job: Job, message: str) -> Job:
    ensure_transition(job.status, STATUS_FAILED)
    job.status = STATUS_FAILED
    job.error_message = truncate_error(message)
    job.attempts = (job.attempts or 0) + 1
    job.updated_at = datetime.utcnow()
    db.commit()
    return job


def mark_completed(
    db: Session,
    job: Job,
    youtube_video_id: str,
    metadata: VideoMetadata,
    extra_data: dict[str, Any] | None = None,
) -> Job:
    """
    Complete the job and record the uploaded video in ONE transaction.
    Either both rows change or neither does.
    """
    ensure_transition(job.status, STATUS_COMPLETED)
    try:
        job.status = STATUS_COMPLETED
        job.stage = STAGE_DONE
        job.data = {**(job.data or {}), **(extra_data or {}), "youtubeVideoId": youtube_video_id}
        job.error_message = None
        job.updated_at = datetime.utcnow()

        db.add(
            UploadedVideo(
                job_id=job.id,
                youtube_video_id=youtube_video_id,
                title=metadata.title,
                description=metadata.description or "",
                tags=list(metadata.tags or []),
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Transaction failed for job %s, rolled back.", job.id)
        raise
    return job


def reset_failed_job(db: Session, job: Job, retry_limit: int | None = None) -> bool:
    """
    Re-queue a failed job at the most advanced checkpoint its data supports.
    Returns False (job stays failed) when nothing in `data` is resumable.
    Does not commit.
    """
    if job.status != STATUS_FAILED:
        return False

    limit = config.JOB_RETRY_LIMIT if retry_limit is None else retry_limit
    if limit and (job.attempts or 0) >= limit:
        return False

    checkpoint = infer_checkpoint(job.data)
    if checkpoint is None:
        return False

    ensure_transition(job.status, checkpoint.status)
    job.status = checkpoint.status
    job.stage = checkpoint.stage
    job.error_message = None
    job.updated_at = datetime.utcnow()
    logger.info("Reset failed job %s to %s (stage %s)", job.id, checkpoint.status, checkpoint.stage)
    return True


def auto_retry_failed_jobs(db: Session, retry_limit: int | None = None) -> int:
    q = (
        select(Job)
        .where(Job.status == STATUS_FAILED)
        .where(Job.stage > 1)
        .order_by(asc(Job.created_at))
    )
    failed_jobs = db.execute(q).scalars().all()

    reset_count = 0
    for job in failed_jobs:
        if reset_failed_job(db, job, retry_limit=retry_limit):
            reset_count += 1

    db.commit()
    if reset_count:
        logger.info("Auto-retried %d failed jobs with valid data", reset_count)
    return reset_count


def list_recent_jobs(db: Session, limit: int = 20, status: str | None = None) -> list[Job]:
    q = select(Job)
    if status:
        q = q.where(Job.status == status)
    q = q.order_by(desc(Job.updated_at), desc(Job.created_at)).limit(limit)
    return list(db.execute(q).scalars().all())


def job_stats(db: Session) -> dict[str, int]:
    row = db.execute(
        select(
            func.count(Job.id),
            func.sum(case((Job.status.like("%pending%"), 1), else_=0)),
            func.sum(case((Job.status == STATUS_COMPLETED, 1), else_=0)),
            func.sum(case((Job.status == STATUS_FAILED, 1), else_=0)),
        )
    ).one()
    total, pending, completed, failed = row
    return {
        "total": int(total or 0),
        "pending": int(pending or 0),
        "completed": int(completed or 0),
        "failed": int(failed or 0),
    }
