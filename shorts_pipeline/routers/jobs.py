import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from shorts_pipeline.database import get_db
from shorts_pipeline.models.job import Job
from shorts_pipeline.schemas.job import JobOut, JobStats, RetryFailedRequest
from shorts_pipeline.services.job_store import get_job, job_stats, list_recent_jobs, reset_failed_job
from shorts_pipeline.services.state_machine import latest_artifact
from shorts_pipeline.utils.constants import STATUS_FAILED

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/recent", response_model=list[JobOut])
def recent(db: Session = Depends(get_db), limit: int = Query(20, ge=1, le=200)):
    return list_recent_jobs(db, limit=limit)


@router.get("/failed", response_model=list[JobOut])
def failed(db: Session = Depends(get_db), limit: int = Query(50, ge=1, le=200)):
    return list_recent_jobs(db, limit=limit, status=STATUS_FAILED)


@router.get("/stats", response_model=JobStats)
def stats(db: Session = Depends(get_db)):
    return job_stats(db)


@router.get("/{job_id}", response_model=JobOut)
def get_one(job_id: uuid.UUID, db: Session = Depends(get_db)):
    job = get_job(db, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    out = JobOut.model_validate(job)
    artifact = latest_artifact(job.data)
    out.artifact = artifact.kind if artifact else None
    return out


@router.post("/retry-failed")
def retry_failed(payload: RetryFailedRequest, db: Session = Depends(get_db)):
    if not payload.job_ids:
        raise HTTPException(status_code=400, detail="job_ids is required")

    jobs = db.execute(select(Job).where(Job.id.in_(payload.job_ids))).scalars().all()
    if not jobs:
        raise HTTPException(status_code=404, detail="No jobs found")

    moved = 0
    skipped = []
    for job in jobs:
        if job.status != STATUS_FAILED:
            skipped.append({"id": str(job.id), "status": job.status, "reason": "Only failed jobs can be retried"})
            continue
        # manual retry ignores the attempt limit
        if not reset_failed_job(db, job, retry_limit=0):
            skipped.append({"id": str(job.id), "status": job.status, "reason": "No resumable data"})
            continue
        moved += 1

    db.commit()
    return {"retried": moved, "skipped": len(skipped), "skipped_items": skipped}
