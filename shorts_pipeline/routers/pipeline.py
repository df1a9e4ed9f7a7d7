import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from shorts_pipeline import config
from shorts_pipeline.database import get_db
from shorts_pipeline.schemas.pipeline import RunOutcome, RunRequest
from shorts_pipeline.services.orchestrator import (
    RUNNABLE_STAGES,
    run_pipeline,
    run_pipeline_batch,
    supports_concurrent_claims,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])

MAX_BATCH = 10


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    if not config.CRON_SECRET:
        raise HTTPException(status_code=500, detail="CRON_SECRET is not set")
    if authorization != f"Bearer {config.CRON_SECRET}":
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/run/{stage}", response_model=list[RunOutcome], dependencies=[Depends(require_cron_secret)])
def run(stage: int, payload: RunRequest | None = None, db: Session = Depends(get_db)):
    """
    Advance the oldest pending job(s) of `stage` by one stage.
    Safe to call from a timer: with nothing to do it returns a noop outcome.

    `batch` > 1 starts concurrent runs, each on its own session. That needs
    row locks that skip claimed jobs, so on SQLite the batch is clamped to 1.
    """
    if stage not in RUNNABLE_STAGES:
        raise HTTPException(status_code=400, detail=f"Stage must be one of {list(RUNNABLE_STAGES)}")

    payload = payload or RunRequest()
    batch = min(payload.batch, MAX_BATCH)
    if batch > 1 and not supports_concurrent_claims(db.get_bind()):
        logger.warning("Batch of %d requested on %s, running one job", batch, db.get_bind().dialect.name)
        batch = 1

    if batch > 1:
        return run_pipeline_batch(
            stage,
            size=batch,
            account_id=payload.account_id,
            personas=payload.personas,
        )
    return [run_pipeline(db, stage, account_id=payload.account_id, personas=payload.personas)]
