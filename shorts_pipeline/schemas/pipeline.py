from pydantic import BaseModel
from typing import List, Literal, Optional


class RunOutcome(BaseModel):
    success: bool
    status: Literal["processed", "noop", "failed"]
    stage: int
    job_id: Optional[str] = None
    message: str


class RunRequest(BaseModel):
    account_id: Optional[str] = None
    personas: Optional[List[str]] = None
    batch: int = 1
