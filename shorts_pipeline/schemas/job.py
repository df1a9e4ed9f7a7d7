from pydantic import BaseModel, ConfigDict
from typing import Any, List, Optional
from datetime import datetime
import uuid


class JobOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    account_id: str
    persona: str
    topic: str
    topic_display_name: Optional[str]
    content_format: str
    stage: int
    status: str
    error_message: Optional[str]
    attempts: int
    data: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    # most advanced stage output found in data: content | frames | video | uploaded
    artifact: Optional[str] = None


class JobStats(BaseModel):
    total: int
    pending: int
    completed: int
    failed: int


class RetryFailedRequest(BaseModel):
    job_ids: List[uuid.UUID]
