from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class StageApplicationItem(BaseModel):
    application_id: int
    candidate_ref: str
    job_period_id: int
    history_id: int
    processed_at: datetime
    scheduled_at: Optional[datetime] = None
    resource_url: Optional[str] = None
    notes: Optional[str] = None
