from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from recruitment.models.history import RecApplicationHistory
from recruitment.models.status import RecStatus


class HistoryRecordOut(BaseModel):
    history_id: int
    application_id: int
    status_id: int
    status_code: Optional[str] = None
    status_name: Optional[str] = None
    stage: Optional[str] = None
    score: Optional[float] = None
    notes: Optional[str] = None
    processed_at: datetime
    scheduled_at: Optional[datetime] = None
    resource_url: Optional[str] = None
    completed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    is_active: bool
    is_completed: bool


def history_out(record: RecApplicationHistory, status: RecStatus | None) -> HistoryRecordOut:
    return HistoryRecordOut(
        history_id=record.history_id,
        application_id=record.application_id,
        status_id=record.status_id,
        status_code=status.code if status else None,
        status_name=status.name if status else None,
        stage=status.stage if status else None,
        score=record.score,
        notes=record.notes,
        processed_at=record.processed_at,
        scheduled_at=record.scheduled_at,
        resource_url=record.resource_url,
        completed_at=record.completed_at,
        reviewed_by=record.reviewed_by,
        reviewed_at=record.reviewed_at,
        is_active=record.is_active,
        is_completed=record.completed_at is not None,
    )
