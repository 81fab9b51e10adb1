from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AnswerSummaryOut(BaseModel):
    scoring_mode: str
    total: int
    correct: int
    unanswered: int
    score: Optional[float] = None


class AssessmentStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_completed: bool
    completed_at: Optional[datetime] = None
    score: Optional[float] = None
    can_retake: bool = False
