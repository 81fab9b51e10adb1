from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class StageDecisionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # `passed`/`rejected` from the stage dialog are accepted as aliases of pass/reject.
    outcome: str = Field(validation_alias="status")
    score: Optional[float] = None
    notes: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    resource_url: Optional[HttpUrl] = Field(default=None, validation_alias="zoom_url")


class ApproveIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    score: Optional[float] = None
    notes: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    resource_url: Optional[HttpUrl] = Field(default=None, validation_alias="zoom_url")


class RejectIn(BaseModel):
    notes: Optional[str] = None


class ManualTestScoreIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    outcome: Literal["pass", "reject", "passed", "rejected"] = Field(validation_alias="status")
    manual_score: float = Field(ge=0, le=100)
    notes: Optional[str] = Field(default=None, max_length=1000)
    scheduled_at: Optional[datetime] = None
    resource_url: Optional[HttpUrl] = Field(default=None, validation_alias="zoom_url")


class StageTransitionOut(BaseModel):
    application_id: int
    stage: str
    outcome: str
    from_status: str
    to_status: str
    closed_history_id: Optional[int] = None
    opened_history_id: Optional[int] = None
    score: Optional[float] = None
    finalized: bool = False
    overall_score: Optional[float] = None


class FinalizeOut(BaseModel):
    application_id: int
    finalized: bool
    overall_score: Optional[float] = None
    missing_stages: List[str] = []
