from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    report_id: int
    application_id: int
    overall_score: Optional[float] = None
    final_decision: str
    final_notes: Optional[str] = None
    decision_made_by: Optional[str] = None
    decision_made_at: Optional[datetime] = None


class ReportListItem(BaseModel):
    application_id: int
    candidate_ref: str
    job_period_id: int
    status_code: Optional[str] = None
    overall_score: Optional[float] = None
    final_decision: str
    decision_made_at: Optional[datetime] = None


class ReportDecisionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # The reports screen posts passed/rejected.
    decision: Literal["accepted", "rejected", "passed"] = Field(validation_alias="status")
    notes: Optional[str] = None

    @property
    def final_decision(self) -> str:
        return "accepted" if self.decision in {"accepted", "passed"} else "rejected"
