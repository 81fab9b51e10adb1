from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from recruitment.core.datetime_utils import utcnow_naive
from recruitment.db.base import Base


class RecApplication(Base):
    __tablename__ = "rec_application"
    __table_args__ = (UniqueConstraint("candidate_ref", "job_period_id", name="uq_rec_application_candidate_period"),)

    application_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_ref: Mapped[str] = mapped_column(String(100), index=True)
    job_period_id: Mapped[int] = mapped_column(ForeignKey("rec_job_period.job_period_id"), index=True)

    # Cached projection of the active history record; rewritten by the transition engine only.
    status_id: Mapped[int] = mapped_column(ForeignKey("rec_status.status_id"), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)
