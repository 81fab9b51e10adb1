from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from recruitment.core.datetime_utils import utcnow_naive
from recruitment.db.base import Base


class RecJobPeriod(Base):
    """A job opening within a hiring period; links the question pack candidates take."""

    __tablename__ = "rec_job_period"

    job_period_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200))
    company_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    period_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    question_pack_id: Mapped[int | None] = mapped_column(
        ForeignKey("rec_question_pack.question_pack_id"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive)
