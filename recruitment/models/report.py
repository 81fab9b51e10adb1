from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recruitment.core.datetime_utils import utcnow_naive
from recruitment.db.base import Base


class RecApplicationReport(Base):
    __tablename__ = "rec_application_report"

    report_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("rec_application.application_id"), unique=True, nullable=False, index=True
    )

    overall_score: Mapped[float | None] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)
    final_decision: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    final_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    decision_made_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    decision_made_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)
