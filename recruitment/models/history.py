from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recruitment.core.datetime_utils import utcnow_naive
from recruitment.db.base import Base


class RecApplicationHistory(Base):
    """One row per visit of an application to a stage."""

    __tablename__ = "rec_application_history"

    history_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(ForeignKey("rec_application.application_id"), index=True)
    status_id: Mapped[int] = mapped_column(ForeignKey("rec_status.status_id"), index=True)

    score: Mapped[float | None] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    processed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    resource_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive)
