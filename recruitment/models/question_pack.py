from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recruitment.core.datetime_utils import utcnow_naive
from recruitment.db.base import Base


class RecQuestionPack(Base):
    __tablename__ = "rec_question_pack"

    question_pack_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200))
    test_type: Mapped[str] = mapped_column(String(50))
    # auto_scored | manual_scored, fixed when the pack is registered. Null on legacy rows.
    scoring_mode: Mapped[str | None] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive)


class RecQuestionChoice(Base):
    __tablename__ = "rec_question_choice"

    choice_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(Integer, index=True)
    choice_text: Mapped[str] = mapped_column(Text)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)


class RecUserAnswer(Base):
    """Captured candidate answer. Read-only input to scoring."""

    __tablename__ = "rec_user_answer"

    user_answer_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_ref: Mapped[str] = mapped_column(String(100), index=True)
    application_id: Mapped[int] = mapped_column(ForeignKey("rec_application.application_id"), index=True)
    question_id: Mapped[int] = mapped_column(Integer, index=True)
    choice_id: Mapped[int | None] = mapped_column(ForeignKey("rec_question_choice.choice_id"), nullable=True)
    answer_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive)
