from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.core.config import settings
from recruitment.models.application import RecApplication
from recruitment.models.job_period import RecJobPeriod
from recruitment.models.question_pack import RecQuestionChoice, RecQuestionPack, RecUserAnswer

logger = logging.getLogger("rec.scoring")


class ScoringMode(str, Enum):
    AUTO = "auto_scored"
    MANUAL = "manual_scored"


@dataclass(frozen=True)
class ScoreResult:
    mode: Literal["auto", "manual_required"]
    value: float | None = None

    @property
    def requires_manual(self) -> bool:
        return self.mode == "manual_required"


@dataclass(frozen=True)
class AnswerSummary:
    scoring_mode: ScoringMode
    total: int
    correct: int
    unanswered: int
    # Only meaningful for auto-scored packs.
    score: float | None


MANUAL_REQUIRED = ScoreResult(mode="manual_required")


def classify_test_type(test_type: str | None, manual_test_types: Iterable[str] | None = None) -> ScoringMode:
    manual = frozenset(manual_test_types) if manual_test_types is not None else settings.manual_test_types
    if test_type and test_type.strip().lower() in manual:
        return ScoringMode.MANUAL
    return ScoringMode.AUTO


def percentage(correct: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(correct / total * 100, 2)


async def register_question_pack(session: AsyncSession, *, name: str, test_type: str) -> RecQuestionPack:
    """Create a pack with its scoring mode fixed up front."""
    pack = RecQuestionPack(name=name, test_type=test_type, scoring_mode=classify_test_type(test_type).value)
    session.add(pack)
    await session.flush()
    return pack


async def _question_pack_for(session: AsyncSession, application: RecApplication) -> RecQuestionPack | None:
    return (
        await session.execute(
            select(RecQuestionPack)
            .join(RecJobPeriod, RecJobPeriod.question_pack_id == RecQuestionPack.question_pack_id)
            .where(RecJobPeriod.job_period_id == application.job_period_id)
            .limit(1)
        )
    ).scalars().first()


async def scoring_mode_for(session: AsyncSession, application: RecApplication) -> ScoringMode:
    pack = await _question_pack_for(session, application)
    if pack is None:
        return ScoringMode.AUTO
    if pack.scoring_mode:
        return ScoringMode(pack.scoring_mode)
    # Rows registered before scoring_mode existed.
    return classify_test_type(pack.test_type)


async def _answer_correctness(session: AsyncSession, application_id: int) -> list[bool | None]:
    """One entry per captured answer; None when the candidate picked no choice."""
    rows = await session.execute(
        select(RecUserAnswer.user_answer_id, RecQuestionChoice.is_correct)
        .outerjoin(RecQuestionChoice, RecQuestionChoice.choice_id == RecUserAnswer.choice_id)
        .where(RecUserAnswer.application_id == application_id)
        .order_by(RecUserAnswer.user_answer_id)
    )
    return [is_correct for _, is_correct in rows.all()]


async def score_for(session: AsyncSession, application: RecApplication) -> ScoreResult:
    mode = await scoring_mode_for(session, application)
    if mode is ScoringMode.MANUAL:
        return MANUAL_REQUIRED

    answers = await _answer_correctness(session, application.application_id)
    correct = sum(1 for is_correct in answers if is_correct)
    value = percentage(correct, len(answers))
    logger.debug(
        "test_scored",
        extra={"application_id": application.application_id, "answers": len(answers), "correct": correct},
    )
    return ScoreResult(mode="auto", value=value)


async def summarize_answers(session: AsyncSession, application: RecApplication) -> AnswerSummary:
    mode = await scoring_mode_for(session, application)
    answers = await _answer_correctness(session, application.application_id)
    correct = sum(1 for is_correct in answers if is_correct)
    return AnswerSummary(
        scoring_mode=mode,
        total=len(answers),
        correct=correct,
        unanswered=sum(1 for is_correct in answers if is_correct is None),
        score=percentage(correct, len(answers)) if mode is ScoringMode.AUTO else None,
    )
