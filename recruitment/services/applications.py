from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.core.datetime_utils import utcnow_naive
from recruitment.core.errors import ApplicationNotFound, PipelineValidationError
from recruitment.core.stage_machine import PIPELINE, PSYCHOTEST, Stage, descriptor_for
from recruitment.models.application import RecApplication
from recruitment.models.history import RecApplicationHistory
from recruitment.models.status import RecStatus
from recruitment.services import history_ledger, status_catalog
from recruitment.services.events import log_event
from recruitment.services.transaction import run_in_transaction


@dataclass(frozen=True)
class AssessmentStatus:
    is_completed: bool
    completed_at: datetime | None
    score: float | None
    can_retake: bool = False


async def get_application(session: AsyncSession, application_id: int) -> RecApplication:
    application = await session.get(RecApplication, application_id)
    if application is None:
        raise ApplicationNotFound(f"Application {application_id} not found.")
    return application


async def submit_application(
    session: AsyncSession,
    *,
    candidate_ref: str,
    job_period_id: int,
) -> RecApplication:
    """Create the application and open its first stage."""
    entry = await status_catalog.find_by_code(session, PIPELINE[0].status_code)

    async def work() -> RecApplication:
        now = utcnow_naive()
        application = RecApplication(
            candidate_ref=candidate_ref,
            job_period_id=job_period_id,
            status_id=entry.status_id,
            created_at=now,
            updated_at=now,
        )
        session.add(application)
        try:
            await session.flush()
        except IntegrityError:
            raise PipelineValidationError(
                "Candidate already applied to this job period.", code="duplicate_application"
            ) from None
        await history_ledger.open_stage(
            session, application_id=application.application_id, status_id=entry.status_id, now=now
        )
        await log_event(
            session,
            application_id=application.application_id,
            action_type="stage_change",
            from_status=None,
            to_status=entry.code,
            performed_by=candidate_ref,
            meta_json={"source": "application_submitted", "job_period_id": job_period_id},
        )
        return application

    return await run_in_transaction(session, action="submit_application", application_id=None, work=work)


async def list_stage_applications(
    session: AsyncSession,
    *,
    stage: Stage,
    job_period_id: int | None = None,
) -> list[tuple[RecApplication, RecApplicationHistory]]:
    """Applications whose active record sits in the given stage, oldest entry first."""
    code = descriptor_for(stage).status_code
    stmt = (
        select(RecApplication, RecApplicationHistory)
        .join(RecApplicationHistory, RecApplicationHistory.application_id == RecApplication.application_id)
        .join(RecStatus, RecStatus.status_id == RecApplicationHistory.status_id)
        .where(RecStatus.code == code, RecApplicationHistory.is_active.is_(True))
        .order_by(RecApplicationHistory.processed_at, RecApplication.application_id)
    )
    if job_period_id is not None:
        stmt = stmt.where(RecApplication.job_period_id == job_period_id)
    return [(application, record) for application, record in (await session.execute(stmt)).all()]


async def get_test_status(session: AsyncSession, application: RecApplication) -> AssessmentStatus:
    """Candidate-facing view of the psychological test visit."""
    record = (
        await session.execute(
            select(RecApplicationHistory)
            .join(RecStatus, RecStatus.status_id == RecApplicationHistory.status_id)
            .where(RecApplicationHistory.application_id == application.application_id, RecStatus.code == PSYCHOTEST)
            .order_by(RecApplicationHistory.processed_at.desc(), RecApplicationHistory.history_id.desc())
            .limit(1)
        )
    ).scalars().first()
    if record is None:
        return AssessmentStatus(is_completed=False, completed_at=None, score=None)
    return AssessmentStatus(
        is_completed=record.completed_at is not None,
        completed_at=record.completed_at,
        score=record.score,
    )
