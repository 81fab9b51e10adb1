from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.api import deps
from recruitment.core.auth import require_roles
from recruitment.core.roles import DECISION_MAKER_ROLES, REVIEWER_ROLES, Role
from recruitment.core.stage_machine import Stage, normalize_stage_name
from recruitment.models.application import RecApplication
from recruitment.schemas.assessment import AnswerSummaryOut, AssessmentStatusOut
from recruitment.schemas.history import HistoryRecordOut, history_out
from recruitment.schemas.stage import (
    ApproveIn,
    FinalizeOut,
    ManualTestScoreIn,
    RejectIn,
    StageDecisionIn,
    StageTransitionOut,
)
from recruitment.schemas.user import UserContext
from recruitment.services import applications, final_decision, history_ledger, scoring, stage_transitions, status_catalog
from recruitment.services.stage_transitions import Scheduling, StageTransitionResult

router = APIRouter(prefix="/rec/applications", tags=["applications"])


def _transition_out(result: StageTransitionResult) -> StageTransitionOut:
    return StageTransitionOut(
        application_id=result.application_id,
        stage=result.stage.value,
        outcome=result.outcome.value,
        from_status=result.from_status,
        to_status=result.to_status,
        closed_history_id=result.closed_history_id,
        opened_history_id=result.opened_history_id,
        score=result.score,
        finalized=result.finalized,
        overall_score=result.overall_score,
    )


def _scheduling(payload: StageDecisionIn | ApproveIn | ManualTestScoreIn) -> Scheduling:
    return Scheduling(
        scheduled_at=payload.scheduled_at,
        resource_url=str(payload.resource_url) if payload.resource_url else None,
    )


@router.get("/{application_id}/history", response_model=list[HistoryRecordOut])
async def list_history(
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    _: UserContext = Depends(deps.get_user),
):
    records = await history_ledger.get_history(session, application.application_id)
    statuses = await status_catalog.statuses_by_id(session, {record.status_id for record in records})
    return [history_out(record, statuses.get(record.status_id)) for record in records]


@router.get("/{application_id}/history/active", response_model=Optional[HistoryRecordOut])
async def get_active_history(
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    _: UserContext = Depends(deps.get_user),
):
    record = await history_ledger.get_active_record(session, application.application_id)
    if record is None:
        return None
    return history_out(record, await status_catalog.get_status(session, record.status_id))


@router.post("/{application_id}/stages/{stage}/decision", response_model=StageTransitionOut)
async def decide_stage(
    stage: str,
    payload: StageDecisionIn,
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(REVIEWER_ROLES)),
):
    if normalize_stage_name(stage) is Stage.FINAL:
        # Hiring outright is reserved for HR.
        user = await require_roles(DECISION_MAKER_ROLES)(user)
    result = await stage_transitions.decide(
        session,
        application=application,
        stage=stage,
        outcome=payload.outcome,
        score=payload.score,
        notes=payload.notes,
        scheduling=_scheduling(payload),
        reviewer=user.user_id,
    )
    return _transition_out(result)


@router.post("/{application_id}/approve", response_model=StageTransitionOut)
async def approve_application(
    payload: ApproveIn,
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(REVIEWER_ROLES)),
):
    result = await stage_transitions.approve(
        session,
        application=application,
        score=payload.score,
        notes=payload.notes,
        scheduling=_scheduling(payload),
        reviewer=user.user_id,
    )
    return _transition_out(result)


@router.post("/{application_id}/reject", response_model=StageTransitionOut)
async def reject_application(
    payload: RejectIn,
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(REVIEWER_ROLES)),
):
    result = await stage_transitions.reject(
        session,
        application=application,
        notes=payload.notes,
        reviewer=user.user_id,
    )
    return _transition_out(result)


@router.post("/{application_id}/psychotest-score", response_model=StageTransitionOut)
async def submit_psychotest_score(
    payload: ManualTestScoreIn,
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(DECISION_MAKER_ROLES)),
):
    result = await stage_transitions.submit_manual_test_score(
        session,
        application=application,
        outcome=payload.outcome,
        manual_score=payload.manual_score,
        notes=payload.notes,
        scheduling=_scheduling(payload),
        reviewer=user.user_id,
    )
    return _transition_out(result)


@router.get("/{application_id}/assessment", response_model=AnswerSummaryOut)
async def get_assessment_summary(
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    _: UserContext = Depends(require_roles(REVIEWER_ROLES)),
):
    summary = await scoring.summarize_answers(session, application)
    return AnswerSummaryOut(
        scoring_mode=summary.scoring_mode.value,
        total=summary.total,
        correct=summary.correct,
        unanswered=summary.unanswered,
        score=summary.score,
    )


@router.get("/{application_id}/test-status", response_model=AssessmentStatusOut)
async def get_test_status(
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    _: UserContext = Depends(require_roles([Role.CANDIDATE, *REVIEWER_ROLES])),
):
    return AssessmentStatusOut.model_validate(await applications.get_test_status(session, application))


@router.post("/{application_id}/finalize", response_model=FinalizeOut, status_code=status.HTTP_200_OK)
async def finalize_application(
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    _: UserContext = Depends(require_roles(DECISION_MAKER_ROLES)),
):
    result = await final_decision.try_finalize(session, application=application)
    return FinalizeOut(
        application_id=result.application_id,
        finalized=result.finalized,
        overall_score=result.overall_score,
        missing_stages=list(result.missing_stages),
    )
