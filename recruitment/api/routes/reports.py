from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.api import deps
from recruitment.core.auth import require_roles
from recruitment.core.roles import DECISION_MAKER_ROLES
from recruitment.models.application import RecApplication
from recruitment.schemas.report import ReportDecisionIn, ReportListItem, ReportOut
from recruitment.schemas.user import UserContext
from recruitment.services import final_decision, status_catalog
from recruitment.services.final_decision import ReportDecision

router = APIRouter(prefix="/rec/reports", tags=["reports"])


@router.get("", response_model=list[ReportListItem])
async def list_reports(
    decision: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(deps.get_db_session),
    _: UserContext = Depends(require_roles(DECISION_MAKER_ROLES)),
):
    decision_filter: ReportDecision | None = None
    if decision:
        try:
            decision_filter = ReportDecision(decision.strip().lower())
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid decision filter") from None

    rows = await final_decision.list_reports(session, decision=decision_filter)
    statuses = await status_catalog.statuses_by_id(session, {application.status_id for _, application in rows})
    items: list[ReportListItem] = []
    for report, application in rows:
        current = statuses.get(application.status_id)
        items.append(
            ReportListItem(
                application_id=application.application_id,
                candidate_ref=application.candidate_ref,
                job_period_id=application.job_period_id,
                status_code=current.code if current else None,
                overall_score=report.overall_score,
                final_decision=report.final_decision,
                decision_made_at=report.decision_made_at,
            )
        )
    return items


@router.post("/{application_id}/decision", response_model=ReportOut)
async def decide_report(
    payload: ReportDecisionIn,
    application: RecApplication = Depends(deps.get_application_or_404),
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(require_roles(DECISION_MAKER_ROLES)),
):
    report = await final_decision.finalize_decision(
        session,
        application=application,
        decision=payload.final_decision,
        notes=payload.notes,
        reviewer=user.user_id,
    )
    return ReportOut.model_validate(report)
