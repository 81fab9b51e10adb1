from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.api import deps
from recruitment.core.auth import require_roles
from recruitment.core.roles import REVIEWER_ROLES
from recruitment.core.stage_machine import is_working_stage, normalize_stage_name
from recruitment.schemas.application import StageApplicationItem
from recruitment.schemas.user import UserContext
from recruitment.services import applications

router = APIRouter(prefix="/rec/stages", tags=["stages"])


@router.get("/{stage}/applications", response_model=list[StageApplicationItem])
async def list_stage_applications(
    stage: str,
    job_period_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(deps.get_db_session),
    _: UserContext = Depends(require_roles(REVIEWER_ROLES)),
):
    normalized = normalize_stage_name(stage)
    if normalized is None or not is_working_stage(normalized):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown stage '{stage}'")

    rows = await applications.list_stage_applications(session, stage=normalized, job_period_id=job_period_id)
    return [
        StageApplicationItem(
            application_id=application.application_id,
            candidate_ref=application.candidate_ref,
            job_period_id=application.job_period_id,
            history_id=record.history_id,
            processed_at=record.processed_at,
            scheduled_at=record.scheduled_at,
            resource_url=record.resource_url,
            notes=record.notes,
        )
        for application, record in rows
    ]
