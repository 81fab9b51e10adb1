from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.api import deps
from recruitment.schemas.status import StatusOut
from recruitment.schemas.user import UserContext
from recruitment.services import status_catalog

router = APIRouter(prefix="/rec/statuses", tags=["statuses"])


@router.get("", response_model=list[StatusOut])
async def list_statuses(
    session: AsyncSession = Depends(deps.get_db_session),
    _: UserContext = Depends(deps.get_user),
):
    return await status_catalog.list_statuses(session)
