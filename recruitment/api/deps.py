from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.core.auth import get_current_user
from recruitment.db.session import get_session
from recruitment.models.application import RecApplication
from recruitment.schemas.user import UserContext
from recruitment.services.applications import get_application


async def get_db_session() -> AsyncSession:
    async for session in get_session():
        yield session


async def get_user(user: UserContext = Depends(get_current_user)) -> UserContext:
    return user


async def get_application_or_404(
    application_id: int,
    session: AsyncSession = Depends(get_db_session),
) -> RecApplication:
    # ApplicationNotFound is mapped to 404 by the app's error handlers.
    return await get_application(session, application_id)
