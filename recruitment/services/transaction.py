from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.core.errors import FatalConfigurationError, InconsistentStateError, PipelineValidationError

logger = logging.getLogger("rec.stage")

T = TypeVar("T")


async def run_in_transaction(
    session: AsyncSession,
    *,
    action: str,
    application_id: int | None,
    work: Callable[[], Awaitable[T]],
) -> T:
    """Commit everything `work` wrote, or roll all of it back and re-raise."""
    try:
        result = await work()
        await session.commit()
    except Exception as exc:
        await session.rollback()
        extra = {"action": action, "application_id": application_id, "error": type(exc).__name__}
        if isinstance(exc, PipelineValidationError):
            logger.info("stage_transition_rejected", extra=extra)
        elif isinstance(exc, InconsistentStateError):
            logger.warning("stage_transition_rolled_back", extra=extra)
        elif isinstance(exc, FatalConfigurationError):
            logger.error("stage_transition_rolled_back", extra=extra)
        else:
            logger.exception("stage_transition_rolled_back", extra=extra)
        raise
    logger.info("stage_transition_committed", extra={"action": action, "application_id": application_id})
    return result
