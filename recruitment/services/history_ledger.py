from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.core.datetime_utils import utcnow_naive
from recruitment.core.errors import InconsistentStateError
from recruitment.models.history import RecApplicationHistory
from recruitment.models.status import RecStatus


async def get_active_record(session: AsyncSession, application_id: int) -> RecApplicationHistory | None:
    return (
        await session.execute(
            select(RecApplicationHistory)
            .where(RecApplicationHistory.application_id == application_id, RecApplicationHistory.is_active.is_(True))
            .order_by(RecApplicationHistory.processed_at.desc(), RecApplicationHistory.history_id.desc())
            .limit(1)
        )
    ).scalars().first()


async def get_active_record_for_status(
    session: AsyncSession, application_id: int, status_id: int
) -> RecApplicationHistory | None:
    return (
        await session.execute(
            select(RecApplicationHistory)
            .where(
                RecApplicationHistory.application_id == application_id,
                RecApplicationHistory.status_id == status_id,
                RecApplicationHistory.is_active.is_(True),
            )
            .order_by(RecApplicationHistory.processed_at.desc(), RecApplicationHistory.history_id.desc())
            .limit(1)
        )
    ).scalars().first()


async def get_history(session: AsyncSession, application_id: int) -> list[RecApplicationHistory]:
    """Every stage visit of the application, oldest first."""
    return list(
        (
            await session.execute(
                select(RecApplicationHistory)
                .where(RecApplicationHistory.application_id == application_id)
                .order_by(RecApplicationHistory.processed_at, RecApplicationHistory.history_id)
            )
        ).scalars()
    )


async def latest_scored_record(
    session: AsyncSession, application_id: int, status_code: str
) -> RecApplicationHistory | None:
    """Most recent closed visit of the given status that carries a score."""
    return (
        await session.execute(
            select(RecApplicationHistory)
            .join(RecStatus, RecStatus.status_id == RecApplicationHistory.status_id)
            .where(
                RecApplicationHistory.application_id == application_id,
                RecStatus.code == status_code,
                RecApplicationHistory.is_active.is_(False),
                RecApplicationHistory.score.is_not(None),
            )
            .order_by(RecApplicationHistory.completed_at.desc(), RecApplicationHistory.history_id.desc())
            .limit(1)
        )
    ).scalars().first()


async def open_stage(
    session: AsyncSession,
    *,
    application_id: int,
    status_id: int,
    scheduled_at: datetime | None = None,
    resource_url: str | None = None,
    reviewer: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> RecApplicationHistory:
    """Start a new active visit. The caller deactivates any previous active record first."""
    now = now or utcnow_naive()
    record = RecApplicationHistory(
        application_id=application_id,
        status_id=status_id,
        processed_at=now,
        scheduled_at=scheduled_at,
        resource_url=resource_url,
        reviewed_by=reviewer,
        notes=notes,
        is_active=True,
        created_at=now,
    )
    session.add(record)
    await session.flush()
    return record


async def record_terminal(
    session: AsyncSession,
    *,
    application_id: int,
    status_id: int,
    reviewer: str | None,
    notes: str | None = None,
    now: datetime | None = None,
) -> RecApplicationHistory:
    """Terminal outcome row written by the final decision: decided on entry, stays active."""
    now = now or utcnow_naive()
    record = RecApplicationHistory(
        application_id=application_id,
        status_id=status_id,
        notes=notes,
        processed_at=now,
        completed_at=now,
        reviewed_by=reviewer,
        reviewed_at=now,
        is_active=True,
        created_at=now,
    )
    session.add(record)
    await session.flush()
    return record


async def close_stage(
    session: AsyncSession,
    record: RecApplicationHistory,
    *,
    reviewer: str | None,
    score: float | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> RecApplicationHistory:
    """
    Attach the outcome and deactivate in one conditional UPDATE.

    Guarded on `is_active` so two reviewers racing on the same record cannot both close it;
    the loser gets InconsistentStateError instead of a silent double transition.
    """
    now = now or utcnow_naive()
    values = {
        "score": score,
        "completed_at": now,
        "reviewed_by": reviewer,
        "reviewed_at": now,
        "is_active": False,
    }
    if notes is not None:
        values["notes"] = notes
    result = await session.execute(
        update(RecApplicationHistory)
        .where(RecApplicationHistory.history_id == record.history_id, RecApplicationHistory.is_active.is_(True))
        .values(**values)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != 1:
        raise InconsistentStateError(
            f"History record {record.history_id} is no longer active; it was decided concurrently."
        )
    return record


async def deactivate_all_except(
    session: AsyncSession, application_id: int, keep_history_id: int | None = None
) -> int:
    """Sweep stray active records so at most one stays active. Returns how many were flipped."""
    stmt = update(RecApplicationHistory).where(
        RecApplicationHistory.application_id == application_id,
        RecApplicationHistory.is_active.is_(True),
    )
    if keep_history_id is not None:
        stmt = stmt.where(RecApplicationHistory.history_id != keep_history_id)
    result = await session.execute(
        stmt.values(is_active=False).execution_options(synchronize_session="evaluate")
    )
    return result.rowcount or 0
