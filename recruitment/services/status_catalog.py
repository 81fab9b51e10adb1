from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.core.errors import FatalConfigurationError
from recruitment.core.stage_machine import (
    ACCEPTED,
    ADMIN_SELECTION,
    COMPLETED,
    GROUP_ADMINISTRATIVE,
    GROUP_INTERVIEW,
    GROUP_PSYCHOLOGICAL,
    GROUP_TERMINAL,
    HIRED,
    INTERVIEW,
    PSYCHOTEST,
    REJECTED,
    Stage,
    descriptor_for,
)
from recruitment.models.status import RecStatus

logger = logging.getLogger("rec.catalog")

# (code, name, stage grouping, description)
STATUS_SEED: tuple[tuple[str, str, str, str], ...] = (
    (ADMIN_SELECTION, "Administrative Selection", GROUP_ADMINISTRATIVE, "Candidate is in administrative selection stage"),
    (PSYCHOTEST, "Psychological Test", GROUP_PSYCHOLOGICAL, "Candidate is taking psychological test"),
    (INTERVIEW, "Interview", GROUP_INTERVIEW, "Candidate is in interview stage"),
    (ACCEPTED, "Accepted", GROUP_TERMINAL, "Candidate has been accepted"),
    (REJECTED, "Rejected", GROUP_TERMINAL, "Candidate has been rejected"),
    (HIRED, "Hired", GROUP_TERMINAL, "Candidate has been hired"),
    (COMPLETED, "Completed", GROUP_TERMINAL, "Candidate has completed every stage"),
)


async def find_by_code(session: AsyncSession, code: str) -> RecStatus:
    status = (
        await session.execute(select(RecStatus).where(RecStatus.code == code).limit(1))
    ).scalars().first()
    if status is None:
        logger.error("status_not_configured", extra={"status_code": code})
        raise FatalConfigurationError(f"Status '{code}' is not configured.")
    return status


async def find_by_stage(session: AsyncSession, grouping: str) -> RecStatus:
    """First status in a grouping; working groupings hold exactly one status."""
    status = (
        await session.execute(
            select(RecStatus).where(RecStatus.stage == grouping).order_by(RecStatus.status_id).limit(1)
        )
    ).scalars().first()
    if status is None:
        logger.error("status_not_configured", extra={"status_stage": grouping})
        raise FatalConfigurationError(f"No status configured for stage '{grouping}'.")
    return status


async def status_for_stage(session: AsyncSession, stage: Stage) -> RecStatus:
    return await find_by_code(session, descriptor_for(stage).status_code)


async def get_status(session: AsyncSession, status_id: int) -> RecStatus:
    status = await session.get(RecStatus, status_id)
    if status is None:
        raise FatalConfigurationError(f"Status id {status_id} is not configured.")
    return status


async def statuses_by_id(session: AsyncSession, status_ids: Iterable[int] | None = None) -> dict[int, RecStatus]:
    stmt = select(RecStatus)
    if status_ids is not None:
        ids = set(status_ids)
        if not ids:
            return {}
        stmt = stmt.where(RecStatus.status_id.in_(ids))
    rows = (await session.execute(stmt)).scalars().all()
    return {row.status_id: row for row in rows}


async def list_statuses(session: AsyncSession) -> list[RecStatus]:
    return list((await session.execute(select(RecStatus).order_by(RecStatus.status_id))).scalars())


async def seed_statuses(session: AsyncSession) -> int:
    """Insert missing catalog rows. Existing rows are left untouched. Caller commits."""
    existing = set((await session.execute(select(RecStatus.code))).scalars())
    created = 0
    for code, name, grouping, description in STATUS_SEED:
        if code in existing:
            continue
        session.add(RecStatus(code=code, name=name, stage=grouping, description=description, is_active=True))
        created += 1
    if created:
        await session.flush()
        logger.info("statuses_seeded", extra={"created": created})
    return created
