from __future__ import annotations

import json
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitment.models.event import RecApplicationEvent


async def log_event(
    session: AsyncSession,
    *,
    application_id: int,
    action_type: str,
    from_status: str | None = None,
    to_status: str | None = None,
    performed_by: str | None = None,
    meta_json: Dict[str, Any] | None = None,
) -> RecApplicationEvent:
    meta_text: Optional[str] = None
    if meta_json is not None:
        meta_text = json.dumps(meta_json, ensure_ascii=False, separators=(",", ":"), default=str)

    event = RecApplicationEvent(
        application_id=application_id,
        action_type=action_type,
        from_status=from_status,
        to_status=to_status,
        performed_by=performed_by,
        meta_json=meta_text,
    )
    session.add(event)
    await session.flush()
    return event


async def list_events(session: AsyncSession, application_id: int) -> list[RecApplicationEvent]:
    return list(
        (
            await session.execute(
                select(RecApplicationEvent)
                .where(RecApplicationEvent.application_id == application_id)
                .order_by(RecApplicationEvent.created_at, RecApplicationEvent.application_event_id)
            )
        ).scalars()
    )
