from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from uuid import UUID
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from listmod.lists import ListConfig
from listmod.models.toggle import SubmissionsEnabled

log = structlog.get_logger()


async def submissions_enabled(session: AsyncSession, lst: ListConfig) -> bool:
    latest = await session.scalar(
        select(SubmissionsEnabled.enabled)
        .where(SubmissionsEnabled.list_id == lst.id)
        .order_by(SubmissionsEnabled.created_at.desc())
        .limit(1)
    )
    # Never toggled => open
    return True if latest is None else bool(latest)


async def set_submissions_enabled(session: AsyncSession, lst: ListConfig, enabled: bool, moderator_id: UUID) -> SubmissionsEnabled:
    row = SubmissionsEnabled(
        list_id=lst.id,
        enabled=enabled,
        moderator_id=moderator_id,
        created_at=datetime.now(dt_tz.utc),
    )
    session.add(row)
    log.info("submissions_toggled", list_id=lst.id, enabled=enabled, moderator_id=str(moderator_id))
    return row
