from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone as dt_tz
from uuid import UUID
import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from listmod.db import unit_of_work
from listmod.errors import NotFoundError, ValidationError
from listmod.models.shift import Shift, ShiftStatus
from listmod.models.user import User
from listmod.services.notifications import notify, SUCCESS

log = structlog.get_logger()

RUNNING = ShiftStatus.RUNNING.value


@dataclass(frozen=True)
class MissedShift:
    shift_id: UUID
    user_id: UUID
    completed_count: int
    target_count: int
    end_at: datetime


def _now() -> datetime:
    return datetime.now(dt_tz.utc)


async def create_shift(
    session: AsyncSession, user_id: UUID, target_count: int, start_at: datetime, end_at: datetime
) -> Shift:
    if target_count <= 0:
        raise ValidationError("A shift needs a positive target count")
    if end_at <= start_at:
        raise ValidationError("A shift must end after it starts")
    if await session.get(User, user_id) is None:
        raise NotFoundError("Could not find this user")
    now = _now()
    shift = Shift(
        user_id=user_id, target_count=target_count, completed_count=0,
        start_at=start_at, end_at=end_at, status=RUNNING, created_at=now, updated_at=now,
    )
    session.add(shift)
    await session.flush()
    log.info("shift_created", shift_id=str(shift.id), user_id=str(user_id), target_count=target_count)
    return shift


async def shifts_for(session: AsyncSession, user_id: UUID, limit: int = 50) -> list[Shift]:
    rows = await session.execute(
        select(Shift).where(Shift.user_id == user_id).order_by(Shift.start_at.desc()).limit(limit)
    )
    return list(rows.scalars().all())


async def credit_shift(session: AsyncSession, reviewer_id: UUID) -> Shift | None:
    """
    Count one review toward the reviewer's current running shift, if any.
    Runs in the caller's transaction so the credit rolls back with the review.
    """
    now = _now()
    shift = await session.scalar(
        select(Shift)
        .where(Shift.user_id == reviewer_id, Shift.status == RUNNING, Shift.start_at <= now, Shift.end_at > now)
        .order_by(Shift.start_at.asc())
        .limit(1)
        .with_for_update()
    )
    if shift is None:
        return None
    shift.completed_count += 1
    shift.updated_at = now
    if shift.completed_count >= shift.target_count:
        shift.status = ShiftStatus.COMPLETED.value
        await notify(session, reviewer_id, "You have completed your shift!", SUCCESS)
        log.info("shift_completed", shift_id=str(shift.id), user_id=str(reviewer_id))
    return shift


async def expire_overdue_shifts(session: AsyncSession) -> list[MissedShift]:
    """Mark every running shift past its end as Expired. A second run finds nothing."""
    now = _now()
    async with unit_of_work(session):
        overdue = (await session.execute(
            select(Shift.id, Shift.user_id, Shift.completed_count, Shift.target_count, Shift.end_at)
            .where(Shift.status == RUNNING, Shift.end_at < now)
            .with_for_update(skip_locked=True)
        )).all()
        if not overdue:
            return []
        await session.execute(
            update(Shift)
            .where(Shift.id.in_([row.id for row in overdue]), Shift.status == RUNNING)
            .values(status=ShiftStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
    return [MissedShift(row.id, row.user_id, row.completed_count, row.target_count, row.end_at) for row in overdue]
