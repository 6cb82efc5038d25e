from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from listmod.db import get_session, unit_of_work
from listmod.auth_deps import get_current_user
from listmod.schemas.shift import ShiftCreate, ShiftPublic
from listmod.services.permissions import Permission, require_permission
from listmod.services.shifts import create_shift, shifts_for

router = APIRouter(prefix="/shifts", tags=["shifts"])


@router.post("", response_model=ShiftPublic, status_code=201)
async def create(
    body: ShiftCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
):
    async with unit_of_work(session):
        await require_permission(session, user.id, Permission.SHIFT_MANAGE)
        shift = await create_shift(session, body.user_id, body.target_count, body.start_at, body.end_at)
    return ShiftPublic.model_validate(shift)


@router.get("/me", response_model=list[ShiftPublic])
async def my_shifts(
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    limit: int = Query(default=50, ge=1, le=200),
):
    await require_permission(session, user.id, Permission.SUBMISSION_REVIEW)
    return [ShiftPublic.model_validate(s) for s in await shifts_for(session, user.id, limit)]
